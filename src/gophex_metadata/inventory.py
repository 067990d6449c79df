"""Endpoint and command inventory for known project kinds.

The inventory is presence-based: a handler file existing at its scaffold
location means the scaffolded routes for it are listed.  Route declarations
are not parsed, so hand-added or removed routes are not reflected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndpointInfo:
    """One HTTP endpoint exposed by an api project."""

    method: str
    path: str
    description: str
    protected: bool

    def to_json(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "path": self.path,
            "description": self.description,
            "protected": self.protected,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> EndpointInfo:
        return cls(
            method=str(data.get("method") or ""),
            path=str(data.get("path") or ""),
            description=str(data.get("description") or ""),
            protected=bool(data.get("protected", False)),
        )


@dataclass(frozen=True)
class CommandInfo:
    """One command exposed by a cli project."""

    name: str
    description: str
    subcommands: tuple[str, ...] = field(default_factory=tuple)

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "subcommands": list(self.subcommands),
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> CommandInfo:
        return cls(
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            subcommands=tuple(data.get("subcommands") or ()),
        )


HEALTH_ENDPOINT = EndpointInfo("GET", "/api/v1/health", "Health check endpoint", protected=False)

# (handler file, endpoints it implies), in output order.
_ENDPOINT_GROUPS: tuple[tuple[str, tuple[EndpointInfo, ...]], ...] = (
    (
        "internal/api/handlers/auth.go",
        (
            EndpointInfo("POST", "/api/v1/auth/register", "User registration", protected=False),
            EndpointInfo("POST", "/api/v1/auth/login", "User login", protected=False),
        ),
    ),
    (
        "internal/api/handlers/users.go",
        (
            EndpointInfo("GET", "/api/v1/users", "List users", protected=True),
            EndpointInfo("GET", "/api/v1/users/{id}", "Get user by ID", protected=True),
            EndpointInfo("PUT", "/api/v1/users/{id}", "Update user", protected=True),
            EndpointInfo("DELETE", "/api/v1/users/{id}", "Delete user", protected=True),
        ),
    ),
    (
        "internal/api/handlers/posts.go",
        (
            EndpointInfo("GET", "/api/v1/posts", "List posts", protected=False),
            EndpointInfo("GET", "/api/v1/posts/{id}", "Get post by ID", protected=False),
            EndpointInfo("POST", "/api/v1/posts", "Create post", protected=True),
            EndpointInfo("PUT", "/api/v1/posts/{id}", "Update post", protected=True),
            EndpointInfo("DELETE", "/api/v1/posts/{id}", "Delete post", protected=True),
        ),
    ),
)


def scan_api_endpoints(project_root: Path) -> list[EndpointInfo]:
    """List the endpoints of an api project: health, then auth, users, posts."""
    endpoints = [HEALTH_ENDPOINT]
    for handler, group in _ENDPOINT_GROUPS:
        if (project_root / handler).exists():
            endpoints.extend(group)
    logger.debug("Found %d endpoints in %s", len(endpoints), project_root)
    return endpoints


def scan_cli_commands(project_root: Path) -> list[CommandInfo]:  # noqa: ARG001
    """List the commands of a cli project (root command only)."""
    # TODO: read subcommand registrations from internal/cmd/*.go
    return [CommandInfo(name="root", description="Root command")]


def build_inventory(
    project_root: Path, project_kind: str
) -> tuple[list[EndpointInfo] | None, list[CommandInfo] | None]:
    """Return ``(endpoints, commands)``; each is None when not applicable."""
    if project_kind == "api":
        return scan_api_endpoints(project_root), None
    if project_kind == "cli":
        return None, scan_cli_commands(project_root)
    return None, None
