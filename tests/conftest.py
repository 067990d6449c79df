"""Shared test fixtures for gophex-metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

import pytest

if TYPE_CHECKING:
    from pathlib import Path

_API_FILES = (
    "cmd/api/main.go",
    "go.mod",
    "README.md",
    ".env",
    ".env.example",
    "internal/api/handlers/auth.go",
    "internal/api/handlers/users.go",
    "internal/api/handlers/posts.go",
    "internal/api/handlers/health.go",
    "internal/api/middleware/cors.go",
    "internal/api/middleware/logging.go",
    "internal/api/routes/routes.go",
    "internal/domain/user/user.go",
    "internal/infrastructure/database/database.go",
    "internal/infrastructure/database/postgres/user_repo.go",
    "internal/pkg/logger/logger.go",
    "migrations/001_init.up.sql",
    "migrations/001_init.down.sql",
    "scripts/migrate.sh",
    ".git/HEAD",
    ".git/objects/ab/cdef",
    ".gitignore",
)


def _write_files(root: Path, rel_paths: tuple[str, ...] | list[str]) -> None:
    for rel in rel_paths:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("// generated\n", encoding="utf-8")


@pytest.fixture()
def make_tree() -> Callable[[Path, tuple[str, ...] | list[str]], None]:
    """Return a helper that creates the given relative files under a root."""
    return _write_files


@pytest.fixture()
def api_project(tmp_path: Path) -> Path:
    """Create a scaffolded api project with auth, users and posts handlers."""
    project = tmp_path / "blog-api"
    project.mkdir()
    _write_files(project, _API_FILES)
    return project
