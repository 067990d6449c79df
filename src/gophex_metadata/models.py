"""Metadata document model and its JSON (de)serialization.

The document is the JSON payload of ``gophex.md``.  ``from_dict`` ignores
keys it does not know so files written by other generator releases still
load; missing keys take their defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from gophex_metadata.hierarchy import DirectoryNode
from gophex_metadata.inventory import CommandInfo, EndpointInfo

# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def now_timestamp() -> str:
    """Current UTC time as an RFC 3339 string (second precision)."""
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def later_timestamp(previous: str, current: str) -> str:
    """Return *current* unless *previous* parses as a later instant."""
    prev_dt = _parse_timestamp(previous) if previous else None
    cur_dt = _parse_timestamp(current)
    if prev_dt is not None and cur_dt is not None and prev_dt > cur_dt:
        return previous
    return current


def _plural(count: int, unit: str) -> str:
    if count == 1:
        return f"1 {unit} ago"
    return f"{count} {unit}s ago"


def format_time_ago(timestamp: str, now: datetime | None = None) -> str:
    """Render *timestamp* as e.g. ``"3 hours ago"``; ``"unknown"`` if unparsable."""
    if not timestamp:
        return "unknown"
    then = _parse_timestamp(timestamp)
    if then is None:
        return "unknown"

    seconds = ((now or datetime.now(tz=timezone.utc)) - then).total_seconds()
    hours = seconds / 3600
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return _plural(int(seconds // 60), "minute")
    if hours < 24:
        return _plural(int(hours), "hour")
    if hours < 7 * 24:
        return _plural(int(hours // 24), "day")
    if hours < 30 * 24:
        return _plural(int(hours // (24 * 7)), "week")
    if hours < 365 * 24:
        return _plural(int(hours // (24 * 30)), "month")
    return _plural(int(hours // (24 * 365)), "year")


# ---------------------------------------------------------------------------
# Generator inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Database choices made in the generator wizard."""

    type: str  # mysql, postgresql, mongodb
    config_type: str = "single"  # single, read-write, cluster
    ssl_mode: str = ""
    host: str = ""
    port: str = ""
    username: str = ""
    password: str = ""
    database_name: str = ""
    read_host: str = ""
    write_host: str = ""
    cluster_nodes: tuple[str, ...] = ()
    auth_source: str = ""
    replica_set: str = ""


@dataclass(frozen=True)
class RedisConfig:
    """Redis choices made in the generator wizard."""

    enabled: bool = True
    host: str = ""
    port: str = ""
    password: str = ""
    database: int = 0


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


def optional_text(value: Any) -> str:
    """Coerce a decoded JSON scalar to ``str``; ``null`` reads as ``""``."""
    return "" if value is None else str(value)


def _object(value: Any, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        msg = f"'{key}' must be an object, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    return _object(data.get(key), key)


def _list_section(data: dict[str, Any], key: str) -> list[dict[str, Any]] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        msg = f"'{key}' must be a list of objects"
        raise ValueError(msg)
    return value


@dataclass
class ProjectInfo:
    name: str
    type: str
    version: str = "1.0.0"
    gophex_version: str = ""
    generated_at: str = ""
    last_updated: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "version": self.version,
            "gophex_version": self.gophex_version,
            "generated_at": self.generated_at,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectInfo:
        return cls(
            name=optional_text(data.get("name")),
            type=optional_text(data.get("type")),
            version=optional_text(data.get("version")),
            gophex_version=optional_text(data.get("gophex_version")),
            generated_at=optional_text(data.get("generated_at")),
            last_updated=optional_text(data.get("last_updated")),
        )


@dataclass
class DatabaseMetadata:
    configured: bool = False
    type: str = ""
    config_type: str = ""
    is_clustered: bool = False
    has_read_write_split: bool = False
    ssl_enabled: bool = False
    migrations_executed: bool = False
    schema_initialized: bool = False

    @classmethod
    def from_config(cls, config: DatabaseConfig | None) -> DatabaseMetadata:
        """Summarize generator database settings (execution flags start False)."""
        if config is None:
            return cls()
        return cls(
            configured=True,
            type=config.type,
            config_type=config.config_type,
            is_clustered=config.config_type == "cluster",
            has_read_write_split=config.config_type == "read-write",
            ssl_enabled=bool(config.ssl_mode) and config.ssl_mode != "disable",
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"configured": self.configured}
        if self.type:
            data["type"] = self.type
        if self.config_type:
            data["config_type"] = self.config_type
        data.update(
            {
                "is_clustered": self.is_clustered,
                "has_read_write_split": self.has_read_write_split,
                "ssl_enabled": self.ssl_enabled,
                "migrations_executed": self.migrations_executed,
                "schema_initialized": self.schema_initialized,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DatabaseMetadata:
        return cls(
            configured=bool(data.get("configured", False)),
            type=optional_text(data.get("type")),
            config_type=optional_text(data.get("config_type")),
            is_clustered=bool(data.get("is_clustered", False)),
            has_read_write_split=bool(data.get("has_read_write_split", False)),
            ssl_enabled=bool(data.get("ssl_enabled", False)),
            migrations_executed=bool(data.get("migrations_executed", False)),
            schema_initialized=bool(data.get("schema_initialized", False)),
        )


@dataclass
class RedisMetadata:
    configured: bool = False
    enabled: bool = False

    @classmethod
    def from_config(cls, config: RedisConfig | None) -> RedisMetadata:
        if config is None:
            return cls()
        return cls(configured=True, enabled=config.enabled)

    def to_dict(self) -> dict[str, Any]:
        return {"configured": self.configured, "enabled": self.enabled}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RedisMetadata:
        return cls(
            configured=bool(data.get("configured", False)),
            enabled=bool(data.get("enabled", False)),
        )


@dataclass
class ActivityInfo:
    """Completion state of one post-generation activity."""

    completed: bool = False
    timestamp: str | None = None
    can_repeat: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"completed": self.completed}
        if self.timestamp:
            data["timestamp"] = self.timestamp
        data["can_repeat"] = self.can_repeat
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivityInfo:
        timestamp = data.get("timestamp")
        return cls(
            completed=bool(data.get("completed", False)),
            timestamp=str(timestamp) if timestamp else None,
            can_repeat=bool(data.get("can_repeat", False)),
        )


@dataclass
class ProjectMetadata:
    """Root aggregate persisted in ``gophex.md``."""

    project: ProjectInfo
    hierarchy: DirectoryNode = field(default_factory=DirectoryNode)
    database: DatabaseMetadata = field(default_factory=DatabaseMetadata)
    redis: RedisMetadata = field(default_factory=RedisMetadata)
    activities: dict[str, ActivityInfo] = field(default_factory=dict)
    features: dict[str, bool] = field(default_factory=dict)
    endpoints: list[EndpointInfo] | None = None
    commands: list[CommandInfo] | None = None

    def touch(self, now: str | None = None) -> None:
        """Refresh ``project.last_updated`` without moving it backwards."""
        self.project.last_updated = later_timestamp(
            self.project.last_updated, now or now_timestamp()
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "project": self.project.to_dict(),
            "hierarchy": self.hierarchy.to_json(),
            "database": self.database.to_dict(),
            "redis": self.redis.to_dict(),
            "activities": {name: a.to_dict() for name, a in self.activities.items()},
            "features": dict(self.features),
        }
        if self.endpoints is not None:
            data["endpoints"] = [e.to_json() for e in self.endpoints]
        if self.commands is not None:
            data["commands"] = [c.to_json() for c in self.commands]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectMetadata:
        """Build a document from decoded JSON.

        Raises:
            ValueError: If a known section has the wrong shape.
        """
        activities = {
            str(name): ActivityInfo.from_dict(_object(raw, f"activities.{name}"))
            for name, raw in _section(data, "activities").items()
        }
        endpoints = _list_section(data, "endpoints")
        commands = _list_section(data, "commands")
        return cls(
            project=ProjectInfo.from_dict(_section(data, "project")),
            hierarchy=DirectoryNode.from_json(_section(data, "hierarchy")),
            database=DatabaseMetadata.from_dict(_section(data, "database")),
            redis=RedisMetadata.from_dict(_section(data, "redis")),
            activities=activities,
            features={str(k): bool(v) for k, v in _section(data, "features").items()},
            endpoints=None if endpoints is None else [EndpointInfo.from_json(e) for e in endpoints],
            commands=None if commands is None else [CommandInfo.from_json(c) for c in commands],
        )
