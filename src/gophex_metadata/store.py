"""Persistence of the metadata document in ``gophex.md``.

The JSON document lives in the first ```` ```json ```` fenced block of a
markdown file at the project root.  Every update is a full
load -> mutate -> save cycle.  There is no locking: when two processes update
the same project concurrently the last writer wins.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from gophex_metadata.models import (
    ActivityInfo,
    ProjectInfo,
    ProjectMetadata,
    now_timestamp,
    optional_text,
)

if TYPE_CHECKING:
    from pathlib import Path

    from gophex_metadata.models import DatabaseConfig, RedisConfig

logger = logging.getLogger(__name__)

METADATA_FILENAME = "gophex.md"

_HEADER = (
    "# Gophex Project Metadata\n"
    "\n"
    "This file contains project metadata and progress tracking for Gophex-generated projects.\n"
    "**Do not edit this file manually** - it is automatically maintained by Gophex.\n"
    "\n"
)

_OPEN_FENCE_RE = re.compile(r"^```[ \t]*json[ \t]*\r?$", re.MULTILINE)
_CLOSE_FENCE_RE = re.compile(r"^```[ \t]*\r?$", re.MULTILINE)

_PREVIEW_CHARS = 200


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MetadataError(Exception):
    """Base class for metadata persistence failures."""


class MetadataIOError(MetadataError):
    """Raised when ``gophex.md`` cannot be read or written."""


class MetadataFormatError(MetadataError):
    """Raised when ``gophex.md`` is corrupt or has no metadata block."""


# ---------------------------------------------------------------------------
# Markdown encoding
# ---------------------------------------------------------------------------


def render_markdown(metadata: ProjectMetadata) -> str:
    """Return the full ``gophex.md`` text for *metadata*.

    Raises:
        MetadataError: If the document cannot be serialized to JSON.
    """
    try:
        payload = json.dumps(metadata.to_dict(), ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as exc:
        msg = f"failed to marshal metadata: {exc}"
        raise MetadataError(msg) from exc
    return f"{_HEADER}```json\n{payload}\n```\n"


def extract_json_block(text: str) -> str | None:
    """Return the payload of the first ```` ```json ```` block, or None if absent.

    Raises:
        MetadataFormatError: If the opening fence has no closing fence.
    """
    opening = _OPEN_FENCE_RE.search(text)
    if opening is None:
        return None

    start = opening.end() + 1
    closing = _CLOSE_FENCE_RE.search(text, start) if start <= len(text) else None
    if closing is None:
        msg = "metadata JSON block is not terminated by a closing ``` fence"
        raise MetadataFormatError(msg)
    return text[start : closing.start()].rstrip("\r\n")


def _from_legacy(data: dict[str, Any]) -> ProjectMetadata:
    """Convert the bare-JSON ``{"gophex": {...}}`` format of older releases."""
    gophex = data.get("gophex")
    project = gophex.get("project") if isinstance(gophex, dict) else None
    if not isinstance(project, dict) or not project.get("name"):
        msg = "metadata file appears to be corrupted - no project name found"
        raise MetadataFormatError(msg)

    generated_at = optional_text(gophex.get("generated_at"))
    return ProjectMetadata(
        project=ProjectInfo(
            name=str(project["name"]),
            type=optional_text(project.get("type")),
            gophex_version=optional_text(gophex.get("version")),
            generated_at=generated_at,
            last_updated=generated_at,
        )
    )


def parse_markdown(text: str) -> ProjectMetadata:
    """Decode the text of a ``gophex.md`` file.

    Raises:
        MetadataFormatError: If no metadata block is found or it does not
            decode into the document schema.
    """
    payload = extract_json_block(text)
    legacy = False
    if payload is None:
        stripped = text.strip()
        if not (stripped.startswith("{") and '"gophex"' in stripped):
            msg = f"no JSON found in metadata file; content preview: {text[:_PREVIEW_CHARS]!r}"
            raise MetadataFormatError(msg)
        payload = stripped
        legacy = True

    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, RecursionError) as exc:
        msg = f"failed to unmarshal metadata: {exc}"
        raise MetadataFormatError(msg) from exc
    if not isinstance(data, dict):
        msg = f"failed to unmarshal metadata: expected an object, got {type(data).__name__}"
        raise MetadataFormatError(msg)

    if legacy:
        logger.debug("Loading legacy metadata format")
        return _from_legacy(data)

    try:
        return ProjectMetadata.from_dict(data)
    except (ValueError, RecursionError) as exc:
        msg = f"failed to unmarshal metadata: {exc}"
        raise MetadataFormatError(msg) from exc


# ---------------------------------------------------------------------------
# File operations
# ---------------------------------------------------------------------------


def metadata_path(project_root: Path) -> Path:
    return project_root / METADATA_FILENAME


def has_metadata(project_root: Path) -> bool:
    """Return True if *project_root* contains a ``gophex.md`` file."""
    return metadata_path(project_root).is_file()


def save_metadata(project_root: Path, metadata: ProjectMetadata) -> None:
    """Write *metadata* to ``gophex.md``, replacing any previous content.

    Raises:
        MetadataError: If serialization fails.
        MetadataIOError: If the file cannot be written.
    """
    content = render_markdown(metadata)
    path = metadata_path(project_root)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        msg = f"failed to write metadata file {path}: {exc}"
        raise MetadataIOError(msg) from exc
    logger.info("Wrote %s", path)


def load_metadata(project_root: Path) -> ProjectMetadata:
    """Read and decode ``gophex.md``.

    Raises:
        MetadataIOError: If the file cannot be read.
        MetadataFormatError: If its content is not a valid metadata document.
    """
    path = metadata_path(project_root)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"failed to read metadata file {path}: {exc}"
        raise MetadataIOError(msg) from exc
    return parse_markdown(text)


def create_metadata(
    project_root: Path,
    project_name: str,
    project_kind: str,
    *,
    database: DatabaseConfig | None = None,
    redis: RedisConfig | None = None,
    gophex_version: str = "",
) -> ProjectMetadata:
    """Generate the document for a new project and write it to disk."""
    from gophex_metadata.generator import generate_metadata

    metadata = generate_metadata(
        project_root,
        project_name,
        project_kind,
        database=database,
        redis=redis,
        gophex_version=gophex_version,
    )
    save_metadata(project_root, metadata)
    return metadata


def update_activity(project_root: Path, activity: str, *, completed: bool) -> None:
    """Set the completion state of *activity*, creating it if absent.

    Completing an activity stamps its timestamp; un-completing keeps the
    previous timestamp.
    """
    metadata = load_metadata(project_root)
    info = metadata.activities.get(activity) or ActivityInfo()
    now = now_timestamp()
    info.completed = completed
    if completed:
        info.timestamp = now
    metadata.touch(now)
    metadata.activities[activity] = info
    save_metadata(project_root, metadata)


def update_database_status(
    project_root: Path, *, migrations_executed: bool, schema_initialized: bool
) -> None:
    """Record whether migrations ran and the schema was initialized."""
    metadata = load_metadata(project_root)
    metadata.database.migrations_executed = migrations_executed
    metadata.database.schema_initialized = schema_initialized
    metadata.touch()
    save_metadata(project_root, metadata)


def is_activity_completed(project_root: Path, activity: str) -> bool:
    """Return True if *activity* is recorded as completed.

    Load failures are logged and reported as "not completed".
    """
    try:
        metadata = load_metadata(project_root)
    except MetadataError as exc:
        logger.debug("Cannot read activity %s: %s", activity, exc)
        return False
    info = metadata.activities.get(activity)
    return info is not None and info.completed


def activity_prefix(project_root: Path, activity: str) -> str:
    """Return ``"re-"`` if *activity* was already completed, else ``""``."""
    return "re-" if is_activity_completed(project_root, activity) else ""
