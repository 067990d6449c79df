"""Build the metadata document for a freshly scaffolded project."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gophex_metadata.config import MetadataConfig, load_config
from gophex_metadata.features import detect_features
from gophex_metadata.hierarchy import scan_hierarchy
from gophex_metadata.inventory import build_inventory
from gophex_metadata.models import (
    ActivityInfo,
    DatabaseConfig,
    DatabaseMetadata,
    ProjectInfo,
    ProjectMetadata,
    RedisConfig,
    RedisMetadata,
    now_timestamp,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

PROJECT_VERSION = "1.0.0"

BASELINE_ACTIVITIES = (
    "project_generated",
    "dependencies_installed",
    "tests_executed",
    "project_opened",
    "documentation_viewed",
)

KIND_ACTIVITIES: dict[str, tuple[str, ...]] = {
    "api": ("database_migrated", "application_started", "change_detection_run"),
    "webapp": ("application_started",),
    "microservice": ("application_started",),
    "cli": ("application_built",),
}


def default_activities(project_kind: str, timestamp: str) -> dict[str, ActivityInfo]:
    """Seed the activity map: baseline entries plus those for *project_kind*.

    ``project_generated`` is the only completed, non-repeatable entry.
    """
    activities = {name: ActivityInfo(can_repeat=True) for name in BASELINE_ACTIVITIES}
    activities["project_generated"] = ActivityInfo(
        completed=True, timestamp=timestamp, can_repeat=False
    )
    for name in KIND_ACTIVITIES.get(project_kind, ()):
        activities[name] = ActivityInfo(can_repeat=True)
    return activities


def generate_metadata(
    project_root: Path,
    project_name: str,
    project_kind: str,
    *,
    database: DatabaseConfig | None = None,
    redis: RedisConfig | None = None,
    gophex_version: str = "",
    config: MetadataConfig | None = None,
) -> ProjectMetadata:
    """Scan *project_root* and assemble its metadata document.

    Nothing is written to disk; see :func:`gophex_metadata.store.save_metadata`.

    Raises:
        ValueError: If *project_name* is empty or *project_root* is not a directory.
        ScanError: If the project tree cannot be traversed.
    """
    if not project_name:
        msg = "project name must not be empty"
        raise ValueError(msg)
    if not project_root.is_dir():
        msg = f"project root is not a directory: {project_root}"
        raise ValueError(msg)

    if config is None:
        config = load_config(project_root)

    now = now_timestamp()
    hierarchy = scan_hierarchy(project_root, classifier=config.classifier)
    endpoints, commands = build_inventory(project_root, project_kind)

    metadata = ProjectMetadata(
        project=ProjectInfo(
            name=project_name,
            type=project_kind,
            version=PROJECT_VERSION,
            gophex_version=gophex_version,
            generated_at=now,
            last_updated=now,
        ),
        hierarchy=hierarchy,
        database=DatabaseMetadata.from_config(database),
        redis=RedisMetadata.from_config(redis),
        activities=default_activities(project_kind, now),
        features=detect_features(project_root, config.feature_paths),
        endpoints=endpoints,
        commands=commands,
    )
    logger.debug(
        "Generated metadata for %s (%s): %d features",
        project_name,
        project_kind,
        len(metadata.features),
    )
    return metadata
