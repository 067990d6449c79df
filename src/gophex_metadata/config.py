"""Per-project overrides for the classification and feature tables.

Read from ``.gophex/metadata.yml`` under the project root::

    labels:
      schema.graphql: graphql_schema
    features:
      graphql_api: internal/graphql
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import yaml

from gophex_metadata.classifier import DEFAULT_CLASSIFIER, PathClassifier
from gophex_metadata.features import FEATURE_PATHS

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_RELPATH = ".gophex/metadata.yml"


@dataclass(frozen=True)
class MetadataConfig:
    """Label and feature tables used for one generation run."""

    extra_labels: Mapping[str, str] = field(default_factory=dict)
    feature_paths: Mapping[str, str] = field(default_factory=lambda: FEATURE_PATHS)

    @property
    def classifier(self) -> PathClassifier:
        return DEFAULT_CLASSIFIER.with_labels(self.extra_labels)


def _string_table(data: dict[str, Any], section: str, config_path: Path) -> dict[str, str]:
    raw = data.get(section)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring '%s' in %s: expected a mapping", section, config_path)
        return {}
    table: dict[str, str] = {}
    for key, value in raw.items():
        if not isinstance(value, str) or not value:
            logger.warning(
                "Ignoring %s.%s in %s: expected a non-empty string", section, key, config_path
            )
            continue
        table[str(key)] = value
    return table


def load_config(project_root: Path) -> MetadataConfig:
    """Load overrides for *project_root*, falling back to the built-in tables."""
    config_path = project_root / CONFIG_RELPATH
    if not config_path.is_file():
        return MetadataConfig()

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using default tables", config_path)
        return MetadataConfig()

    if data is None:
        return MetadataConfig()
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level must be a mapping", config_path)
        return MetadataConfig()

    features = dict(FEATURE_PATHS)
    features.update(_string_table(data, "features", config_path))
    return MetadataConfig(
        extra_labels=MappingProxyType(_string_table(data, "labels", config_path)),
        feature_paths=MappingProxyType(features),
    )
