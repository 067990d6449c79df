"""Feature detection by indicator-path existence."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# Feature name -> path (file or directory) whose presence marks the feature.
FEATURE_PATHS: Mapping[str, str] = MappingProxyType(
    {
        "authentication": "internal/api/handlers/auth.go",
        "user_management": "internal/api/handlers/users.go",
        "post_management": "internal/api/handlers/posts.go",
        "health_checks": "internal/api/handlers/health.go",
        "cors_enabled": "internal/api/middleware/cors.go",
        "rate_limiting": "internal/api/middleware/ratelimit.go",
        "request_logging": "internal/api/middleware/logging.go",
        "input_validation": "internal/pkg/validator/validator.go",
        "structured_logging": "internal/pkg/logger/logger.go",
        "clean_architecture": "internal/domain",
        "graceful_shutdown": "cmd",
        "web_server": "web",
        "static_files": "web/static",
        "html_templates": "web/templates",
        "grpc_support": "internal/handlers",
        "cobra_framework": "internal/cmd/root.go",
    }
)


def detect_features(
    project_root: Path,
    feature_paths: Mapping[str, str] | None = None,
) -> dict[str, bool]:
    """Return ``{feature: True}`` for every indicator path that exists.

    Absent features are omitted rather than set to False.
    """
    table = FEATURE_PATHS if feature_paths is None else feature_paths
    features = {name: True for name, rel in table.items() if (project_root / rel).exists()}
    logger.debug("Detected features in %s: %s", project_root, sorted(features))
    return features
