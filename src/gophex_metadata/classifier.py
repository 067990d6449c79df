"""Path classifier: map a project-relative file path to a semantic label.

Classification looks at the path only, never at file content.  Rules are
tried in a fixed order and the first match wins:

1. exact filename lookup in the scaffold label table;
2. filename suffix patterns (tests, repositories, SQL migrations, scripts);
3. substring checks on the containing directory;
4. fallback ``"source_file"``.
"""

from __future__ import annotations

import posixpath
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

DEFAULT_LABEL = "source_file"

# Filenames emitted by the scaffold templates.
_FILE_LABELS: Mapping[str, str] = MappingProxyType(
    {
        "main.go": "application_entry_point",
        "go.mod": "go_module_definition",
        "README.md": "project_documentation",
        "gophex.md": "project_metadata",
        ".env": "environment_variables",
        ".env.example": "environment_template",
        ".gophex-generated": "generation_metadata",
        "config.go": "configuration_management",
        "database.go": "database_interface",
        "factory.go": "database_factory",
        "connection.go": "database_connection",
        "auth.go": "authentication_logic",
        "health.go": "health_check_handlers",
        "users.go": "user_management",
        "posts.go": "post_management",
        "routes.go": "route_definitions",
        "middleware.go": "middleware_functions",
        "cors.go": "cors_middleware",
        "logging.go": "logging_middleware",
        "ratelimit.go": "rate_limiting_middleware",
        "error.go": "error_handling",
        "success.go": "success_responses",
        "jwt.go": "jwt_implementation",
        "password.go": "password_utilities",
        "validator.go": "input_validation",
        "logger.go": "logging_utilities",
        "errors.go": "custom_error_types",
        "client.go": "client_implementation",
        "handlers.go": "request_handlers",
        "root.go": "cli_root_command",
        "style.css": "application_styles",
        "index.html": "main_page_template",
    }
)

# (substrings of the containing directory, label), highest priority first.
_DIR_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("handlers",), "request_handler"),
    (("middleware",), "middleware_component"),
    (("repository", "repo"), "repository_implementation"),
    (("service",), "business_logic"),
    (("model",), "data_model"),
)


def _classify_sql(file_name: str) -> str:
    if ".up." in file_name:
        return "database_migration"
    if ".down." in file_name:
        return "migration_rollback"
    return "sql_script"


def _classify_by_pattern(file_name: str, directory: str) -> str | None:
    """Return a label from filename suffix rules, or None if nothing matches."""
    if file_name.endswith("_repo.go"):
        return "repository_implementation"
    if file_name.endswith("_test.go"):
        return "test_file"
    if file_name.endswith(".sql"):
        return _classify_sql(file_name)
    if file_name.endswith(".js") and "migrations" in directory:
        return "mongodb_initialization"
    if file_name.endswith(".sh"):
        return "shell_script"
    if file_name.endswith(".bat"):
        return "batch_script"
    return None


def _classify_by_directory(directory: str) -> str | None:
    for needles, label in _DIR_RULES:
        if any(needle in directory for needle in needles):
            return label
    return None


@dataclass(frozen=True)
class PathClassifier:
    """Filename/path classifier with an overridable exact-name table."""

    file_labels: Mapping[str, str] = field(default_factory=lambda: _FILE_LABELS)

    def with_labels(self, extra: Mapping[str, str]) -> PathClassifier:
        """Return a classifier whose exact-name table is extended by *extra*."""
        if not extra:
            return self
        merged = dict(self.file_labels)
        merged.update(extra)
        return PathClassifier(file_labels=MappingProxyType(merged))

    def classify(self, rel_path: str) -> str:
        """Return the semantic label for *rel_path* (always non-empty)."""
        normalized = rel_path.replace("\\", "/")
        file_name = posixpath.basename(normalized)
        directory = posixpath.dirname(normalized) or "."

        label = self.file_labels.get(file_name)
        if label:
            return label

        return (
            _classify_by_pattern(file_name, directory)
            or _classify_by_directory(directory)
            or DEFAULT_LABEL
        )


DEFAULT_CLASSIFIER = PathClassifier()


def classify(rel_path: str) -> str:
    """Classify *rel_path* with the built-in scaffold table."""
    return DEFAULT_CLASSIFIER.classify(rel_path)
