"""Tests for gophex_metadata.store: gophex.md load/save/update."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from gophex_metadata.generator import generate_metadata
from gophex_metadata.hierarchy import DirectoryNode
from gophex_metadata.models import DatabaseConfig, RedisConfig, now_timestamp
from gophex_metadata.store import (
    METADATA_FILENAME,
    MetadataError,
    MetadataFormatError,
    MetadataIOError,
    activity_prefix,
    create_metadata,
    extract_json_block,
    has_metadata,
    is_activity_completed,
    load_metadata,
    parse_markdown,
    render_markdown,
    save_metadata,
    update_activity,
    update_database_status,
)

if TYPE_CHECKING:
    from pathlib import Path

    from gophex_metadata.models import ProjectMetadata


@pytest.fixture()
def saved_project(api_project: Path) -> Path:
    create_metadata(
        api_project,
        "blog-api",
        "api",
        database=DatabaseConfig(type="postgresql", config_type="read-write", ssl_mode="require"),
        redis=RedisConfig(enabled=True),
        gophex_version="2.1.0",
    )
    return api_project


def _generated(project: Path) -> ProjectMetadata:
    return generate_metadata(project, "blog-api", "api", gophex_version="2.1.0")


class TestMarkdownFormat:
    def test_layout(self, api_project: Path) -> None:
        text = render_markdown(_generated(api_project))
        assert text.startswith("# Gophex Project Metadata\n\n")
        assert "**Do not edit this file manually**" in text
        assert text.count("```json\n") == 1
        assert text.endswith("\n```\n")

    def test_two_space_indent(self, api_project: Path) -> None:
        text = render_markdown(_generated(api_project))
        assert '\n  "project": {\n    "name": "blog-api",' in text

    def test_extract_block(self) -> None:
        text = "# T\n\n```json\n{\n  \"a\": 1\n}\n```\n"
        assert extract_json_block(text) == '{\n  "a": 1\n}'

    def test_extract_crlf_and_spaced_tag(self) -> None:
        text = "# T\r\n\r\n``` json\r\n{\"a\": 1}\r\n```\r\n"
        assert extract_json_block(text) == '{"a": 1}'

    def test_extract_first_block_only(self) -> None:
        text = "```json\n{\"a\": 1}\n```\n\n```json\n{\"b\": 2}\n```\n"
        assert extract_json_block(text) == '{"a": 1}'

    def test_extract_ignores_other_languages(self) -> None:
        text = "```go\npackage main\n```\n"
        assert extract_json_block(text) is None

    def test_unterminated_block(self) -> None:
        with pytest.raises(MetadataFormatError, match="not terminated"):
            extract_json_block("```json\n{\"a\": 1}\n")

    def test_fence_at_end_of_file(self) -> None:
        with pytest.raises(MetadataFormatError):
            extract_json_block("intro\n```json")


class TestRoundTrip:
    def test_save_then_load_is_equal(self, api_project: Path) -> None:
        original = _generated(api_project)
        save_metadata(api_project, original)
        assert load_metadata(api_project) == original

    def test_cli_document_round_trip(self, tmp_path: Path) -> None:
        original = generate_metadata(tmp_path, "tool", "cli")
        save_metadata(tmp_path, original)
        assert load_metadata(tmp_path) == original

    def test_save_overwrites(self, saved_project: Path) -> None:
        meta = load_metadata(saved_project)
        meta.features = {}
        save_metadata(saved_project, meta)
        assert load_metadata(saved_project).features == {}

    def test_non_ascii_preserved(self, tmp_path: Path) -> None:
        meta = generate_metadata(tmp_path, "café-api", "api")
        save_metadata(tmp_path, meta)
        assert "café-api" in (tmp_path / METADATA_FILENAME).read_text(encoding="utf-8")
        assert load_metadata(tmp_path).project.name == "café-api"

    def test_unknown_keys_do_not_break_load(self, saved_project: Path) -> None:
        path = saved_project / METADATA_FILENAME
        text = path.read_text(encoding="utf-8")
        payload = json.loads(extract_json_block(text) or "")
        payload["legacy_field"] = [1, 2, 3]
        payload["project"]["module"] = "github.com/acme/blog"
        path.write_text(
            "# Gophex Project Metadata\n\n```json\n" + json.dumps(payload, indent=2) + "\n```\n",
            encoding="utf-8",
        )
        assert load_metadata(saved_project).project.name == "blog-api"


class TestLoadErrors:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MetadataIOError, match="failed to read metadata file"):
            load_metadata(tmp_path)

    def test_no_fenced_block(self, tmp_path: Path) -> None:
        (tmp_path / METADATA_FILENAME).write_text("# Just notes\n\nNothing here.\n")
        with pytest.raises(MetadataFormatError, match="no JSON found"):
            load_metadata(tmp_path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / METADATA_FILENAME).write_text("```json\n{not json}\n```\n")
        with pytest.raises(MetadataFormatError, match="failed to unmarshal"):
            load_metadata(tmp_path)

    def test_json_array(self, tmp_path: Path) -> None:
        (tmp_path / METADATA_FILENAME).write_text("```json\n[1, 2]\n```\n")
        with pytest.raises(MetadataFormatError, match="expected an object"):
            load_metadata(tmp_path)

    def test_schema_mismatch(self, tmp_path: Path) -> None:
        (tmp_path / METADATA_FILENAME).write_text(
            '```json\n{"project": {"name": "x"}, "activities": "none"}\n```\n'
        )
        with pytest.raises(MetadataFormatError, match="'activities' must be an object"):
            load_metadata(tmp_path)

    def test_deeply_nested_json(self, tmp_path: Path) -> None:
        depth = 200_000
        (tmp_path / METADATA_FILENAME).write_text(
            "```json\n" + "[" * depth + "]" * depth + "\n```\n"
        )
        with pytest.raises(MetadataFormatError, match="failed to unmarshal"):
            load_metadata(tmp_path)

    def test_hierarchy_too_deep_to_rebuild(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def too_deep(cls: type, data: dict) -> None:
            msg = "maximum recursion depth exceeded"
            raise RecursionError(msg)

        (tmp_path / METADATA_FILENAME).write_text(
            '```json\n{"project": {"name": "x"}, "hierarchy": {"a": {"b": {}}}}\n```\n'
        )
        monkeypatch.setattr(DirectoryNode, "from_json", classmethod(too_deep))
        with pytest.raises(MetadataFormatError, match="maximum recursion depth"):
            load_metadata(tmp_path)

    def test_errors_share_base_class(self) -> None:
        assert issubclass(MetadataFormatError, MetadataError)
        assert issubclass(MetadataIOError, MetadataError)


class TestLegacyFormat:
    def test_bare_json_converted(self, tmp_path: Path) -> None:
        legacy = {
            "gophex": {
                "version": "0.9.0",
                "generated_at": "2025-05-01T10:00:00Z",
                "project": {"name": "old-api", "type": "api", "module": "github.com/x/old"},
            }
        }
        (tmp_path / METADATA_FILENAME).write_text(json.dumps(legacy, indent=2))
        meta = load_metadata(tmp_path)
        assert meta.project.name == "old-api"
        assert meta.project.type == "api"
        assert meta.project.gophex_version == "0.9.0"
        assert meta.project.generated_at == "2025-05-01T10:00:00Z"
        assert meta.project.last_updated == "2025-05-01T10:00:00Z"
        assert meta.activities == {}

    def test_legacy_without_name_is_corrupt(self, tmp_path: Path) -> None:
        (tmp_path / METADATA_FILENAME).write_text('{"gophex": {"project": {}}}')
        with pytest.raises(MetadataFormatError, match="no project name"):
            load_metadata(tmp_path)

    def test_legacy_can_be_updated(self, tmp_path: Path) -> None:
        legacy = {"gophex": {"generated_at": "2025-05-01T10:00:00Z", "project": {"name": "o"}}}
        (tmp_path / METADATA_FILENAME).write_text(json.dumps(legacy))
        update_activity(tmp_path, "tests_executed", completed=True)
        text = (tmp_path / METADATA_FILENAME).read_text(encoding="utf-8")
        assert "```json\n" in text
        assert is_activity_completed(tmp_path, "tests_executed") is True

    def test_null_fields_read_as_empty(self) -> None:
        meta = parse_markdown(
            '{"gophex": {"version": null, "generated_at": null,'
            ' "project": {"name": "p", "type": null}}}'
        )
        assert meta.project.generated_at == ""
        assert meta.project.last_updated == ""
        assert meta.project.gophex_version == ""
        assert meta.project.type == ""

    def test_parse_markdown_direct(self) -> None:
        meta = parse_markdown('{"gophex": {"project": {"name": "p", "type": "cli"}}}')
        assert meta.project.type == "cli"


class TestUpdateActivity:
    def test_complete_sets_timestamp(self, saved_project: Path) -> None:
        before = load_metadata(saved_project).project.last_updated
        update_activity(saved_project, "tests_executed", completed=True)
        meta = load_metadata(saved_project)
        info = meta.activities["tests_executed"]
        assert info.completed is True
        assert info.timestamp
        assert meta.project.last_updated >= before

    def test_uncomplete_keeps_timestamp(self, saved_project: Path) -> None:
        update_activity(saved_project, "tests_executed", completed=True)
        stamp = load_metadata(saved_project).activities["tests_executed"].timestamp
        update_activity(saved_project, "tests_executed", completed=False)
        info = load_metadata(saved_project).activities["tests_executed"]
        assert info.completed is False
        assert info.timestamp == stamp

    def test_unknown_activity_created(self, saved_project: Path) -> None:
        update_activity(saved_project, "docker_built", completed=True)
        info = load_metadata(saved_project).activities["docker_built"]
        assert info.completed is True
        assert info.can_repeat is False

    def test_uncomplete_unknown_activity(self, saved_project: Path) -> None:
        update_activity(saved_project, "docker_built", completed=False)
        info = load_metadata(saved_project).activities["docker_built"]
        assert info.completed is False
        assert info.timestamp is None

    def test_other_fields_untouched(self, saved_project: Path) -> None:
        before = load_metadata(saved_project)
        update_activity(saved_project, "project_opened", completed=True)
        after = load_metadata(saved_project)
        assert after.project.generated_at == before.project.generated_at
        assert after.hierarchy == before.hierarchy
        assert after.features == before.features
        assert after.endpoints == before.endpoints
        assert after.database == before.database

    def test_last_updated_not_moved_backwards(self, saved_project: Path) -> None:
        meta = load_metadata(saved_project)
        meta.project.last_updated = "2999-01-01T00:00:00+00:00"
        save_metadata(saved_project, meta)
        update_activity(saved_project, "tests_executed", completed=True)
        assert load_metadata(saved_project).project.last_updated == "2999-01-01T00:00:00+00:00"

    def test_activity_stamped_with_current_time(self, saved_project: Path) -> None:
        meta = load_metadata(saved_project)
        meta.project.last_updated = "2999-01-01T00:00:00+00:00"
        save_metadata(saved_project, meta)

        before = now_timestamp()
        update_activity(saved_project, "tests_executed", completed=True)
        after = now_timestamp()

        stamp = load_metadata(saved_project).activities["tests_executed"].timestamp
        assert stamp != "2999-01-01T00:00:00+00:00"
        assert stamp is not None
        assert before <= stamp <= after

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(MetadataIOError):
            update_activity(tmp_path, "tests_executed", completed=True)


class TestUpdateDatabaseStatus:
    def test_sets_both_flags(self, saved_project: Path) -> None:
        update_database_status(saved_project, migrations_executed=True, schema_initialized=True)
        db = load_metadata(saved_project).database
        assert db.migrations_executed is True
        assert db.schema_initialized is True
        assert db.has_read_write_split is True
        assert db.ssl_enabled is True

    def test_can_reset(self, saved_project: Path) -> None:
        update_database_status(saved_project, migrations_executed=True, schema_initialized=True)
        update_database_status(saved_project, migrations_executed=False, schema_initialized=True)
        db = load_metadata(saved_project).database
        assert db.migrations_executed is False
        assert db.schema_initialized is True

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        (tmp_path / METADATA_FILENAME).write_text("nothing")
        with pytest.raises(MetadataFormatError):
            update_database_status(tmp_path, migrations_executed=True, schema_initialized=True)


class TestAdvisoryQueries:
    def test_completed(self, saved_project: Path) -> None:
        assert is_activity_completed(saved_project, "project_generated") is True
        assert is_activity_completed(saved_project, "tests_executed") is False
        assert is_activity_completed(saved_project, "no_such_activity") is False

    def test_prefix(self, saved_project: Path) -> None:
        assert activity_prefix(saved_project, "tests_executed") == ""
        update_activity(saved_project, "tests_executed", completed=True)
        assert activity_prefix(saved_project, "tests_executed") == "re-"

    def test_corrupt_file_degrades(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        (tmp_path / METADATA_FILENAME).write_text("# no block\n")
        with caplog.at_level(logging.DEBUG, logger="gophex_metadata.store"):
            assert is_activity_completed(tmp_path, "tests_executed") is False
        assert "no JSON found" in caplog.text
        assert activity_prefix(tmp_path, "tests_executed") == ""

    def test_deeply_nested_file_degrades(self, tmp_path: Path) -> None:
        depth = 200_000
        (tmp_path / METADATA_FILENAME).write_text(
            "```json\n" + "[" * depth + "]" * depth + "\n```\n"
        )
        assert is_activity_completed(tmp_path, "tests_executed") is False
        assert activity_prefix(tmp_path, "tests_executed") == ""

    def test_missing_file_degrades(self, tmp_path: Path) -> None:
        assert is_activity_completed(tmp_path, "project_generated") is False


class TestHasMetadata:
    def test_present_and_absent(self, saved_project: Path, tmp_path: Path) -> None:
        assert has_metadata(saved_project) is True
        empty = tmp_path / "empty"
        empty.mkdir()
        assert has_metadata(empty) is False


class TestCreateMetadata:
    def test_writes_file_and_returns_document(self, api_project: Path) -> None:
        meta = create_metadata(api_project, "blog-api", "api")
        assert (api_project / METADATA_FILENAME).is_file()
        assert load_metadata(api_project) == meta

    def test_regeneration_lists_metadata_file(self, saved_project: Path) -> None:
        meta = create_metadata(saved_project, "blog-api", "api")
        assert meta.hierarchy.to_json()[METADATA_FILENAME] == "project_metadata"

    def test_write_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        meta = generate_metadata(tmp_path, "x", "webapp")

        def _deny(*_args: object, **_kwargs: object) -> None:
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr("pathlib.Path.write_text", _deny)
        with pytest.raises(MetadataIOError, match="failed to write metadata file"):
            save_metadata(tmp_path, meta)
