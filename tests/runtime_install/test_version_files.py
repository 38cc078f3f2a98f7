"""
Tests for project version files — parsing and detection.
"""

import json
from pathlib import Path

import pytest

from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.services.runtime_install.detection.version_file import detect_version_file
from nodekeep.core.services.runtime_install.domain.version_files import (
    engines_to_expression,
    parse_version_file,
)


class TestParseVersionFile:
    @pytest.mark.parametrize("text, expected", [
        ("20.11.0\n", "20.11.0"),
        ("v18.19.0", "18.19.0"),
        ("  20  \n", "20"),
        ("# pinned for CI\n\nlts/iron\n", "lts/iron"),
        ("lts/*", "lts"),
        ("node", "latest"),
        ("iron", "iron"),
    ])
    def test_expressions(self, text, expected):
        assert parse_version_file(text) == expected

    def test_blank(self):
        assert parse_version_file("\n  \n# only a comment\n") is None


class TestEnginesToExpression:
    @pytest.mark.parametrize("spec, expected", [
        ("20.11.0", "20.11.0"),
        ("=20.11.0", "20.11.0"),
        ("^20.11.0", "20"),
        ("~18.19.0", "18"),
        (">=18", "18"),
        ("20.x", "20"),
        ("20", "20"),
        ("lts/*", "lts"),
    ])
    def test_single_comparator(self, spec, expected):
        assert engines_to_expression(spec) == expected

    @pytest.mark.parametrize("spec", [">=18 <21", "18 || 20", ""])
    def test_compound_ranges_unsupported(self, spec):
        assert engines_to_expression(spec) is None


class TestDetectVersionFile:
    def test_nothing_found(self, tmp_path: Path):
        assert detect_version_file(tmp_path) is None

    def test_nvmrc_wins(self, tmp_path: Path):
        (tmp_path / ".nvmrc").write_text("20.11.0\n")
        (tmp_path / ".node-version").write_text("18.19.0\n")
        (tmp_path / "package.json").write_text(json.dumps({"engines": {"node": ">=16"}}))
        found = detect_version_file(tmp_path)
        assert found.path.name == ".nvmrc"
        assert found.expression == "20.11.0"

    def test_node_version_before_package_json(self, tmp_path: Path):
        (tmp_path / ".node-version").write_text("18\n")
        (tmp_path / "package.json").write_text(json.dumps({"engines": {"node": ">=16"}}))
        assert detect_version_file(tmp_path).expression == "18"

    def test_package_json_engines(self, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"name": "app", "engines": {"node": "^20.0.0"}}))
        found = detect_version_file(tmp_path)
        assert found.path.name == "package.json"
        assert found.expression == "20"

    def test_package_json_without_engines_is_ignored(self, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"name": "app"}))
        assert detect_version_file(tmp_path) is None

    def test_invalid_package_json(self, tmp_path: Path):
        (tmp_path / "package.json").write_text("{not json")
        with pytest.raises(NodekeepError) as exc_info:
            detect_version_file(tmp_path)
        assert exc_info.value.kind is ErrorKind.INVALID_VERSION_FORMAT

    def test_empty_nvmrc_is_an_error(self, tmp_path: Path):
        (tmp_path / ".nvmrc").write_text("\n")
        (tmp_path / ".node-version").write_text("18\n")
        with pytest.raises(NodekeepError) as exc_info:
            detect_version_file(tmp_path)
        assert exc_info.value.kind is ErrorKind.INVALID_VERSION_FORMAT

    def test_unusable_engines_range(self, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"engines": {"node": ">=18 <21"}}))
        with pytest.raises(NodekeepError):
            detect_version_file(tmp_path)
