"""Unit tests for core.yaml module."""

from pathlib import Path

import pytest

from nostr_writer.core.exceptions import ConfigurationError
from nostr_writer.core.yaml import load_yaml


class TestLoadYaml:
    def test_loads_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "writer.yaml"
        path.write_text("relays:\n  publish:\n    - wss://nos.lol\n", encoding="utf-8")
        assert load_yaml(path) == {"relays": {"publish": ["wss://nos.lol"]}}

    def test_accepts_str_path(self, tmp_path: Path) -> None:
        path = tmp_path / "writer.yaml"
        path.write_text("kind: 30023\n", encoding="utf-8")
        assert load_yaml(str(path)) == {"kind": 30023}

    def test_empty_file_returns_empty_dict(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_yaml(path) == {}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("relays: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml(path)

    def test_non_mapping_top_level(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_yaml(path)

    def test_unsafe_tags_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "unsafe.yaml"
        path.write_text("x: !!python/object/apply:os.system ['true']\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_yaml(path)
