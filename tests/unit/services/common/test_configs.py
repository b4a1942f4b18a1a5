"""Unit tests for services.common.configs module."""

from pathlib import Path

import pytest

from nostr_writer.core.exceptions import ConfigurationError
from nostr_writer.models.constants import DEFAULT_FALLBACK_RELAYS, DEFAULT_LOOKUP_RELAYS
from nostr_writer.services.common.configs import (
    MediaConfig,
    RelaysConfig,
    StorageConfig,
    WriterConfig,
)


# =============================================================================
# Defaults
# =============================================================================


class TestDefaults:
    def test_empty_config_is_valid(self) -> None:
        config = WriterConfig.from_dict({})
        assert config.relays.publish == list(DEFAULT_FALLBACK_RELAYS)
        assert config.relays.lookup == list(DEFAULT_LOOKUP_RELAYS)
        assert config.relays.local is None
        assert config.media.servers == []
        assert config.kind == 30023
        assert config.client == "nostr-writer"
        assert config.keys_env == "NOSTR_PRIVATE_KEY"
        assert config.refresh_before_publish is True
        assert config.timeouts.fetch == 10.0

    def test_storage_defaults(self) -> None:
        storage = StorageConfig()
        assert storage.articles_folder == "nostr"
        assert storage.index_path is None


# =============================================================================
# Relays
# =============================================================================


class TestRelaysConfig:
    def test_urls_normalized(self) -> None:
        config = RelaysConfig(publish=["WSS://Nos.lol/", "wss://relay.damus.io"])
        assert config.publish == ["wss://nos.lol", "wss://relay.damus.io"]

    def test_invalid_publish_url(self) -> None:
        with pytest.raises(ValueError, match="Invalid relay URL"):
            RelaysConfig(publish=["https://nos.lol"])

    def test_local_host_rejected_in_publish(self) -> None:
        with pytest.raises(ValueError):
            RelaysConfig(publish=["ws://localhost:4869"])

    def test_local_relay_allowed(self) -> None:
        assert RelaysConfig(local="ws://localhost:4869/").local == "ws://localhost:4869"

    def test_empty_publish_allowed(self) -> None:
        assert RelaysConfig(publish=[]).publish == []


# =============================================================================
# Media
# =============================================================================


class TestMediaConfig:
    def test_trailing_slash_dropped(self) -> None:
        assert MediaConfig(servers=["https://blossom.primal.net/"]).servers == [
            "https://blossom.primal.net"
        ]

    def test_non_http_rejected(self) -> None:
        with pytest.raises(ValueError, match="http"):
            MediaConfig(servers=["ftp://files.example.com"])

    def test_bounds(self) -> None:
        with pytest.raises(ValueError):
            MediaConfig(auth_expiration=5)


# =============================================================================
# WriterConfig
# =============================================================================


class TestWriterConfig:
    def test_from_dict_wraps_validation_errors(self) -> None:
        with pytest.raises(ConfigurationError):
            WriterConfig.from_dict({"relays": {"publish": ["not a url"]}})

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            WriterConfig.from_dict({"relay": {}})

    @pytest.mark.parametrize("kind", [1, 10002, 40000])
    def test_non_addressable_kind_rejected(self, kind: int) -> None:
        with pytest.raises(ConfigurationError):
            WriterConfig.from_dict({"kind": kind})

    def test_draft_kind_allowed(self) -> None:
        assert WriterConfig.from_dict({"kind": 30024}).kind == 30024

    def test_paths_expanded(self) -> None:
        storage = {"vault": "~/notes", "index_path": "~/i.jsonl"}
        config = WriterConfig.from_dict({"storage": storage})
        assert config.storage.vault == Path("~/notes").expanduser()
        assert config.storage.index_path == Path("~/i.jsonl").expanduser()

    def test_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "writer.yaml"
        path.write_text(
            "relays:\n"
            "  publish: [wss://nos.lol]\n"
            "  local: ws://127.0.0.1:4869\n"
            "media:\n"
            "  servers: [https://blossom.example.com]\n"
            "timeouts:\n"
            "  fetch: 3\n",
            encoding="utf-8",
        )
        config = WriterConfig.from_yaml(path)
        assert config.relays.publish == ["wss://nos.lol"]
        assert config.relays.local == "ws://127.0.0.1:4869"
        assert config.media.servers == ["https://blossom.example.com"]
        assert config.timeouts.fetch == 3.0

    def test_from_yaml_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            WriterConfig.from_yaml(tmp_path / "missing.yaml")
