"""Configuration models for nostr-writer.

One Pydantic model tree, [WriterConfig][nostr_writer.services.common.configs.WriterConfig],
loaded from YAML. Every section has defaults, so partial files only need
to override what differs (e.g. a single ``relays.local`` entry).

Private keys never live in the YAML file: ``keys_env`` names the
environment variable read by
[load_keys_from_env()][nostr_writer.utils.keys.load_keys_from_env].

Examples:
    ```yaml
    relays:
      publish:
        - wss://nos.lol
        - wss://relay.damus.io
      local: ws://localhost:4869
    media:
      servers:
        - https://blossom.primal.net
    storage:
      vault: ~/notes
      index_path: ~/.cache/nostr-writer/index.jsonl
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nostr_writer.core.exceptions import ConfigurationError
from nostr_writer.core.yaml import load_yaml
from nostr_writer.models import Relay
from nostr_writer.models.constants import (
    CLIENT_NAME,
    DEFAULT_FALLBACK_RELAYS,
    DEFAULT_LOOKUP_RELAYS,
    EVENT_KIND_MAX,
)
from nostr_writer.utils.http import DEFAULT_MAX_DOWNLOAD_SIZE
from nostr_writer.utils.keys import ENV_PRIVATE_KEY


def _validate_relays(urls: list[str], *, allow_local: bool = False) -> list[str]:
    normalized = []
    for url in urls:
        try:
            normalized.append(Relay(url, allow_local=allow_local).url)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid relay URL '{url}': {e}") from e
    return normalized


class RelaysConfig(BaseModel):
    """Relay endpoints.

    Attributes:
        publish: Relays every article is published to and fetched from.
        lookup: Relays queried only to discover relay lists (NIP-65).
        local: Optional single local relay, prepended to the publish set.
            The only endpoint allowed to point at a loopback/private host.
    """

    model_config = ConfigDict(extra="forbid")

    publish: list[str] = Field(default_factory=lambda: list(DEFAULT_FALLBACK_RELAYS))
    lookup: list[str] = Field(default_factory=lambda: list(DEFAULT_LOOKUP_RELAYS))
    local: str | None = None

    @field_validator("publish", "lookup")
    @classmethod
    def validate_relay_urls(cls, v: list[str]) -> list[str]:
        """Normalize relay URLs; loopback and private hosts are rejected."""
        return _validate_relays(v)

    @field_validator("local")
    @classmethod
    def validate_local_url(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _validate_relays([v], allow_local=True)[0]


class MediaConfig(BaseModel):
    """Media servers and attachment handling.

    Attributes:
        servers: Blossom servers in preference order.
        download_folder: Vault folder downloaded images are written to.
        max_download_size: Largest image accepted on download, in bytes.
        upload_timeout: Seconds allowed per server upload.
        download_timeout: Seconds allowed per image download.
        auth_expiration: Seconds an upload authorization stays valid.
    """

    model_config = ConfigDict(extra="forbid")

    servers: list[str] = Field(default_factory=list)
    download_folder: str = Field(default="attachments", min_length=1)
    max_download_size: int = Field(default=DEFAULT_MAX_DOWNLOAD_SIZE, ge=1024)
    upload_timeout: float = Field(default=60.0, ge=1.0, le=600.0)
    download_timeout: float = Field(default=30.0, ge=1.0, le=600.0)
    auth_expiration: int = Field(default=300, ge=30, le=86_400)

    @field_validator("servers")
    @classmethod
    def validate_server_urls(cls, v: list[str]) -> list[str]:
        """Require http(s) URLs; trailing slashes are dropped."""
        servers = []
        for url in v:
            if not url.startswith(("https://", "http://")):
                raise ValueError(f"Invalid media server URL '{url}': must be http or https")
            servers.append(url.rstrip("/"))
        return servers


class TimeoutsConfig(BaseModel):
    """Network timeouts in seconds.

    ``fetch`` is a wall-clock ceiling measured from subscription start, not
    an idle timeout.
    """

    model_config = ConfigDict(extra="forbid")

    fetch: float = Field(default=10.0, ge=0.1, le=300.0)
    publish: float = Field(default=15.0, ge=0.1, le=300.0)
    connect: float = Field(default=5.0, ge=0.1, le=120.0)


class StorageConfig(BaseModel):
    """Document store locations.

    Attributes:
        vault: Root directory of the document store.
        articles_folder: Vault folder downloaded articles are written to.
        index_path: JSON-lines file persisting the local event index, if any.
    """

    model_config = ConfigDict(extra="forbid")

    vault: Path = Field(default_factory=Path.cwd)
    articles_folder: str = Field(default="nostr", min_length=1)
    index_path: Path | None = None

    @field_validator("vault", "index_path")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else v


class WriterConfig(BaseModel):
    """Top-level configuration.

    See Also:
        [WriterSession][nostr_writer.services.session.WriterSession]:
            Builds every component from this model.
    """

    model_config = ConfigDict(extra="forbid")

    relays: RelaysConfig = Field(default_factory=RelaysConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    kind: int = Field(default=30023, ge=30_000, le=EVENT_KIND_MAX)
    client: str | None = CLIENT_NAME
    keys_env: str = Field(default=ENV_PRIVATE_KEY, min_length=1)
    refresh_before_publish: bool = True

    @field_validator("kind")
    @classmethod
    def validate_addressable_kind(cls, v: int) -> int:
        if not 30_000 <= v < 40_000:  # noqa: PLR2004
            raise ValueError(f"kind {v} is not an addressable kind (30000-39999)")
        return v

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Validate a parsed configuration mapping.

        Raises:
            ConfigurationError: If validation fails.
        """
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> Self:
        """Load and validate a YAML configuration file.

        Delegates to [load_yaml()][nostr_writer.core.yaml.load_yaml] for safe
        parsing, then to
        [from_dict()][nostr_writer.services.common.configs.WriterConfig.from_dict].
        """
        return cls.from_dict(load_yaml(config_path))
