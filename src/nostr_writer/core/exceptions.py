"""nostr-writer exception hierarchy.

Provides typed exceptions for every failure the sync operations surface,
so callers can report precisely without parsing messages and
``CancelledError`` propagates untouched.

Exception hierarchy:

```text
NostrWriterError (base -- never raised directly)
├── ConfigurationError   -- config validation, missing keys, bad YAML
├── InvalidAddress       -- unparseable address input
├── InvalidDocument      -- document cannot be published (not markdown, empty)
├── NoRelaysConfigured   -- resolved relay set is empty
├── NoActiveIdentity     -- operation needs a signer and none is active
├── SigningFailed        -- the signer rejected or failed to sign a draft
├── UploadFailed         -- every media server rejected a blob
├── NotFound             -- address resolved but no matching event retrieved
└── PublishingError      -- a publish step failed; carries the step
```

Note:
    A fetch timing out is not an error: it ends collection and the caller
    receives whatever arrived, flagged by
    [FetchResult.timed_out][nostr_writer.services.common.fetcher.FetchResult].
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from nostr_writer.models import AddressPointer


class NostrWriterError(Exception):
    """Base exception for all nostr-writer errors.

    Never raised directly -- always use a specific subclass.
    """


class ConfigurationError(NostrWriterError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


class InvalidAddress(NostrWriterError):  # noqa: N818
    """Input is not a hex key, a NIP-19 entity, or a URL embedding one."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid address: {value!r}")
        self.value = value


class InvalidDocument(NostrWriterError):  # noqa: N818
    """The document cannot be published as it is."""


class NoRelaysConfigured(NostrWriterError):  # noqa: N818
    """The resolved relay set for an operation is empty.

    Raised before any network call is attempted.
    """

    def __init__(self, operation: str) -> None:
        super().__init__(f"No relays configured for {operation}")
        self.operation = operation


class NoActiveIdentity(NostrWriterError):  # noqa: N818
    """A signing identity is required but none is active."""

    def __init__(self, message: str = "No active account: set a private key first") -> None:
        super().__init__(message)


class SigningFailed(NostrWriterError):  # noqa: N818
    """The signer failed to produce a signed event."""


class UploadFailed(NostrWriterError):  # noqa: N818
    """No media server accepted a blob.

    Fatal to the publish that needed the blob.
    """

    def __init__(self, path: str, servers: list[str] | tuple[str, ...]) -> None:
        super().__init__(f"Upload of {path} failed on all media servers ({len(servers)} tried)")
        self.path = path
        self.servers = tuple(servers)


class NotFound(NostrWriterError):  # noqa: N818
    """The address resolved but no matching event could be retrieved."""

    def __init__(self, pointer: AddressPointer) -> None:
        super().__init__(
            f"No event found for {pointer.kind}:{pointer.pubkey}:{pointer.identifier}"
        )
        self.pointer = pointer


class PublishStep(StrEnum):
    """Orchestrator step a publish failure happened in."""

    DRAFT = "draft"
    UPLOAD = "upload"
    BUILD = "build"
    SIGN = "sign"
    PUBLISH = "publish"


class PublishingError(NostrWriterError):
    """A publish operation failed at a specific step.

    Attributes:
        step: The [PublishStep][nostr_writer.core.exceptions.PublishStep] that failed.
        outcomes: Per-relay outcomes when the failure happened while publishing.
    """

    def __init__(self, step: PublishStep, message: str, *, outcomes: Any = None) -> None:
        super().__init__(f"{step.value}: {message}")
        self.step = step
        self.outcomes = outcomes
