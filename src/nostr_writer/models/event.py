"""
Immutable signed Nostr events and unsigned drafts.

[Event][nostr_writer.models.event.Event] is the transport-independent
representation of a signed event used everywhere above the transport layer:
the local index stores it, the mapper reads it, the orchestrator receives it
from the signer. It is never mutated; edits are expressed by building a new
[UnsignedEvent][nostr_writer.models.event.UnsignedEvent] draft.

See Also:
    [nostr_writer.nips.nip23][]: Builds drafts from document front-matter and
        reads front-matter back from signed events.
    [nostr_writer.utils.signer][]: Turns drafts into signed events.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from time import time
from typing import Any, NamedTuple

from ._validation import validate_hex, validate_str_no_null, validate_timestamp
from .constants import EVENT_KIND_MAX, is_addressable_kind, is_replaceable_kind


class EventAddress(NamedTuple):
    """Stable key of a replaceable event: ``(kind, pubkey, identifier)``."""

    kind: int
    pubkey: str
    identifier: str


def _freeze_tags(tags: Any, name: str) -> tuple[tuple[str, ...], ...]:
    frozen = []
    for tag in tags:
        if isinstance(tag, str) or not tag:
            raise ValueError(f"{name} entries must be non-empty string sequences")
        values = tuple(tag)
        for value in values:
            validate_str_no_null(value, name)
        frozen.append(values)
    return tuple(frozen)


def _first_tag_value(tags: tuple[tuple[str, ...], ...], name: str) -> str | None:
    for tag in tags:
        if tag[0] == name and len(tag) > 1:
            return tag[1]
    return None


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable signed Nostr event.

    Validation is performed eagerly at construction time: identifiers are
    checked for hex shape and length, the kind for range, and every string
    for null bytes. Signature verification is the transport's job; an
    ``Event`` only guarantees structural validity.

    Attributes:
        id: 32-byte event hash as lowercase hex.
        pubkey: Author public key as lowercase hex.
        created_at: Unix timestamp of event creation.
        kind: Integer event kind.
        tags: Ordered tag arrays, each a tuple of strings.
        content: Event content.
        sig: 64-byte Schnorr signature as lowercase hex.

    Examples:
        ```python
        event = Event.from_dict(json.loads(raw))
        event.tag_value("title")      # first ``title`` tag value or None
        event.address                 # EventAddress(30023, 'ab..', 'my-post')
        ```
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...]
    content: str
    sig: str

    def __post_init__(self) -> None:
        validate_hex(self.id, "id", 64)
        validate_hex(self.pubkey, "pubkey", 64)
        validate_hex(self.sig, "sig", 128)
        validate_timestamp(self.created_at, "created_at")
        validate_timestamp(self.kind, "kind")
        if self.kind > EVENT_KIND_MAX:
            raise ValueError(f"kind {self.kind} out of range (0-{EVENT_KIND_MAX})")
        validate_str_no_null(self.content, "content")
        object.__setattr__(self, "tags", _freeze_tags(self.tags, "tags"))

    @property
    def identifier(self) -> str:
        """Value of the first ``d`` tag, or ``""`` when absent."""
        return _first_tag_value(self.tags, "d") or ""

    @property
    def address(self) -> EventAddress:
        """Replaceable key of this event (identifier is ``""`` for plain replaceables)."""
        identifier = self.identifier if is_addressable_kind(self.kind) else ""
        return EventAddress(self.kind, self.pubkey, identifier)

    @property
    def is_replaceable(self) -> bool:
        """True for both replaceable and addressable kinds."""
        return is_replaceable_kind(self.kind) or is_addressable_kind(self.kind)

    def tag_value(self, name: str) -> str | None:
        """Return index 1 of the first tag named *name* (first occurrence wins)."""
        return _first_tag_value(self.tags, name)

    def tag_values(self, name: str) -> list[str]:
        """Return index 1 of every tag named *name*, in encounter order."""
        return [tag[1] for tag in self.tags if tag[0] == name and len(tag) > 1]

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Build an event from a NIP-01 JSON object.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field fails validation.
        """
        return cls(
            id=data["id"],
            pubkey=data["pubkey"],
            created_at=data["created_at"],
            kind=data["kind"],
            tags=data.get("tags", []),
            content=data.get("content", ""),
            sig=data["sig"],
        )

    @classmethod
    def from_json(cls, raw: str) -> Event:
        return cls.from_dict(json.loads(raw))


@dataclass(slots=True)
class UnsignedEvent:
    """Mutable event draft awaiting a signature.

    Drafts are the only events the mapper builds or modifies; once signed the
    result is an immutable [Event][nostr_writer.models.event.Event].

    Attributes:
        kind: Integer event kind.
        content: Event content.
        tags: Ordered tag arrays.
        created_at: Unix timestamp (defaults to now).
        pubkey: Expected author, when known before signing.
    """

    kind: int
    content: str = ""
    tags: list[list[str]] = field(default_factory=list)
    created_at: int = field(default_factory=lambda: int(time()))
    pubkey: str | None = None

    def tag_value(self, name: str) -> str | None:
        for tag in self.tags:
            if tag[0] == name and len(tag) > 1:
                return tag[1]
        return None

    def tag_values(self, name: str) -> list[str]:
        return [tag[1] for tag in self.tags if tag[0] == name and len(tag) > 1]

    def to_dict(self) -> dict[str, Any]:
        """Return the unsigned NIP-01 fields (``pubkey`` included only when set)."""
        data: dict[str, Any] = {
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
        }
        if self.pubkey is not None:
            data["pubkey"] = self.pubkey
        return data
