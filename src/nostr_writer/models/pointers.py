"""Canonical pointers into the Nostr network.

[AddressPointer][nostr_writer.models.pointers.AddressPointer] identifies one
logical replaceable document independently of its version;
[ProfilePointer][nostr_writer.models.pointers.ProfilePointer] identifies an
author for bulk queries. Both carry ordered relay hints. Encoding and
decoding live in [nostr_writer.nips.nip19][].
"""

from __future__ import annotations

from dataclasses import dataclass

from ._validation import validate_hex, validate_str_no_null, validate_timestamp
from .constants import EVENT_KIND_MAX
from .event import EventAddress


@dataclass(frozen=True, slots=True)
class ProfilePointer:
    """Author reference with relay hints.

    Attributes:
        pubkey: Author public key as lowercase hex.
        relays: Candidate relay URLs, in hint order.
    """

    pubkey: str
    relays: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        validate_hex(self.pubkey, "pubkey", 64)
        object.__setattr__(self, "relays", tuple(self.relays))


@dataclass(frozen=True, slots=True)
class AddressPointer:
    """Version-independent reference to a replaceable document.

    ``(kind, pubkey, identifier)`` is the stable key; relay hints are not part
    of equality-relevant identity for lookups but are kept in order for
    relay resolution.

    Attributes:
        kind: Event kind.
        pubkey: Author public key as lowercase hex.
        identifier: ``d`` tag value.
        relays: Candidate relay URLs, in hint order.
    """

    kind: int
    pubkey: str
    identifier: str
    relays: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        validate_timestamp(self.kind, "kind")
        if self.kind > EVENT_KIND_MAX:
            raise ValueError(f"kind {self.kind} out of range (0-{EVENT_KIND_MAX})")
        validate_hex(self.pubkey, "pubkey", 64)
        validate_str_no_null(self.identifier, "identifier")
        object.__setattr__(self, "relays", tuple(self.relays))

    @property
    def key(self) -> EventAddress:
        return EventAddress(self.kind, self.pubkey, self.identifier)


Pointer = ProfilePointer | AddressPointer


@dataclass(frozen=True, slots=True)
class MailboxSet:
    """An author's declared inbox and outbox relays (NIP-65).

    Outboxes are where the author writes and are the default publish
    targets; inboxes are where the author reads.
    """

    inboxes: tuple[str, ...] = ()
    outboxes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "inboxes", tuple(self.inboxes))
        object.__setattr__(self, "outboxes", tuple(self.outboxes))
