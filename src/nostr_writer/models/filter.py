"""Transport-independent subscription filter.

A small subset of NIP-01 filters sufficient for article sync: kinds,
authors, ``#d`` identifiers and a limit. The transport converts it to its
own filter type; the local index and test fakes evaluate it directly via
[matches()][nostr_writer.models.filter.EventFilter.matches].
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from .event import Event


@dataclass(frozen=True, slots=True)
class EventFilter:
    """Immutable subscription filter.

    Empty tuples mean "any". ``limit`` is passed through to relays and is not
    applied by [matches()][nostr_writer.models.filter.EventFilter.matches].
    """

    kinds: tuple[int, ...] = ()
    authors: tuple[str, ...] = ()
    identifiers: tuple[str, ...] = ()
    limit: int | None = None

    def matches(self, event: Event) -> bool:
        """Return True if *event* satisfies every populated field."""
        if self.kinds and event.kind not in self.kinds:
            return False
        if self.authors and event.pubkey not in self.authors:
            return False
        return not (self.identifiers and event.identifier not in self.identifiers)

    @classmethod
    def for_address(cls, kind: int, pubkey: str, identifier: str) -> EventFilter:
        """Filter for one replaceable document."""
        return cls(kinds=(kind,), authors=(pubkey,), identifiers=(identifier,))

    @classmethod
    def for_author(cls, kind: int, pubkey: str, limit: int | None = None) -> EventFilter:
        """Filter for every event of *kind* by *pubkey*."""
        return cls(kinds=(kind,), authors=(pubkey,), limit=limit)
