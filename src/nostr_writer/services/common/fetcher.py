"""Fetch and de-duplication engine.

Opens one subscription over a resolved relay set and collects events until
every relay signals end-of-stored-events or a wall-clock ceiling measured
from subscription start elapses, whichever comes first. Running out of time
is a normal outcome: the caller gets whatever arrived, with
[FetchResult.timed_out][nostr_writer.services.common.fetcher.FetchResult]
set.

Every collected event, cross-relay duplicates included, is handed to the
shared [EventIndex][nostr_writer.core.index.EventIndex], which is
responsible for de-duplication and replacement. Reads go back through the
index so callers always see the newest known version, including events
cached by earlier rounds.

Cancelling a fetch closes the transport stream, which releases every relay
connection before the cancellation propagates.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from nostr_writer.core.exceptions import NoRelaysConfigured
from nostr_writer.core.logger import Logger
from nostr_writer.core.metrics import FETCHED_EVENTS
from nostr_writer.models import EventFilter
from nostr_writer.utils.transport import EventMessage


if TYPE_CHECKING:
    from collections.abc import Sequence

    from nostr_writer.core.index import EventIndex
    from nostr_writer.models import AddressPointer, Event
    from nostr_writer.utils.transport import Transport


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of one fetch round.

    Attributes:
        events: Matching events received this round, duplicates included.
        completed: Relays that signalled end-of-stored-events, in order.
        failed: Relays that ended with an error, mapped to the error text.
        timed_out: True if the ceiling elapsed before every relay completed.
    """

    events: list[Event] = field(default_factory=list)
    completed: tuple[str, ...] = ()
    failed: dict[str, str] = field(default_factory=dict)
    timed_out: bool = False


class EventFetcher:
    """Race a relay set for matching events and record them in the index.

    Args:
        transport: Relay subscription capability.
        index: Shared local index receiving every collected event.
        timeout: Ceiling in seconds from subscription start.
    """

    def __init__(self, transport: Transport, index: EventIndex, *, timeout: float = 10.0) -> None:
        self._transport = transport
        self._index = index
        self._timeout = timeout
        self._logger = Logger("fetcher")

    @property
    def index(self) -> EventIndex:
        return self._index

    async def fetch(self, relays: Sequence[str], event_filter: EventFilter) -> FetchResult:
        """Collect events matching *event_filter* from *relays*.

        Raises:
            NoRelaysConfigured: If *relays* is empty; nothing is opened.
        """
        if not relays:
            raise NoRelaysConfigured("fetch")

        events: list[Event] = []
        completed: list[str] = []
        failed: dict[str, str] = {}
        timed_out = False
        started = time.monotonic()

        try:
            async with asyncio.timeout(self._timeout):
                stream = self._transport.subscribe(relays, event_filter)
                async with contextlib.aclosing(stream):
                    async for message in stream:
                        if isinstance(message, EventMessage):
                            if event_filter.matches(message.event):
                                events.append(message.event)
                            continue
                        completed.append(message.relay)
                        if message.error is not None:
                            failed[message.relay] = message.error
                        if len(completed) >= len(relays):
                            break
        except TimeoutError:
            timed_out = True

        inserted = self._index.add_many(events)
        for kind, count in Counter(e.kind for e in events).items():
            FETCHED_EVENTS.labels(kind=str(kind)).inc(count)

        self._logger.debug(
            "fetch_finished",
            relays=len(relays),
            completed=len(completed),
            failed=len(failed),
            received=len(events),
            inserted=inserted,
            timed_out=timed_out,
            elapsed=f"{time.monotonic() - started:.2f}",
        )
        return FetchResult(events, tuple(completed), failed, timed_out)

    async def fetch_address(self, pointer: AddressPointer, relays: Sequence[str]) -> Event | None:
        """Fetch one replaceable document and return its newest known version."""
        event_filter = EventFilter.for_address(pointer.kind, pointer.pubkey, pointer.identifier)
        await self.fetch(relays, event_filter)
        return self._index.get_replaceable(pointer.kind, pointer.pubkey, pointer.identifier)

    async def fetch_author(
        self, kind: int, pubkey: str, relays: Sequence[str], *, limit: int | None = None
    ) -> list[Event]:
        """Fetch every *kind* event of *pubkey*.

        Returns the full de-duplicated set held by the index afterwards, not
        only what arrived this round, newest first.
        """
        await self.fetch(relays, EventFilter.for_author(kind, pubkey, limit))
        return self._index.query(EventFilter.for_author(kind, pubkey))

    async def fetch_replaceable(
        self, kinds: Sequence[int], pubkey: str, relays: Sequence[str]
    ) -> FetchResult:
        """Fetch the current replaceable events of *kinds* for *pubkey* (profile, relay list)."""
        return await self.fetch(relays, EventFilter(kinds=tuple(kinds), authors=(pubkey,)))
