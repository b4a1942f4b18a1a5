"""
In-process local event index.

The index is the single place fetched and published events land. It
de-duplicates by event id and keeps only the newest version of each
replaceable ``(kind, pubkey, identifier)`` address, so readers never see
stale versions and multiple fetch rounds converge.

Writers (the fetch engine inserting relay results) and readers (the
orchestrator's existing-event lookup) may run concurrently, from the event
loop or worker threads; every operation takes the same re-entrant lock.

Optionally persisted as JSON lines between runs via
[save()][nostr_writer.core.index.EventIndex.save] and
[load()][nostr_writer.core.index.EventIndex.load].
"""

from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING

from nostr_writer.models import Event, EventAddress, EventFilter


if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path


logger = logging.getLogger(__name__)


def _is_newer(candidate: Event, current: Event) -> bool:
    """NIP-01 replacement rule: later ``created_at`` wins, ties go to the lowest id."""
    if candidate.created_at != current.created_at:
        return candidate.created_at > current.created_at
    return candidate.id < current.id


class EventIndex:
    """Thread-safe de-duplicating store of signed events.

    Examples:
        ```python
        index = EventIndex()
        index.add(event)
        index.get_replaceable(30023, pubkey, "my-post")
        index.query(EventFilter.for_author(30023, pubkey))
        ```
    """

    def __init__(self, events: Iterable[Event] = ()) -> None:
        self._lock = threading.RLock()
        self._by_id: dict[str, Event] = {}
        self._by_address: dict[EventAddress, Event] = {}
        for event in events:
            self.add(event)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)

    def __contains__(self, event_id: object) -> bool:
        with self._lock:
            return event_id in self._by_id

    def add(self, event: Event) -> bool:
        """Insert *event*.

        Returns:
            True if the event is now current in the index; False for an exact
            duplicate or a replaceable event older than the stored version.
        """
        with self._lock:
            if event.id in self._by_id:
                return False
            if not event.is_replaceable:
                self._by_id[event.id] = event
                return True

            address = event.address
            current = self._by_address.get(address)
            if current is not None:
                if not _is_newer(event, current):
                    return False
                del self._by_id[current.id]
            self._by_address[address] = event
            self._by_id[event.id] = event
            return True

    def add_many(self, events: Iterable[Event]) -> int:
        """Insert every event and return how many became current."""
        with self._lock:
            return sum(1 for event in events if self.add(event))

    def get(self, event_id: str) -> Event | None:
        with self._lock:
            return self._by_id.get(event_id)

    def get_replaceable(self, kind: int, pubkey: str, identifier: str = "") -> Event | None:
        """Return the newest event at ``(kind, pubkey, identifier)``.

        Side-effect free; safe to call while another task is inserting.
        """
        with self._lock:
            return self._by_address.get(EventAddress(kind, pubkey, identifier))

    def query(self, event_filter: EventFilter) -> list[Event]:
        """Return every stored event matching *event_filter*, newest first."""
        with self._lock:
            matches = [e for e in self._by_id.values() if event_filter.matches(e)]
        matches.sort(key=lambda e: (-e.created_at, e.id))
        if event_filter.limit is not None:
            matches = matches[: event_filter.limit]
        return matches

    def save(self, path: Path) -> None:
        """Write every stored event to *path* as JSON lines."""
        with self._lock:
            events = list(self._by_id.values())
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for event in events:
                f.write(event.to_json() + "\n")
        logger.debug("index_saved path=%s events=%d", path, len(events))

    @classmethod
    def load(cls, path: Path) -> EventIndex:
        """Build an index from a JSON-lines file.

        A missing file yields an empty index. Malformed lines are logged and
        skipped so one corrupt entry does not discard the cache.
        """
        index = cls()
        if not path.exists():
            return index
        with path.open(encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    index.add(Event.from_json(line))
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning("index_line_skipped path=%s line=%d error=%s", path, lineno, e)
        return index
