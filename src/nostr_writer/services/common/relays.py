"""Relay resolution pipeline.

Computes the ordered, de-duplicated relay set for each operation from the
configured publish, lookup and local endpoints plus the active author's
mailboxes. Mailboxes are pulled through a callable on every resolution
rather than pushed into the selector, so the sets always reflect the
current contents of the local index without observer wiring.

Every URL is normalized through [Relay][nostr_writer.models.relay.Relay]
(lowercase scheme and host, no trailing slash, no default port) before
de-duplication; the first occurrence keeps its position. URLs that do not
normalize are dropped. Loopback and private hosts are only accepted when
they equal the configured local endpoint.

Set composition:

* **publish**: local, configured publish relays, mailbox outboxes.
* **address**: pointer hints, publish set, local.
* **author**: pointer hints, discovered outboxes, publish set, local.
* **discovery**: pointer hints, lookup relays, publish set. Only used to
  find an author's relay list, never for the document fetch itself.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nostr_writer.core.exceptions import NoRelaysConfigured
from nostr_writer.models import Relay


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from nostr_writer.models import AddressPointer, MailboxSet, ProfilePointer


logger = logging.getLogger(__name__)


class RelaySelector:
    """Resolve relay sets per operation.

    Args:
        publish: Configured publish relays, in priority order.
        lookup: Relays used to discover relay-list events.
        local: Optional local relay, always first in the publish set.
        mailboxes: Returns the active author's mailboxes, or ``None`` while
            unknown. Called on every resolution.

    Examples:
        ```python
        selector = RelaySelector(["wss://nos.lol/", "WSS://NOS.LOL"], local="ws://localhost:4869")
        selector.publish_relays()
        # ['ws://localhost:4869', 'wss://nos.lol']
        ```
    """

    def __init__(
        self,
        publish: Sequence[str] = (),
        lookup: Sequence[str] = (),
        local: str | None = None,
        mailboxes: Callable[[], MailboxSet | None] | None = None,
    ) -> None:
        self._local = Relay(local, allow_local=True).url if local else None
        self._publish = tuple(publish)
        self._lookup = tuple(lookup)
        self._mailboxes = mailboxes

    @property
    def local(self) -> str | None:
        return self._local

    def _normalize(self, url: str) -> str | None:
        try:
            return Relay(url).url
        except ValueError:
            pass
        if self._local is not None:
            try:
                candidate = Relay(url, allow_local=True).url
            except ValueError:
                candidate = None
            if candidate == self._local:
                return candidate
        logger.debug("relay_dropped url=%s", url)
        return None

    def dedupe(self, *sources: Iterable[str | None]) -> list[str]:
        """Merge *sources* in order, normalized, first occurrence wins."""
        seen: set[str] = set()
        result: list[str] = []
        for source in sources:
            for url in source:
                if not url:
                    continue
                normalized = self._normalize(url)
                if normalized is not None and normalized not in seen:
                    seen.add(normalized)
                    result.append(normalized)
        return result

    def _require(self, relays: list[str], operation: str) -> list[str]:
        if not relays:
            raise NoRelaysConfigured(operation)
        return relays

    def _outboxes(self) -> tuple[str, ...]:
        mailboxes = self._mailboxes() if self._mailboxes is not None else None
        return mailboxes.outboxes if mailboxes is not None else ()

    def _publish_set(self) -> list[str]:
        return self.dedupe([self._local], self._publish, self._outboxes())

    def publish_relays(self) -> list[str]:
        """Relays a signed event is sent to.

        Raises:
            NoRelaysConfigured: If the set is empty.
        """
        return self._require(self._publish_set(), "publish")

    def address_relays(self, pointer: AddressPointer) -> list[str]:
        """Relays queried for one replaceable document.

        Raises:
            NoRelaysConfigured: If the set is empty.
        """
        relays = self.dedupe(pointer.relays, self._publish_set(), [self._local])
        return self._require(relays, "fetch")

    def author_relays(self, pointer: ProfilePointer, outboxes: Sequence[str] = ()) -> list[str]:
        """Relays queried for every document of an author.

        Args:
            pointer: The author, with relay hints.
            outboxes: The author's discovered outbox relays, appended after
                the hints.

        Raises:
            NoRelaysConfigured: If the set is empty.
        """
        relays = self.dedupe(pointer.relays, outboxes, self._publish_set(), [self._local])
        return self._require(relays, "fetch")

    def discovery_relays(self, pointer: ProfilePointer) -> list[str]:
        """Relays queried for an author's relay list while it is unknown.

        Raises:
            NoRelaysConfigured: If the set is empty.
        """
        relays = self.dedupe(pointer.relays, self._lookup, self._publish_set())
        return self._require(relays, "relay list discovery")

    def lookup_relays(self) -> list[str]:
        """Relays queried for the active account's profile and relay list."""
        return self._require(self.dedupe(self._lookup, self._publish_set()), "lookup")
