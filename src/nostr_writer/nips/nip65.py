"""NIP-65 relay list metadata.

Derives an author's [MailboxSet][nostr_writer.models.pointers.MailboxSet]
from their kind 10002 event: ``["r", url]`` is both read and write,
``["r", url, "read"]`` an inbox only, ``["r", url, "write"]`` an outbox only.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nostr_writer.models import EventKind, MailboxSet, Relay


if TYPE_CHECKING:
    from nostr_writer.core.index import EventIndex
    from nostr_writer.models import Event


logger = logging.getLogger(__name__)


def parse_mailboxes(event: Event) -> MailboxSet:
    """Extract inboxes and outboxes from a relay list event.

    Invalid or local relay URLs are skipped; duplicates keep first position.

    Raises:
        ValueError: If *event* is not a kind 10002 relay list.
    """
    if event.kind != EventKind.RELAY_LIST:
        raise ValueError(f"expected kind {EventKind.RELAY_LIST}, got {event.kind}")

    inboxes: list[str] = []
    outboxes: list[str] = []
    for tag in event.tags:
        if tag[0] != "r" or len(tag) < 2:  # noqa: PLR2004
            continue
        try:
            url = Relay(tag[1]).url
        except ValueError as e:
            logger.debug("mailbox_relay_skipped relay=%s error=%s", tag[1], e)
            continue
        marker = tag[2] if len(tag) > 2 else ""  # noqa: PLR2004
        if marker in ("", "read") and url not in inboxes:
            inboxes.append(url)
        if marker in ("", "write") and url not in outboxes:
            outboxes.append(url)
    return MailboxSet(inboxes=tuple(inboxes), outboxes=tuple(outboxes))


def mailboxes_from_index(index: EventIndex, pubkey: str) -> MailboxSet | None:
    """Derive mailboxes for *pubkey* from the index, recomputed on every call.

    Returns ``None`` until the author's relay list has been loaded.
    """
    event = index.get_replaceable(EventKind.RELAY_LIST, pubkey)
    if event is None:
        return None
    return parse_mailboxes(event)
