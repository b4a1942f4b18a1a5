"""Download articles from relays into the document store.

An address is resolved with
[resolve_address()][nostr_writer.nips.nip19.resolve_address] and routed:

* ``naddr`` (address pointer): fetch the single article from the pointer's
  hints and the publish set, newest version wins, then save it.
  [NotFound][nostr_writer.core.exceptions.NotFound] if nothing arrives.
* ``npub``/``nprofile``/hex (profile pointer): discover the author's outbox
  relays, fetch every article by the author and save each one. The saved
  set is read back from the local index, so articles cached by earlier
  rounds are included. One article failing to save is logged and reported;
  the rest of the batch continues.

Saving renders the event back into a document (front-matter + body),
downloads remote images next to it, and writes it at a deterministic path.

See Also:
    [event_to_frontmatter()][nostr_writer.nips.nip23.event_to_frontmatter]:
        Event to front-matter mapping.
    [ContentTransformer.localize_images()][nostr_writer.services.common.content.ContentTransformer.localize_images]:
        Image downloads.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from nostr_writer.core.exceptions import NostrWriterError, NotFound
from nostr_writer.core.logger import Logger
from nostr_writer.core.metrics import OPERATION_DURATION_SECONDS
from nostr_writer.models import AddressPointer, EventKind, ProfilePointer
from nostr_writer.models.document import FRONTMATTER_KEYS
from nostr_writer.nips.nip19 import resolve_address
from nostr_writer.nips.nip23 import event_to_frontmatter
from nostr_writer.nips.nip65 import mailboxes_from_index
from nostr_writer.utils.vault import render_document, split_frontmatter

from .utils import BulkDownloadReport, DownloadFailure, SavedArticle, article_path


if TYPE_CHECKING:
    from nostr_writer.core.index import EventIndex
    from nostr_writer.models import Event, Pointer
    from nostr_writer.services.common.content import ContentTransformer
    from nostr_writer.services.common.fetcher import EventFetcher
    from nostr_writer.services.common.relays import RelaySelector
    from nostr_writer.utils.vault import DocumentStore


class Downloader:
    """Fetch articles by address and save them as documents.

    Args:
        store: Document store articles are written to.
        index: Shared local event index.
        selector: Relay resolution pipeline.
        fetcher: Fetch engine.
        transformer: Content transformer, for image downloads.
        kind: Article kind fetched for author downloads.
        articles_folder: Store folder articles are written to.
    """

    def __init__(
        self,
        *,
        store: DocumentStore,
        index: EventIndex,
        selector: RelaySelector,
        fetcher: EventFetcher,
        transformer: ContentTransformer,
        kind: int = EventKind.LONG_FORM_ARTICLE,
        articles_folder: str = "nostr",
    ) -> None:
        self._store = store
        self._index = index
        self._selector = selector
        self._fetcher = fetcher
        self._transformer = transformer
        self._kind = kind
        self._articles_folder = articles_folder
        self._logger = Logger("downloader")

    async def download(self, address: str | Pointer) -> SavedArticle | BulkDownloadReport:
        """Download whatever *address* points at.

        Raises:
            InvalidAddress: If *address* is a string that does not resolve.
            NoRelaysConfigured: If the relay set for the fetch is empty.
            NotFound: For an address pointer with no matching event.
        """
        pointer = resolve_address(address) if isinstance(address, str) else address
        started = time.monotonic()
        try:
            if isinstance(pointer, AddressPointer):
                return await self.download_article(pointer)
            return await self.download_author(pointer)
        finally:
            OPERATION_DURATION_SECONDS.labels(operation="download").observe(
                time.monotonic() - started
            )

    async def download_article(self, pointer: AddressPointer) -> SavedArticle:
        """Fetch the newest version of one article and save it."""
        relays = self._selector.address_relays(pointer)
        event = await self._fetcher.fetch_address(pointer, relays)
        if event is None:
            self._logger.warning(
                "article_not_found", identifier=pointer.identifier, relays=len(relays)
            )
            raise NotFound(pointer)
        return await self.save_article(event)

    async def discover_outboxes(self, pointer: ProfilePointer) -> tuple[str, ...]:
        """Return the author's outbox relays, fetching their relay list if unknown."""
        mailboxes = mailboxes_from_index(self._index, pointer.pubkey)
        if mailboxes is None:
            await self._fetcher.fetch_replaceable(
                [EventKind.RELAY_LIST], pointer.pubkey, self._selector.discovery_relays(pointer)
            )
            mailboxes = mailboxes_from_index(self._index, pointer.pubkey)
        if mailboxes is None:
            self._logger.debug("relay_list_unknown", pubkey=pointer.pubkey)
            return ()
        return mailboxes.outboxes

    async def download_author(self, pointer: ProfilePointer) -> BulkDownloadReport:
        """Fetch and save every article of an author; failures are reported, not raised."""
        logger = self._logger.bind(pubkey=pointer.pubkey)
        outboxes = await self.discover_outboxes(pointer)
        relays = self._selector.author_relays(pointer, outboxes)
        events = await self._fetcher.fetch_author(self._kind, pointer.pubkey, relays)
        logger.info("author_articles_found", articles=len(events), relays=len(relays))

        report = BulkDownloadReport(pubkey=pointer.pubkey)
        for event in events:
            try:
                report.saved.append(await self.save_article(event))
            except (NostrWriterError, OSError, ValueError) as e:
                logger.error(
                    "article_save_failed",
                    event_id=event.id,
                    identifier=event.identifier,
                    error=str(e),
                )
                report.failed.append(DownloadFailure(event.id, event.identifier, str(e)))

        logger.info("author_download_finished", saved=len(report.saved), failed=len(report.failed))
        return report

    async def save_article(self, event: Event) -> SavedArticle:
        """Render *event* as a document and write it at its deterministic path.

        Keys of an existing file's front-matter that are not publishing
        metadata are kept.
        """
        frontmatter = event_to_frontmatter(event).to_mapping()
        path = article_path(self._articles_folder, event)
        if self._store.exists(path):
            try:
                previous, _ = split_frontmatter(self._store.read(path))
            except ValueError:
                previous = {}
            frontmatter.update({k: v for k, v in previous.items() if k not in FRONTMATTER_KEYS})

        body = await self._transformer.localize_images(event.content)
        self._store.write(path, render_document(frontmatter, body))
        self._logger.info("article_saved", path=path, identifier=event.identifier)
        return SavedArticle(path, event)
