"""Publish/update orchestrator.

Publishes one markdown document from the store as an addressable article,
creating it on first publish and updating it in place afterwards.

The operation walks these states, logging each transition:

1. **draft**: read the document, validate it, derive missing metadata
   (identifier, title, tags, published_at) and look up the current event
   at the document's address in the local index.
2. **uploading** (only with local media): upload embedded files and
   rewrite the body with served URLs.
3. **built**: build the unsigned draft, modifying the existing event's
   tags when there is one.
4. **signed**: sign with the active identity.
5. **publishing**: send to every publish relay concurrently.
6. **done**: at least one relay accepted. The event is added to the index
   and the document's front-matter is written back so the next publish
   updates the same address.

Preconditions are checked before any store, upload or network work: an
active signer ([NoActiveIdentity][nostr_writer.core.exceptions.NoActiveIdentity])
and a non-empty publish set
([NoRelaysConfigured][nostr_writer.core.exceptions.NoRelaysConfigured]).

Note:
    Publishes of the same ``(kind, pubkey, identifier)`` are serialized by
    a per-address lock, and with ``refresh_before_publish`` the existing
    event is re-fetched from relays inside the lock, so two concurrent
    publishes never build drafts from the same stale snapshot.

See Also:
    [build_article_draft()][nostr_writer.nips.nip23.build_article_draft]:
        Modify-vs-build draft construction.
    [ContentTransformer][nostr_writer.services.common.content.ContentTransformer]:
        Media upload and link rewriting.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import defaultdict
from typing import TYPE_CHECKING

from nostr_writer.core.exceptions import (
    NoActiveIdentity,
    NostrWriterError,
    PublishingError,
    PublishStep,
)
from nostr_writer.core.logger import Logger
from nostr_writer.core.metrics import OPERATION_DURATION_SECONDS, PUBLISH_OUTCOMES
from nostr_writer.models import AddressPointer, EventAddress
from nostr_writer.models.constants import CLIENT_NAME, EventKind
from nostr_writer.nips.blossom import build_upload_auth
from nostr_writer.nips.nip19 import encode_naddr
from nostr_writer.nips.nip23 import build_article_draft
from nostr_writer.utils.vault import render_document

from .utils import (
    PublishReport,
    PublishState,
    apply_defaults,
    document_identifier,
    merge_frontmatter,
    read_document,
)


if TYPE_CHECKING:
    from collections.abc import Iterator

    from nostr_writer.core.index import EventIndex
    from nostr_writer.models import DocumentFrontmatter, Event
    from nostr_writer.services.common.content import ContentTransformer
    from nostr_writer.services.common.fetcher import EventFetcher
    from nostr_writer.services.common.relays import RelaySelector
    from nostr_writer.utils.signer import Signer
    from nostr_writer.utils.transport import PublishOutcome, Transport
    from nostr_writer.utils.vault import DocumentStore

    from .utils import PreparedDocument


_MAX_NADDR_HINTS = 3


@contextlib.contextmanager
def _failing_as(step: PublishStep) -> Iterator[None]:
    """Turn any failure other than a ``NostrWriterError`` into ``PublishingError(step)``."""
    try:
        yield
    except NostrWriterError:
        raise
    except Exception as e:
        raise PublishingError(step, str(e) or type(e).__name__) from e


class Publisher:
    """Create-or-update publishing of store documents.

    Every collaborator is injected; the publisher holds no global state
    besides its per-address locks.

    Args:
        store: Document store the documents are read from and written back to.
        signer: Active identity, or ``None`` when no account is configured.
        transport: Relay publish capability.
        index: Shared local event index.
        selector: Relay resolution pipeline.
        fetcher: Fetch engine, used to refresh the existing event.
        transformer: Content transformer for embedded media.
        kind: Article kind.
        client: ``client`` tag value, or ``None`` to omit the tag.
        refresh_before_publish: Re-fetch the existing event before building.
        auth_expiration: Seconds an upload authorization stays valid.
    """

    def __init__(
        self,
        *,
        store: DocumentStore,
        signer: Signer | None,
        transport: Transport,
        index: EventIndex,
        selector: RelaySelector,
        fetcher: EventFetcher,
        transformer: ContentTransformer,
        kind: int = EventKind.LONG_FORM_ARTICLE,
        client: str | None = CLIENT_NAME,
        refresh_before_publish: bool = True,
        auth_expiration: int = 300,
    ) -> None:
        self._store = store
        self._signer = signer
        self._transport = transport
        self._index = index
        self._selector = selector
        self._fetcher = fetcher
        self._transformer = transformer
        self._kind = kind
        self._client = client
        self._refresh = refresh_before_publish
        self._auth_expiration = auth_expiration
        self._locks: defaultdict[EventAddress, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._logger = Logger("publisher")

    def existing_event(self, pubkey: str, identifier: str) -> Event | None:
        """Current event at the article address, from the local index only."""
        return self._index.get_replaceable(self._kind, pubkey, identifier)

    async def publish(self, path: str) -> PublishReport:
        """Publish the document at *path*.

        Returns:
            A [PublishReport][nostr_writer.services.publisher.utils.PublishReport]
            listing every relay outcome.

        Raises:
            NoActiveIdentity: No signer is configured.
            NoRelaysConfigured: The publish relay set is empty.
            InvalidDocument: The document cannot be published.
            UploadFailed: No media server accepted an embedded file.
            SigningFailed: The signer failed.
            PublishingError: Any other failure, carrying the failed step;
                when no relay accepted, ``outcomes`` holds every relay's result.
        """
        if self._signer is None:
            raise NoActiveIdentity
        relays = self._selector.publish_relays()

        logger = self._logger.bind(path=path)
        started = time.monotonic()
        try:
            logger.info("publish_state", state=PublishState.DRAFT, relays=len(relays))
            with _failing_as(PublishStep.DRAFT):
                try:
                    text = self._store.read(path)
                except OSError as e:
                    raise PublishingError(PublishStep.DRAFT, f"cannot read {path}: {e}") from e
                document = read_document(path, text)
            with _failing_as(PublishStep.SIGN):
                pubkey = await self._signer.get_public_key()
            identifier = document_identifier(document, path)
            logger = logger.bind(identifier=identifier)

            async with self._locks[EventAddress(self._kind, pubkey, identifier)]:
                report = await self._publish_locked(
                    self._signer, path, document, pubkey, identifier, relays, logger
                )
        except Exception as e:
            logger.error(
                "publish_state",
                state=PublishState.FAILED,
                step=getattr(e, "step", None),
                error=str(e) or type(e).__name__,
            )
            raise
        finally:
            OPERATION_DURATION_SECONDS.labels(operation="publish").observe(
                time.monotonic() - started
            )
        return report

    async def _publish_locked(
        self,
        signer: Signer,
        path: str,
        document: PreparedDocument,
        pubkey: str,
        identifier: str,
        relays: list[str],
        logger: Logger,
    ) -> PublishReport:
        address = AddressPointer(self._kind, pubkey, identifier)

        if self._refresh:
            with _failing_as(PublishStep.DRAFT):
                await self._fetcher.fetch_address(address, self._selector.address_relays(address))
        existing = self.existing_event(pubkey, identifier)
        frontmatter = apply_defaults(document, path, pubkey, existing=existing)

        body = document.body
        if self._transformer.find_embeds(body, path):
            logger.info("publish_state", state=PublishState.UPLOADING)

        async def auth(sha256: str) -> Event:
            return await signer.sign(build_upload_auth(sha256, expiration=self._auth_expiration))

        with _failing_as(PublishStep.UPLOAD):
            body = await self._transformer.prepare_for_publish(body, auth, path)

        # An update must sort after the event it replaces.
        created_at = int(time.time())
        if existing is not None and created_at <= existing.created_at:
            created_at = existing.created_at + 1
        with _failing_as(PublishStep.BUILD):
            draft = build_article_draft(
                frontmatter,
                body,
                kind=self._kind,
                existing=existing,
                client=self._client,
                created_at=created_at,
            )
        logger.info("publish_state", state=PublishState.BUILT, update=existing is not None)

        with _failing_as(PublishStep.SIGN):
            event = await signer.sign(draft)
        logger.info("publish_state", state=PublishState.SIGNED, event_id=event.id)

        logger.info("publish_state", state=PublishState.PUBLISHING)
        with _failing_as(PublishStep.PUBLISH):
            outcomes = await self._transport.publish(relays, event)
        self._record_outcomes(outcomes, logger)

        accepted = [relay for relay, outcome in outcomes.items() if outcome.accepted]
        if not accepted:
            raise PublishingError(
                PublishStep.PUBLISH,
                f"no relay accepted the event ({len(outcomes)} tried)",
                outcomes=outcomes,
            )

        self._index.add(event)
        self._write_back(path, document, frontmatter, logger)
        logger.info(
            "publish_state",
            state=PublishState.DONE,
            event_id=event.id,
            accepted=len(accepted),
            relays=len(outcomes),
        )
        pointer = AddressPointer(self._kind, pubkey, identifier, tuple(accepted[:_MAX_NADDR_HINTS]))
        try:
            naddr = encode_naddr(pointer)
        except ValueError as e:
            logger.warning("naddr_encode_failed", error=str(e))
            naddr = ""
        return PublishReport(
            path=path,
            address=pointer,
            event=event,
            is_update=existing is not None,
            outcomes=outcomes,
            naddr=naddr,
        )

    def _record_outcomes(self, outcomes: dict[str, PublishOutcome], logger: Logger) -> None:
        for relay, outcome in outcomes.items():
            PUBLISH_OUTCOMES.labels(relay=relay, outcome=outcome.status.value).inc()
            if outcome.accepted:
                logger.info("relay_accepted", relay=relay)
            else:
                logger.warning(
                    "relay_failed", relay=relay, status=outcome.status, reason=outcome.message
                )

    def _write_back(
        self,
        path: str,
        document: PreparedDocument,
        frontmatter: DocumentFrontmatter,
        logger: Logger,
    ) -> None:
        """Persist the published metadata; failure is logged, the publish stands."""
        mapping = merge_frontmatter(document.raw_frontmatter, frontmatter)
        try:
            self._store.write(path, render_document(mapping, document.body))
        except OSError as e:
            logger.warning("frontmatter_writeback_failed", error=str(e))
