"""Session wiring: one place that builds every component from configuration.

[WriterSession][nostr_writer.services.session.WriterSession] owns the shared
local index and hands the same signer, transport and index to every
component, replacing any process-global state. It is an async context
manager: entering loads the persisted index (when ``storage.index_path`` is
set) and exiting saves it.

Mailboxes of the active account are not pushed anywhere: the relay
selector pulls them from the index on every resolution, so loading the
account's relay list with
[load_identity()][nostr_writer.services.session.WriterSession.load_identity]
immediately widens the publish set.

Examples:
    ```python
    config = WriterConfig.from_yaml("config/writer.yaml")
    async with WriterSession(config) as session:
        await session.load_identity()
        report = await session.publisher.publish("posts/hello.md")
    ```
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Self

from nostr_writer.core.exceptions import ConfigurationError, NoActiveIdentity
from nostr_writer.core.index import EventIndex
from nostr_writer.core.logger import Logger
from nostr_writer.models import EventFilter, EventKind
from nostr_writer.nips.nip19 import encode_npub
from nostr_writer.nips.nip65 import mailboxes_from_index
from nostr_writer.utils.blossom import BlossomUploader
from nostr_writer.utils.keys import load_keys_from_env
from nostr_writer.utils.signer import KeysSigner
from nostr_writer.utils.transport import NostrSdkTransport
from nostr_writer.utils.vault import FileVault

from .common.content import ContentTransformer
from .common.fetcher import EventFetcher
from .common.relays import RelaySelector
from .downloader import Downloader
from .publisher import Publisher


if TYPE_CHECKING:
    from types import TracebackType

    from nostr_writer.models import MailboxSet
    from nostr_writer.utils.blossom import MediaUploader
    from nostr_writer.utils.signer import Signer
    from nostr_writer.utils.transport import Transport
    from nostr_writer.utils.vault import DocumentStore

    from .common.configs import WriterConfig


_IDENTITY_KINDS = (EventKind.SET_METADATA, EventKind.CONTACTS, EventKind.RELAY_LIST)


class WriterSession:
    """Components of one nostr-writer run, built from a configuration.

    Any collaborator can be injected (tests, embedding applications);
    missing ones are built from *config*.

    Args:
        config: Validated configuration.
        signer: Active identity. Defaults to keys read from ``config.keys_env``;
            ``None`` there means no active account.
        transport: Relay capability. Defaults to
            [NostrSdkTransport][nostr_writer.utils.transport.NostrSdkTransport].
        uploader: Media upload capability. Defaults to
            [BlossomUploader][nostr_writer.utils.blossom.BlossomUploader].
        store: Document store. Defaults to a
            [FileVault][nostr_writer.utils.vault.FileVault] on ``storage.vault``.
        index: Local event index. Defaults to an empty one, loaded from
            ``storage.index_path`` on entry.

    Raises:
        ConfigurationError: If the key environment variable holds a malformed key.
    """

    def __init__(
        self,
        config: WriterConfig,
        *,
        signer: Signer | None = None,
        transport: Transport | None = None,
        uploader: MediaUploader | None = None,
        store: DocumentStore | None = None,
        index: EventIndex | None = None,
    ) -> None:
        self.config = config
        self._logger = Logger("session")

        if signer is None:
            try:
                keys = load_keys_from_env(config.keys_env)
            except ValueError as e:
                raise ConfigurationError(f"{config.keys_env}: {e}") from e
            signer = KeysSigner(keys) if keys is not None else None
        self.signer = signer
        self._pubkey: str | None = None

        self.transport: Transport = transport or NostrSdkTransport(
            connect_timeout=config.timeouts.connect,
            request_timeout=config.timeouts.fetch,
            publish_timeout=config.timeouts.publish,
        )
        self.uploader: MediaUploader = uploader or BlossomUploader(
            timeout=config.media.upload_timeout
        )
        self.store: DocumentStore = store or FileVault(config.storage.vault)
        self.index = index if index is not None else EventIndex()

        self.selector = RelaySelector(
            publish=config.relays.publish,
            lookup=config.relays.lookup,
            local=config.relays.local,
            mailboxes=lambda: self.mailboxes,
        )
        self.fetcher = EventFetcher(self.transport, self.index, timeout=config.timeouts.fetch)
        self.transformer = ContentTransformer(
            self.store,
            self.uploader,
            config.media.servers,
            kind=config.kind,
            download_folder=config.media.download_folder,
            max_download_size=config.media.max_download_size,
            download_timeout=config.media.download_timeout,
        )
        self.publisher = Publisher(
            store=self.store,
            signer=self.signer,
            transport=self.transport,
            index=self.index,
            selector=self.selector,
            fetcher=self.fetcher,
            transformer=self.transformer,
            kind=config.kind,
            client=config.client,
            refresh_before_publish=config.refresh_before_publish,
            auth_expiration=config.media.auth_expiration,
        )
        self.downloader = Downloader(
            store=self.store,
            index=self.index,
            selector=self.selector,
            fetcher=self.fetcher,
            transformer=self.transformer,
            kind=config.kind,
            articles_folder=config.storage.articles_folder,
        )

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        path = self.config.storage.index_path
        if path is not None:
            self.index.add_many(EventIndex.load(path).query(EventFilter()))
            self._logger.debug("index_loaded", path=path, events=len(self.index))
        if self.signer is not None:
            self._pubkey = await self.signer.get_public_key()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        path = self.config.storage.index_path
        if path is not None:
            try:
                self.index.save(path)
            except OSError as e:
                self._logger.warning("index_save_failed", path=path, error=str(e))

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def pubkey(self) -> str | None:
        """Hex public key of the active account, known after entering the session."""
        return self._pubkey

    @property
    def mailboxes(self) -> MailboxSet | None:
        """Active account's mailboxes, derived from the index on every read."""
        if self._pubkey is None:
            return None
        return mailboxes_from_index(self.index, self._pubkey)

    def require_pubkey(self) -> str:
        if self._pubkey is None:
            raise NoActiveIdentity
        return self._pubkey

    def npub(self) -> str:
        """``npub1...`` of the active account.

        Raises:
            NoActiveIdentity: If no account is active.
        """
        return encode_npub(self.require_pubkey())

    async def load_identity(self) -> None:
        """Load the active account's profile, contacts and relay list into the index.

        Raises:
            NoActiveIdentity: If no account is active.
            NoRelaysConfigured: If no lookup or publish relay is configured.
        """
        pubkey = self.require_pubkey()
        relays = self.selector.lookup_relays()
        result = await self.fetcher.fetch_replaceable(_IDENTITY_KINDS, pubkey, relays)
        self._logger.info(
            "identity_loaded",
            pubkey=pubkey,
            events=len(result.events),
            relay_list=self.mailboxes is not None,
            timed_out=result.timed_out,
        )

    def profile(self) -> dict[str, Any]:
        """Profile metadata (kind 0 content) of the active account, if loaded."""
        event = self.index.get_replaceable(EventKind.SET_METADATA, self.require_pubkey())
        if event is None:
            return {}
        try:
            data = json.loads(event.content)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

