"""Business logic: the publish and download flows and their shared building blocks.

Attributes:
    common: Configuration, relay resolution, fetch engine, content transformer.
    publisher: [Publisher][nostr_writer.services.publisher.Publisher],
        the create-or-update orchestrator.
    downloader: [Downloader][nostr_writer.services.downloader.Downloader],
        single-article and bulk author downloads.
    session: [WriterSession][nostr_writer.services.session.WriterSession],
        dependency wiring from a
        [WriterConfig][nostr_writer.services.common.configs.WriterConfig].
"""

from .common import (
    ContentTransformer,
    EventFetcher,
    FetchResult,
    RelaySelector,
    WriterConfig,
)
from .downloader import BulkDownloadReport, Downloader, SavedArticle
from .publisher import Publisher, PublishReport, PublishState
from .session import WriterSession


__all__ = [
    "BulkDownloadReport",
    "ContentTransformer",
    "Downloader",
    "EventFetcher",
    "FetchResult",
    "PublishReport",
    "PublishState",
    "Publisher",
    "RelaySelector",
    "SavedArticle",
    "WriterConfig",
    "WriterSession",
]
