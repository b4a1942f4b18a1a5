"""Shared building blocks of the publish and download flows.

Attributes:
    configs: Pydantic configuration tree rooted at
        [WriterConfig][nostr_writer.services.common.configs.WriterConfig].
    relays: [RelaySelector][nostr_writer.services.common.relays.RelaySelector],
        the per-operation relay resolution pipeline.
    fetcher: [EventFetcher][nostr_writer.services.common.fetcher.EventFetcher],
        the multi-relay fetch and de-duplication engine.
    content: [ContentTransformer][nostr_writer.services.common.content.ContentTransformer],
        media upload/download and link rewriting for document bodies.
"""

from .configs import MediaConfig, RelaysConfig, StorageConfig, TimeoutsConfig, WriterConfig
from .content import ContentTransformer
from .fetcher import EventFetcher, FetchResult
from .relays import RelaySelector


__all__ = [
    "ContentTransformer",
    "EventFetcher",
    "FetchResult",
    "MediaConfig",
    "RelaySelector",
    "RelaysConfig",
    "StorageConfig",
    "TimeoutsConfig",
    "WriterConfig",
]
