"""Infrastructure shared by the services: errors, logging, metrics, config loading, local index.

Examples:
    ```python
    from nostr_writer.core import EventIndex, Logger
    ```
"""

from .exceptions import (
    ConfigurationError,
    InvalidAddress,
    InvalidDocument,
    NoActiveIdentity,
    NoRelaysConfigured,
    NostrWriterError,
    NotFound,
    PublishingError,
    PublishStep,
    SigningFailed,
    UploadFailed,
)
from .index import EventIndex
from .logger import JsonFormatter, Logger, StructuredFormatter, format_kv_pairs, setup_logging
from .yaml import load_yaml


__all__ = [
    "ConfigurationError",
    "EventIndex",
    "InvalidAddress",
    "InvalidDocument",
    "JsonFormatter",
    "Logger",
    "NoActiveIdentity",
    "NoRelaysConfigured",
    "NostrWriterError",
    "NotFound",
    "PublishStep",
    "PublishingError",
    "SigningFailed",
    "StructuredFormatter",
    "UploadFailed",
    "format_kv_pairs",
    "load_yaml",
    "setup_logging",
]
