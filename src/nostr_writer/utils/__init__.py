"""Collaborator capabilities: keys and signer, relay transport, document store, media upload, HTTP.

Examples:
    ```python
    from nostr_writer.utils import FileVault, KeysSigner, NostrSdkTransport
    ```
"""

from .blossom import AuthCallback, BlossomUploader, MediaUploader
from .http import download_bounded
from .keys import ENV_PRIVATE_KEY, load_keys_from_env, parse_private_key
from .signer import KeysSigner, Signer
from .transport import (
    EndOfStoredEvents,
    EventMessage,
    NostrSdkTransport,
    PublishOutcome,
    PublishStatus,
    Transport,
    TransportMessage,
)
from .vault import DocumentStore, FileVault, render_document, split_frontmatter


__all__ = [
    "ENV_PRIVATE_KEY",
    "AuthCallback",
    "BlossomUploader",
    "DocumentStore",
    "EndOfStoredEvents",
    "EventMessage",
    "FileVault",
    "KeysSigner",
    "MediaUploader",
    "NostrSdkTransport",
    "PublishOutcome",
    "PublishStatus",
    "Signer",
    "Transport",
    "TransportMessage",
    "download_bounded",
    "load_keys_from_env",
    "parse_private_key",
    "render_document",
    "split_frontmatter",
]
