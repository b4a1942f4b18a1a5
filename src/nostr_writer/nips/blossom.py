"""Blossom media server authorization (BUD-01 / BUD-02).

Builds the kind 24242 authorization draft a media server requires before
accepting an upload, and encodes a signed one as an HTTP header value.
"""

from __future__ import annotations

import base64
from time import time
from typing import TYPE_CHECKING

from nostr_writer.models import EventKind, UnsignedEvent


if TYPE_CHECKING:
    from nostr_writer.models import Event


def build_upload_auth(
    sha256: str,
    *,
    expiration: int = 300,
    content: str = "Upload media",
    now: int | None = None,
) -> UnsignedEvent:
    """Draft an ``upload`` authorization for the blob with hash *sha256*.

    Args:
        sha256: Hex SHA-256 of the blob.
        expiration: Seconds the authorization stays valid.
        content: Human readable description shown by servers.
        now: Creation timestamp (defaults to now).
    """
    created_at = now if now is not None else int(time())
    return UnsignedEvent(
        kind=EventKind.BLOSSOM_AUTH,
        content=content,
        tags=[
            ["t", "upload"],
            ["x", sha256],
            ["expiration", str(created_at + expiration)],
        ],
        created_at=created_at,
    )


def authorization_header(event: Event) -> str:
    """Return the ``Authorization`` header value for a signed auth event."""
    token = base64.b64encode(event.to_json().encode("utf-8")).decode("ascii")
    return f"Nostr {token}"
