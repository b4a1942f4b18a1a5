"""Blossom media upload client.

Implements the media upload capability: one blob is offered to every
configured server concurrently and the result is reported per server, so
the caller can apply its own preferred-server policy.

See Also:
    [nostr_writer.nips.blossom][]: Authorization event construction.
    [ContentTransformer][nostr_writer.services.common.content.ContentTransformer]:
        Chooses the first configured server that succeeded.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

import aiohttp

from nostr_writer.core.metrics import UPLOAD_OUTCOMES
from nostr_writer.models import BlobDescriptor, Event
from nostr_writer.nips.blossom import authorization_header

from .http import create_session


logger = logging.getLogger(__name__)

AuthCallback = Callable[[str], Awaitable[Event]]
"""Coroutine signing an upload authorization for a blob sha256."""


class MediaUploader(Protocol):
    """Capability to store a blob on media servers."""

    async def upload(
        self,
        servers: Sequence[str],
        blob: bytes,
        auth: AuthCallback,
        *,
        content_type: str | None = None,
    ) -> dict[str, BlobDescriptor | None]: ...


class BlossomUploader:
    """Upload blobs with ``PUT <server>/upload`` (BUD-02).

    Args:
        timeout: Total seconds allowed per server request.
    """

    def __init__(self, *, timeout: float = 60.0) -> None:
        self._timeout = timeout

    async def upload(
        self,
        servers: Sequence[str],
        blob: bytes,
        auth: AuthCallback,
        *,
        content_type: str | None = None,
    ) -> dict[str, BlobDescriptor | None]:
        """Offer *blob* to every server concurrently.

        Returns:
            ``{server: descriptor}`` with ``None`` for servers that failed;
            keys follow the order of *servers*.
        """
        if not servers:
            return {}
        sha256 = hashlib.sha256(blob).hexdigest()
        header = authorization_header(await auth(sha256))
        headers = {
            "Authorization": header,
            "Content-Type": content_type or "application/octet-stream",
            "X-SHA-256": sha256,
        }
        async with create_session(self._timeout) as session:
            results = await asyncio.gather(
                *(self._upload_one(session, server, blob, headers) for server in servers)
            )
        return dict(zip(servers, results, strict=True))

    async def _upload_one(
        self,
        session: aiohttp.ClientSession,
        server: str,
        blob: bytes,
        headers: dict[str, str],
    ) -> BlobDescriptor | None:
        url = server.rstrip("/") + "/upload"
        try:
            async with session.put(url, data=blob, headers=headers) as response:
                if response.status >= 400:  # noqa: PLR2004
                    reason = response.headers.get("X-Reason", response.reason or "")
                    logger.warning(
                        "upload_rejected server=%s status=%d reason=%s",
                        server,
                        response.status,
                        reason,
                    )
                    UPLOAD_OUTCOMES.labels(server=server, outcome="rejected").inc()
                    return None
                descriptor = BlobDescriptor.from_dict(await response.json(content_type=None))
        except (aiohttp.ClientError, TimeoutError, ValueError, KeyError) as e:
            logger.warning("upload_failed server=%s error=%s", server, e)
            UPLOAD_OUTCOMES.labels(server=server, outcome="failed").inc()
            return None
        UPLOAD_OUTCOMES.labels(server=server, outcome="ok").inc()
        logger.debug("upload_ok server=%s url=%s size=%d", server, descriptor.url, descriptor.size)
        return descriptor
