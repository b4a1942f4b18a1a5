"""HTTP helpers shared by the media uploader and the image localizer.

Remote images referenced by downloaded articles are fetched into memory,
so every download is capped: a declared ``Content-Length`` above the cap
fails before reading, and the streamed body is cut off as soon as it
passes the cap.
"""

from __future__ import annotations

import aiohttp


DEFAULT_MAX_DOWNLOAD_SIZE = 50 * 1024 * 1024

_CHUNK_SIZE = 64 * 1024


def create_session(timeout: float) -> aiohttp.ClientSession:
    """Return a client session with a total request timeout of *timeout* seconds."""
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout))


async def _read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    declared = response.content_length
    if declared is not None and declared > max_size:
        raise ValueError(f"Response body too large: {declared} > {max_size} bytes")

    body = bytearray()
    while chunk := await response.content.read(min(_CHUNK_SIZE, max_size + 1 - len(body))):
        body += chunk
        if len(body) > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
    return bytes(body)


async def download_bounded(
    url: str,
    *,
    max_size: int = DEFAULT_MAX_DOWNLOAD_SIZE,
    timeout: float = 60.0,  # noqa: ASYNC109
) -> bytes:
    """Fetch *url* and return its body.

    Raises:
        aiohttp.ClientError: On connection failure or an error status.
        TimeoutError: If the request takes longer than *timeout* seconds.
        ValueError: If the body is larger than *max_size* bytes.
    """
    async with create_session(timeout) as session, session.get(url) as response:
        response.raise_for_status()
        return await _read_bounded(response, max_size)
