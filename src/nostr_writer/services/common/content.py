"""Content transformer: make document bodies portable and back again.

Upload direction (publish):

1. Scan the body for embed markers pointing at local media files,
   ``![[diagram.png]]`` or ``![alt](attachments/diagram.png)``, and resolve
   each through the document store's link index.
2. Upload every distinct file once to all configured media servers and keep
   the descriptor from the first server, in configuration order, that
   accepted it. A file no server accepts raises
   [UploadFailed][nostr_writer.core.exceptions.UploadFailed].
3. Splice the served URLs into the body in descending offset order so
   earlier offsets stay valid.
4. Rewrite the remaining ``[[target|label]]`` wikilinks: notes published at
   an address become ``nostr:naddr`` links, uploaded media reuse their
   served URL, anything else is reduced to its label.

Download direction: every remote image ``![alt](https://...)`` in a fetched
body is downloaded into the media folder and re-pointed at the local copy.
A failed image keeps its remote URL and never aborts the article.
"""

from __future__ import annotations

import hashlib
import mimetypes
import re
import uuid
from pathlib import PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlsplit

import aiohttp

from nostr_writer.core.exceptions import UploadFailed
from nostr_writer.core.logger import Logger
from nostr_writer.models import AddressPointer, DocumentFrontmatter, Embed, MediaType
from nostr_writer.models.constants import MEDIA_EXTENSIONS, media_type_for
from nostr_writer.nips.nip19 import encode_naddr
from nostr_writer.utils.http import DEFAULT_MAX_DOWNLOAD_SIZE, download_bounded
from nostr_writer.utils.vault import split_frontmatter


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from nostr_writer.models import BlobDescriptor
    from nostr_writer.utils.blossom import AuthCallback, MediaUploader
    from nostr_writer.utils.vault import DocumentStore

    Downloader = Callable[..., Awaitable[bytes]]


_WIKI_EMBED_RE = re.compile(r"!\[\[([^\]|\n]+)(?:\|([^\]\n]*))?\]\]")
_MD_EMBED_RE = re.compile(r"!\[([^\]\n]*)\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"\n]*\")?\s*\)")
_WIKILINK_RE = re.compile(r"!?\[\[([^\]|\n]+)(?:\|([^\]\n]*))?\]\]")
_REMOTE_IMAGE_RE = re.compile(
    r"!\[([^\]\n]*)\]\(\s*<?(https?://[^)\s>]+)>?(?:\s+\"[^\"\n]*\")?\s*\)"
)
_SIZE_LABEL_RE = re.compile(r"^\d+(?:x\d+)?$")

_DEFAULT_IMAGE_EXTENSION = ".png"
_URL_EXTENSION_RE = re.compile(
    r"\.(" + "|".join(ext[1:] for ext in MEDIA_EXTENSIONS) + r")(?=$|[?#&/])", re.IGNORECASE
)


def _label(target: str, label: str | None) -> str:
    """Display text of a wikilink: its alias, else the target's stem.

    Numeric aliases (``|300``, ``|640x480``) are size hints, not labels.
    """
    if label and not _SIZE_LABEL_RE.match(label.strip()):
        return label.strip()
    name = re.split(r"[#^]", target, maxsplit=1)[0].strip()
    return PurePosixPath(name).stem or name


def _render(media_type: MediaType | None, display: str, url: str) -> str:
    if media_type == MediaType.IMAGE:
        return f"![{display}]({url})"
    return f"[{display}]({url})"


def _is_remote(link: str) -> bool:
    return bool(urlsplit(link).scheme)


class ContentTransformer:
    """Convert embedded media between local files and media-server URLs.

    Args:
        store: Document store holding the documents and their attachments.
        uploader: Media upload capability.
        servers: Media servers in preference order.
        kind: Article kind used when linking to other published notes.
        download_folder: Store folder downloaded images are written to.
        max_download_size: Largest accepted image in bytes.
        download_timeout: Seconds allowed per image download.
        downloader: Bounded download coroutine (``url, *, max_size, timeout``).
    """

    def __init__(
        self,
        store: DocumentStore,
        uploader: MediaUploader,
        servers: Sequence[str] = (),
        *,
        kind: int = 30023,
        download_folder: str = "attachments",
        max_download_size: int = DEFAULT_MAX_DOWNLOAD_SIZE,
        download_timeout: float = 30.0,
        downloader: Downloader = download_bounded,
    ) -> None:
        self._store = store
        self._uploader = uploader
        self._servers = tuple(servers)
        self._kind = kind
        self._download_folder = download_folder.strip("/")
        self._max_download_size = max_download_size
        self._download_timeout = download_timeout
        self._download = downloader
        self._logger = Logger("content")

    # -------------------------------------------------------------------------
    # Upload direction
    # -------------------------------------------------------------------------

    def find_embeds(self, body: str, source: str | None = None) -> list[Embed]:
        """Return the local media embeds of *body*, in document order.

        Unresolvable targets and non-media files are skipped; they are left
        for [rewrite_links()][nostr_writer.services.common.content.ContentTransformer.rewrite_links].
        """
        embeds: list[Embed] = []
        for match in _WIKI_EMBED_RE.finditer(body):
            target = match.group(1).strip()
            display = _label(target, match.group(2))
            embeds.append(Embed(target, None, match.start(), match.end(), display))
        for match in _MD_EMBED_RE.finditer(body):
            target = match.group(2).strip()
            if _is_remote(target):
                continue
            display = match.group(1).strip() or _label(unquote(target), None)
            embeds.append(Embed(target, None, match.start(), match.end(), display))

        resolved: list[Embed] = []
        for embed in sorted(embeds, key=lambda e: e.start):
            if media_type_for(embed.link) is None:
                continue
            path = self._store.resolve_link(unquote(embed.link), source)
            if path is None:
                self._logger.warning("embed_unresolved", link=embed.link, source=source)
                continue
            resolved.append(Embed(embed.link, path, embed.start, embed.end, embed.display))
        return resolved

    async def upload_embeds(
        self, body: str, auth: AuthCallback, source: str | None = None
    ) -> tuple[str, dict[str, BlobDescriptor]]:
        """Upload the media embedded in *body* and splice in the served URLs.

        Returns:
            The rewritten body and ``{store path: descriptor}`` for every
            uploaded file.

        Raises:
            UploadFailed: If no media server accepts one of the files,
                including when no server is configured.
        """
        embeds = self.find_embeds(body, source)
        uploads: dict[str, BlobDescriptor] = {}
        for embed in embeds:
            if embed.path is not None and embed.path not in uploads:
                uploads[embed.path] = await self._upload(embed.path, auth)

        for embed in sorted(embeds, key=lambda e: e.start, reverse=True):
            descriptor = uploads[embed.path or embed.link]
            replacement = _render(embed.media_type, embed.display, descriptor.url)
            body = body[: embed.start] + replacement + body[embed.end :]
        return body, uploads

    async def _upload(self, path: str, auth: AuthCallback) -> BlobDescriptor:
        if not self._servers:
            raise UploadFailed(path, self._servers)
        blob = self._store.read_binary(path)
        content_type = mimetypes.guess_type(path)[0]
        results = await self._uploader.upload(self._servers, blob, auth, content_type=content_type)
        for server in self._servers:
            descriptor = results.get(server)
            if descriptor is not None:
                self._logger.info("media_uploaded", path=path, server=server, url=descriptor.url)
                return descriptor
        self._logger.error("media_upload_failed", path=path, servers=len(self._servers))
        raise UploadFailed(path, self._servers)

    def rewrite_links(
        self,
        body: str,
        source: str | None = None,
        uploads: dict[str, BlobDescriptor] | None = None,
    ) -> str:
        """Rewrite remaining wikilinks into portable markdown or plain labels."""
        uploads = uploads or {}

        def replace(match: re.Match[str]) -> str:
            target = match.group(1).strip()
            display = _label(target, match.group(2))
            path = self._store.resolve_link(target, source)
            if path is None:
                return display
            descriptor = uploads.get(path)
            if descriptor is not None:
                return _render(media_type_for(path), display, descriptor.url)
            if path.lower().endswith(".md"):
                naddr = self._note_address(path)
                if naddr is not None:
                    return f"[{display}](nostr:{naddr})"
            return display

        return _WIKILINK_RE.sub(replace, body)

    def _note_address(self, path: str) -> str | None:
        try:
            frontmatter, _ = split_frontmatter(self._store.read(path))
        except (OSError, ValueError):
            return None
        fm = DocumentFrontmatter.from_mapping(frontmatter)
        if not fm.pubkey or not fm.identifier:
            return None
        try:
            return encode_naddr(AddressPointer(self._kind, fm.pubkey, fm.identifier))
        except ValueError:
            return None

    async def prepare_for_publish(
        self, body: str, auth: AuthCallback, source: str | None = None
    ) -> str:
        """Upload embedded media and rewrite links so *body* reads anywhere."""
        body, uploads = await self.upload_embeds(body, auth, source)
        return self.rewrite_links(body, source, uploads)

    # -------------------------------------------------------------------------
    # Download direction
    # -------------------------------------------------------------------------

    def _filename_for(self, url: str) -> str:
        name = PurePosixPath(unquote(urlsplit(url).path)).name.replace(" ", "-")
        if name and media_type_for(name) is not None:
            return name
        match = _URL_EXTENSION_RE.search(url)
        extension = f".{match.group(1).lower()}" if match else _DEFAULT_IMAGE_EXTENSION
        return f"{uuid.uuid4().hex}{extension}"

    def _local_path(self, url: str, data: bytes) -> tuple[str, bool]:
        """Return ``(path, present)`` for an image downloaded from *url*.

        The URL's own file name is used unless another file already holds
        it, then ``<stem>-<sha256(url)[:8]><suffix>``. ``present`` is True
        when the chosen path already holds *data*, as on a re-download.
        """
        filename = PurePosixPath(self._filename_for(url))
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:8]
        candidates = (
            f"{self._download_folder}/{filename}",
            f"{self._download_folder}/{filename.stem}-{digest}{filename.suffix}",
        )
        for path in candidates:
            if not self._store.exists(path):
                return path, False
            if self._store.read_binary(path) == data:
                return path, True
        return candidates[-1], False

    async def localize_images(self, body: str) -> str:
        """Download every remote image of *body* and point it at the local copy.

        Each distinct URL is fetched once. Failures are logged and the
        remote URL is kept.
        """
        matches = list(_REMOTE_IMAGE_RE.finditer(body))
        if not matches:
            return body
        self._store.mkdir(self._download_folder)

        local: dict[str, str | None] = {}
        for match in matches:
            url = match.group(2)
            if url not in local:
                local[url] = await self._fetch_image(url)

        for match in reversed(matches):
            path = local[match.group(2)]
            if path is not None:
                body = body[: match.start()] + f"![{match.group(1)}]({path})" + body[match.end() :]
        return body

    async def _fetch_image(self, url: str) -> str | None:
        try:
            data = await self._download(
                url, max_size=self._max_download_size, timeout=self._download_timeout
            )
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            error = str(e) or type(e).__name__
            self._logger.warning("image_download_skipped", url=url, error=error)
            return None
        path: str | None = None
        try:
            path, present = self._local_path(url, data)
            if not present:
                self._store.write_binary(path, data)
        except OSError as e:
            self._logger.warning("image_write_skipped", url=url, path=path, error=str(e))
            return None
        self._logger.debug("image_downloaded", url=url, path=path, size=len(data))
        return path
