"""Publisher state, report and document derivation helpers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from nostr_writer.core.exceptions import InvalidDocument
from nostr_writer.models import DocumentFrontmatter
from nostr_writer.models.document import FRONTMATTER_KEYS
from nostr_writer.nips.nip23 import content_hashtags, event_to_frontmatter, fallback_identifier
from nostr_writer.utils.vault import split_frontmatter


if TYPE_CHECKING:
    from nostr_writer.models import AddressPointer, Event
    from nostr_writer.utils.transport import PublishOutcome


class PublishState(StrEnum):
    """Publish orchestrator states.

    ``UPLOADING`` is skipped when the document embeds no local media;
    ``FAILED`` is reachable from every other state.
    """

    DRAFT = "draft"
    UPLOADING = "uploading"
    BUILT = "built"
    SIGNED = "signed"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class PublishReport:
    """Result of a successful publish.

    Attributes:
        path: Store path of the published document.
        address: Address the event was published at.
        event: The signed event.
        is_update: True if an event already existed at the address.
        outcomes: Per-relay outcome, keyed by relay URL.
        naddr: ``naddr1...`` encoding of the address with relay hints.
    """

    path: str
    address: AddressPointer
    event: Event
    is_update: bool
    outcomes: dict[str, PublishOutcome] = field(default_factory=dict)
    naddr: str = ""

    @property
    def accepted(self) -> list[str]:
        return [relay for relay, outcome in self.outcomes.items() if outcome.accepted]

    @property
    def failed(self) -> dict[str, PublishOutcome]:
        return {relay: outcome for relay, outcome in self.outcomes.items() if not outcome.accepted}


@dataclass(slots=True)
class PreparedDocument:
    """A document split into what the orchestrator needs.

    Attributes:
        frontmatter: Typed publishing metadata, defaults not yet applied.
        raw_frontmatter: The full parsed front-matter mapping, unrelated
            keys included, used for the write-back.
        body: Body with the front-matter block stripped.
    """

    frontmatter: DocumentFrontmatter
    raw_frontmatter: dict[str, Any]
    body: str


def is_valid_url(value: str | None) -> bool:
    """Return True for absolute http(s) URLs."""
    if not value:
        return False
    parts = urlsplit(value)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def read_document(path: str, text: str) -> PreparedDocument:
    """Validate and split a document into front-matter and body.

    Raises:
        InvalidDocument: If *path* is not markdown, the front-matter is
            malformed, or the body is empty.
    """
    if PurePosixPath(path).suffix.lower() != ".md":
        raise InvalidDocument(f"Only markdown documents can be published: {path}")
    try:
        raw, body = split_frontmatter(text)
    except ValueError as e:
        raise InvalidDocument(f"{path}: {e}") from e
    if not body.strip():
        raise InvalidDocument(f"Empty note: {path}")
    return PreparedDocument(DocumentFrontmatter.from_mapping(raw), raw, body)


def document_identifier(document: PreparedDocument, path: str, today: date | None = None) -> str:
    """Return the document's identifier, deriving ``slug(basename)-YYYY-MM-DD`` if unset."""
    return document.frontmatter.identifier or fallback_identifier(PurePosixPath(path).stem, today)


def apply_defaults(
    document: PreparedDocument,
    path: str,
    pubkey: str,
    *,
    existing: Event | None = None,
    today: date | None = None,
    now: int | None = None,
) -> DocumentFrontmatter:
    """Fill the metadata a first publish needs.

    * ``pubkey``: the active signer.
    * ``identifier``: ``slug(basename)-YYYY-MM-DD``.
    * ``title``: the file's base name.
    * ``image``: dropped unless it is an http(s) URL.
    * ``tags``: the body's ``#hashtags`` when ``tags`` is missing or null.
    * ``published_at``: the existing event's, else now.

    Raises:
        InvalidDocument: If the document already belongs to another author.
    """
    fm = document.frontmatter
    if fm.pubkey and fm.pubkey != pubkey:
        raise InvalidDocument(f"{path} was published by another author ({fm.pubkey[:8]})")
    basename = PurePosixPath(path).stem

    published_at = fm.published_at
    if published_at is None and existing is not None:
        published_at = event_to_frontmatter(existing).published_at

    return DocumentFrontmatter(
        pubkey=pubkey,
        identifier=document_identifier(document, path, today),
        title=fm.title or basename,
        summary=fm.summary,
        image=fm.image if is_valid_url(fm.image) else None,
        tags=(
            fm.tags
            if document.raw_frontmatter.get("tags") is not None
            else content_hashtags(document.body)
        ),
        published_at=published_at if published_at is not None else (now or int(time.time())),
    )


def merge_frontmatter(raw: dict[str, Any], frontmatter: DocumentFrontmatter) -> dict[str, Any]:
    """Overlay the publishing metadata on the original front-matter mapping.

    Publishing keys come first in a fixed order; unrelated keys keep their
    relative order after them.
    """
    published = frontmatter.to_mapping()
    merged = dict(published)
    for key, value in raw.items():
        if key not in merged and key not in FRONTMATTER_KEYS:
            merged[key] = value
    return merged