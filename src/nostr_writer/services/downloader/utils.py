"""Downloader report types and path derivation."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from nostr_writer.nips.nip23 import slugify


if TYPE_CHECKING:
    from nostr_writer.models import Event


@dataclass(frozen=True, slots=True)
class SavedArticle:
    """An article written to the store."""

    path: str
    event: Event


@dataclass(frozen=True, slots=True)
class DownloadFailure:
    """An article of a bulk download that could not be saved."""

    event_id: str
    identifier: str
    error: str


@dataclass(slots=True)
class BulkDownloadReport:
    """Outcome of downloading every article of an author.

    Per-article failures are collected in ``failed`` instead of aborting
    the batch.
    """

    pubkey: str
    saved: list[SavedArticle] = field(default_factory=list)
    failed: list[DownloadFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.saved) + len(self.failed)


def article_path(folder: str, event: Event) -> str:
    """Deterministic store path of a downloaded article.

    ``<folder>/<slug(identifier)>-<pubkey[:8]>.md`` when the identifier is
    already its own slug. Otherwise the slug is followed by ``.`` and the
    first 8 hex digits of the identifier's SHA-256, so identifiers sharing
    a slug still map to distinct files. Slugs never contain ``.``.
    """
    identifier = event.identifier
    slug = slugify(identifier)
    if not slug or slug != identifier:
        digest = hashlib.sha256(identifier.encode()).hexdigest()[:8]
        slug = f"{slug or 'article'}.{digest}"
    return f"{folder.strip('/')}/{slug}-{event.pubkey[:8]}.md"
