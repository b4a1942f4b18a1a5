"""NIP-23 long-form article mapping.

Bidirectional transform between a document's front-matter/body and the tag
and content fields of a kind 30023 event.

Forward ([event_to_frontmatter()][nostr_writer.nips.nip23.event_to_frontmatter]):
author and identifier come from the event, singleton fields from the first
tag of matching name, hashtags from every ``t`` tag in order, and the title
falls back to the first markdown heading and then to the identifier.

Reverse ([build_article_draft()][nostr_writer.nips.nip23.build_article_draft]):
when an existing event for the same address is supplied, the draft is made
by modifying a copy of its tags so tags this tool does not manage survive
edits; otherwise a fresh tag list is built with the identifier first.

See Also:
    [nostr_writer.services.publisher][]: Supplies the existing event from the
        local index.
    [nostr_writer.services.downloader][]: Renders downloaded events back into
        documents.
"""

from __future__ import annotations

import re
from datetime import date
from time import time
from typing import TYPE_CHECKING

from nostr_writer.models import DocumentFrontmatter, EventKind, UnsignedEvent


if TYPE_CHECKING:
    from nostr_writer.models import Event


_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+(.+?)\s*#*\s*$", re.MULTILINE)
_HASHTAG_RE = re.compile(r"(?<![\w/#&])#(\w[\w-]*)")
_CODE_RE = re.compile(r"```.*?```|`[^`\n]*`", re.DOTALL)
_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")


def title_from_body(body: str) -> str | None:
    """Return the text of the first markdown heading line, if any."""
    match = _HEADING_RE.search(_CODE_RE.sub("", body))
    if match is None:
        return None
    return match.group(1).strip() or None


def content_hashtags(body: str) -> list[str]:
    """Return ``#hashtags`` written in the body (code excluded), unique, in order."""
    tags: list[str] = []
    for match in _HASHTAG_RE.finditer(_CODE_RE.sub("", body)):
        tag = match.group(1)
        if not tag.isdigit() and tag not in tags:
            tags.append(tag)
    return tags


def slugify(text: str) -> str:
    """Lowercase *text* and replace whitespace runs with ``-``."""
    slug = _SLUG_STRIP_RE.sub("", text.strip().lower())
    return _SLUG_SPACE_RE.sub("-", slug).strip("-")


def fallback_identifier(basename: str, today: date | None = None) -> str:
    """Deterministic identifier for a document published for the first time.

    ``slug(basename)-YYYY-MM-DD``; stable across re-publishes because the
    result is written back into the front-matter after the first publish.
    """
    today = today or date.today()
    return f"{slugify(basename) or 'article'}-{today.isoformat()}"


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def event_to_frontmatter(event: Event) -> DocumentFrontmatter:
    """Extract document metadata from a signed article event.

    The title is never left empty: title tag, then the first heading of the
    body, then the identifier.
    """
    identifier = event.identifier
    tags: list[str] = []
    for tag in event.tag_values("t"):
        if tag not in tags:
            tags.append(tag)

    published_at = _parse_int(event.tag_value("published_at"))

    return DocumentFrontmatter(
        pubkey=event.pubkey,
        identifier=identifier,
        title=event.tag_value("title") or title_from_body(event.content) or identifier,
        summary=event.tag_value("summary") or None,
        image=event.tag_value("image") or None,
        tags=tags,
        published_at=published_at if published_at is not None else event.created_at,
    )


def _set_singleton(tags: list[list[str]], name: str, value: str) -> None:
    """Replace the first tag named *name* in place and drop later duplicates."""
    replaced = False
    kept: list[list[str]] = []
    for tag in tags:
        if tag and tag[0] == name:
            if replaced:
                continue
            kept.append([name, value])
            replaced = True
        else:
            kept.append(tag)
    if not replaced:
        kept.append([name, value])
    tags[:] = kept


def _set_hashtags(tags: list[list[str]], hashtags: list[str]) -> None:
    """Rewrite every ``t`` tag from *hashtags* (lowercased, unique, in order)."""
    tags[:] = [tag for tag in tags if not tag or tag[0] != "t"]
    seen: set[str] = set()
    for hashtag in hashtags:
        value = hashtag.strip().lstrip("#").lower()
        if value and value not in seen:
            seen.add(value)
            tags.append(["t", value])


def build_article_draft(
    frontmatter: DocumentFrontmatter,
    body: str,
    *,
    kind: int = EventKind.LONG_FORM_ARTICLE,
    existing: Event | None = None,
    client: str | None = None,
    created_at: int | None = None,
) -> UnsignedEvent:
    """Build the unsigned article event for a document.

    Args:
        frontmatter: Document metadata; ``identifier`` and ``pubkey`` must be set.
        body: Markdown body (front-matter stripped, media already portable).
        kind: Event kind to publish.
        existing: Current event at the same address, if any. Its tags are
            copied and modified; unrecognized tags are preserved.
        client: Value of the ``client`` tag naming the publishing tool.
        created_at: Draft timestamp (defaults to now).

    Returns:
        An [UnsignedEvent][nostr_writer.models.event.UnsignedEvent] whose
        ``d`` tag equals ``frontmatter.identifier``.

    Raises:
        ValueError: If ``identifier`` or ``pubkey`` is missing, or *existing*
            is not at the document's address.
    """
    if not frontmatter.identifier:
        raise ValueError("identifier must be set before building a draft")
    if not frontmatter.pubkey:
        raise ValueError("pubkey must be set before building a draft")

    if existing is not None:
        if existing.address != (kind, frontmatter.pubkey, frontmatter.identifier):
            raise ValueError("existing event does not match the document address")
        tags = [list(tag) for tag in existing.tags]
        _set_singleton(tags, "d", frontmatter.identifier)
    else:
        tags = [["d", frontmatter.identifier]]

    if frontmatter.title:
        _set_singleton(tags, "title", frontmatter.title)
    if frontmatter.summary:
        _set_singleton(tags, "summary", frontmatter.summary)
    if frontmatter.image:
        _set_singleton(tags, "image", frontmatter.image)
    if frontmatter.published_at is not None:
        _set_singleton(tags, "published_at", str(frontmatter.published_at))

    _set_hashtags(tags, frontmatter.tags)

    if client:
        _set_singleton(tags, "client", client)

    return UnsignedEvent(
        kind=kind,
        content=body,
        tags=tags,
        created_at=created_at if created_at is not None else int(time()),
        pubkey=frontmatter.pubkey,
    )
