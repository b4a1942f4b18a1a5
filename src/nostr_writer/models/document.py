"""Document-side metadata model.

[DocumentFrontmatter][nostr_writer.models.document.DocumentFrontmatter] is the
typed view of a markdown document's YAML front-matter as far as publishing
is concerned. ``identifier`` and ``pubkey`` become immutable once set:
changing either one addresses a different logical document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


FRONTMATTER_KEYS = ("title", "pubkey", "summary", "image", "tags", "identifier", "published_at")
"""Front-matter keys managed by publishing, in write-back order."""


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _as_tags(value: Any) -> list[str]:
    if value is None:
        return []
    items = list(value) if isinstance(value, (list, tuple, set)) else [value]
    tags: list[str] = []
    for item in items:
        text = str(item).strip().lstrip("#")
        if text and text not in tags:
            tags.append(text)
    return tags


@dataclass(slots=True)
class DocumentFrontmatter:
    """Publishing metadata of one document.

    Attributes:
        pubkey: Author public key (hex), set on first publish.
        identifier: ``d`` tag value, set on first publish.
        title: Article title.
        summary: Optional short summary.
        image: Optional header image URL.
        tags: Hashtags, unique, in encounter order.
        published_at: First publication time (unix seconds).
    """

    pubkey: str | None = None
    identifier: str | None = None
    title: str | None = None
    summary: str | None = None
    image: str | None = None
    tags: list[str] = field(default_factory=list)
    published_at: int | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> DocumentFrontmatter:
        """Read the recognized keys from parsed YAML front-matter.

        Values of the wrong type are coerced or dropped; unrelated keys are
        ignored (and preserved by [to_mapping()][nostr_writer.models.document.DocumentFrontmatter.to_mapping]
        callers that merge into the original mapping).
        """
        return cls(
            pubkey=_as_str(data.get("pubkey")),
            identifier=_as_str(data.get("identifier")),
            title=_as_str(data.get("title")),
            summary=_as_str(data.get("summary")),
            image=_as_str(data.get("image")),
            tags=_as_tags(data.get("tags")),
            published_at=_as_int(data.get("published_at")),
        )

    def to_mapping(self) -> dict[str, Any]:
        """Return the populated fields as a plain dict for YAML rendering."""
        data: dict[str, Any] = {}
        if self.title:
            data["title"] = self.title
        if self.pubkey:
            data["pubkey"] = self.pubkey
        if self.summary:
            data["summary"] = self.summary
        if self.image:
            data["image"] = self.image
        if self.tags:
            data["tags"] = list(self.tags)
        if self.identifier:
            data["identifier"] = self.identifier
        if self.published_at is not None:
            data["published_at"] = self.published_at
        return data
