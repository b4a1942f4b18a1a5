"""Embedded media models.

[Embed][nostr_writer.models.media.Embed] is recomputed from the current
document text on every operation and never persisted;
[BlobDescriptor][nostr_writer.models.media.BlobDescriptor] is what a media
server returns for an uploaded blob.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .constants import MediaType, media_type_for


@dataclass(frozen=True, slots=True)
class Embed:
    """One embed marker found in a document body.

    Attributes:
        link: Link target exactly as written in the marker.
        path: Resolved document-store path, or ``None`` if unresolved.
        start: Offset of the first character of the marker.
        end: Offset one past the last character of the marker.
        display: Text to show for the embed (alt text or label).
    """

    link: str
    path: str | None
    start: int
    end: int
    display: str

    @property
    def media_type(self) -> MediaType | None:
        return media_type_for(self.path or self.link)


@dataclass(frozen=True, slots=True)
class BlobDescriptor:
    """Media server response for a stored blob (BUD-02).

    Attributes:
        sha256: Hex content hash.
        url: URL the server serves the blob from.
        size: Blob size in bytes.
        mime_type: Content type reported by the server, if any.
    """

    sha256: str
    url: str
    size: int
    mime_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlobDescriptor:
        """Parse a BUD-02 descriptor.

        Raises:
            KeyError: If ``url`` or ``sha256`` is missing.
        """
        return cls(
            sha256=str(data["sha256"]),
            url=str(data["url"]),
            size=int(data.get("size") or 0),
            mime_type=data.get("type"),
        )
