"""Enumerations and defaults used by the models, nips and services layers.

Kept free of imports from the rest of the package so any layer can use
them without import cycles.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class NetworkType(StrEnum):
    """Where a relay host lives, as decided by [Relay][nostr_writer.models.relay.Relay].

    The network fixes the scheme of the normalized URL: ``wss`` for
    ``CLEARNET``, ``ws`` for the overlay networks (``TOR`` for ``.onion``,
    ``I2P`` for ``.i2p``, ``LOKI`` for ``.loki``). ``LOCAL`` covers loopback,
    private and otherwise non-global hosts and keeps the scheme as written.
    ``UNKNOWN`` marks a host that is not a valid name and is never accepted.
    """

    CLEARNET = "clearnet"
    TOR = "tor"
    I2P = "i2p"
    LOKI = "loki"
    LOCAL = "local"
    UNKNOWN = "unknown"


class EventKind(IntEnum):
    """Well-known Nostr event kinds handled by nostr-writer.

    Attributes:
        SET_METADATA: Profile metadata (NIP-01).
        CONTACTS: Contact list (NIP-02).
        RELAY_LIST: Relay list metadata, source of mailboxes (NIP-65).
        BLOSSOM_AUTH: Media server authorization (BUD-01).
        LONG_FORM_ARTICLE: Addressable long-form article (NIP-23).
        LONG_FORM_DRAFT: Addressable long-form draft (NIP-23).
    """

    SET_METADATA = 0
    CONTACTS = 3
    RELAY_LIST = 10_002
    BLOSSOM_AUTH = 24_242
    LONG_FORM_ARTICLE = 30_023
    LONG_FORM_DRAFT = 30_024


class MediaType(StrEnum):
    """Media categories recognized in document embeds."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


MEDIA_EXTENSIONS: dict[str, MediaType] = {
    **dict.fromkeys(
        (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".bmp", ".avif"), MediaType.IMAGE
    ),
    **dict.fromkeys((".mp4", ".webm", ".mov", ".mkv", ".ogv"), MediaType.VIDEO),
    **dict.fromkeys((".mp3", ".wav", ".ogg", ".m4a", ".flac", ".oga"), MediaType.AUDIO),
}

EVENT_KIND_MAX = 65_535

DEFAULT_FALLBACK_RELAYS: tuple[str, ...] = (
    "wss://nos.lol",
    "wss://relay.damus.io",
    "wss://relay.nostr.band",
    "wss://relayable.org",
    "wss://nostr.rocks",
    "wss://nostr.fmt.wiz.biz",
)

DEFAULT_LOOKUP_RELAYS: tuple[str, ...] = ("wss://purplepag.es",)

CLIENT_NAME = "nostr-writer"


def media_type_for(path: str) -> MediaType | None:
    """Return the media category for a file name, or ``None`` if unrecognized."""
    dot = path.rfind(".")
    if dot == -1:
        return None
    return MEDIA_EXTENSIONS.get(path[dot:].lower())


def is_replaceable_kind(kind: int) -> bool:
    """Kinds where only the newest event per (kind, author) is current."""
    if kind in (EventKind.SET_METADATA, EventKind.CONTACTS):
        return True
    return 10_000 <= kind < 20_000  # noqa: PLR2004


def is_addressable_kind(kind: int) -> bool:
    """Kinds where only the newest event per (kind, author, identifier) is current."""
    return 30_000 <= kind < 40_000  # noqa: PLR2004
