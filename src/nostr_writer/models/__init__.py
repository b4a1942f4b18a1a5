"""Pure frozen dataclasses shared by every layer. Zero I/O.

Examples:
    ```python
    from nostr_writer.models import AddressPointer, Event, Relay
    ```
"""

from .constants import (
    CLIENT_NAME,
    DEFAULT_FALLBACK_RELAYS,
    DEFAULT_LOOKUP_RELAYS,
    EventKind,
    MediaType,
    NetworkType,
    media_type_for,
)
from .document import DocumentFrontmatter
from .event import Event, EventAddress, UnsignedEvent
from .filter import EventFilter
from .media import BlobDescriptor, Embed
from .pointers import AddressPointer, MailboxSet, Pointer, ProfilePointer
from .relay import Relay


__all__ = [
    "CLIENT_NAME",
    "DEFAULT_FALLBACK_RELAYS",
    "DEFAULT_LOOKUP_RELAYS",
    "AddressPointer",
    "BlobDescriptor",
    "DocumentFrontmatter",
    "Embed",
    "Event",
    "EventAddress",
    "EventFilter",
    "EventKind",
    "MailboxSet",
    "MediaType",
    "NetworkType",
    "Pointer",
    "ProfilePointer",
    "Relay",
    "UnsignedEvent",
    "media_type_for",
]
