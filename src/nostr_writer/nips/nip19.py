"""NIP-19 address resolution.

Turns the heterogeneous address inputs a user can paste into canonical
pointers:

* a 64-character lowercase hex public key,
* a bech32 entity: ``npub``, ``nprofile`` (public key + relay hints) or
  ``naddr`` (kind + public key + identifier + relay hints), optionally
  prefixed with ``nostr:`` (NIP-21),
* a URL whose path embeds one of those entities, e.g.
  ``https://njump.me/naddr1...``.

Bech32/TLV decoding and encoding is delegated to ``nostr_sdk``.

Note:
    [decode_pointer()][nostr_writer.nips.nip19.decode_pointer] never raises
    for bad input: every decode error is converted to ``None``, which callers
    treat as "not a valid address".
    [resolve_address()][nostr_writer.nips.nip19.resolve_address] is the
    strict variant raising
    [InvalidAddress][nostr_writer.core.exceptions.InvalidAddress].
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from nostr_sdk import (
    Coordinate,
    Kind,
    Nip19Coordinate,
    Nip19Profile,
    NostrSdkError,
    PublicKey,
    RelayUrl,
)

from nostr_writer.core.exceptions import InvalidAddress
from nostr_writer.models import AddressPointer, ProfilePointer
from nostr_writer.models._validation import is_hex_key


if TYPE_CHECKING:
    from nostr_writer.models import Pointer


logger = logging.getLogger(__name__)

_URI_PREFIX = "nostr:"

# bech32 data charset excludes 1, b, i, o
_EMBEDDED_ENTITY_RE = re.compile(r"(?:naddr|nprofile|npub)1[02-9ac-hj-np-z]+", re.IGNORECASE)

_DECODE_ERRORS = (NostrSdkError, ValueError, TypeError)


def _relay_strings(relays: Any) -> tuple[str, ...]:
    return tuple(str(relay) for relay in relays)


def _decode_entity(value: str) -> Pointer | None:
    """Decode one bech32 entity, raising on malformed input."""
    prefix = value.split("1", 1)[0].lower()
    if prefix == "npub":
        return ProfilePointer(pubkey=PublicKey.parse(value).to_hex())
    if prefix == "nprofile":
        profile = Nip19Profile.from_bech32(value)
        return ProfilePointer(
            pubkey=profile.public_key().to_hex(),
            relays=_relay_strings(profile.relays()),
        )
    if prefix == "naddr":
        entity = Nip19Coordinate.from_bech32(value)
        coordinate = entity.coordinate()
        return AddressPointer(
            kind=coordinate.kind().as_u16(),
            pubkey=coordinate.public_key().to_hex(),
            identifier=coordinate.identifier(),
            relays=_relay_strings(entity.relays()),
        )
    return None


def decode_pointer(value: str, *, _depth: int = 0) -> Pointer | None:
    """Resolve *value* into a pointer, or ``None`` if it is not an address.

    Resolution order:

    1. exact 64-char lowercase hex -> ``ProfilePointer``;
    2. structured NIP-19 decode, routed by entity type;
    3. a NIP-19 entity embedded in a URL path, decoded once.
    """
    value = value.strip()
    if value.lower().startswith(_URI_PREFIX):
        value = value[len(_URI_PREFIX) :]
    if not value:
        return None

    if is_hex_key(value):
        return ProfilePointer(pubkey=value)

    try:
        pointer = _decode_entity(value)
    except _DECODE_ERRORS as e:
        logger.debug("nip19_decode_failed value=%s error=%s", value[:80], e)
        pointer = None
    if pointer is not None:
        return pointer

    if _depth == 0:
        match = _EMBEDDED_ENTITY_RE.search(value)
        if match is not None and match.group(0) != value:
            return decode_pointer(match.group(0), _depth=1)
    return None


def resolve_address(value: str) -> Pointer:
    """Strict variant of [decode_pointer()][nostr_writer.nips.nip19.decode_pointer].

    Raises:
        InvalidAddress: If *value* does not resolve to a pointer.
    """
    pointer = decode_pointer(value)
    if pointer is None:
        raise InvalidAddress(value)
    return pointer


def _relay_urls(relays: tuple[str, ...]) -> list[RelayUrl]:
    urls = []
    for relay in relays:
        try:
            urls.append(RelayUrl.parse(relay))
        except NostrSdkError:
            logger.debug("nip19_relay_hint_dropped relay=%s", relay)
    return urls


def encode_npub(pubkey: str) -> str:
    """Encode a hex public key as ``npub1...``.

    Raises:
        ValueError: If *pubkey* is not a valid public key.
    """
    try:
        return PublicKey.parse(pubkey).to_bech32()
    except NostrSdkError as e:
        raise ValueError(f"Invalid public key: {e}") from e


def encode_nprofile(pointer: ProfilePointer) -> str:
    """Encode a profile pointer (with relay hints) as ``nprofile1...``."""
    try:
        profile = Nip19Profile(PublicKey.parse(pointer.pubkey), _relay_urls(pointer.relays))
        return profile.to_bech32()
    except NostrSdkError as e:
        raise ValueError(f"Cannot encode nprofile: {e}") from e


def encode_naddr(pointer: AddressPointer) -> str:
    """Encode an address pointer (with relay hints) as ``naddr1...``.

    Raises:
        ValueError: If the public key is invalid.
    """
    try:
        pubkey = PublicKey.parse(pointer.pubkey)
        coordinate = Coordinate(Kind(pointer.kind), pubkey, pointer.identifier)
        return Nip19Coordinate(coordinate, _relay_urls(pointer.relays)).to_bech32()
    except NostrSdkError as e:
        raise ValueError(f"Cannot encode naddr: {e}") from e
