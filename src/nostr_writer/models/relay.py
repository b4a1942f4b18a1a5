"""
Canonical relay URLs.

[Relay][nostr_writer.models.relay.Relay] is the single gate every relay URL
passes through before it reaches a relay set: configured relays, NIP-65
relay list entries, and relay hints carried by ``naddr`` / ``nprofile``
pointers. Two spellings of the same endpoint produce the same ``url``, so
order-preserving de-duplication can work on plain strings.

See Also:
    [nostr_writer.services.common.relays][]: Builds relay sets from
        normalized URLs.
    [nostr_writer.nips.nip65][]: Normalizes ``r`` tags of relay lists.
"""

from __future__ import annotations

import re
from ipaddress import ip_address

from rfc3986 import uri_reference
from rfc3986.exceptions import RFC3986Exception
from rfc3986.validators import Validator

from .constants import NetworkType


_OVERLAY_SUFFIXES = {
    "onion": NetworkType.TOR,
    "i2p": NetworkType.I2P,
    "loki": NetworkType.LOKI,
}
_LOCAL_SUFFIXES = ("localhost", "local", "internal", "home.arpa")
_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_DEFAULT_PORTS = {"ws": "80", "wss": "443"}

_VALIDATOR = (
    Validator()
    .allow_schemes("ws", "wss")
    .require_presence_of("scheme", "host")
    .forbid_use_of_password()
    .check_validity_of("scheme", "host", "port", "path")
)


def _classify(host: str) -> NetworkType:
    """Return the network *host* lives on; ``UNKNOWN`` for invalid hosts."""
    try:
        address = ip_address(host.strip("[]"))
    except ValueError:
        pass
    else:
        return NetworkType.CLEARNET if address.is_global else NetworkType.LOCAL

    labels = host.rstrip(".").split(".")
    if host == "localhost" or host.endswith(tuple("." + s for s in _LOCAL_SUFFIXES)):
        return NetworkType.LOCAL
    if not all(_LABEL_RE.match(label) for label in labels):
        return NetworkType.UNKNOWN
    if labels[-1] in _OVERLAY_SUFFIXES:
        return _OVERLAY_SUFFIXES[labels[-1]]
    if len(labels) < 2 or labels[-1].isdigit():
        return NetworkType.UNKNOWN
    return NetworkType.CLEARNET


class Relay:
    """A validated, normalized ``ws://`` / ``wss://`` relay URL.

    Normalization lowercases scheme and host, drops the default port,
    collapses repeated slashes and strips the trailing one. The scheme
    follows the network: ``wss`` on the public internet, ``ws`` on Tor,
    I2P and Lokinet, and as given for a local relay.

    Equality and hashing use ``url`` only.

    Args:
        raw_url: URL as written by the user or found in an event.
        allow_local: Accept loopback and private hosts. Only the configured
            local relay is built with this flag.

    Raises:
        ValueError: If the URL is not a usable relay URL.

    Examples:
        ```python
        Relay("wss://Relay.Damus.io/").url                 # 'wss://relay.damus.io'
        Relay("ws://localhost:4869", allow_local=True).url  # 'ws://localhost:4869'
        ```
    """

    __slots__ = ("network", "url")

    network: NetworkType
    url: str

    def __init__(self, raw_url: str, *, allow_local: bool = False) -> None:
        if "\x00" in raw_url:
            raise ValueError("Relay URL contains null bytes")

        uri = uri_reference(raw_url.strip()).normalize()
        try:
            _VALIDATOR.validate(uri)
        except RFC3986Exception as e:
            raise ValueError(f"Invalid relay URL {raw_url!r}: {e}") from None
        if uri.userinfo:
            raise ValueError("Relay URL must not contain credentials")
        if uri.query is not None or uri.fragment is not None:
            raise ValueError("Relay URL must not contain a query string or fragment")

        host = uri.host.lower()
        network = _classify(host)
        if network == NetworkType.UNKNOWN:
            raise ValueError(f"Invalid relay host: {host!r}")
        if network == NetworkType.LOCAL and not allow_local:
            raise ValueError(f"Local relay hosts are not accepted: {host!r}")

        if network == NetworkType.CLEARNET:
            scheme = "wss"
        elif network == NetworkType.LOCAL:
            scheme = uri.scheme
        else:
            scheme = "ws"

        netloc = host
        if uri.port and uri.port != _DEFAULT_PORTS[scheme]:
            netloc = f"{host}:{uri.port}"
        path = re.sub(r"/{2,}", "/", uri.path or "").rstrip("/")

        self.network = network
        self.url = f"{scheme}://{netloc}{path}"

    @property
    def scheme(self) -> str:
        return self.url.split("://", 1)[0]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Relay):
            return NotImplemented
        return self.url == other.url

    def __hash__(self) -> int:
        return hash(self.url)

    def __repr__(self) -> str:
        return f"Relay({self.url!r})"

    def __str__(self) -> str:
        return self.url
