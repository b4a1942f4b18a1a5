"""Relay transport built on nostr-sdk.

Defines the transport capability the fetch engine and the orchestrator
depend on, and its nostr-sdk implementation:

* ``subscribe(relays, filter)`` yields
  [EventMessage][nostr_writer.utils.transport.EventMessage] items followed,
  per relay, by one
  [EndOfStoredEvents][nostr_writer.utils.transport.EndOfStoredEvents] marker.
  Unreachable or failing relays still produce their marker (with ``error``
  set), so consumers never wait on a dead relay.
* ``publish(relays, event)`` returns one
  [PublishOutcome][nostr_writer.utils.transport.PublishOutcome] per relay.

Every relay is handled by its own short-lived ``nostr_sdk.Client`` so a slow
relay never blocks the others, and clients are shut down as soon as the
consumer stops iterating (including on cancellation).

Examples:
    ```python
    transport = NostrSdkTransport(connect_timeout=5.0)
    async for message in transport.subscribe(["wss://nos.lol"], event_filter):
        ...
    outcomes = await transport.publish(["wss://nos.lol"], signed_event)
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from nostr_sdk import ClientBuilder, Filter, Kind, NostrSdkError, PublicKey, RelayUrl
from nostr_sdk import Event as NostrEvent

from nostr_writer.models import Event


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from nostr_sdk import Client

    from nostr_writer.models import EventFilter


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

_RELAY_ERRORS = (OSError, TimeoutError, NostrSdkError)


# =============================================================================
# Messages and outcomes
# =============================================================================


@dataclass(frozen=True, slots=True)
class EventMessage:
    """An event received from *relay*."""

    relay: str
    event: Event


@dataclass(frozen=True, slots=True)
class EndOfStoredEvents:
    """*relay* has no more stored matches (or failed, when ``error`` is set)."""

    relay: str
    error: str | None = None


TransportMessage = EventMessage | EndOfStoredEvents


class PublishStatus(StrEnum):
    """Per-relay publish result."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    """Result of sending one event to one relay."""

    relay: str
    status: PublishStatus
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.status == PublishStatus.ACCEPTED


class Transport(Protocol):
    """Capability to query and publish to relays."""

    def subscribe(
        self, relays: Sequence[str], event_filter: EventFilter
    ) -> AsyncIterator[TransportMessage]: ...

    async def publish(self, relays: Sequence[str], event: Event) -> dict[str, PublishOutcome]: ...


# =============================================================================
# nostr-sdk conversion
# =============================================================================


def to_sdk_event(event: Event) -> NostrEvent:
    return NostrEvent.from_json(event.to_json())


def from_sdk_event(event: NostrEvent) -> Event:
    return Event.from_dict(json.loads(event.as_json()))


def to_sdk_filter(event_filter: EventFilter) -> Filter:
    """Build a nostr-sdk ``Filter`` from an
    [EventFilter][nostr_writer.models.filter.EventFilter]."""
    f = Filter()
    if event_filter.kinds:
        f = f.kinds([Kind(k) for k in event_filter.kinds])
    if event_filter.authors:
        f = f.authors([PublicKey.parse(a) for a in event_filter.authors])
    if event_filter.identifiers:
        f = f.identifiers(list(event_filter.identifiers))
    if event_filter.limit is not None:
        f = f.limit(event_filter.limit)
    return f


async def connect_relay(url: str, timeout: float = DEFAULT_TIMEOUT) -> Client:  # noqa: ASYNC109
    """Connect a fresh read/write client to a single relay.

    Raises:
        OSError: If the relay could not be connected within *timeout*.
        NostrSdkError: If *url* is not a valid relay URL.
    """
    relay_url = RelayUrl.parse(url)
    client = ClientBuilder().build()
    await client.add_relay(relay_url)
    output = await client.try_connect(timedelta(seconds=timeout))

    if relay_url in output.success:
        logger.debug("relay_connected relay=%s", url)
        return client

    await client.disconnect()
    error_message = output.failed.get(relay_url, "Unknown error")
    raise OSError(f"Connection failed: {url} ({error_message})")


async def _shutdown(client: Client) -> None:
    # nostr-sdk Rust FFI can raise arbitrary exception types during shutdown.
    with contextlib.suppress(Exception):
        await client.shutdown()


# =============================================================================
# Transport
# =============================================================================


class NostrSdkTransport:
    """[Transport][nostr_writer.utils.transport.Transport] backed by nostr-sdk clients.

    Args:
        connect_timeout: Seconds allowed to open a relay connection.
        request_timeout: Seconds a relay may take to deliver stored events.
        publish_timeout: Seconds allowed for connect + send on one relay.
    """

    def __init__(
        self,
        *,
        connect_timeout: float = DEFAULT_TIMEOUT,
        request_timeout: float = DEFAULT_TIMEOUT,
        publish_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._request_timeout = request_timeout
        self._publish_timeout = publish_timeout

    async def subscribe(
        self, relays: Sequence[str], event_filter: EventFilter
    ) -> AsyncIterator[TransportMessage]:
        queue: asyncio.Queue[TransportMessage] = asyncio.Queue()
        sdk_filter = to_sdk_filter(event_filter)
        tasks = [asyncio.create_task(self._fetch_into(url, sdk_filter, queue)) for url in relays]
        pending = len(tasks)
        try:
            while pending:
                message = await queue.get()
                if isinstance(message, EndOfStoredEvents):
                    pending -= 1
                yield message
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _fetch_into(
        self, url: str, sdk_filter: Filter, queue: asyncio.Queue[TransportMessage]
    ) -> None:
        error: str | None = None
        client: Client | None = None
        try:
            client = await connect_relay(url, self._connect_timeout)
            events = await client.fetch_events(sdk_filter, timedelta(seconds=self._request_timeout))
            for sdk_event in events.to_vec():
                if not sdk_event.verify():
                    logger.debug("event_signature_invalid relay=%s", url)
                    continue
                try:
                    queue.put_nowait(EventMessage(url, from_sdk_event(sdk_event)))
                except (ValueError, KeyError) as e:
                    logger.debug("event_rejected relay=%s error=%s", url, e)
        except _RELAY_ERRORS as e:
            error = str(e) or type(e).__name__
            logger.debug("relay_fetch_failed relay=%s error=%s", url, error)
        finally:
            if client is not None:
                await _shutdown(client)
        queue.put_nowait(EndOfStoredEvents(url, error))

    async def publish(self, relays: Sequence[str], event: Event) -> dict[str, PublishOutcome]:
        sdk_event = to_sdk_event(event)
        outcomes = await asyncio.gather(*(self._publish_one(url, sdk_event) for url in relays))
        return {outcome.relay: outcome for outcome in outcomes}

    async def _publish_one(self, url: str, sdk_event: NostrEvent) -> PublishOutcome:
        try:
            async with asyncio.timeout(self._publish_timeout):
                client = await connect_relay(url, self._connect_timeout)
                try:
                    output = await client.send_event(sdk_event)
                finally:
                    await _shutdown(client)
        except _RELAY_ERRORS as e:
            return PublishOutcome(url, PublishStatus.UNREACHABLE, str(e) or type(e).__name__)

        if output.success:
            return PublishOutcome(url, PublishStatus.ACCEPTED)
        reason = next(iter(output.failed.values()), "rejected")
        return PublishOutcome(url, PublishStatus.REJECTED, str(reason))
