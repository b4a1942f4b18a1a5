"""
Pytest configuration and shared fixtures for nostr-writer tests.

Provides:
- ``make_event`` for structurally valid signed events
- In-memory fakes for the signer, relay transport and media uploader
- A ``WriterSession`` wired to the fakes over a temporary vault
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import Any

import pytest

from nostr_writer.core.index import EventIndex
from nostr_writer.models import BlobDescriptor, Event, EventFilter, UnsignedEvent
from nostr_writer.services.common.configs import WriterConfig
from nostr_writer.services.session import WriterSession
from nostr_writer.utils.blossom import AuthCallback
from nostr_writer.utils.transport import (
    EndOfStoredEvents,
    EventMessage,
    PublishOutcome,
    PublishStatus,
    TransportMessage,
)
from nostr_writer.utils.vault import FileVault


# Valid secp256k1 x-only keys, so NIP-19 encoding works in tests.
PUBKEY = "7e7e9c42a91bfef19fa929e5fda1b72e0ebc1a4c1141673e2794234d86addf4e"
OTHER_PUBKEY = "3bf0c63fcb93463407af97a5e5ee64fa883d107ef9e558472c4eb9aaaefa459d"

RELAY_A = "wss://relay-a.example.com"
RELAY_B = "wss://relay-b.example.com"
RELAY_C = "wss://relay-c.example.com"
LOOKUP = "wss://lookup.example.com"
SERVER_A = "https://media-a.example.com"
SERVER_B = "https://media-b.example.com"


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Event Helpers
# ============================================================================


def make_event(
    kind: int = 30023,
    *,
    pubkey: str = PUBKEY,
    created_at: int = 1_700_000_000,
    tags: Sequence[Sequence[str]] = (),
    content: str = "",
    identifier: str | None = None,
) -> Event:
    """Build a structurally valid event with a deterministic id.

    The id hashes every field, so two calls with the same arguments return
    equal events and changing any field changes the id. The signature is a
    placeholder: nothing below the transport verifies it.
    """
    tag_list = [list(tag) for tag in tags]
    if identifier is not None:
        tag_list.insert(0, ["d", identifier])
    serialized = json.dumps([0, pubkey, created_at, kind, tag_list, content])
    return Event(
        id=hashlib.sha256(serialized.encode()).hexdigest(),
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        tags=tag_list,
        content=content,
        sig="0" * 128,
    )


def make_article(
    identifier: str,
    *,
    pubkey: str = PUBKEY,
    created_at: int = 1_700_000_000,
    title: str | None = None,
    content: str = "Body text",
    tags: Sequence[Sequence[str]] = (),
) -> Event:
    """Build a kind 30023 article at ``(pubkey, identifier)``."""
    tag_list = [list(tag) for tag in tags]
    if title is not None:
        tag_list.insert(0, ["title", title])
    return make_event(
        30023,
        pubkey=pubkey,
        created_at=created_at,
        tags=tag_list,
        content=content,
        identifier=identifier,
    )


# ============================================================================
# Fakes
# ============================================================================


class FakeSigner:
    """Signer producing deterministic events for one fixed public key."""

    def __init__(self, pubkey: str = PUBKEY) -> None:
        self.pubkey = pubkey
        self.signed: list[UnsignedEvent] = []

    async def get_public_key(self) -> str:
        return self.pubkey

    async def sign(self, draft: UnsignedEvent) -> Event:
        self.signed.append(draft)
        return make_event(
            draft.kind,
            pubkey=self.pubkey,
            created_at=draft.created_at,
            tags=draft.tags,
            content=draft.content,
        )


class FakeTransport:
    """In-memory relay network.

    Args:
        events: Stored events per relay URL.
        silent: Relays that never send end-of-stored-events.
        failing: Relays that end immediately with an error.
        statuses: Publish status per relay; unlisted relays accept.
        ignore_filter: Deliver every stored event regardless of the filter,
            like a relay that does not implement it correctly.
    """

    def __init__(
        self,
        events: dict[str, list[Event]] | None = None,
        *,
        silent: Sequence[str] = (),
        failing: Sequence[str] = (),
        statuses: dict[str, PublishStatus] | None = None,
        ignore_filter: bool = False,
    ) -> None:
        self.events = events or {}
        self.ignore_filter = ignore_filter
        self.silent = set(silent)
        self.failing = set(failing)
        self.statuses = statuses or {}
        self.subscriptions: list[tuple[list[str], EventFilter]] = []
        self.published: list[tuple[list[str], Event]] = []
        self.closed = 0

    async def subscribe(
        self, relays: Sequence[str], event_filter: EventFilter
    ) -> AsyncIterator[TransportMessage]:
        self.subscriptions.append((list(relays), event_filter))
        try:
            for relay in relays:
                if relay in self.failing:
                    yield EndOfStoredEvents(relay, "connection refused")
                    continue
                for event in self.events.get(relay, []):
                    if self.ignore_filter or event_filter.matches(event):
                        yield EventMessage(relay, event)
                if relay not in self.silent:
                    yield EndOfStoredEvents(relay)
            if self.silent:
                await asyncio.Event().wait()
        finally:
            self.closed += 1

    async def publish(self, relays: Sequence[str], event: Event) -> dict[str, PublishOutcome]:
        self.published.append((list(relays), event))
        outcomes = {}
        for relay in relays:
            status = self.statuses.get(relay, PublishStatus.ACCEPTED)
            if status == PublishStatus.ACCEPTED:
                self.events.setdefault(relay, []).append(event)
            message = "" if status == PublishStatus.ACCEPTED else f"{status.value}: test"
            outcomes[relay] = PublishOutcome(relay, status, message)
        return outcomes

    @property
    def network_calls(self) -> int:
        return len(self.subscriptions) + len(self.published)


class FakeUploader:
    """Media uploader accepting every blob except on ``failing`` servers."""

    def __init__(self, *, failing: Sequence[str] = ()) -> None:
        self.failing = set(failing)
        self.uploads: list[tuple[tuple[str, ...], str]] = []

    async def upload(
        self,
        servers: Sequence[str],
        blob: bytes,
        auth: AuthCallback,
        *,
        content_type: str | None = None,
    ) -> dict[str, BlobDescriptor | None]:
        sha256 = hashlib.sha256(blob).hexdigest()
        await auth(sha256)
        self.uploads.append((tuple(servers), sha256))
        return {
            server: None
            if server in self.failing
            else BlobDescriptor(sha256, f"{server}/{sha256}", len(blob), content_type)
            for server in servers
        }


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def vault(tmp_path: Path) -> FileVault:
    """Empty file vault rooted in a temporary directory."""
    root = tmp_path / "vault"
    root.mkdir()
    return FileVault(root)


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


def make_config(vault_root: Path, **overrides: Any) -> WriterConfig:
    """Test configuration: two publish relays, one lookup relay, two media servers."""
    data: dict[str, Any] = {
        "relays": {"publish": [RELAY_A, RELAY_B], "lookup": [LOOKUP]},
        "media": {"servers": [SERVER_A, SERVER_B]},
        "timeouts": {"fetch": 0.5},
        "storage": {"vault": str(vault_root)},
    }
    data.update(overrides)
    return WriterConfig.from_dict(data)


@pytest.fixture
def config(vault: FileVault) -> WriterConfig:
    return make_config(vault.root)


@pytest.fixture
async def session(
    config: WriterConfig,
    signer: FakeSigner,
    transport: FakeTransport,
    uploader: FakeUploader,
    vault: FileVault,
) -> AsyncIterator[WriterSession]:
    """Entered session wired to the fakes."""
    writer = WriterSession(
        config,
        signer=signer,
        transport=transport,
        uploader=uploader,
        store=vault,
        index=EventIndex(),
    )
    async with writer:
        yield writer
