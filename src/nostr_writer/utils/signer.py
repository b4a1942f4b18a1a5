"""Signer capability and its nostr-sdk implementation.

The orchestrator only sees the [Signer][nostr_writer.utils.signer.Signer]
protocol; [KeysSigner][nostr_writer.utils.signer.KeysSigner] signs with a
local private key. Remote signers plug in by implementing the same two
coroutines.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from nostr_sdk import EventBuilder, Kind, NostrSdkError, Tag, Timestamp

from nostr_writer.core.exceptions import SigningFailed

from .transport import from_sdk_event


if TYPE_CHECKING:
    from nostr_sdk import Keys

    from nostr_writer.models import Event, UnsignedEvent


class Signer(Protocol):
    """Capability to sign drafts on behalf of one identity."""

    async def get_public_key(self) -> str: ...

    async def sign(self, draft: UnsignedEvent) -> Event: ...


class KeysSigner:
    """Sign drafts with an in-memory ``nostr_sdk.Keys``.

    Examples:
        ```python
        signer = KeysSigner(Keys.generate())
        event = await signer.sign(UnsignedEvent(kind=1, content="hi"))
        ```
    """

    def __init__(self, keys: Keys) -> None:
        self._keys = keys

    async def get_public_key(self) -> str:
        return self._keys.public_key().to_hex()

    async def sign(self, draft: UnsignedEvent) -> Event:
        """Sign *draft* keeping its kind, tags, content and timestamp.

        Raises:
            SigningFailed: If nostr-sdk rejects the draft, or the draft names
                a different author than this signer.
        """
        pubkey = await self.get_public_key()
        if draft.pubkey is not None and draft.pubkey != pubkey:
            raise SigningFailed("Draft author does not match the active signer")
        try:
            builder = (
                EventBuilder(Kind(draft.kind), draft.content)
                .tags([Tag.parse(list(tag)) for tag in draft.tags])
                .custom_created_at(Timestamp.from_secs(draft.created_at))
            )
            signed = builder.sign_with_keys(self._keys)
        except NostrSdkError as e:
            raise SigningFailed(str(e)) from e
        return from_sdk_event(signed)
