"""Unit tests for services.common.relays module.

Tests:
- Normalization and order-preserving de-duplication
- Composition of the publish, address, author, discovery and lookup sets
- Mailboxes pulled on every resolution
- NoRelaysConfigured for empty sets
"""

import pytest

from nostr_writer.core.exceptions import NoRelaysConfigured
from nostr_writer.models import AddressPointer, MailboxSet, ProfilePointer
from nostr_writer.services.common.relays import RelaySelector
from tests.conftest import LOOKUP, PUBKEY, RELAY_A, RELAY_B, RELAY_C


LOCAL = "ws://localhost:4869"


# =============================================================================
# dedupe() Tests
# =============================================================================


class TestDedupe:
    def test_first_occurrence_wins(self) -> None:
        selector = RelaySelector()
        result = selector.dedupe([RELAY_B, RELAY_A], [RELAY_B, RELAY_C])
        assert result == [RELAY_B, RELAY_A, RELAY_C]

    def test_trailing_slash_and_case_collapse(self) -> None:
        selector = RelaySelector()
        assert selector.dedupe(["wss://Nos.lol/", "wss://nos.lol", "WSS://NOS.LOL"]) == [
            "wss://nos.lol"
        ]

    def test_invalid_and_empty_dropped(self) -> None:
        selector = RelaySelector()
        assert selector.dedupe(["", None, "garbage", "https://x.com", RELAY_A]) == [RELAY_A]

    def test_idempotent(self) -> None:
        selector = RelaySelector()
        once = selector.dedupe([RELAY_A, "wss://nos.lol/", RELAY_A])
        assert selector.dedupe(once) == once

    def test_local_hosts_only_when_configured(self) -> None:
        assert RelaySelector().dedupe([LOCAL]) == []
        selector = RelaySelector(local=LOCAL)
        assert selector.dedupe([LOCAL + "/", "ws://localhost:9999"]) == [LOCAL]


# =============================================================================
# Set Composition Tests
# =============================================================================


class TestPublishRelays:
    def test_local_first_then_publish_then_outboxes(self) -> None:
        selector = RelaySelector(
            publish=[RELAY_A, RELAY_B],
            local=LOCAL,
            mailboxes=lambda: MailboxSet(outboxes=(RELAY_B, RELAY_C)),
        )
        assert selector.publish_relays() == [LOCAL, RELAY_A, RELAY_B, RELAY_C]

    def test_mailboxes_pulled_each_call(self) -> None:
        current: list[MailboxSet | None] = [None]
        selector = RelaySelector(publish=[RELAY_A], mailboxes=lambda: current[0])
        assert selector.publish_relays() == [RELAY_A]
        current[0] = MailboxSet(outboxes=(RELAY_C,))
        assert selector.publish_relays() == [RELAY_A, RELAY_C]

    def test_inboxes_not_used(self) -> None:
        selector = RelaySelector(
            publish=[RELAY_A], mailboxes=lambda: MailboxSet(inboxes=(RELAY_C,))
        )
        assert selector.publish_relays() == [RELAY_A]

    def test_outboxes_alone_suffice(self) -> None:
        selector = RelaySelector(mailboxes=lambda: MailboxSet(outboxes=(RELAY_C,)))
        assert selector.publish_relays() == [RELAY_C]

    def test_lookup_relays_never_publish_targets(self) -> None:
        selector = RelaySelector(publish=[RELAY_A], lookup=[LOOKUP])
        assert LOOKUP not in selector.publish_relays()

    def test_local_property(self) -> None:
        assert RelaySelector(local=LOCAL + "/").local == LOCAL
        assert RelaySelector().local is None


class TestFetchSets:
    def test_address_hints_first(self) -> None:
        selector = RelaySelector(publish=[RELAY_A], local=LOCAL)
        pointer = AddressPointer(30023, PUBKEY, "post", (RELAY_C, RELAY_A))
        assert selector.address_relays(pointer) == [RELAY_C, RELAY_A, LOCAL]

    def test_author_hints_then_outboxes(self) -> None:
        selector = RelaySelector(publish=[RELAY_A])
        pointer = ProfilePointer(PUBKEY, (RELAY_B,))
        assert selector.author_relays(pointer, (RELAY_C, RELAY_B)) == [RELAY_B, RELAY_C, RELAY_A]

    def test_discovery_uses_lookup(self) -> None:
        selector = RelaySelector(publish=[RELAY_A], lookup=[LOOKUP])
        pointer = ProfilePointer(PUBKEY, (RELAY_B,))
        assert selector.discovery_relays(pointer) == [RELAY_B, LOOKUP, RELAY_A]

    def test_lookup_relays(self) -> None:
        selector = RelaySelector(publish=[RELAY_A], lookup=[LOOKUP])
        assert selector.lookup_relays() == [LOOKUP, RELAY_A]

    def test_author_set_excludes_lookup(self) -> None:
        selector = RelaySelector(publish=[RELAY_A], lookup=[LOOKUP])
        assert LOOKUP not in selector.author_relays(ProfilePointer(PUBKEY))


# =============================================================================
# Empty Set Tests
# =============================================================================


class TestEmptySets:
    def test_publish(self) -> None:
        with pytest.raises(NoRelaysConfigured) as exc_info:
            RelaySelector(lookup=[LOOKUP]).publish_relays()
        assert exc_info.value.operation == "publish"

    def test_address_without_hints(self) -> None:
        with pytest.raises(NoRelaysConfigured):
            RelaySelector().address_relays(AddressPointer(30023, PUBKEY, "post"))

    def test_address_hints_suffice(self) -> None:
        pointer = AddressPointer(30023, PUBKEY, "post", (RELAY_A,))
        assert RelaySelector().address_relays(pointer) == [RELAY_A]

    def test_invalid_hints_only(self) -> None:
        pointer = ProfilePointer(PUBKEY, ("not a relay",))
        with pytest.raises(NoRelaysConfigured):
            RelaySelector().author_relays(pointer)

    def test_lookup(self) -> None:
        with pytest.raises(NoRelaysConfigured):
            RelaySelector().lookup_relays()
