"""Unit tests for the nostr-writer exception hierarchy.

Tests verify:
- every concrete exception derives from NostrWriterError
- structured attributes carried by exceptions
- except clauses catch the expected subclasses
"""

import pytest

from nostr_writer.core.exceptions import (
    ConfigurationError,
    InvalidAddress,
    InvalidDocument,
    NoActiveIdentity,
    NoRelaysConfigured,
    NostrWriterError,
    NotFound,
    PublishingError,
    PublishStep,
    SigningFailed,
    UploadFailed,
)
from nostr_writer.models import AddressPointer
from tests.conftest import PUBKEY


ALL_CONCRETE = (
    ConfigurationError,
    InvalidAddress,
    InvalidDocument,
    NoRelaysConfigured,
    NoActiveIdentity,
    SigningFailed,
    UploadFailed,
    NotFound,
    PublishingError,
)


# =============================================================================
# Hierarchy Tests
# =============================================================================


class TestExceptionHierarchy:
    @pytest.mark.parametrize("exc_cls", ALL_CONCRETE)
    def test_all_concrete_inherit_from_base(self, exc_cls: type) -> None:
        assert issubclass(exc_cls, NostrWriterError)

    def test_base_is_exception(self) -> None:
        assert issubclass(NostrWriterError, Exception)

    def test_catch_by_base(self) -> None:
        with pytest.raises(NostrWriterError):
            raise NoRelaysConfigured("publish")


# =============================================================================
# Attribute Tests
# =============================================================================


class TestExceptionAttributes:
    def test_invalid_address_keeps_value(self) -> None:
        exc = InvalidAddress("not-a-key")
        assert exc.value == "not-a-key"
        assert "not-a-key" in str(exc)

    def test_no_relays_configured_names_operation(self) -> None:
        exc = NoRelaysConfigured("fetch")
        assert exc.operation == "fetch"
        assert str(exc) == "No relays configured for fetch"

    def test_no_active_identity_default_message(self) -> None:
        assert "No active account" in str(NoActiveIdentity())

    def test_upload_failed_counts_servers(self) -> None:
        exc = UploadFailed("img/a.png", ["https://a", "https://b"])
        assert exc.path == "img/a.png"
        assert exc.servers == ("https://a", "https://b")
        assert "2 tried" in str(exc)

    def test_not_found_describes_address(self) -> None:
        pointer = AddressPointer(30023, PUBKEY, "my-post")
        exc = NotFound(pointer)
        assert exc.pointer is pointer
        assert f"30023:{PUBKEY}:my-post" in str(exc)

    def test_publishing_error_carries_step_and_outcomes(self) -> None:
        exc = PublishingError(PublishStep.PUBLISH, "no relay accepted", outcomes={"r": 1})
        assert exc.step is PublishStep.PUBLISH
        assert exc.outcomes == {"r": 1}
        assert str(exc) == "publish: no relay accepted"

    def test_publishing_error_outcomes_default_none(self) -> None:
        assert PublishingError(PublishStep.BUILD, "bad").outcomes is None
