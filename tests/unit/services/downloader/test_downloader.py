"""Unit tests for services.downloader package.

Tests:
- article_path(): deterministic file naming
- Single-article download by naddr, newest version wins
- NotFound and InvalidAddress
- Author download: outbox discovery, per-article failures reported
- Existing front-matter keys preserved, remote images localized
"""

import hashlib

import pytest

from nostr_writer.core.exceptions import InvalidAddress, NoRelaysConfigured, NotFound
from nostr_writer.core.index import EventIndex
from nostr_writer.models import AddressPointer, ProfilePointer
from nostr_writer.nips.nip19 import encode_naddr, encode_nprofile, encode_npub
from nostr_writer.services.common.content import ContentTransformer
from nostr_writer.services.common.fetcher import EventFetcher
from nostr_writer.services.common.relays import RelaySelector
from nostr_writer.services.downloader import (
    BulkDownloadReport,
    Downloader,
    SavedArticle,
    article_path,
)
from nostr_writer.services.session import WriterSession
from nostr_writer.utils.vault import FileVault, split_frontmatter
from tests.conftest import (
    LOOKUP,
    OTHER_PUBKEY,
    RELAY_A,
    RELAY_C,
    FakeTransport,
    FakeUploader,
    make_article,
    make_event,
)


AUTHOR = OTHER_PUBKEY[:8]


def _pointer(identifier: str = "post", relays: tuple[str, ...] = ()) -> AddressPointer:
    return AddressPointer(30023, OTHER_PUBKEY, identifier, relays)


# =============================================================================
# article_path() Tests
# =============================================================================


class TestArticlePath:
    def test_slug_identifier_used_as_is(self) -> None:
        event = make_article("my-great-post", pubkey=OTHER_PUBKEY)
        assert article_path("nostr", event) == f"nostr/my-great-post-{AUTHOR}.md"

    def test_lossy_slug_gets_identifier_digest(self) -> None:
        event = make_article("My Great Post!", pubkey=OTHER_PUBKEY)
        digest = hashlib.sha256(b"My Great Post!").hexdigest()[:8]
        assert article_path("nostr", event) == f"nostr/my-great-post.{digest}-{AUTHOR}.md"

    def test_folder_slashes_trimmed(self) -> None:
        event = make_article("post", pubkey=OTHER_PUBKEY)
        assert article_path("/imports/nostr/", event) == f"imports/nostr/post-{AUTHOR}.md"

    def test_empty_identifier(self) -> None:
        event = make_article("", pubkey=OTHER_PUBKEY)
        digest = hashlib.sha256(b"").hexdigest()[:8]
        assert article_path("nostr", event) == f"nostr/article.{digest}-{AUTHOR}.md"

    @pytest.mark.parametrize(
        ("first", "second"),
        [
            ("Hello World", "hello-world"),
            ("post", "post!"),
            ("!!!", "???"),
            ("", "article"),
        ],
    )
    def test_identifiers_sharing_a_slug_get_distinct_paths(self, first: str, second: str) -> None:
        paths = {
            article_path("nostr", make_article(identifier, pubkey=OTHER_PUBKEY))
            for identifier in (first, second)
        }
        assert len(paths) == 2


def test_bulk_report_total() -> None:
    report = BulkDownloadReport(OTHER_PUBKEY)
    report.saved.append(SavedArticle("a.md", make_article("a")))
    assert report.total == 1


# =============================================================================
# Single Article Tests
# =============================================================================


class TestDownloadArticle:
    async def test_naddr_saved_at_deterministic_path(
        self, session: WriterSession, vault: FileVault, transport: FakeTransport
    ) -> None:
        event = make_article(
            "post",
            pubkey=OTHER_PUBKEY,
            title="A Post",
            content="Article body",
            tags=[["t", "nostr"], ["published_at", "1600000000"]],
        )
        transport.events[RELAY_C] = [event]
        saved = await session.downloader.download(encode_naddr(_pointer(relays=(RELAY_C,))))

        assert isinstance(saved, SavedArticle)
        assert saved.path == f"nostr/post-{AUTHOR}.md"
        assert saved.event == event
        frontmatter, body = split_frontmatter(vault.read(saved.path))
        assert frontmatter == {
            "title": "A Post",
            "pubkey": OTHER_PUBKEY,
            "tags": ["nostr"],
            "identifier": "post",
            "published_at": 1600000000,
        }
        assert body == "Article body"

    async def test_hints_queried_before_configured_relays(
        self, session: WriterSession, transport: FakeTransport
    ) -> None:
        transport.events[RELAY_C] = [make_article("post", pubkey=OTHER_PUBKEY)]
        await session.downloader.download(_pointer(relays=(RELAY_C,)))
        relays, _ = transport.subscriptions[-1]
        assert relays[0] == RELAY_C
        assert RELAY_A in relays

    async def test_newest_version_wins(
        self, session: WriterSession, vault: FileVault, transport: FakeTransport
    ) -> None:
        old = make_article("post", pubkey=OTHER_PUBKEY, created_at=100, content="old")
        new = make_article("post", pubkey=OTHER_PUBKEY, created_at=200, content="new")
        transport.events = {RELAY_A: [new], RELAY_C: [old]}
        saved = await session.downloader.download(_pointer(relays=(RELAY_C,)))
        assert saved.event == new
        assert split_frontmatter(vault.read(saved.path))[1] == "new"

    async def test_redownload_overwrites_same_file(
        self, session: WriterSession, vault: FileVault, transport: FakeTransport
    ) -> None:
        transport.events[RELAY_A] = [make_article("post", pubkey=OTHER_PUBKEY, content="v1")]
        first = await session.downloader.download(_pointer())
        transport.events[RELAY_A] = [
            make_article("post", pubkey=OTHER_PUBKEY, created_at=1_800_000_000, content="v2")
        ]
        second = await session.downloader.download(_pointer())
        assert first.path == second.path
        assert split_frontmatter(vault.read(second.path))[1] == "v2"

    async def test_existing_unrelated_keys_preserved(
        self, session: WriterSession, vault: FileVault, transport: FakeTransport
    ) -> None:
        path = f"nostr/post-{AUTHOR}.md"
        vault.write(path, "---\ntitle: Stale\nrating: 5\n---\n\nold body")
        transport.events[RELAY_A] = [make_article("post", pubkey=OTHER_PUBKEY, title="Fresh")]
        await session.downloader.download(_pointer())

        frontmatter, _ = split_frontmatter(vault.read(path))
        assert frontmatter["title"] == "Fresh"
        assert frontmatter["rating"] == 5

    async def test_not_found(self, session: WriterSession) -> None:
        with pytest.raises(NotFound) as exc_info:
            await session.downloader.download(_pointer())
        assert exc_info.value.pointer.identifier == "post"

    async def test_invalid_address(self, session: WriterSession, transport: FakeTransport) -> None:
        with pytest.raises(InvalidAddress):
            await session.downloader.download("naddr1garbage")
        assert transport.network_calls == 0

    async def test_no_relays(self, vault: FileVault) -> None:
        transport = FakeTransport()
        index = EventIndex()
        downloader = Downloader(
            store=vault,
            index=index,
            selector=RelaySelector(),
            fetcher=EventFetcher(transport, index),
            transformer=ContentTransformer(vault, FakeUploader()),
        )
        with pytest.raises(NoRelaysConfigured):
            await downloader.download(_pointer())
        assert transport.network_calls == 0


# =============================================================================
# Author Download Tests
# =============================================================================


class TestDownloadAuthor:
    async def test_outboxes_discovered_from_relay_list(
        self, session: WriterSession, transport: FakeTransport
    ) -> None:
        relay_list = make_event(10002, pubkey=OTHER_PUBKEY, tags=[["r", RELAY_C, "write"]])
        articles = [make_article(f"post-{i}", pubkey=OTHER_PUBKEY) for i in range(3)]
        transport.events = {LOOKUP: [relay_list], RELAY_C: articles}

        report = await session.downloader.download(encode_npub(OTHER_PUBKEY))

        assert isinstance(report, BulkDownloadReport)
        assert report.pubkey == OTHER_PUBKEY
        assert sorted(s.event.identifier for s in report.saved) == ["post-0", "post-1", "post-2"]
        assert report.failed == []
        discovery, articles_fetch = transport.subscriptions
        assert LOOKUP in discovery[0]
        assert discovery[1].kinds == (10002,)
        assert RELAY_C in articles_fetch[0]
        assert LOOKUP not in articles_fetch[0]

    async def test_known_relay_list_not_refetched(
        self, session: WriterSession, transport: FakeTransport
    ) -> None:
        session.index.add(make_event(10002, pubkey=OTHER_PUBKEY, tags=[["r", RELAY_C]]))
        await session.downloader.download(OTHER_PUBKEY)
        assert len(transport.subscriptions) == 1
        assert RELAY_C in transport.subscriptions[0][0]

    async def test_nprofile_hints_used(
        self, session: WriterSession, transport: FakeTransport
    ) -> None:
        transport.events[RELAY_C] = [make_article("post", pubkey=OTHER_PUBKEY)]
        report = await session.downloader.download(
            encode_nprofile(ProfilePointer(OTHER_PUBKEY, (RELAY_C,)))
        )
        assert len(report.saved) == 1

    async def test_one_failure_does_not_abort_batch(
        self,
        session: WriterSession,
        vault: FileVault,
        transport: FakeTransport,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        articles = [make_article(f"post-{i}", pubkey=OTHER_PUBKEY) for i in range(5)]
        transport.events[RELAY_A] = articles
        write = vault.write

        def flaky_write(path: str, text: str) -> None:
            if path.startswith("nostr/post-3-"):
                raise OSError("disk full")
            write(path, text)

        monkeypatch.setattr(vault, "write", flaky_write)
        report = await session.downloader.download(OTHER_PUBKEY)

        assert len(report.saved) == 4
        assert [f.identifier for f in report.failed] == ["post-3"]
        assert report.failed[0].error == "disk full"
        assert report.total == 5
        for saved in report.saved:
            assert vault.exists(saved.path)

    async def test_identifiers_sharing_a_slug_both_kept(
        self, session: WriterSession, vault: FileVault, transport: FakeTransport
    ) -> None:
        transport.events[RELAY_A] = [
            make_article("Hello World", pubkey=OTHER_PUBKEY, content="first"),
            make_article("hello-world", pubkey=OTHER_PUBKEY, content="second"),
        ]
        report = await session.downloader.download(OTHER_PUBKEY)

        assert report.failed == []
        bodies = {
            s.event.identifier: split_frontmatter(vault.read(s.path))[1] for s in report.saved
        }
        assert bodies == {"Hello World": "first", "hello-world": "second"}
        assert len({s.path for s in report.saved}) == 2

    async def test_cached_articles_included(
        self, session: WriterSession, transport: FakeTransport
    ) -> None:
        session.index.add(make_article("cached", pubkey=OTHER_PUBKEY))
        transport.events[RELAY_A] = [make_article("live", pubkey=OTHER_PUBKEY)]
        report = await session.downloader.download(OTHER_PUBKEY)
        assert sorted(s.event.identifier for s in report.saved) == ["cached", "live"]

    async def test_no_articles(self, session: WriterSession) -> None:
        report = await session.downloader.download(OTHER_PUBKEY)
        assert report.saved == []
        assert report.total == 0


# =============================================================================
# Image Localization Tests
# =============================================================================


async def test_remote_images_downloaded(vault: FileVault) -> None:
    url = "https://cdn.example.com/cover.jpg"
    calls: list[str] = []

    async def fake_download(target: str, *, max_size: int, timeout: float) -> bytes:
        calls.append(target)
        return b"jpeg"

    event = make_article("post", pubkey=OTHER_PUBKEY, content=f"Intro\n\n![Cover]({url})")
    transport = FakeTransport({RELAY_A: [event]})
    index = EventIndex()
    downloader = Downloader(
        store=vault,
        index=index,
        selector=RelaySelector(publish=[RELAY_A]),
        fetcher=EventFetcher(transport, index, timeout=0.5),
        transformer=ContentTransformer(
            vault, FakeUploader(), download_folder="media", downloader=fake_download
        ),
    )
    saved = await downloader.download(_pointer())

    assert calls == [url]
    assert vault.read_binary("media/cover.jpg") == b"jpeg"
    assert split_frontmatter(vault.read(saved.path))[1] == "Intro\n\n![Cover](media/cover.jpg)"
