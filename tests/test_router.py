"""Tests for domain and plain-note query routing."""

import logging

from sanctuary.codec import serializer_for
from sanctuary.records import Book
from sanctuary.router import QueryRouter
from sanctuary.tags import DEFAULT_REGISTRY
from sanctuary.types import Domain

from tests.conftest import OWNER, MemoryNoteStore
from tests.test_tags import SAMPLES


def _seed(store: MemoryNoteStore) -> None:
    for domain, record in SAMPLES.items():
        encoded = serializer_for(domain).encode(record)
        store.add_raw(encoded.title, encoded.content)
    store.add_raw("Groceries", "milk")
    store.add_raw("Ideas", "")


class TestFetchByTag:
    def test_returns_only_the_domain(self, memory_store):
        _seed(memory_store)
        router = QueryRouter(memory_store)
        for domain in Domain:
            notes = router.fetch_by_tag(domain)
            assert len(notes) == 1
            assert notes[0].title.startswith(DEFAULT_REGISTRY.prefix_for(domain))

    def test_loose_backend_filter_is_rechecked(self):
        store = MemoryNoteStore(honor_title_pattern=False)
        _seed(store)
        notes = QueryRouter(store).fetch_by_tag(Domain.BOOK)
        assert [n.title for n in notes] == ["BOOK: Dune by Herbert"]

    def test_with_sqlite(self, store, router):
        store.create("BOOK: Dune by Herbert", "{}")
        store.create("Books to buy", "")
        assert [n.title for n in router.fetch_by_tag(Domain.BOOK)] == ["BOOK: Dune by Herbert"]


class TestFetchUntagged:
    def test_excludes_every_tagged_note(self, memory_store):
        _seed(memory_store)
        titles = {n.title for n in QueryRouter(memory_store).fetch_untagged()}
        assert titles == {"Groceries", "Ideas"}

    def test_tagged_and_untagged_partition_the_store(self, memory_store):
        _seed(memory_store)
        router = QueryRouter(memory_store)
        seen = [n.id for n in router.fetch_untagged()]
        for domain in Domain:
            seen.extend(n.id for n in router.fetch_by_tag(domain))
        assert sorted(seen) == sorted(memory_store.notes)

    def test_loose_backend_filter_is_rechecked(self):
        store = MemoryNoteStore(honor_title_pattern=False)
        _seed(store)
        titles = {n.title for n in QueryRouter(store).fetch_untagged()}
        assert titles == {"Groceries", "Ideas"}

    def test_scoped_to_store_owner(self, memory_store):
        memory_store.add_raw("Mine", "")
        memory_store.add_raw("Theirs", "", created_by="bob@example.com")
        router = QueryRouter(memory_store)
        assert [n.title for n in router.fetch_untagged()] == ["Mine"]
        assert [n.title for n in router.fetch_untagged(owner="bob@example.com")] == ["Theirs"]

    def test_with_sqlite(self, store, router):
        store.create("GOAL: Run", "{}")
        store.create("Shopping", "")
        notes = router.fetch_untagged()
        assert [n.title for n in notes] == ["Shopping"]
        assert notes[0].created_by == OWNER


class TestDecodeAll:
    def test_malformed_notes_are_skipped(self, memory_store, caplog):
        serializer = serializer_for(Domain.BOOK)
        encoded = serializer.encode(Book(title="Dune", author="Herbert"))
        good = memory_store.add_raw(encoded.title, encoded.content)
        bad = memory_store.add_raw("BOOK: broken", "{not json")
        router = QueryRouter(memory_store)

        with caplog.at_level(logging.WARNING, logger="sanctuary.router"):
            books = router.decode_all([good, bad], serializer)

        assert [b.id for b in books] == [good.id]
        assert bad.id in caplog.text
