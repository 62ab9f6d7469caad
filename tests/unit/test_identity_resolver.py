"""Unit tests for IdentityResolver: find-or-create, races, slug healing."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from bookcards.models.book import Book
from bookcards.providers.store.sqlite_book_store import SQLiteBookStore
from bookcards.services.identity_resolver import IdentityResolver
from bookcards.utils.errors import DuplicateSlugError, InvalidInputError


class _StaleFirstLookup(SQLiteBookStore):
    """Store whose first normalized-title lookup misses, like a lost race."""

    def __init__(self, db_path: Path) -> None:
        super().__init__(db_path=db_path)
        self.lookups = 0

    async def find_book_by_normalized_title(self, normalized_title: str) -> Book | None:
        self.lookups += 1
        if self.lookups == 1:
            return None
        return await super().find_book_by_normalized_title(normalized_title)


class TestIdentityResolver:
    @pytest.fixture()
    def resolver(self, book_store: SQLiteBookStore) -> IdentityResolver:
        return IdentityResolver(book_store)

    async def test_creates_new_book(
        self, resolver: IdentityResolver, book_store: SQLiteBookStore
    ) -> None:
        resolved = await resolver.resolve("The Hobbit", "J.R.R. Tolkien", "English")

        assert resolved.created is True
        assert resolved.book.id is not None
        assert resolved.book.title == "The Hobbit"
        assert resolved.book.normalized_title == "the hobbit"
        assert resolved.book.slug == "the-hobbit-by-j-r-r-tolkien"
        assert await book_store.count_books() == 1

    async def test_second_resolve_reuses_book(
        self, resolver: IdentityResolver, book_store: SQLiteBookStore
    ) -> None:
        first = await resolver.resolve("The Hobbit", "J.R.R. Tolkien")
        second = await resolver.resolve("The Hobbit!!", "Someone Else")

        assert second.created is False
        assert second.book.id == first.book.id
        assert second.book.author == "J.R.R. Tolkien"
        assert await book_store.count_books() == 1

    async def test_defaults_for_missing_metadata(self, resolver: IdentityResolver) -> None:
        resolved = await resolver.resolve("  Atomic   Habits ", None, "  ")

        assert resolved.book.title == "Atomic Habits"
        assert resolved.book.author == "Unknown"
        assert resolved.book.language == "English"
        assert resolved.book.slug == "atomic-habits-by-unknown"

    async def test_punctuation_only_title_rejected(
        self, resolver: IdentityResolver, book_store: SQLiteBookStore
    ) -> None:
        with pytest.raises(InvalidInputError):
            await resolver.resolve("?!?", "A")
        assert await book_store.count_books() == 0

    async def test_legacy_book_gets_slug(
        self, resolver: IdentityResolver, book_store: SQLiteBookStore
    ) -> None:
        legacy = await book_store.insert_book(
            Book(title="Dune", author="Frank Herbert", normalized_title="dune")
        )

        resolved = await resolver.resolve("DUNE", "F. Herbert")

        assert resolved.created is False
        assert resolved.book.id == legacy.id
        assert resolved.book.slug == "dune-by-frank-herbert"
        assert resolved.book.title == "Dune"
        assert (await book_store.find_book_by_slug("dune-by-frank-herbert")).id == legacy.id

    async def test_concurrent_resolves_create_one_book(
        self, book_store: SQLiteBookStore
    ) -> None:
        results = await asyncio.gather(
            *(IdentityResolver(book_store).resolve("Dune", "Frank Herbert") for _ in range(4))
        )

        assert sum(r.created for r in results) == 1
        assert len({r.book.id for r in results}) == 1
        assert await book_store.count_books() == 1

    async def test_lost_insert_race_returns_winner(self, tmp_path: Path) -> None:
        store = _StaleFirstLookup(tmp_path / "race.db")
        await store.initialize()
        winner = await IdentityResolver(SQLiteBookStore(tmp_path / "race.db")).resolve(
            "Dune", "Frank Herbert"
        )

        resolved = await IdentityResolver(store).resolve("Dune", "Frank Herbert")

        assert resolved.created is False
        assert resolved.book.id == winner.book.id
        assert store.lookups == 2
        assert await store.count_books() == 1

    async def test_slug_owned_by_other_title(
        self, resolver: IdentityResolver, book_store: SQLiteBookStore
    ) -> None:
        await resolver.resolve("Café", "A")

        with pytest.raises(DuplicateSlugError):
            await resolver.resolve("Cafe", "A")

        assert await book_store.count_books() == 1
        owner = await book_store.find_book_by_slug("cafe-by-a")
        assert owner.normalized_title == "café"
