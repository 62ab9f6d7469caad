"""Unit tests for CatalogService pagination, lookup and random sampling."""

from __future__ import annotations

from typing import Any

import pytest

from bookcards.models.book import Book, Flashcard
from bookcards.providers.store.sqlite_book_store import SQLiteBookStore
from bookcards.services.catalog_service import CatalogService
from bookcards.utils.errors import InvalidInputError


async def _seed_books(store: SQLiteBookStore, count: int) -> list[Book]:
    books = []
    for i in range(1, count + 1):
        books.append(
            await store.insert_book(
                Book(
                    title=f"Book {i}",
                    author="Author",
                    normalized_title=f"book {i}",
                    slug=f"book-{i}-by-author",
                )
            )
        )
    return books


async def _seed_cards(store: SQLiteBookStore, book_id: int, count: int) -> list[Flashcard]:
    return await store.insert_flashcards(
        [Flashcard(book_id=book_id, question=f"Q{i}", answer=f"A{i}") for i in range(1, count + 1)]
    )


class TestCatalogService:
    @pytest.fixture()
    def catalog(self, book_store: SQLiteBookStore, mock_config: dict[str, Any]) -> CatalogService:
        return CatalogService(book_store, config=mock_config)

    # ------------------------------------------------------------------
    # Offset pagination
    # ------------------------------------------------------------------

    async def test_list_books_default_page(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        await _seed_books(book_store, 7)

        books = await catalog.list_books()
        assert [b.title for b in books] == [f"Book {i}" for i in (7, 6, 5, 4, 3)]

    async def test_limit_zero_is_empty(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        books = await _seed_books(book_store, 2)
        await _seed_cards(book_store, books[0].id, 3)

        assert await catalog.list_books(page=1, limit=0) == []
        assert await catalog.list_flashcards(books[0].id, page=1, limit=0) == []

    async def test_short_final_page(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        book = (await _seed_books(book_store, 1))[0]
        await _seed_cards(book_store, book.id, 12)

        first = await catalog.list_flashcards(book.id)
        second = await catalog.list_flashcards(book.id, page=2)
        third = await catalog.list_flashcards(book.id, page=3)

        assert [c.question for c in first] == [f"Q{i}" for i in range(1, 11)]
        assert [c.question for c in second] == ["Q11", "Q12"]
        assert third == []

    async def test_limit_above_remaining(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        book = (await _seed_books(book_store, 1))[0]
        await _seed_cards(book_store, book.id, 3)

        assert len(await catalog.list_flashcards(book.id, limit=50)) == 3

    async def test_limit_clamped_to_max(self, book_store: SQLiteBookStore) -> None:
        catalog = CatalogService(book_store, config={"catalog": {"max_page_size": 2}})
        await _seed_books(book_store, 4)

        assert len(await catalog.list_books(limit=10)) == 2

    @pytest.mark.parametrize("page", [0, -1, True, "2"])
    async def test_invalid_page(self, catalog: CatalogService, page: Any) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.list_books(page=page)

    async def test_negative_limit(self, catalog: CatalogService) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.list_flashcards(1, limit=-1)

    async def test_page_offset_beyond_sqlite_range(self, catalog: CatalogService) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.list_books(page=10**19, limit=5)
        with pytest.raises(InvalidInputError):
            await catalog.list_flashcards(1, page=2**62, limit=5)

    async def test_last_page_inside_sqlite_range(self, catalog: CatalogService) -> None:
        assert await catalog.list_books(page=2**62, limit=1) == []

    @pytest.mark.parametrize(
        "kwargs",
        [{"last_id": 2**63}, {"last_id": 10**30}],
    )
    async def test_cursor_beyond_sqlite_range(
        self, catalog: CatalogService, kwargs: dict[str, Any]
    ) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.list_books_cursor(**kwargs)
        with pytest.raises(InvalidInputError):
            await catalog.list_flashcards_cursor(1, **kwargs)

    async def test_book_id_beyond_sqlite_range(self, catalog: CatalogService) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.list_flashcards(2**63)

    # ------------------------------------------------------------------
    # Cursor pagination
    # ------------------------------------------------------------------

    async def test_books_cursor_walk(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        books = await _seed_books(book_store, 7)
        ids = [b.id for b in books]

        first = await catalog.list_books_cursor(limit=3)
        assert [b.id for b in first.items] == ids[6:3:-1]
        assert first.has_more is True
        assert first.next_cursor == ids[4]

        second = await catalog.list_books_cursor(last_id=first.next_cursor, limit=3)
        assert [b.id for b in second.items] == ids[3:0:-1]
        assert second.has_more is True

        third = await catalog.list_books_cursor(last_id=second.next_cursor, limit=3)
        assert [b.id for b in third.items] == [ids[0]]
        assert third.has_more is False
        assert third.next_cursor is None

    async def test_cursor_exact_boundary(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        await _seed_books(book_store, 3)

        page = await catalog.list_books_cursor(limit=3)
        assert len(page.items) == 3
        assert page.has_more is False

    async def test_flashcards_cursor(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        book = (await _seed_books(book_store, 1))[0]
        await _seed_cards(book_store, book.id, 5)

        first = await catalog.list_flashcards_cursor(book.id, limit=2)
        assert [c.question for c in first.items] == ["Q5", "Q4"]
        assert first.has_more is True

        rest = await catalog.list_flashcards_cursor(book.id, last_id=first.next_cursor, limit=10)
        assert [c.question for c in rest.items] == ["Q3", "Q2", "Q1"]
        assert rest.has_more is False

    async def test_cursor_limit_zero(self, catalog: CatalogService) -> None:
        page = await catalog.list_books_cursor(limit=0)
        assert page.items == []
        assert page.has_more is False

    # ------------------------------------------------------------------
    # Lookup and sampling
    # ------------------------------------------------------------------

    async def test_lookup_book(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        books = await _seed_books(book_store, 2)

        found = await catalog.lookup_book("book-2-by-author")
        assert found is not None
        assert found.id == books[1].id
        assert await catalog.lookup_book("no-such-book") is None

    @pytest.mark.parametrize("slug", ["", "   ", None])
    async def test_lookup_rejects_empty_slug(self, catalog: CatalogService, slug: Any) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.lookup_book(slug)

    async def test_random_books(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        await _seed_books(book_store, 5)

        sample = await catalog.random_books(3)
        assert len(sample) == 3
        assert len({b.id for b in sample}) == 3

    async def test_random_books_small_catalog(
        self, catalog: CatalogService, book_store: SQLiteBookStore
    ) -> None:
        await _seed_books(book_store, 2)
        assert len(await catalog.random_books(10)) == 2

    async def test_random_books_capped(self, book_store: SQLiteBookStore) -> None:
        catalog = CatalogService(book_store, config={"catalog": {"max_random_books": 2}})
        await _seed_books(book_store, 5)

        assert len(await catalog.random_books(5)) == 2

    @pytest.mark.parametrize("count", [0, -3, True, 2.5, "3"])
    async def test_random_books_invalid_count(self, catalog: CatalogService, count: Any) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.random_books(count)
