"""Unit tests for the offline book identity backfill."""

from __future__ import annotations

from bookcards.models.book import Book
from bookcards.providers.store.sqlite_book_store import SQLiteBookStore
from bookcards.services.book_backfill import BookBackfill
from bookcards.services.identity_resolver import IdentityResolver


async def _seed_legacy(store: SQLiteBookStore) -> dict[str, Book]:
    """Rows as the old keying rule left them: plain lower-case keys, no slugs."""
    rows = {
        "plain": Book(title="THE HOBBIT", author="Tolkien", normalized_title="the hobbit"),
        "punctuated": Book(
            title="The Hobbit!", author="Tolkien", normalized_title="the hobbit!", language=""
        ),
        "no_language": Book(
            title="Atomic Habits",
            author="James Clear",
            normalized_title="atomic habits",
            language="",
        ),
    }
    stored = {key: await store.insert_book(book) for key, book in rows.items()}
    stored["current"] = (await IdentityResolver(store).resolve("Dune", "Frank Herbert")).book
    stored["blank"] = await store.insert_book(
        Book(title="!!!", author="Nobody", normalized_title="legacy-blank")
    )
    return stored


class TestBookBackfill:
    async def test_report_counts(self, book_store: SQLiteBookStore) -> None:
        books = await _seed_legacy(book_store)

        report = await BookBackfill(book_store).run()

        assert report.scanned == 5
        assert report.updated == 2
        assert report.unchanged == 1
        assert report.skipped == 2
        assert report.skipped_book_ids == [books["punctuated"].id, books["blank"].id]

    async def test_rows_rewritten(self, book_store: SQLiteBookStore) -> None:
        books = await _seed_legacy(book_store)

        await BookBackfill(book_store).run()

        hobbit = await book_store.get_book(books["plain"].id)
        assert hobbit.slug == "the-hobbit-by-tolkien"
        assert hobbit.title == "THE HOBBIT"

        habits = await book_store.get_book(books["no_language"].id)
        assert habits.language == "English"
        assert habits.slug == "atomic-habits-by-james-clear"

    async def test_collision_left_untouched(self, book_store: SQLiteBookStore) -> None:
        books = await _seed_legacy(book_store)

        await BookBackfill(book_store).run()

        loser = await book_store.get_book(books["punctuated"].id)
        assert loser.normalized_title == "the hobbit!"
        assert loser.slug is None
        assert await book_store.count_books() == 5

    async def test_second_run_changes_nothing(self, book_store: SQLiteBookStore) -> None:
        await _seed_legacy(book_store)
        await BookBackfill(book_store).run()

        report = await BookBackfill(book_store).run()

        assert report.updated == 0
        assert report.unchanged == 3
        assert report.skipped == 2

    async def test_empty_store(self, book_store: SQLiteBookStore) -> None:
        report = await BookBackfill(book_store).run()
        assert report.scanned == 0
        assert report.skipped_book_ids == []
