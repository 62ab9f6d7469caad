"""SQLite-backed book and flashcard store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IBookStore).
# Pattern: Adapter pattern; wraps SQLite behind the IBookStore ABC so the
#          document store can be swapped without touching the resolver,
#          the orchestrator or the catalog service.
#
# Database: ``data/bookcards.db``
#   books       one row per distinct normalized title
#   flashcards  N rows per book, linked by ``book_id``
#
# Uniqueness of ``books.slug`` and ``books.normalized_title`` is enforced
# by UNIQUE indexes, so two racing inserts for the same title cannot both
# succeed.  The losing insert surfaces as DuplicateKeyError and the
# identity resolver re-reads the winner.
#
# Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` for
# concurrent read safety.  Foreign keys are switched on per connection.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from bookcards.interfaces.book_store import IBookStore
from bookcards.models.book import Book, Flashcard
from bookcards.utils.errors import (
    DuplicateKeyError,
    DuplicateSlugError,
    InvalidInputError,
    PersistenceFailedError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/bookcards.db")
_ITER_BATCH_SIZE = 200

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_BOOKS_TABLE = """\
CREATE TABLE IF NOT EXISTS books (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    title             TEXT    NOT NULL,
    author            TEXT    NOT NULL DEFAULT 'Unknown',
    normalized_title  TEXT    NOT NULL UNIQUE,
    slug              TEXT    UNIQUE,
    language          TEXT    NOT NULL DEFAULT 'English',
    created_at        TEXT    NOT NULL
);
"""

_CREATE_FLASHCARDS_TABLE = """\
CREATE TABLE IF NOT EXISTS flashcards (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id     INTEGER NOT NULL REFERENCES books(id),
    question    TEXT    NOT NULL,
    answer      TEXT    NOT NULL,
    language    TEXT    NOT NULL DEFAULT 'English',
    created_at  TEXT    NOT NULL
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_flashcards_book ON flashcards(book_id, id);",
    "CREATE INDEX IF NOT EXISTS idx_books_created ON books(created_at);",
]

# ── Queries ───────────────────────────────────────────────────────────

_BOOK_COLUMNS = "id, title, author, normalized_title, slug, language, created_at"
_FLASHCARD_COLUMNS = "id, book_id, question, answer, language, created_at"

_INSERT_BOOK = """\
INSERT INTO books (title, author, normalized_title, slug, language, created_at)
VALUES (?, ?, ?, ?, ?, ?);
"""

_INSERT_FLASHCARD = """\
INSERT INTO flashcards (book_id, question, answer, language, created_at)
VALUES (?, ?, ?, ?, ?);
"""

_SELECT_BOOK_BY_ID = f"SELECT {_BOOK_COLUMNS} FROM books WHERE id = ?;"
_SELECT_BOOK_BY_NORMALIZED = f"SELECT {_BOOK_COLUMNS} FROM books WHERE normalized_title = ?;"
_SELECT_BOOK_BY_SLUG = f"SELECT {_BOOK_COLUMNS} FROM books WHERE slug = ?;"

_LIST_BOOKS = f"""\
SELECT {_BOOK_COLUMNS} FROM books
ORDER BY created_at DESC, id DESC
LIMIT ? OFFSET ?;
"""

_LIST_BOOKS_BEFORE = f"""\
SELECT {_BOOK_COLUMNS} FROM books
WHERE id < ?
ORDER BY id DESC
LIMIT ?;
"""

_LIST_BOOKS_NEWEST = f"""\
SELECT {_BOOK_COLUMNS} FROM books
ORDER BY id DESC
LIMIT ?;
"""

_SAMPLE_BOOKS = f"SELECT {_BOOK_COLUMNS} FROM books ORDER BY RANDOM() LIMIT ?;"

_ITER_BOOKS = f"""\
SELECT {_BOOK_COLUMNS} FROM books
WHERE id > ?
ORDER BY id ASC
LIMIT ?;
"""

_UPDATE_SLUG = "UPDATE books SET slug = ? WHERE id = ?;"

_UPDATE_IDENTITY = """\
UPDATE books
SET normalized_title = ?, slug = ?, language = ?
WHERE id = ?;
"""

_LIST_FLASHCARDS = f"""\
SELECT {_FLASHCARD_COLUMNS} FROM flashcards
WHERE book_id = ?
ORDER BY id ASC
LIMIT ? OFFSET ?;
"""

_LIST_FLASHCARDS_BEFORE = f"""\
SELECT {_FLASHCARD_COLUMNS} FROM flashcards
WHERE book_id = ? AND id < ?
ORDER BY id DESC
LIMIT ?;
"""

_LIST_FLASHCARDS_NEWEST = f"""\
SELECT {_FLASHCARD_COLUMNS} FROM flashcards
WHERE book_id = ?
ORDER BY id DESC
LIMIT ?;
"""


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()  # noqa: UP017


class SQLiteBookStore(IBookStore):
    """SQLite-backed persistence for books and their flashcards."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            yield db

    async def initialize(self) -> None:
        """Create the books/flashcards tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            # WAL mode enables concurrent readers while a writer is active.
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_BOOKS_TABLE)
            await db.execute(_CREATE_FLASHCARDS_TABLE)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("book_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_books"

    # ── Books ─────────────────────────────────────────────────────────

    async def find_book_by_normalized_title(self, normalized_title: str) -> Book | None:
        return await self._fetch_book(_SELECT_BOOK_BY_NORMALIZED, (normalized_title,))

    async def find_book_by_slug(self, slug: str) -> Book | None:
        return await self._fetch_book(_SELECT_BOOK_BY_SLUG, (slug,))

    async def get_book(self, book_id: int) -> Book | None:
        return await self._fetch_book(_SELECT_BOOK_BY_ID, (book_id,))

    async def insert_book(self, book: Book) -> Book:
        """Insert a new book; the UNIQUE indexes decide races atomically."""
        created_at = book.created_at or _now_iso()
        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    _INSERT_BOOK,
                    (
                        book.title,
                        book.author,
                        book.normalized_title,
                        book.slug,
                        book.language,
                        created_at,
                    ),
                )
                book_id = cursor.lastrowid
                await db.commit()
        except aiosqlite.Error as exc:
            raise self._translate_error(exc, "insert_book") from exc

        return book.model_copy(update={"id": book_id, "created_at": created_at})

    async def set_book_slug(self, book_id: int, slug: str) -> Book:
        try:
            async with self._connect() as db:
                cursor = await db.execute(_UPDATE_SLUG, (slug, book_id))
                await db.commit()
                updated = cursor.rowcount
        except aiosqlite.Error as exc:
            raise self._translate_error(exc, "set_book_slug") from exc
        return await self._require_book(book_id, updated)

    async def update_book_identity(
        self,
        book_id: int,
        *,
        normalized_title: str,
        slug: str,
        language: str,
    ) -> Book:
        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    _UPDATE_IDENTITY, (normalized_title, slug, language, book_id)
                )
                await db.commit()
                updated = cursor.rowcount
        except aiosqlite.Error as exc:
            raise self._translate_error(exc, "update_book_identity") from exc
        return await self._require_book(book_id, updated)

    async def list_books(self, *, offset: int = 0, limit: int = 5) -> list[Book]:
        rows = await self._fetch_all(_LIST_BOOKS, (limit, offset))
        return [self._row_to_book(r) for r in rows]

    async def list_books_before(self, *, last_id: int | None, limit: int) -> list[Book]:
        if last_id is None:
            rows = await self._fetch_all(_LIST_BOOKS_NEWEST, (limit,))
        else:
            rows = await self._fetch_all(_LIST_BOOKS_BEFORE, (last_id, limit))
        return [self._row_to_book(r) for r in rows]

    async def sample_books(self, count: int) -> list[Book]:
        rows = await self._fetch_all(_SAMPLE_BOOKS, (count,))
        return [self._row_to_book(r) for r in rows]

    async def iter_books(self) -> AsyncIterator[Book]:
        """Yield books in ascending id order, reading in batches.

        No connection is held open between batches, so callers may write
        to the store while iterating.
        """
        last_id = 0
        while True:
            rows = await self._fetch_all(_ITER_BOOKS, (last_id, _ITER_BATCH_SIZE))
            if not rows:
                return
            for row in rows:
                book = self._row_to_book(row)
                last_id = row["id"]
                yield book

    async def count_books(self) -> int:
        rows = await self._fetch_all("SELECT COUNT(*) AS n FROM books;", ())
        return int(rows[0]["n"])

    # ── Flashcards ────────────────────────────────────────────────────

    async def insert_flashcards(self, flashcards: list[Flashcard]) -> list[Flashcard]:
        """Insert every card in one transaction; nothing is kept if one row fails."""
        if not flashcards:
            return []

        created_at = _now_iso()
        stored: list[Flashcard] = []
        try:
            async with self._connect() as db:
                for card in flashcards:
                    cursor = await db.execute(
                        _INSERT_FLASHCARD,
                        (
                            card.book_id,
                            card.question,
                            card.answer,
                            card.language,
                            card.created_at or created_at,
                        ),
                    )
                    stored.append(
                        card.model_copy(
                            update={
                                "id": cursor.lastrowid,
                                "created_at": card.created_at or created_at,
                            }
                        )
                    )
                await db.commit()
        except aiosqlite.Error as exc:
            # Leaving the connection without commit discards the partial batch.
            raise self._translate_error(exc, "insert_flashcards") from exc

        logger.debug(
            "flashcard_rows_inserted",
            book_id=flashcards[0].book_id,
            count=len(stored),
        )
        return stored

    async def list_flashcards(
        self, book_id: int, *, offset: int = 0, limit: int = 10
    ) -> list[Flashcard]:
        rows = await self._fetch_all(_LIST_FLASHCARDS, (book_id, limit, offset))
        return [self._row_to_flashcard(r) for r in rows]

    async def list_flashcards_before(
        self,
        book_id: int,
        *,
        last_id: int | None,
        limit: int,
    ) -> list[Flashcard]:
        if last_id is None:
            rows = await self._fetch_all(_LIST_FLASHCARDS_NEWEST, (book_id, limit))
        else:
            rows = await self._fetch_all(_LIST_FLASHCARDS_BEFORE, (book_id, last_id, limit))
        return [self._row_to_flashcard(r) for r in rows]

    async def count_flashcards(self, book_id: int) -> int:
        rows = await self._fetch_all(
            "SELECT COUNT(*) AS n FROM flashcards WHERE book_id = ?;", (book_id,)
        )
        return int(rows[0]["n"])

    # ── Internal helpers ──────────────────────────────────────────────

    async def _fetch_book(self, query: str, params: tuple[Any, ...]) -> Book | None:
        rows = await self._fetch_all(query, params)
        return self._row_to_book(rows[0]) if rows else None

    async def _fetch_all(self, query: str, params: tuple[Any, ...]) -> list[aiosqlite.Row]:
        try:
            async with self._connect() as db:
                cursor = await db.execute(query, params)
                return list(await cursor.fetchall())
        except OverflowError as exc:
            raise InvalidInputError(
                message=f"Query parameter out of range: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except aiosqlite.Error as exc:
            raise self._translate_error(exc, "query") from exc

    async def _require_book(self, book_id: int, rowcount: int) -> Book:
        book = await self.get_book(book_id) if rowcount else None
        if book is None:
            raise PersistenceFailedError(
                message=f"Book {book_id} does not exist",
                provider_name=self.get_provider_name(),
            )
        return book

    def _translate_error(self, exc: aiosqlite.Error, operation: str) -> Exception:
        """Map a driver exception onto the bookcards error hierarchy."""
        detail = str(exc)
        if isinstance(exc, aiosqlite.IntegrityError) and "UNIQUE" in detail:
            if "books.slug" in detail:
                return DuplicateSlugError(
                    message=f"{operation}: slug already belongs to another book",
                    provider_name=self.get_provider_name(),
                )
            if "books.normalized_title" in detail:
                return DuplicateKeyError(
                    message=f"{operation}: normalized title already exists",
                    provider_name=self.get_provider_name(),
                    field="normalized_title",
                )
            return DuplicateKeyError(
                message=f"{operation}: {detail}",
                provider_name=self.get_provider_name(),
            )

        logger.error("book_store_error", operation=operation, error=detail)
        return PersistenceFailedError(
            message=f"{operation} failed: {detail}",
            provider_name=self.get_provider_name(),
        )

    @staticmethod
    def _row_to_book(row: aiosqlite.Row) -> Book:
        return Book(
            id=row["id"],
            title=row["title"],
            author=row["author"],
            normalized_title=row["normalized_title"],
            slug=row["slug"],
            language=row["language"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_flashcard(row: aiosqlite.Row) -> Flashcard:
        return Flashcard(
            id=row["id"],
            book_id=row["book_id"],
            question=row["question"],
            answer=row["answer"],
            language=row["language"],
            created_at=row["created_at"],
        )
