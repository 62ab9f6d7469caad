"""Read-side queries over persisted books and flashcards.

Two pagination styles are offered:

- **Offset** (``page``/``limit``), numbered pages starting at 1.
- **Cursor** (``last_id``/``limit``), newest identifier first.  One row more
  than ``limit`` is fetched; its presence sets ``has_more`` and it is not
  returned.

Every call reads the store afresh; nothing is cached between calls.
"""

from __future__ import annotations

from typing import Any

from bookcards.interfaces.book_store import IBookStore
from bookcards.models.book import Book, BookPage, Flashcard, FlashcardPage
from bookcards.utils.errors import InvalidInputError
from bookcards.utils.logging import get_logger

_DEFAULTS: dict[str, int] = {
    "default_book_page_size": 5,
    "default_flashcard_page_size": 10,
    "max_page_size": 100,
    "max_random_books": 50,
}

# Largest value SQLite binds as INTEGER.
_MAX_SQL_INT = 2**63 - 1


def _require_int(value: Any, name: str, minimum: int) -> int:
    # bool is an int subclass; True must not pass as 1.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(message=f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidInputError(message=f"{name} must be >= {minimum}, got {value}")
    if value > _MAX_SQL_INT:
        raise InvalidInputError(message=f"{name} must be <= {_MAX_SQL_INT}, got {value}")
    return value


def _offset(page: int, limit: int) -> int:
    offset = (page - 1) * limit
    if offset > _MAX_SQL_INT:
        raise InvalidInputError(message=f"page {page} is out of range for limit {limit}")
    return offset


class CatalogService:
    """Paginated listing, slug lookup and random sampling of the catalog."""

    def __init__(self, store: IBookStore, config: dict[str, Any] | None = None) -> None:
        catalog = {**_DEFAULTS, **((config or {}).get("catalog") or {})}
        self._store = store
        self._book_page_size = int(catalog["default_book_page_size"])
        self._flashcard_page_size = int(catalog["default_flashcard_page_size"])
        self._max_page_size = int(catalog["max_page_size"])
        self._max_random_books = int(catalog["max_random_books"])
        self._logger = get_logger(__name__)

    # -- Flashcards --------------------------------------------------------

    async def list_flashcards(
        self,
        book_id: int,
        page: int = 1,
        limit: int | None = None,
    ) -> list[Flashcard]:
        """Return one page of a book's flashcards in insertion order.

        ``limit=0`` yields an empty list.  A page past the end yields an
        empty list, and a short final page is returned without padding.
        """
        book_id = _require_int(book_id, "book_id", 1)
        page = _require_int(page, "page", 1)
        limit = self._page_size(limit, self._flashcard_page_size)
        if limit == 0:
            return []
        return await self._store.list_flashcards(
            book_id, offset=_offset(page, limit), limit=limit
        )

    async def list_flashcards_cursor(
        self,
        book_id: int,
        last_id: int | None = None,
        limit: int | None = None,
    ) -> FlashcardPage:
        """Return a book's flashcards with ``id < last_id``, newest first."""
        book_id = _require_int(book_id, "book_id", 1)
        if last_id is not None:
            last_id = _require_int(last_id, "last_id", 1)
        limit = self._page_size(limit, self._flashcard_page_size)
        if limit == 0:
            return FlashcardPage()

        rows = await self._store.list_flashcards_before(
            book_id, last_id=last_id, limit=limit + 1
        )
        items, has_more = rows[:limit], len(rows) > limit
        return FlashcardPage(
            items=items,
            has_more=has_more,
            next_cursor=items[-1].id if has_more else None,
        )

    # -- Books -------------------------------------------------------------

    async def list_books(self, page: int = 1, limit: int | None = None) -> list[Book]:
        """Return one page of books, newest first."""
        page = _require_int(page, "page", 1)
        limit = self._page_size(limit, self._book_page_size)
        if limit == 0:
            return []
        return await self._store.list_books(offset=_offset(page, limit), limit=limit)

    async def list_books_cursor(
        self,
        last_id: int | None = None,
        limit: int | None = None,
    ) -> BookPage:
        """Return books with ``id < last_id`` (all books when ``None``), newest first."""
        if last_id is not None:
            last_id = _require_int(last_id, "last_id", 1)
        limit = self._page_size(limit, self._book_page_size)
        if limit == 0:
            return BookPage()

        rows = await self._store.list_books_before(last_id=last_id, limit=limit + 1)
        items, has_more = rows[:limit], len(rows) > limit
        return BookPage(
            items=items,
            has_more=has_more,
            next_cursor=items[-1].id if has_more else None,
        )

    async def lookup_book(self, slug: str) -> Book | None:
        """Return the book owning *slug*, or ``None``."""
        if not isinstance(slug, str) or not slug.strip():
            raise InvalidInputError(message="slug must be a non-empty string")
        return await self._store.find_book_by_slug(slug.strip())

    async def random_books(self, count: int) -> list[Book]:
        """Return up to *count* distinct books in no particular order.

        Fewer books come back when the catalog is smaller than *count*.
        *count* above ``max_random_books`` is capped.
        """
        count = _require_int(count, "count", 1)
        capped = min(count, self._max_random_books)
        if capped < count:
            self._logger.debug("random_books_capped", requested=count, cap=capped)
        return await self._store.sample_books(capped)

    # -- Helpers -----------------------------------------------------------

    def _page_size(self, limit: int | None, default: int) -> int:
        if limit is None:
            return min(default, self._max_page_size)
        limit = _require_int(limit, "limit", 0)
        return min(limit, self._max_page_size)
