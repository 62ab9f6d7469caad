"""Abstract base class for the book/flashcard document store.

Defines the persistence contract the ingestion core depends on: point
lookups by unique key, insert with atomic uniqueness enforcement, bulk
insert, and paginated reads (offset or descending-id cursor).
Implementations may use SQLite (local), PostgreSQL, MongoDB, or any other
backend that can enforce a unique index on insert.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from bookcards.models.book import Book, Flashcard


class IBookStore(ABC):
    """Contract for book and flashcard persistence.

    All operations are async.  Uniqueness of ``Book.slug`` and
    ``Book.normalized_title`` must be enforced by the backend itself (a
    unique index), never by a check-then-insert in application code.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""

    # ── Books ─────────────────────────────────────────────────────────

    @abstractmethod
    async def find_book_by_normalized_title(self, normalized_title: str) -> Book | None:
        """Exact-match point lookup on the dedup key."""

    @abstractmethod
    async def find_book_by_slug(self, slug: str) -> Book | None:
        """Exact-match point lookup on the public slug."""

    @abstractmethod
    async def get_book(self, book_id: int) -> Book | None:
        """Point lookup by store identifier."""

    @abstractmethod
    async def insert_book(self, book: Book) -> Book:
        """Insert a new book and return it with ``id`` and ``created_at`` set.

        Raises
        ------
        DuplicateSlugError
            If another book already owns ``book.slug``.
        DuplicateKeyError
            If another book already owns ``book.normalized_title``.
        PersistenceFailedError
            For any other store failure.
        """

    @abstractmethod
    async def set_book_slug(self, book_id: int, slug: str) -> Book:
        """Assign a slug to a legacy book that has none; returns the updated book.

        Raises ``DuplicateSlugError`` if the slug is taken.
        """

    @abstractmethod
    async def update_book_identity(
        self,
        book_id: int,
        *,
        normalized_title: str,
        slug: str,
        language: str,
    ) -> Book:
        """Rewrite the derived identity fields of a book (migration path only)."""

    @abstractmethod
    async def list_books(self, *, offset: int = 0, limit: int = 5) -> list[Book]:
        """Return books newest first with offset pagination."""

    @abstractmethod
    async def list_books_before(self, *, last_id: int | None, limit: int) -> list[Book]:
        """Return up to *limit* books with ``id < last_id`` in descending id order.

        ``last_id=None`` starts from the newest book.
        """

    @abstractmethod
    async def sample_books(self, count: int) -> list[Book]:
        """Return up to *count* distinct books chosen at random."""

    @abstractmethod
    def iter_books(self) -> AsyncIterator[Book]:
        """Yield every book in ascending id order (migration scans)."""

    @abstractmethod
    async def count_books(self) -> int:
        """Return the total number of books."""

    # ── Flashcards ────────────────────────────────────────────────────

    @abstractmethod
    async def insert_flashcards(self, flashcards: list[Flashcard]) -> list[Flashcard]:
        """Insert a batch of flashcards in one transaction (all or nothing).

        Returns the cards with ``id`` and ``created_at`` set, in input order.
        Raises ``PersistenceFailedError`` if any row is rejected.
        """

    @abstractmethod
    async def list_flashcards(self, book_id: int, *, offset: int = 0, limit: int = 10) -> list[Flashcard]:
        """Return a book's flashcards in insertion order with offset pagination."""

    @abstractmethod
    async def list_flashcards_before(
        self,
        book_id: int,
        *,
        last_id: int | None,
        limit: int,
    ) -> list[Flashcard]:
        """Return up to *limit* of a book's flashcards with ``id < last_id``, newest first."""

    @abstractmethod
    async def count_flashcards(self, book_id: int) -> int:
        """Return how many flashcards a book owns."""
