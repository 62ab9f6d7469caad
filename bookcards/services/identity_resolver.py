"""Find-or-create the canonical Book for an extracted title.

The dedup key is :func:`normalize_title`; lookups are exact point queries on
that key, never fuzzy.  A new book's slug is
``slugify("<normalized title> by <author>")``.

Two requests for the same unseen title may both miss the lookup and both
insert.  The store's unique indexes let exactly one insert win; the loser
receives :class:`DuplicateKeyError`, re-reads the winner's row and returns
it with ``created=False``.  If the re-read finds nothing, the conflict was a
slug owned by a *different* title and :class:`DuplicateSlugError` is raised
instead of overwriting anything.
"""

from __future__ import annotations

from bookcards.interfaces.book_store import IBookStore
from bookcards.models.book import DEFAULT_AUTHOR, DEFAULT_LANGUAGE, Book
from bookcards.models.ingestion import ResolvedBook
from bookcards.utils.errors import DuplicateKeyError, DuplicateSlugError, InvalidInputError
from bookcards.utils.logging import get_logger
from bookcards.utils.text_normalizer import clean_text, make_slug, normalize_title


class IdentityResolver:
    """Maps a (title, author) pair onto exactly one persisted Book."""

    def __init__(self, store: IBookStore) -> None:
        self._store = store
        self._logger = get_logger(__name__)

    async def resolve(
        self,
        raw_title: str,
        raw_author: str | None = None,
        language: str | None = None,
    ) -> ResolvedBook:
        """Return the existing book for *raw_title* or create it.

        Parameters
        ----------
        raw_title:
            Display title, typically as corrected by the LLM.
        raw_author:
            Display author; ``None`` or blank becomes ``"Unknown"``.
        language:
            Language reported for the book; ``None`` or blank becomes
            ``"English"``.  Ignored when the book already exists.

        Raises
        ------
        InvalidInputError
            If the title normalizes to an empty key.
        DuplicateSlugError
            If a different book already owns the computed slug.
        PersistenceFailedError
            For any other store failure.
        """
        title = clean_text(raw_title)
        author = clean_text(raw_author or "") or DEFAULT_AUTHOR
        book_language = clean_text(language or "") or DEFAULT_LANGUAGE

        normalized = normalize_title(title)
        if not normalized:
            raise InvalidInputError(
                message=f"Title {raw_title!r} has no letters or digits to index"
            )

        existing = await self._store.find_book_by_normalized_title(normalized)
        if existing is not None:
            return ResolvedBook(book=await self._heal_slug(existing), created=False)

        candidate = Book(
            title=title,
            author=author,
            normalized_title=normalized,
            slug=make_slug(normalized, author),
            language=book_language,
        )
        try:
            book = await self._store.insert_book(candidate)
        except DuplicateKeyError as exc:
            return await self._recover_from_conflict(candidate, exc)

        self._logger.info(
            "book_created",
            book_id=book.id,
            slug=book.slug,
            normalized_title=normalized,
        )
        return ResolvedBook(book=book, created=True)

    async def _heal_slug(self, book: Book) -> Book:
        """Give a legacy book its slug without touching title or author."""
        if book.slug:
            return book
        slug = make_slug(book.normalized_title, book.author)
        healed = await self._store.set_book_slug(book.id, slug)
        self._logger.info("book_slug_backfilled", book_id=book.id, slug=slug)
        return healed

    async def _recover_from_conflict(self, candidate: Book, exc: DuplicateKeyError) -> ResolvedBook:
        winner = await self._store.find_book_by_normalized_title(candidate.normalized_title)
        if winner is not None:
            self._logger.info(
                "book_create_race_lost",
                book_id=winner.id,
                normalized_title=candidate.normalized_title,
                conflict=exc.field,
            )
            return ResolvedBook(book=await self._heal_slug(winner), created=False)

        self._logger.error(
            "book_slug_collision",
            slug=candidate.slug,
            normalized_title=candidate.normalized_title,
        )
        raise DuplicateSlugError(
            message=(
                f"Slug {candidate.slug!r} already belongs to a book with a "
                f"different normalized title than {candidate.normalized_title!r}"
            ),
            provider_name=exc.provider_name,
        ) from exc
