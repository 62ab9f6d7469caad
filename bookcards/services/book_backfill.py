"""Offline identity backfill for legacy book rows.

Older rows were keyed with a plain lower-cased title and had no slug or
language.  The backfill recomputes, for every book:

    normalized_title = normalize_title(title)
    slug             = slugify(normalized_title + " by " + author)
    language         = "English" when blank

A row whose recomputed key already belongs to another book is skipped and
reported; nothing is ever overwritten or merged.
"""

from __future__ import annotations

from bookcards.interfaces.book_store import IBookStore
from bookcards.models.book import DEFAULT_LANGUAGE, BackfillReport, Book
from bookcards.utils.errors import DuplicateKeyError
from bookcards.utils.logging import get_logger
from bookcards.utils.text_normalizer import make_slug, normalize_title


class BookBackfill:
    """Brings every stored book's derived identity fields up to date."""

    def __init__(self, store: IBookStore) -> None:
        self._store = store
        self._logger = get_logger(__name__)

    async def run(self) -> BackfillReport:
        scanned = updated = unchanged = 0
        skipped: list[int] = []

        async for book in self._store.iter_books():
            scanned += 1
            target = self._target_identity(book)
            if target is None:
                skipped.append(book.id)
                self._logger.warning("book_backfill_skipped", book_id=book.id, reason="empty_title")
                continue

            normalized, slug, language = target
            if (book.normalized_title, book.slug, book.language) == target:
                unchanged += 1
                continue

            try:
                await self._store.update_book_identity(
                    book.id,
                    normalized_title=normalized,
                    slug=slug,
                    language=language,
                )
            except DuplicateKeyError as exc:
                skipped.append(book.id)
                self._logger.warning(
                    "book_backfill_skipped",
                    book_id=book.id,
                    reason="collision",
                    field=exc.field,
                    slug=slug,
                )
                continue

            updated += 1
            self._logger.info(
                "book_backfilled",
                book_id=book.id,
                normalized_title=normalized,
                slug=slug,
            )

        report = BackfillReport(
            scanned=scanned,
            updated=updated,
            unchanged=unchanged,
            skipped=len(skipped),
            skipped_book_ids=skipped,
        )
        self._logger.info(
            "book_backfill_complete",
            scanned=report.scanned,
            updated=report.updated,
            unchanged=report.unchanged,
            skipped=report.skipped,
        )
        return report

    @staticmethod
    def _target_identity(book: Book) -> tuple[str, str, str] | None:
        normalized = normalize_title(book.title)
        if not normalized:
            return None
        language = book.language.strip() or DEFAULT_LANGUAGE
        return normalized, make_slug(normalized, book.author), language
