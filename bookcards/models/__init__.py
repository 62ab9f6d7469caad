"""bookcards domain models, re-exporting all public model classes.

    - book.py      Book, Flashcard, FlashcardDraft, cursor pages, backfill report
    - ingestion.py ingestion phases, per-request state, extraction output
"""

from __future__ import annotations

from bookcards.models.book import (
    DEFAULT_AUTHOR,
    DEFAULT_LANGUAGE,
    BackfillReport,
    Book,
    BookPage,
    Flashcard,
    FlashcardDraft,
    FlashcardPage,
)
from bookcards.models.ingestion import (
    ExtractedBatch,
    IngestionPhase,
    IngestionResult,
    IngestionState,
    ResolvedBook,
)

__all__ = [
    "DEFAULT_AUTHOR",
    "DEFAULT_LANGUAGE",
    "BackfillReport",
    "Book",
    "BookPage",
    "ExtractedBatch",
    "Flashcard",
    "FlashcardDraft",
    "FlashcardPage",
    "IngestionPhase",
    "IngestionResult",
    "IngestionState",
    "ResolvedBook",
]
