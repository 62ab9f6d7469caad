"""Book and flashcard domain models.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models (bottom of the dependency graph; no imports from upper layers).
#
# A Book is the parent record; each Flashcard points at exactly one Book
# through ``book_id``.  Both are frozen Pydantic v2 models.  Records that
# have not been persisted yet carry ``id=None``; the store returns copies
# with the assigned identifier filled in.
#
# Key invariants:
#   - ``normalized_title`` is the dedup key: at most one Book per value.
#   - ``slug`` is globally unique and stable once assigned.  Legacy rows
#     may still have ``slug=None`` until the resolver backfills them.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_AUTHOR = "Unknown"
DEFAULT_LANGUAGE = "English"


class Book(BaseModel):
    """A canonical book record, one per distinct normalized title."""

    model_config = ConfigDict(frozen=True)

    id: int | None = Field(default=None, description="Store-assigned identifier.")
    title: str = Field(description="Display title as corrected by the LLM.")
    author: str = Field(default=DEFAULT_AUTHOR, description="Display author name.")
    normalized_title: str = Field(description="Lower-cased, punctuation-stripped dedup key.")
    slug: str | None = Field(default=None, description="URL-safe unique public identifier.")
    language: str = Field(default=DEFAULT_LANGUAGE, description="Natural-language name of the book's language.")
    created_at: str | None = Field(default=None, description="ISO-8601 creation timestamp (UTC).")


class FlashcardDraft(BaseModel):
    """A sanitized question/answer pair that is not yet bound to a book."""

    model_config = ConfigDict(frozen=True)

    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class Flashcard(BaseModel):
    """A persisted (or about-to-be-persisted) flashcard owned by one book."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    book_id: int
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    language: str = DEFAULT_LANGUAGE
    created_at: str | None = None


class BookPage(BaseModel):
    """One cursor page of books, newest identifier first."""

    model_config = ConfigDict(frozen=True)

    items: list[Book] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: int | None = Field(
        default=None,
        description="Pass as ``last_id`` to fetch the following page.",
    )


class FlashcardPage(BaseModel):
    """One cursor page of a book's flashcards, newest identifier first."""

    model_config = ConfigDict(frozen=True)

    items: list[Flashcard] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: int | None = None


class BackfillReport(BaseModel):
    """Outcome of one offline identity backfill over every book."""

    model_config = ConfigDict(frozen=True)

    scanned: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    skipped_book_ids: list[int] = Field(default_factory=list)
