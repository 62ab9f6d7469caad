"""Text normalization utilities for generated flashcards and book titles.

This module handles three distinct normalization concerns:

1. **Field sanitizing** -- LLMs often echo the labels they were shown
   ("Answer: ...", "Question: ...") back into the values.  The sanitizers
   strip those labels and surrounding whitespace.  Every sanitizer is
   idempotent, so cleaning already-clean text is a no-op.

2. **Title keys** -- :func:`normalize_title` folds a display title into the
   dedup key stored as ``Book.normalized_title``: punctuation removed,
   lower-cased, whitespace collapsed.  "The Hobbit!!" and " the hobbit"
   share one key.

3. **Slugs** -- :func:`make_slug` builds the URL-safe public identifier
   from a normalized title and an author via python-slugify.

All functions are pure and raise :class:`InvalidInputError` for non-text
input.
"""

from __future__ import annotations

import re
from typing import Any

from slugify import slugify

from bookcards.utils.errors import InvalidInputError

# One or more leading "Answer:" labels, in any case, with optional spacing.
# Repeated labels ("Answer: Answer: x") are consumed in one pass so the
# sanitizer stays idempotent.
_ANSWER_PREFIX = re.compile(r"^\s*(?:answer\s*:\s*)+", re.IGNORECASE)
_QUESTION_PREFIX = re.compile(r"^\s*(?:question\s*:\s*)+", re.IGNORECASE)

# Anything that is neither a word character nor whitespace.
_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise InvalidInputError(
            message=f"{field} must be a string, got {type(value).__name__}"
        )
    return value


def sanitize_answer(text: str) -> str:
    """Remove leading ``Answer:`` labels and trim whitespace.

    Args:
        text: Raw answer text from the model.

    Returns:
        The cleaned answer.  ``sanitize_answer(sanitize_answer(x))`` always
        equals ``sanitize_answer(x)``.
    """
    text = _require_text(text, "answer")
    return _ANSWER_PREFIX.sub("", text).strip()


def sanitize_question(text: str) -> str:
    """Remove leading ``Question:`` labels and trim whitespace."""
    text = _require_text(text, "question")
    return _QUESTION_PREFIX.sub("", text).strip()


def clean_text(text: str) -> str:
    """Trim and collapse internal whitespace of a metadata field."""
    text = _require_text(text, "text")
    return _WHITESPACE.sub(" ", text).strip()


def normalize_title(text: str) -> str:
    """Fold a book title into its dedup key.

    Strips every character that is not a word character or whitespace,
    lower-cases the result, and collapses runs of whitespace so that
    "Harry Potter - Book 1" and "harry potter book 1" match.

    Args:
        text: Display title.

    Returns:
        The normalized title key (may be empty for punctuation-only input).
    """
    text = _require_text(text, "title")
    stripped = _NON_WORD.sub("", text).lower()
    return _WHITESPACE.sub(" ", stripped).strip()


def make_slug(normalized_title: str, author: str) -> str:
    """Build the public slug for a book: ``slugify("<title> by <author>")``.

    Args:
        normalized_title: The book's normalized title key.
        author: Display author name.

    Returns:
        A lower-case, hyphen-separated ASCII slug.
    """
    normalized_title = _require_text(normalized_title, "normalized_title")
    author = _require_text(author, "author")
    return slugify(f"{normalized_title} by {author}", lowercase=True)
