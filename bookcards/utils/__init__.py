"""Utility modules for bookcards.

- **errors** -- exception hierarchy rooted at BookcardsError; each carries a
  stable ``kind`` and HTTP status for the API layer.
- **logging** -- structlog setup (console in development, JSON in production).
- **text_normalizer** -- answer/question sanitizers, title dedup keys, slugs.
"""

from bookcards.utils.errors import (
    BookcardsError,
    CompletionFailedError,
    ConfigurationError,
    DuplicateKeyError,
    DuplicateSlugError,
    EmptyResultError,
    ExtractionFailedError,
    InvalidInputError,
    LLMError,
    PersistenceFailedError,
    RateLimitError,
)
from bookcards.utils.logging import configure_logging, get_logger, log_context
from bookcards.utils.text_normalizer import (
    clean_text,
    make_slug,
    normalize_title,
    sanitize_answer,
    sanitize_question,
)

__all__ = [
    "BookcardsError",
    "CompletionFailedError",
    "ConfigurationError",
    "DuplicateKeyError",
    "DuplicateSlugError",
    "EmptyResultError",
    "ExtractionFailedError",
    "InvalidInputError",
    "LLMError",
    "PersistenceFailedError",
    "RateLimitError",
    "clean_text",
    "configure_logging",
    "get_logger",
    "log_context",
    "make_slug",
    "normalize_title",
    "sanitize_answer",
    "sanitize_question",
]
