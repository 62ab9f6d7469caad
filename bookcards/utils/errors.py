"""Custom exception hierarchy for bookcards.

All application exceptions inherit from :class:`BookcardsError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "openai", "sqlite_books") caused the failure.  Every
class also declares a stable machine-readable ``kind`` and the HTTP status
the API layer reports for it.

The hierarchy is organized by ingestion stage:

    BookcardsError  (base -- catch-all for any bookcards error)
    +-- InvalidInputError        (caller-supplied input rejected)
    +-- CompletionFailedError    (completion collaborator unusable)
    +-- ExtractionFailedError    (no extraction strategy produced cards)
    |   +-- EmptyResultError     (parsed fine, zero usable cards)
    +-- DuplicateKeyError        (unique index violated on insert)
    |   +-- DuplicateSlugError   (two titles slugify identically)
    +-- PersistenceFailedError   (any other document-store failure)
    +-- LLMError                 (provider-level API call failure)
    |   +-- RateLimitError       (provider rate-limit exceeded)
    +-- ConfigurationError       (startup / missing config)

Callers can handle errors at exactly the right level -- e.g. recover from
DuplicateKeyError by re-reading the book, or surface PersistenceFailedError
as a server error.
"""

from __future__ import annotations


class BookcardsError(Exception):
    """Base exception for all bookcards errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    kind: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Client errors
# ---------------------------------------------------------------------------

class InvalidInputError(BookcardsError):
    """Raised when caller-supplied input fails validation (never retried)."""

    kind = "invalid_input"
    status_code = 400

    def __init__(
        self,
        message: str = "Invalid input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Completion and extraction errors
# ---------------------------------------------------------------------------

class CompletionFailedError(BookcardsError):
    """Raised when the completion collaborator returned nothing usable.

    Covers network errors, timeouts, rate limits and empty bodies.  The
    collaborator's diagnostic text is kept in ``message``.
    """

    kind = "completion_failed"
    status_code = 502

    def __init__(
        self,
        message: str = "Completion request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionFailedError(BookcardsError):
    """Raised when no extraction strategy recovered a usable flashcard list."""

    kind = "extraction_failed"
    status_code = 502

    def __init__(
        self,
        message: str = "Could not extract flashcards from the completion",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyResultError(ExtractionFailedError):
    """Raised when extraction finished without a single usable flashcard."""

    def __init__(
        self,
        message: str = "Completion contained no usable flashcards",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence errors
# ---------------------------------------------------------------------------

class DuplicateKeyError(BookcardsError):
    """Raised when an insert violates a unique index.

    ``field`` names the column whose uniqueness constraint fired
    (``"slug"`` or ``"normalized_title"``) when the store can tell.
    """

    kind = "duplicate_key"
    status_code = 500

    def __init__(
        self,
        message: str = "Duplicate key",
        provider_name: str | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._field = field

    @property
    def field(self) -> str | None:
        return self._field


class DuplicateSlugError(DuplicateKeyError):
    """Raised when a new book's slug is already owned by a different book."""

    kind = "duplicate_slug"

    def __init__(
        self,
        message: str = "Slug already belongs to another book",
        provider_name: str | None = None,
        field: str | None = "slug",
    ) -> None:
        super().__init__(message=message, provider_name=provider_name, field=field)


class PersistenceFailedError(BookcardsError):
    """Raised when the document store rejects or cannot complete a write."""

    kind = "persistence_failed"
    status_code = 500

    def __init__(
        self,
        message: str = "Document store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Provider / configuration errors
# ---------------------------------------------------------------------------

class LLMError(BookcardsError):
    """Raised when an LLM API call fails or returns an empty response."""

    kind = "completion_failed"
    status_code = 502

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(LLMError):
    """Raised when a provider rejects the call with a rate-limit response."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(BookcardsError):
    """Raised when configuration is invalid or missing at startup."""

    kind = "configuration_error"

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
