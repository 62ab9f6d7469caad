"""Pydantic request/response schemas for the bookcards API.

Defines the public contract for the REST endpoints: flashcard generation,
book and flashcard listing, slug lookup, random sampling and health.

Convention: request schemas end with "Request", response schemas end with
"Response".  Response schemas are built from domain models with
``model_validate(obj)`` (``from_attributes``).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerateFlashcardsRequest(BaseModel):
    """Body of ``POST /generate-flashcards``.

    ``title`` is deliberately untyped here: length and type are checked by
    the ingestion pipeline so that every bad title is reported as
    ``invalid_input`` with status 400.
    """

    title: Any = Field(default=None, description="Book title, at least 3 characters.")


class BookResponse(BaseModel):
    """A book as exposed to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    author: str
    slug: str | None = None
    language: str
    created_at: str | None = None


class FlashcardResponse(BaseModel):
    """A flashcard as exposed to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    book_id: int
    question: str
    answer: str
    language: str
    created_at: str | None = None


class GenerateFlashcardsResponse(BaseModel):
    """Result of one ingestion: the book's slug plus the cards just stored."""

    slug: str
    created: bool = Field(description="True when this request created the book.")
    book: BookResponse
    flashcards: list[FlashcardResponse]


class BookFeedResponse(BaseModel):
    """Cursor page of books, newest first."""

    items: list[BookResponse]
    has_more: bool
    next_cursor: int | None = Field(default=None, description="Pass as last_id for the next page.")


class FlashcardFeedResponse(BaseModel):
    """Cursor page of one book's flashcards, newest first."""

    book: BookResponse
    items: list[FlashcardResponse]
    has_more: bool
    next_cursor: int | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    llm_provider: str | None = None
    llm_model: str | None = None
    store: str | None = None
    llm_reachable: bool | None = None


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
