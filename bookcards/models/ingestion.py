"""Ingestion pipeline state models.

Defines the per-request state machine for turning a title into persisted
flashcards.  ``IngestionState`` is frozen; the orchestrator advances it by
producing new copies via ``model_copy(update={...})``, so every
intermediate state can be logged as-is.

    RECEIVED -> PROMPTED -> COMPLETION_PENDING -> EXTRACTED -> RESOLVED -> PERSISTED

with failure exits VALIDATION_FAILED, COMPLETION_FAILED, EXTRACTION_FAILED
and PERSISTENCE_FAILED reachable from the matching stage.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from bookcards.models.book import Book, Flashcard, FlashcardDraft


class IngestionPhase(str, Enum):  # noqa: UP042
    """Phases of one ingestion request."""

    RECEIVED = "RECEIVED"
    PROMPTED = "PROMPTED"
    COMPLETION_PENDING = "COMPLETION_PENDING"
    EXTRACTED = "EXTRACTED"
    RESOLVED = "RESOLVED"
    PERSISTED = "PERSISTED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    COMPLETION_FAILED = "COMPLETION_FAILED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_PHASES


_TERMINAL_PHASES = frozenset(
    {
        IngestionPhase.PERSISTED,
        IngestionPhase.VALIDATION_FAILED,
        IngestionPhase.COMPLETION_FAILED,
        IngestionPhase.EXTRACTION_FAILED,
        IngestionPhase.PERSISTENCE_FAILED,
    }
)


class ExtractedBatch(BaseModel):
    """Structured data recovered from one raw completion.

    ``title``, ``author`` and ``language`` are present only when the
    response format carried them.  ``strategy`` names the extraction
    strategy that produced the batch.
    """

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    author: str | None = None
    language: str | None = None
    flashcards: list[FlashcardDraft] = Field(default_factory=list)
    strategy: str = ""


class ResolvedBook(BaseModel):
    """Outcome of identity resolution: the book and whether it was just created."""

    model_config = ConfigDict(frozen=True)

    book: Book
    created: bool


class IngestionState(BaseModel):
    """Snapshot of one ingestion request as it moves through the phases."""

    model_config = ConfigDict(frozen=True)

    requested_title: str
    phase: IngestionPhase = IngestionPhase.RECEIVED
    prompt: str | None = None
    raw_completion: str | None = None
    extracted: ExtractedBatch | None = None
    resolved: ResolvedBook | None = None
    flashcards: list[Flashcard] = Field(default_factory=list)
    error_kind: str | None = None
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    completed_at: datetime | None = None


class IngestionResult(BaseModel):
    """What a successful ingestion hands back to the caller."""

    model_config = ConfigDict(frozen=True)

    slug: str
    book: Book
    created: bool
    flashcards: list[Flashcard]
