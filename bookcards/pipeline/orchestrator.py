"""Ingestion orchestrator: one book title in, persisted flashcards out.

Coordinates prompt construction, the single completion call, response
extraction, identity resolution and the flashcard batch insert.  Each step
advances a frozen :class:`IngestionState` via ``model_copy`` so every
intermediate state can be logged or handed to an observer as-is.

    RECEIVED -> PROMPTED -> COMPLETION_PENDING -> EXTRACTED -> RESOLVED -> PERSISTED

Failure exits:
    VALIDATION_FAILED   bad title; the completion provider is never called
    COMPLETION_FAILED   provider error or empty completion; nothing persisted
    EXTRACTION_FAILED   no strategy recovered cards; nothing persisted
    PERSISTENCE_FAILED  store rejected the book or the card batch

Steps run strictly in sequence.  :meth:`IngestionPipeline.ingest` runs the
whole sequence in its own task and shields it, so a caller that goes away
mid-flight (client disconnect) does not abort the pipeline between creating
a book and storing its cards.  Nothing is retried.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import structlog

from bookcards.interfaces.book_store import IBookStore
from bookcards.interfaces.llm_provider import ILLMProvider
from bookcards.models.book import Flashcard
from bookcards.models.ingestion import (
    ExtractedBatch,
    IngestionPhase,
    IngestionResult,
    IngestionState,
    ResolvedBook,
)
from bookcards.services.identity_resolver import IdentityResolver
from bookcards.services.response_extractor import ResponseExtractor
from bookcards.utils.errors import (
    BookcardsError,
    CompletionFailedError,
    ExtractionFailedError,
    InvalidInputError,
    LLMError,
    PersistenceFailedError,
)
from bookcards.utils.logging import get_logger, log_context
from bookcards.utils.text_normalizer import clean_text, normalize_title

_SYSTEM_PROMPT = (
    "You are a study assistant that writes flashcards about books.  You "
    "always answer with a single JSON object and nothing else: no markdown "
    "fences, no commentary."
)

_FAILURE_PHASES: dict[type[BookcardsError], IngestionPhase] = {
    InvalidInputError: IngestionPhase.VALIDATION_FAILED,
    CompletionFailedError: IngestionPhase.COMPLETION_FAILED,
    ExtractionFailedError: IngestionPhase.EXTRACTION_FAILED,
}

TransitionObserver = Callable[[IngestionState], Any]


def build_prompt(title: str) -> str:
    """Return the user prompt for *title*; identical input gives identical output."""
    return (
        f'Create study flashcards for the book "{title}".\n'
        "\n"
        "1. Correct the spelling of the book title and give its author.\n"
        "2. Report the language the book was written in (e.g. English).\n"
        "3. Write flashcards that test the key ideas of the book.\n"
        "\n"
        "Return only a JSON object in exactly this format:\n"
        "{\n"
        '  "title": "<corrected title>",\n'
        '  "author": "<author>",\n'
        '  "language": "<language>",\n'
        '  "flashcards": [\n'
        '    {"question": "<question>", "answer": "<answer>"}\n'
        "  ]\n"
        "}"
    )


class IngestionPipeline:
    """Turns a requested title into a resolved Book plus persisted flashcards.

    All collaborators are injected; the pipeline never builds its own
    provider or store.  ``on_transition`` (optional) is called with every
    new :class:`IngestionState`, including failure states.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        store: IBookStore,
        extractor: ResponseExtractor | None = None,
        resolver: IdentityResolver | None = None,
        *,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        min_title_length: int = 3,
        on_transition: TransitionObserver | None = None,
    ) -> None:
        self._llm = llm_provider
        self._store = store
        self._extractor = extractor or ResponseExtractor()
        self._resolver = resolver or IdentityResolver(store)
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._min_title_length = min_title_length
        self._on_transition = on_transition
        self._inflight: set[asyncio.Future[IngestionResult]] = set()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(self, title: str) -> IngestionResult:
        """Run the pipeline for *title*, surviving cancellation of the caller.

        If the awaiting coroutine is cancelled, the caller sees
        ``CancelledError`` but the pipeline task keeps running until the
        cards are persisted (or a step fails and logs why).

        Raises
        ------
        InvalidInputError
            Title is not a string of at least ``min_title_length`` characters.
        CompletionFailedError
            The provider failed or returned nothing.
        ExtractionFailedError
            No flashcards could be recovered from the completion.
        DuplicateSlugError
            A different book already owns the computed slug.
        PersistenceFailedError
            The store could not save the book or its cards.
        """
        task = asyncio.ensure_future(self.run(title))
        self._inflight.add(task)
        task.add_done_callback(self._reap)
        return await asyncio.shield(task)

    def _reap(self, task: asyncio.Future[IngestionResult]) -> None:
        self._inflight.discard(task)
        # Mark the outcome retrieved; a caller that was cancelled never awaits it.
        if not task.cancelled():
            task.exception()

    async def drain(self) -> None:
        """Wait for every in-flight ingestion, e.g. before shutdown."""
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def run(self, title: str) -> IngestionResult:
        """Run every step in order in the current task (no shielding)."""
        requested = title if isinstance(title, str) else repr(title)
        with log_context(requested_title=requested):
            state = IngestionState(requested_title=requested)
            self._notify(state)
            self._logger.info("ingestion_started")
            try:
                return await self._run_steps(state, title)
            except BookcardsError as exc:
                self._logger.warning(
                    "ingestion_failed",
                    error_kind=exc.kind,
                    error=str(exc),
                )
                raise

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _run_steps(self, state: IngestionState, title: Any) -> IngestionResult:
        # --- RECEIVED: validate ---
        try:
            requested = self._validate(title)
        except InvalidInputError as exc:
            self._fail(state, exc)
            raise

        # --- PROMPTED ---
        prompt = build_prompt(requested)
        state = self._advance(state, IngestionPhase.PROMPTED, prompt=prompt)

        # --- COMPLETION_PENDING: exactly one provider call ---
        state = self._advance(state, IngestionPhase.COMPLETION_PENDING)
        try:
            raw = await self._complete(prompt)
        except CompletionFailedError as exc:
            self._fail(state, exc)
            raise
        state = state.model_copy(update={"raw_completion": raw})

        # --- EXTRACTED ---
        try:
            batch = self._extractor.extract(raw, requested_title=requested)
        except ExtractionFailedError as exc:
            self._fail(state, exc)
            raise
        state = self._advance(state, IngestionPhase.EXTRACTED, extracted=batch)

        # --- RESOLVED ---
        try:
            resolved = await self._resolve(batch, requested)
        except BookcardsError as exc:
            self._fail(state, exc)
            raise
        state = self._advance(state, IngestionPhase.RESOLVED, resolved=resolved)

        # --- PERSISTED ---
        try:
            cards = await self._persist_cards(batch, resolved)
        except PersistenceFailedError as exc:
            self._fail(state, exc)
            raise
        state = self._advance(state, IngestionPhase.PERSISTED, flashcards=cards)

        book = resolved.book
        self._logger.info(
            "ingestion_completed",
            slug=book.slug,
            book_id=book.id,
            created=resolved.created,
            flashcards=len(cards),
            strategy=batch.strategy,
        )
        return IngestionResult(
            slug=book.slug or "",
            book=book,
            created=resolved.created,
            flashcards=cards,
        )

    def _validate(self, title: Any) -> str:
        if not isinstance(title, str):
            raise InvalidInputError(
                message=f"title must be a string, got {type(title).__name__}"
            )
        cleaned = clean_text(title)
        if len(cleaned) < self._min_title_length:
            raise InvalidInputError(
                message=f"title must be at least {self._min_title_length} characters long"
            )
        if not normalize_title(cleaned):
            raise InvalidInputError(message="title must contain letters or digits")
        return cleaned

    async def _complete(self, prompt: str) -> str:
        provider = self._llm.get_provider_name()
        try:
            raw = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except LLMError as exc:
            raise CompletionFailedError(
                message=exc.message,
                provider_name=exc.provider_name or provider,
            ) from exc

        if not isinstance(raw, str) or not raw.strip():
            raise CompletionFailedError(
                message="Completion provider returned an empty response",
                provider_name=provider,
            )
        self._logger.info(
            "completion_received",
            provider=provider,
            model=self._llm.get_model_name(),
            chars=len(raw),
        )
        return raw

    async def _resolve(self, batch: ExtractedBatch, requested: str) -> ResolvedBook:
        # The model's corrected title wins unless it carries nothing indexable.
        title = batch.title if batch.title and normalize_title(batch.title) else requested
        return await self._resolver.resolve(title, batch.author, batch.language)

    async def _persist_cards(self, batch: ExtractedBatch, resolved: ResolvedBook) -> list[Flashcard]:
        book = resolved.book
        cards = [
            Flashcard(
                book_id=book.id,
                question=draft.question,
                answer=draft.answer,
                language=book.language,
            )
            for draft in batch.flashcards
        ]
        try:
            stored = await self._store.insert_flashcards(cards)
        except BookcardsError as exc:
            # The book row stays; make the orphan visible.
            self._logger.error(
                "flashcards_persist_failed",
                book_id=book.id,
                slug=book.slug,
                book_created=resolved.created,
                count=len(cards),
                error=str(exc),
            )
            if isinstance(exc, PersistenceFailedError):
                raise
            raise PersistenceFailedError(
                message=f"Could not store flashcards for book {book.id}: {exc.message}",
                provider_name=exc.provider_name,
            ) from exc

        self._logger.info("flashcards_persisted", book_id=book.id, count=len(stored))
        return stored

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _advance(self, state: IngestionState, phase: IngestionPhase, **update: Any) -> IngestionState:
        if phase.is_terminal:
            update.setdefault("completed_at", datetime.now(tz=timezone.utc))  # noqa: UP017
        state = state.model_copy(update={"phase": phase, **update})
        self._logger.debug("ingestion_phase", phase=phase.value)
        self._notify(state)
        return state

    def _fail(self, state: IngestionState, exc: BookcardsError) -> IngestionState:
        phase = next(
            (p for cls, p in _FAILURE_PHASES.items() if isinstance(exc, cls)),
            IngestionPhase.PERSISTENCE_FAILED,
        )
        return self._advance(state, phase, error_kind=exc.kind)

    def _notify(self, state: IngestionState) -> None:
        if self._on_transition is not None:
            self._on_transition(state)
