"""Unit tests for IngestionPipeline: phases, failure exits, cancellation."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bookcards.interfaces.llm_provider import ILLMProvider
from bookcards.models.ingestion import IngestionPhase, IngestionState
from bookcards.pipeline.orchestrator import IngestionPipeline, build_prompt
from bookcards.providers.store.sqlite_book_store import SQLiteBookStore
from bookcards.utils.errors import (
    CompletionFailedError,
    DuplicateSlugError,
    ExtractionFailedError,
    InvalidInputError,
    LLMError,
    PersistenceFailedError,
)
from tests.conftest import FENCED_COMPLETION, make_completion


class TestBuildPrompt:
    def test_deterministic(self) -> None:
        assert build_prompt("Atomic Habits") == build_prompt("Atomic Habits")

    def test_mentions_title_and_format(self) -> None:
        prompt = build_prompt("Atomic Habits")
        assert '"Atomic Habits"' in prompt
        assert '"flashcards"' in prompt
        assert '"question"' in prompt


class TestIngestionPipeline:
    @pytest.fixture()
    def transitions(self) -> list[IngestionState]:
        return []

    @pytest.fixture()
    def pipeline(
        self,
        mock_llm_provider: ILLMProvider,
        book_store: SQLiteBookStore,
        transitions: list[IngestionState],
    ) -> IngestionPipeline:
        return IngestionPipeline(
            llm_provider=mock_llm_provider,
            store=book_store,
            on_transition=transitions.append,
        )

    # ------------------------------------------------------------------
    # Happy path
    # ------------------------------------------------------------------

    async def test_ingest_persists_book_and_cards(
        self, pipeline: IngestionPipeline, book_store: SQLiteBookStore
    ) -> None:
        result = await pipeline.ingest("atomic habits")

        assert result.slug == "t-by-a"
        assert result.created is True
        assert result.book.title == "T"
        assert result.book.author == "A"
        assert len(result.flashcards) == 1
        card = result.flashcards[0]
        assert (card.question, card.answer) == ("Q1", "A1")
        assert card.book_id == result.book.id
        assert card.id is not None
        assert await book_store.count_flashcards(result.book.id) == 1

    async def test_phase_sequence(
        self, pipeline: IngestionPipeline, transitions: list[IngestionState]
    ) -> None:
        await pipeline.ingest("atomic habits")

        assert [s.phase for s in transitions] == [
            IngestionPhase.RECEIVED,
            IngestionPhase.PROMPTED,
            IngestionPhase.COMPLETION_PENDING,
            IngestionPhase.EXTRACTED,
            IngestionPhase.RESOLVED,
            IngestionPhase.PERSISTED,
        ]
        final = transitions[-1]
        assert final.raw_completion == FENCED_COMPLETION
        assert final.completed_at is not None
        assert final.error_kind is None
        assert [s.phase.is_terminal for s in transitions] == [False] * 5 + [True]
        assert all(s.completed_at is None for s in transitions[:-1])

    async def test_single_completion_call(
        self, pipeline: IngestionPipeline, mock_llm_provider: MagicMock
    ) -> None:
        await pipeline.ingest("  atomic   habits ")

        mock_llm_provider.complete.assert_awaited_once()
        kwargs = mock_llm_provider.complete.call_args.kwargs
        assert kwargs["user_prompt"] == build_prompt("atomic habits")
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 4000

    async def test_requested_title_used_without_metadata(
        self, pipeline: IngestionPipeline, mock_llm_provider: MagicMock
    ) -> None:
        mock_llm_provider.complete.return_value = '[{"question":"Q1","answer":"A1"}]'

        result = await pipeline.ingest("Atomic Habits")

        assert result.book.title == "Atomic Habits"
        assert result.book.author == "Unknown"
        assert result.book.language == "English"
        assert result.slug == "atomic-habits-by-unknown"

    async def test_repeat_ingest_appends_to_same_book(
        self, pipeline: IngestionPipeline, book_store: SQLiteBookStore
    ) -> None:
        first = await pipeline.ingest("atomic habits")
        second = await pipeline.ingest("atomic habits")

        assert second.created is False
        assert second.book.id == first.book.id
        assert await book_store.count_books() == 1
        assert await book_store.count_flashcards(first.book.id) == 2

    async def test_concurrent_ingests_share_one_book(
        self, pipeline: IngestionPipeline, book_store: SQLiteBookStore
    ) -> None:
        results = await asyncio.gather(
            pipeline.ingest("atomic habits"), pipeline.ingest("Atomic Habits!")
        )

        assert sorted(r.created for r in results) == [False, True]
        assert results[0].book.id == results[1].book.id
        assert await book_store.count_books() == 1

    async def test_cards_carry_book_language(
        self, pipeline: IngestionPipeline, mock_llm_provider: MagicMock
    ) -> None:
        mock_llm_provider.complete.return_value = make_completion(
            title="Der Prozess", author="Franz Kafka", language="German"
        )

        result = await pipeline.ingest("the trial")

        assert result.book.language == "German"
        assert all(c.language == "German" for c in result.flashcards)

    # ------------------------------------------------------------------
    # Failure exits
    # ------------------------------------------------------------------

    @pytest.mark.parametrize("title", ["ab", "   a ", "", 42, None, "?!?!"])
    async def test_invalid_title_never_calls_provider(
        self,
        pipeline: IngestionPipeline,
        mock_llm_provider: MagicMock,
        transitions: list[IngestionState],
        title: Any,
    ) -> None:
        with pytest.raises(InvalidInputError):
            await pipeline.ingest(title)

        mock_llm_provider.complete.assert_not_awaited()
        assert transitions[-1].phase == IngestionPhase.VALIDATION_FAILED
        assert transitions[-1].error_kind == "invalid_input"

    async def test_provider_error_is_completion_failure(
        self,
        pipeline: IngestionPipeline,
        mock_llm_provider: MagicMock,
        book_store: SQLiteBookStore,
        transitions: list[IngestionState],
    ) -> None:
        mock_llm_provider.complete.side_effect = LLMError(
            message="upstream 500", provider_name="mock-llm"
        )

        with pytest.raises(CompletionFailedError) as exc_info:
            await pipeline.ingest("atomic habits")

        assert exc_info.value.provider_name == "mock-llm"
        assert isinstance(exc_info.value.__cause__, LLMError)
        assert transitions[-1].phase == IngestionPhase.COMPLETION_FAILED
        assert transitions[-1].phase.is_terminal
        assert transitions[-1].completed_at is not None
        assert await book_store.count_books() == 0

    async def test_empty_completion(
        self, pipeline: IngestionPipeline, mock_llm_provider: MagicMock
    ) -> None:
        mock_llm_provider.complete.return_value = "   "

        with pytest.raises(CompletionFailedError):
            await pipeline.ingest("atomic habits")

    async def test_unparseable_completion_persists_nothing(
        self,
        pipeline: IngestionPipeline,
        mock_llm_provider: MagicMock,
        book_store: SQLiteBookStore,
        transitions: list[IngestionState],
    ) -> None:
        mock_llm_provider.complete.return_value = "I cannot help with that."

        with pytest.raises(ExtractionFailedError):
            await pipeline.ingest("atomic habits")

        assert transitions[-1].phase == IngestionPhase.EXTRACTION_FAILED
        assert transitions[-1].raw_completion == "I cannot help with that."
        assert await book_store.count_books() == 0

    async def test_card_insert_failure(
        self,
        pipeline: IngestionPipeline,
        book_store: SQLiteBookStore,
        transitions: list[IngestionState],
    ) -> None:
        with patch.object(
            book_store,
            "insert_flashcards",
            AsyncMock(side_effect=PersistenceFailedError(message="disk full")),
        ):
            with pytest.raises(PersistenceFailedError):
                await pipeline.ingest("atomic habits")

        assert transitions[-1].phase == IngestionPhase.PERSISTENCE_FAILED
        assert await book_store.count_books() == 1

    async def test_slug_collision_is_persistence_failure(
        self,
        pipeline: IngestionPipeline,
        mock_llm_provider: MagicMock,
        transitions: list[IngestionState],
    ) -> None:
        mock_llm_provider.complete.return_value = make_completion(title="Café", author="A")
        await pipeline.ingest("cafe book")

        mock_llm_provider.complete.return_value = make_completion(title="Cafe", author="A")
        with pytest.raises(DuplicateSlugError):
            await pipeline.ingest("cafe book")

        assert transitions[-1].phase == IngestionPhase.PERSISTENCE_FAILED
        assert transitions[-1].error_kind == "duplicate_slug"

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def test_caller_cancellation_does_not_abort_pipeline(
        self,
        pipeline: IngestionPipeline,
        mock_llm_provider: MagicMock,
        book_store: SQLiteBookStore,
    ) -> None:
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_complete(**kwargs: Any) -> str:
            started.set()
            await release.wait()
            return FENCED_COMPLETION

        mock_llm_provider.complete.side_effect = slow_complete

        caller = asyncio.ensure_future(pipeline.ingest("atomic habits"))
        await started.wait()
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        release.set()
        await pipeline.drain()

        book = await book_store.find_book_by_slug("t-by-a")
        assert book is not None
        assert await book_store.count_flashcards(book.id) == 1
