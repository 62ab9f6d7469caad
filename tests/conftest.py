"""Shared pytest fixtures for the bookcards test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from bookcards.interfaces.llm_provider import ILLMProvider
from bookcards.providers.store.sqlite_book_store import SQLiteBookStore

# The fenced-JSON completion most providers return for the flashcard prompt.
FENCED_COMPLETION = (
    "```json\n"
    '{"title":"T","author":"A","language":"English",'
    '"flashcards":[{"question":"Q1","answer":"Answer: A1"}]}\n'
    "```"
)


def make_completion(
    title: str = "T",
    author: str = "A",
    cards: list[tuple[str, str]] | None = None,
    language: str = "English",
) -> str:
    """Build a fenced JSON completion for arbitrary metadata and cards."""
    import json

    cards = cards if cards is not None else [("Q1", "A1")]
    body = {
        "title": title,
        "author": author,
        "language": language,
        "flashcards": [{"question": q, "answer": a} for q, a in cards],
    }
    return f"```json\n{json.dumps(body)}\n```"


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Return a minimal configuration dict matching config/config.yaml."""
    return {
        "catalog": {
            "default_book_page_size": 5,
            "default_flashcard_page_size": 10,
            "max_page_size": 100,
            "max_random_books": 50,
        },
        "ingestion": {"min_title_length": 3},
    }


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider whose complete() returns the fenced-JSON completion.

    Override with ``mock_llm_provider.complete.return_value = "..."`` or
    ``mock_llm_provider.complete.side_effect = ...`` for specific tests.
    """
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.get_model_name.return_value = "mock-model"
    mock.is_available.return_value = True
    mock.validate_credentials = AsyncMock(return_value=True)
    mock.complete = AsyncMock(return_value=FENCED_COMPLETION)
    return mock


@pytest.fixture
async def book_store(tmp_path: Path) -> SQLiteBookStore:
    """A SQLiteBookStore backed by a fresh temporary database file."""
    store = SQLiteBookStore(db_path=tmp_path / "bookcards.db")
    await store.initialize()
    return store
