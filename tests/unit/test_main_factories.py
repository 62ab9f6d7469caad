"""Unit tests for the component factories and app factory in bookcards/main.py."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI

from bookcards.config.settings import Settings
from bookcards.utils.errors import ConfigurationError


# ======================================================================
# Shared helpers
# ======================================================================


def _settings(tmp_path: Path, **overrides) -> Settings:
    """Build Settings with no LLM configured and a throwaway database path."""
    defaults = {
        "llm_provider": "",
        "openai_api_key": "",
        "openai_base_url": "",
        "anthropic_api_key": "",
        "ollama_base_url": "",
        "book_db_path": str(tmp_path / "books.db"),
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# build_components
# ======================================================================


class TestBuildComponents:
    def test_full_wiring_with_llm(self, tmp_path: Path) -> None:
        from bookcards.main import build_components
        from bookcards.pipeline.orchestrator import IngestionPipeline
        from bookcards.providers.llm import OpenAILLMProvider

        components = build_components(_settings(tmp_path, openai_api_key="sk-test"))

        assert isinstance(components["llm_provider"], OpenAILLMProvider)
        assert isinstance(components["pipeline"], IngestionPipeline)
        assert components["book_store"].get_provider_name() == "sqlite_books"

    def test_catalog_without_llm(self, tmp_path: Path) -> None:
        from bookcards.main import build_components
        from bookcards.services.book_backfill import BookBackfill
        from bookcards.services.catalog_service import CatalogService

        components = build_components(_settings(tmp_path))

        assert components["llm_provider"] is None
        assert components["pipeline"] is None
        assert isinstance(components["catalog"], CatalogService)
        assert isinstance(components["backfill"], BookBackfill)

    def test_require_llm(self, tmp_path: Path) -> None:
        from bookcards.main import build_components

        with pytest.raises(ConfigurationError):
            build_components(_settings(tmp_path), require_llm=True)

    def test_pipeline_uses_settings(self, tmp_path: Path) -> None:
        from bookcards.main import build_components

        components = build_components(
            _settings(tmp_path, ollama_base_url="http://localhost:11434", llm_temperature=0.1)
        )

        assert components["llm_provider"].get_provider_name() == "ollama"
        assert components["pipeline"]._temperature == 0.1


# ======================================================================
# create_app
# ======================================================================


class TestCreateApp:
    def test_returns_fastapi(self) -> None:
        from bookcards.main import create_app

        application = create_app()
        assert isinstance(application, FastAPI)

    def test_routes_registered(self) -> None:
        from bookcards.main import create_app

        paths = {route.path for route in create_app().routes}
        assert "/api/v1/generate-flashcards" in paths
        assert "/api/v1/books/{slug}" in paths
        assert "/api/v1/health" in paths
