"""bookcards FastAPI application entry point.

Wires together the providers, services and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

Also exposes :func:`build_components` for the CLI, which runs the same
pipeline outside the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from bookcards import __version__
from bookcards.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from bookcards.api.routes import router as api_router
from bookcards.config.loader import load_config
from bookcards.config.settings import Settings
from bookcards.interfaces.book_store import IBookStore
from bookcards.interfaces.llm_provider import ILLMProvider
from bookcards.pipeline.orchestrator import IngestionPipeline
from bookcards.providers.llm import build_llm_provider
from bookcards.providers.store.sqlite_book_store import SQLiteBookStore
from bookcards.services.book_backfill import BookBackfill
from bookcards.services.catalog_service import CatalogService
from bookcards.services.identity_resolver import IdentityResolver
from bookcards.services.response_extractor import ResponseExtractor
from bookcards.utils.errors import ConfigurationError
from bookcards.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Dependency assembly
# ---------------------------------------------------------------------------


def _build_pipeline(
    llm: ILLMProvider,
    store: IBookStore,
    app_settings: Settings,
    app_config: dict[str, Any],
) -> IngestionPipeline:
    ingestion = app_config.get("ingestion", {})
    return IngestionPipeline(
        llm_provider=llm,
        store=store,
        extractor=ResponseExtractor(),
        resolver=IdentityResolver(store),
        temperature=app_settings.llm_temperature,
        max_tokens=app_settings.llm_max_tokens,
        min_title_length=int(ingestion.get("min_title_length", 3)),
    )


def _build_all(
    app_settings: Settings,
    app_config: dict[str, Any],
    *,
    require_llm: bool = False,
) -> dict[str, Any]:
    """Construct every provider and service.

    Without a configured LLM provider the read-only catalog still works;
    ``pipeline`` is then ``None`` and the generation route answers 503.
    With ``require_llm=True`` the :class:`ConfigurationError` propagates.
    """
    store = SQLiteBookStore(db_path=app_settings.book_db_path)

    llm: ILLMProvider | None
    try:
        llm = build_llm_provider(app_settings)
    except ConfigurationError as exc:
        if require_llm:
            raise
        _logger.warning("llm_provider_unavailable", error=str(exc))
        llm = None

    pipeline = _build_pipeline(llm, store, app_settings, app_config) if llm else None

    return {
        "book_store": store,
        "llm_provider": llm,
        "pipeline": pipeline,
        "catalog": CatalogService(store, config=app_config),
        "backfill": BookBackfill(store),
    }


def build_components(
    custom_settings: Settings | None = None,
    *,
    require_llm: bool = False,
) -> dict[str, Any]:
    """Construct all services for one-shot use outside the web server.

    Parameters
    ----------
    custom_settings:
        Application settings.  Uses module-level ``settings`` if not provided.
    require_llm:
        Raise :class:`ConfigurationError` when no LLM provider is configured.
    """
    app_settings = custom_settings or settings
    app_config = config if custom_settings is None else load_config(settings=app_settings)
    return _build_all(app_settings, app_config, require_llm=require_llm)


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise providers and services on startup, drain ingestions on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["book_store"].initialize()

    llm = components["llm_provider"]
    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        llm_provider=llm.get_provider_name() if llm else None,
        store=components["book_store"].get_provider_name(),
    )

    yield

    pipeline: IngestionPipeline | None = components["pipeline"]
    if pipeline is not None:
        await pipeline.drain()
    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="bookcards API",
        version=__version__,
        description=(
            "Send a book title, get back LLM-generated study flashcards stored "
            "against one canonical book record, then browse books and cards."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=settings.get_cors_origins())

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "bookcards.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
