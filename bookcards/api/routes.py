"""FastAPI routes for the bookcards service.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.  Application errors raised by
the services propagate to :class:`ErrorHandlingMiddleware`, which renders
them as ``{"error": kind, "detail": message}``.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                                   Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/generate-flashcards                POST    Title -> LLM -> book + cards
# /api/v1/flashcards?book_id&page&limit      GET     Offset page of a book's cards
# /api/v1/books?page&limit                   GET     Offset page of books, newest first
# /api/v1/books/feed?last_id&limit           GET     Cursor page of books
# /api/v1/books/random?count                 GET     Random sample of books
# /api/v1/books/{slug}                       GET     Book by slug (404 if unknown)
# /api/v1/books/{slug}/flashcards            GET     Cursor page of a book's cards
# /api/v1/health?deep                        GET     Health check + provider names
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from bookcards import __version__
from bookcards.api.schemas import (
    BookFeedResponse,
    BookResponse,
    ErrorResponse,
    FlashcardFeedResponse,
    FlashcardResponse,
    GenerateFlashcardsRequest,
    GenerateFlashcardsResponse,
    HealthResponse,
)
from bookcards.pipeline.orchestrator import IngestionPipeline
from bookcards.services.catalog_service import CatalogService
from bookcards.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    500: {"model": ErrorResponse, "description": "Store failure"},
}


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_pipeline(request: Request) -> IngestionPipeline:
    """Return the ingestion pipeline from application state."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Ingestion pipeline not available")
    return pipeline


def _get_catalog(request: Request) -> CatalogService:
    """Return the catalog query service from application state."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(status_code=503, detail="Catalog service not available")
    return catalog


PipelineDep = Annotated[IngestionPipeline, Depends(_get_pipeline)]
CatalogDep = Annotated[CatalogService, Depends(_get_catalog)]


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/generate-flashcards",
    response_model=GenerateFlashcardsResponse,
    responses={
        **_ERROR_RESPONSES,
        502: {"model": ErrorResponse, "description": "Completion or extraction failed"},
    },
    summary="Generate and store flashcards for a book title",
)
async def generate_flashcards(
    body: GenerateFlashcardsRequest,
    pipeline: PipelineDep,
) -> GenerateFlashcardsResponse:
    """Run the ingestion pipeline once for ``body.title``.

    The pipeline runs in a shielded task: if the client disconnects, the
    book and its cards are still stored.
    """
    result = await pipeline.ingest(body.title)
    return GenerateFlashcardsResponse(
        slug=result.slug,
        created=result.created,
        book=BookResponse.model_validate(result.book),
        flashcards=[FlashcardResponse.model_validate(c) for c in result.flashcards],
    )


# ---------------------------------------------------------------------------
# Catalog reads
# ---------------------------------------------------------------------------


@router.get(
    "/flashcards",
    response_model=list[FlashcardResponse],
    responses=_ERROR_RESPONSES,
    summary="List a book's flashcards (offset pagination)",
)
async def list_flashcards(
    catalog: CatalogDep,
    book_id: int,
    page: int = 1,
    limit: Annotated[int | None, Query(description="Defaults to 10")] = None,
) -> list[FlashcardResponse]:
    cards = await catalog.list_flashcards(book_id, page=page, limit=limit)
    return [FlashcardResponse.model_validate(c) for c in cards]


@router.get(
    "/books",
    response_model=list[BookResponse],
    responses=_ERROR_RESPONSES,
    summary="List books, newest first (offset pagination)",
)
async def list_books(
    catalog: CatalogDep,
    page: int = 1,
    limit: Annotated[int | None, Query(description="Defaults to 5")] = None,
) -> list[BookResponse]:
    books = await catalog.list_books(page=page, limit=limit)
    return [BookResponse.model_validate(b) for b in books]


@router.get(
    "/books/feed",
    response_model=BookFeedResponse,
    responses=_ERROR_RESPONSES,
    summary="List books, newest first (cursor pagination)",
)
async def books_feed(
    catalog: CatalogDep,
    last_id: int | None = None,
    limit: int | None = None,
) -> BookFeedResponse:
    page = await catalog.list_books_cursor(last_id=last_id, limit=limit)
    return BookFeedResponse(
        items=[BookResponse.model_validate(b) for b in page.items],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )


@router.get(
    "/books/random",
    response_model=list[BookResponse],
    responses=_ERROR_RESPONSES,
    summary="Random sample of books",
)
async def random_books(catalog: CatalogDep, count: int = 5) -> list[BookResponse]:
    books = await catalog.random_books(count)
    return [BookResponse.model_validate(b) for b in books]


@router.get(
    "/books/{slug}",
    response_model=BookResponse,
    responses={404: {"description": "Unknown slug"}, **_ERROR_RESPONSES},
    summary="Look up a book by slug",
)
async def get_book(slug: str, catalog: CatalogDep) -> BookResponse:
    book = await catalog.lookup_book(slug)
    if book is None:
        raise HTTPException(status_code=404, detail=f"No book with slug: {slug}")
    return BookResponse.model_validate(book)


@router.get(
    "/books/{slug}/flashcards",
    response_model=FlashcardFeedResponse,
    responses={404: {"description": "Unknown slug"}, **_ERROR_RESPONSES},
    summary="List a book's flashcards, newest first (cursor pagination)",
)
async def book_flashcards(
    slug: str,
    catalog: CatalogDep,
    last_id: int | None = None,
    limit: int | None = None,
) -> FlashcardFeedResponse:
    book = await catalog.lookup_book(slug)
    if book is None:
        raise HTTPException(status_code=404, detail=f"No book with slug: {slug}")
    page = await catalog.list_flashcards_cursor(book.id, last_id=last_id, limit=limit)
    return FlashcardFeedResponse(
        book=BookResponse.model_validate(book),
        items=[FlashcardResponse.model_validate(c) for c in page.items],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request, deep: bool = False) -> HealthResponse:
    """Return application health, version, and the configured collaborators.

    With ``deep=true`` the completion provider is asked to verify its
    credentials; a failed check marks the service degraded.
    """
    llm = getattr(request.app.state, "llm_provider", None)
    store = getattr(request.app.state, "book_store", None)
    pipeline = getattr(request.app.state, "pipeline", None)

    llm_reachable: bool | None = None
    if deep and llm is not None:
        llm_reachable = await llm.validate_credentials()

    healthy = pipeline is not None and store is not None and llm_reachable is not False
    status = "healthy" if healthy else "degraded"
    return HealthResponse(
        status=status,
        version=__version__,
        llm_provider=llm.get_provider_name() if llm is not None else None,
        llm_model=llm.get_model_name() if llm is not None else None,
        store=store.get_provider_name() if store is not None else None,
        llm_reachable=llm_reachable,
    )
