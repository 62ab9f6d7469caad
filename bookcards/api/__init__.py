"""bookcards API layer: routes, schemas, and middleware."""

from bookcards.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from bookcards.api.routes import router
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

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "BookFeedResponse",
    "BookResponse",
    "ErrorResponse",
    "FlashcardFeedResponse",
    "FlashcardResponse",
    "GenerateFlashcardsRequest",
    "GenerateFlashcardsResponse",
    "HealthResponse",
]
