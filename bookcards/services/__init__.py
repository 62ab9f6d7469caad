"""Domain services.

    - response_extractor  strategy chain turning raw completions into cards
    - identity_resolver   find-or-create of the canonical Book
    - catalog_service     paginated reads, slug lookup, random sampling
    - book_backfill       offline recomputation of legacy identity fields
"""

from bookcards.services.book_backfill import BookBackfill
from bookcards.services.catalog_service import CatalogService
from bookcards.services.identity_resolver import IdentityResolver
from bookcards.services.response_extractor import ResponseExtractor

__all__ = ["BookBackfill", "CatalogService", "IdentityResolver", "ResponseExtractor"]
