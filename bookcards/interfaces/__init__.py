"""Public interface definitions for the external collaborators.

The ingestion core reaches its two collaborators only through these
abstract base classes; concrete adapters are built in ``bookcards.main``
and injected at construction time, so tests can pass stubs instead.

CONCRETE PROVIDER MAP:
    Interface       →  Concrete implementations (in bookcards/providers/)
    ─────────────────────────────────────────────────────────────────────
    ILLMProvider    →  OpenAILLMProvider, AnthropicLLMProvider,
                       OllamaLLMProvider
    IBookStore      →  SQLiteBookStore
"""

from bookcards.interfaces.book_store import IBookStore
from bookcards.interfaces.llm_provider import ILLMProvider

__all__ = ["IBookStore", "ILLMProvider"]
