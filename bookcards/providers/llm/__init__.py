"""LLM provider adapters.

Three concrete implementations of ILLMProvider (bookcards/interfaces/llm_provider.py):
    - OpenAILLMProvider    gpt-4o (also supports OpenAI-compatible APIs)
    - AnthropicLLMProvider Claude Sonnet
    - OllamaLLMProvider    local models via an Ollama server (llama3.1)

At startup, main.py calls :func:`build_llm_provider` and injects the result
into the ingestion pipeline and FastAPI's app.state.
"""

from bookcards.config.settings import Settings
from bookcards.interfaces.llm_provider import ILLMProvider
from bookcards.providers.llm.anthropic_provider import AnthropicLLMProvider
from bookcards.providers.llm.ollama_provider import OllamaLLMProvider
from bookcards.providers.llm.openai_provider import OpenAILLMProvider
from bookcards.utils.errors import ConfigurationError

_PROVIDER_CLASSES: dict[str, type[ILLMProvider]] = {
    "openai": OpenAILLMProvider,
    "anthropic": AnthropicLLMProvider,
    "ollama": OllamaLLMProvider,
}


def build_llm_provider(settings: Settings) -> ILLMProvider:
    """Select the completion provider.

    ``LLM_PROVIDER`` forces a backend; otherwise the first configured one in
    priority order OpenAI -> Anthropic -> Ollama is used.
    """
    requested = settings.llm_provider.strip().lower()
    available = settings.get_available_llm_providers()

    if requested:
        if requested not in _PROVIDER_CLASSES:
            raise ConfigurationError(
                message=(
                    f"Unknown LLM_PROVIDER {requested!r}; "
                    f"expected one of {', '.join(_PROVIDER_CLASSES)}"
                )
            )
        if requested not in available:
            raise ConfigurationError(
                message=f"LLM_PROVIDER={requested} is selected but not configured",
                provider_name=requested,
            )
        return _PROVIDER_CLASSES[requested](settings=settings)

    if not available:
        raise ConfigurationError(
            message=(
                "No LLM provider configured; set OPENAI_API_KEY, "
                "ANTHROPIC_API_KEY or OLLAMA_BASE_URL"
            )
        )
    return _PROVIDER_CLASSES[available[0]](settings=settings)


__all__ = [
    "AnthropicLLMProvider",
    "OllamaLLMProvider",
    "OpenAILLMProvider",
    "build_llm_provider",
]
