"""Abstract base class for LLM completion providers.

Defines the contract for the completion collaborator: given a prompt and
sampling parameters, return one text completion.  Implementations wrap the
OpenAI API, the Anthropic API, or a local Ollama server; the ingestion
pipeline only ever sees this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAILLMProvider, AnthropicLLMProvider, OllamaLLMProvider
# Located in: bookcards/providers/llm/
class ILLMProvider(ABC):
    """Contract for the text-completion collaborator.

    Model identifier and client timeout are provider configuration.  A call
    is made exactly once; providers never retry on their own.
    """

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the actual request.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response (never empty).

        Raises
        ------
        bookcards.utils.errors.LLMError
            On network errors, timeouts, rate limits or an empty body.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider, e.g. ``"openai"``."""

    @abstractmethod
    def get_model_name(self) -> str:
        """Return the model identifier used for completions, e.g. ``"gpt-4o"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (no network call)."""

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Perform a lightweight API call to confirm the provider is reachable.

        Returns
        -------
        bool
            ``True`` if the provider accepted the credentials; ``False``
            otherwise.
        """
