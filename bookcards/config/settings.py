"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources (highest priority first):

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. A ``.env`` file in the working directory (local development)

Field ``openai_api_key`` maps to ``OPENAI_API_KEY`` automatically.  Empty
strings mean "not configured"; the provider factory skips those backends.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """bookcards application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Completion collaborator ===
    # Empty LLM_PROVIDER = first configured backend in priority order.
    llm_provider: str = ""
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (TogetherAI, Groq, ...)
    openai_text_model: str = "gpt-4o"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    ollama_base_url: str = ""
    ollama_model: str = "llama3.1"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 4000
    llm_timeout_seconds: float = 60.0

    # === Document store ===
    book_db_path: str = "data/bookcards.db"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 3001
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "*"
    config_path: str = "config/config.yaml"

    def get_available_llm_providers(self) -> list[str]:
        """Return LLM backends that have credentials or a URL configured, in priority order."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers

    def get_cors_origins(self) -> list[str]:
        """Split the comma-separated ``CORS_ORIGINS`` value."""
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["*"]
