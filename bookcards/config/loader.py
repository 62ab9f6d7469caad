"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers win):

  1. ``config/config.yaml`` -- non-secret tuning checked into the repo
     (page sizes, title length rule)
  2. ``.env`` / environment -- read through :class:`Settings`

``load_config`` reads the YAML first, then deep-merges env-derived values
on top and fills any missing tuning keys from ``_DEFAULTS``.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from bookcards.config.settings import Settings

_DEFAULTS: dict[str, Any] = {
    "catalog": {
        "default_book_page_size": 5,
        "default_flashcard_page_size": 10,
        "max_page_size": 100,
        "max_random_books": 50,
    },
    "ingestion": {
        "min_title_length": 3,
    },
}


def load_config(path: str | None = None, settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge it with environment-based Settings.

    Args:
        path: Path to the YAML file.  Defaults to ``settings.config_path``.
        settings: Settings instance; a fresh one is built when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    settings = settings or Settings()
    config_path = Path(path or settings.config_path)

    config = copy.deepcopy(_DEFAULTS)
    if config_path.exists():
        with open(config_path) as f:
            _deep_merge(config, yaml.safe_load(f) or {})

    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "provider": settings.llm_provider,
            "temperature": settings.llm_temperature,
            "max_tokens": settings.llm_max_tokens,
            "available_providers": settings.get_available_llm_providers(),
        },
        "store": {
            "book_db_path": settings.book_db_path,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
