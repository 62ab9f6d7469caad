"""Configuration module: exports Settings and load_config."""

from bookcards.config.loader import load_config
from bookcards.config.settings import Settings

__all__ = ["Settings", "load_config"]
