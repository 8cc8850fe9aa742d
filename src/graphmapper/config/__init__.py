"""Application configuration helpers."""

from __future__ import annotations

from .env import load_environment, optional_env_var
from .errors import ConfigurationError
from .logging import configure_logging
from .mapper import MapperDefaults, get_mapper_defaults
from .storage import DatabaseConfig, get_database_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MapperDefaults",
    "configure_logging",
    "get_database_config",
    "get_mapper_defaults",
    "load_environment",
    "optional_env_var",
]
