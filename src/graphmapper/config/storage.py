"""Database configuration helpers for the SQLAlchemy adapter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from .env import optional_env_var

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_DATABASE_URI: Final[str] = "sqlite+pysqlite:///:memory:"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_database_config(*, environ: Mapping[str, str] | None = None) -> DatabaseConfig:
    env_uri = optional_env_var("DATABASE_URI", environ=environ)
    return DatabaseConfig(uri=env_uri or DEFAULT_DATABASE_URI)
