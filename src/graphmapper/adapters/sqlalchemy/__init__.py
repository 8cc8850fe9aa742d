"""SQLAlchemy adapter package for graphmapper."""

from __future__ import annotations

from .storage import SqlAlchemyAsyncStorageContext, SqlAlchemyStorageContext
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAsyncStorageContext",
    "SqlAlchemyStorageContext",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "configured_engine",
    "is_started",
    "shutdown",
    "startup",
]
