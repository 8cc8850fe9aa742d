"""Domain port definitions for adapters."""

from __future__ import annotations

from .storage import AsyncStorageContext, StorageContext
from .unit_of_work import UnitOfWork

__all__ = [
    "AsyncStorageContext",
    "StorageContext",
    "UnitOfWork",
]
