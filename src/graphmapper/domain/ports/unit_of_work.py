"""Unit-of-work abstraction around a storage context."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from .storage import StorageContext


@runtime_checkable
class UnitOfWork(Protocol):
    """Transaction boundary for one or more storage mappings."""

    @property
    def storage(self) -> StorageContext: ...

    def __enter__(self) -> UnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
