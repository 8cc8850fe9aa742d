"""Storage-context ports used by storage mapping."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


@runtime_checkable
class StorageContext(Protocol):
    """The persistence operations the graph walk relies on.

    Implementations only register changes; committing or rolling back the
    registered inserts and deletes is the caller's responsibility.
    """

    def get[T](
        self, entity_type: type[T], identity: object, *, options: Sequence[Any] = ()
    ) -> T | None:
        """Fetch a persisted entity by identity; ``options`` augment the lookup query."""
        ...

    def add(self, entity: object) -> None:
        """Register a new entity for insertion."""
        ...

    def delete(self, entity: object) -> None:
        """Register an entity for deletion."""
        ...


@runtime_checkable
class AsyncStorageContext(Protocol):
    """Asynchronous boundary around a synchronous :class:`StorageContext`.

    ``run`` executes ``operation`` as one unit (e.g. inside ``AsyncSession.run_sync``)
    so that lookups performed by the walk suspend the calling task only at the
    storage boundary.
    """

    async def run[R](self, operation: Callable[[StorageContext], R]) -> R: ...
