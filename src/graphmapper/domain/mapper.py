"""Mapper facade and explicit multi-call mapping sessions."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any

from .errors import ConcurrentSessionUseError
from .session import MappingSession
from .walker import GraphWalker

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .modes import MapToStorageMode
    from .ports.storage import AsyncStorageContext, StorageContext
    from .registry import MapperRegistry


class Mapper:
    """Entry point for mapping object graphs.

    A mapper is immutable once built and may be shared freely. Every ``map*``
    call runs in a fresh session; use ``create_*session`` to share tracker
    state across calls (for example to map siblings that share a new child).
    """

    def __init__(self, registry: MapperRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> MapperRegistry:
        return self._registry

    def map[T](self, source: object, target_type: type[T], target: T | None = None) -> T:
        """Map ``source`` into ``target`` (or a new ``target_type`` instance) in memory."""

        return self.create_session().map(source, target_type, target)

    def map_to_storage[T](
        self,
        source: object,
        target_type: type[T],
        storage: StorageContext,
        *,
        options: Sequence[Any] = (),
        mode: MapToStorageMode | None = None,
        keep_unmatched: bool | None = None,
    ) -> T:
        """Reconcile the persisted graph rooted at ``target_type`` with ``source``.

        Inserts and deletes are only registered with ``storage``; committing them
        is up to the caller.
        """

        return self.create_storage_session(storage).map(
            source, target_type, options=options, mode=mode, keep_unmatched=keep_unmatched
        )

    async def map_async[T](
        self,
        source: object,
        target_type: type[T],
        storage: AsyncStorageContext,
        *,
        options: Sequence[Any] = (),
        mode: MapToStorageMode | None = None,
        keep_unmatched: bool | None = None,
    ) -> T:
        return await self.create_async_storage_session(storage).map(
            source, target_type, options=options, mode=mode, keep_unmatched=keep_unmatched
        )

    def create_session(self) -> MemoryMappingSession:
        return MemoryMappingSession(self._registry)

    def create_storage_session(self, storage: StorageContext) -> StorageMappingSession:
        return StorageMappingSession(self._registry, storage)

    def create_async_storage_session(
        self, storage: AsyncStorageContext
    ) -> AsyncStorageMappingSession:
        return AsyncStorageMappingSession(self._registry, storage)


class MemoryMappingSession:
    def __init__(self, registry: MapperRegistry) -> None:
        self._registry = registry
        self._state = MappingSession()

    def map[T](self, source: object, target_type: type[T], target: T | None = None) -> T:
        walker = GraphWalker(self._registry, self._state)
        return walker.map_to_memory(source, target_type, target)


class StorageMappingSession:
    def __init__(self, registry: MapperRegistry, storage: StorageContext) -> None:
        self._registry = registry
        self._storage = storage
        self._state = MappingSession()

    def map[T](
        self,
        source: object,
        target_type: type[T],
        *,
        options: Sequence[Any] = (),
        mode: MapToStorageMode | None = None,
        keep_unmatched: bool | None = None,
    ) -> T:
        walker = GraphWalker(
            self._registry,
            self._state,
            storage=self._storage,
            mode=mode,
            keep_unmatched=keep_unmatched,
        )
        return walker.map_to_storage(source, target_type, options=options)


class AsyncStorageMappingSession:
    """Storage session whose lookups run behind an asynchronous storage boundary.

    Calls must be awaited one at a time; overlapping calls raise
    :class:`ConcurrentSessionUseError` instead of interleaving tracker state.
    """

    def __init__(self, registry: MapperRegistry, storage: AsyncStorageContext) -> None:
        self._registry = registry
        self._storage = storage
        self._state = MappingSession()
        self._in_flight = False

    async def map[T](
        self,
        source: object,
        target_type: type[T],
        *,
        options: Sequence[Any] = (),
        mode: MapToStorageMode | None = None,
        keep_unmatched: bool | None = None,
    ) -> T:
        if self._in_flight:
            raise ConcurrentSessionUseError(
                "Mapping session is already in use; create one session per concurrent mapping"
            )
        self._in_flight = True
        try:
            return await self._storage.run(
                partial(
                    self._map,
                    source,
                    target_type,
                    options=options,
                    mode=mode,
                    keep_unmatched=keep_unmatched,
                )
            )
        finally:
            self._in_flight = False

    def _map[T](
        self,
        source: object,
        target_type: type[T],
        storage: StorageContext,
        *,
        options: Sequence[Any],
        mode: MapToStorageMode | None,
        keep_unmatched: bool | None,
    ) -> T:
        walker = GraphWalker(
            self._registry,
            self._state,
            storage=storage,
            mode=mode,
            keep_unmatched=keep_unmatched,
        )
        return walker.map_to_storage(source, target_type, options=options)
