"""Recursive graph walk and collection/reference reconciliation.

A walk visits each target at most once per session:

1. skip the target if the session already marked it visited;
2. look up the mapper set for the (source, target) pair;
3. copy scalars, then apply custom property mappers;
4. mark the target visited;
5. reconcile every navigation, recursing into children.

Without a storage context the walk maps into plain objects. With one, targets
with an identity are fetched from storage, new targets are registered for
insertion and unmatched children are unlinked or registered for deletion.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .errors import (
    ConcurrencyTokenError,
    DuplicateCollectionItemError,
    EntityNotFoundError,
    InsertWithExistingIdentityError,
    MissingConcurrencyTokenError,
    UnregisteredMappingError,
    UpdateWithoutIdentityError,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .modes import MapToStorageMode
    from .ports.storage import StorageContext
    from .registry import MapperRegistry, MapperSet, Navigation
    from .session import MappingSession

log = logging.getLogger(__name__)


class GraphWalker:
    """Walks source graphs into target graphs for one storage context (or none)."""

    def __init__(
        self,
        registry: MapperRegistry,
        session: MappingSession,
        *,
        storage: StorageContext | None = None,
        mode: MapToStorageMode | None = None,
        keep_unmatched: bool | None = None,
    ) -> None:
        self._registry = registry
        self._session = session
        self._storage = storage
        self._mode_override = mode
        self._keep_unmatched = keep_unmatched

    # entry points

    def map_to_memory[T](
        self, source: object, target_type: type[T], target: T | None = None
    ) -> T:
        mapper = self._lookup(type(source), target_type)
        if target is None:
            target = self._memory_target(source, mapper)
        else:
            self._remember(source, mapper, target)
        self.walk(source, target, mapper)
        return target

    def map_to_storage[T](
        self, source: object, target_type: type[T], *, options: Sequence[Any] = ()
    ) -> T:
        storage = self._require_storage()
        mapper = self._lookup(type(source), target_type)
        mode = self._mode(mapper)
        identity = mapper.source_identity(source)
        if identity is None:
            if not mode.allows_insert:
                raise UpdateWithoutIdentityError(type(source), target_type)
            return self._new_target(source, mapper)

        existing = self._session.target_for_identity(target_type, identity)
        if existing is None:
            existing = storage.get(target_type, identity, options=options)
        if existing is None:
            if not mode.allows_insert:
                raise EntityNotFoundError(target_type, identity)
            target = mapper.create_target()
            mapper.copy_keys(source, target)
            self._remember(source, mapper, target)
            self.walk(source, target, mapper)
            self._insert(target)
            return target

        self._prepare_update(mapper, source, existing, identity)
        self._session.remember_identity(target_type, identity, existing)
        self.walk(source, existing, mapper)
        return existing

    # walk

    def walk(self, source: Any, target: Any, mapper: MapperSet | None = None) -> None:
        if self._session.is_visited(target, self._registry.identity_of(target)):
            return
        if mapper is None:
            mapper = self._lookup(type(source), type(target))
        if self._storage is None:
            mapper.copy_keys(source, target)
        mapper.copy_scalars(source, target)
        self._session.mark_visited(target, self._registry.identity_of(target))
        mapper.reconcile_children(source, target, self)

    def reconcile_collection(self, navigation: Navigation, source: Any, target: Any) -> None:
        source_items = navigation.get_source(source)
        if source_items is None:
            return
        target_items = navigation.get_target(target)
        if target_items is None:
            navigation.set_target(target, navigation.new_collection())
            target_items = navigation.get_target(target)

        present: dict[object, Any] = {}
        for child in target_items:
            identity = self._registry.identity_of(child)
            if identity is not None:
                present[identity] = child

        matched: dict[int, Any] = {}
        seen: set[object] = set()
        for item in list(source_items):
            mapper = self._lookup(type(item), navigation.target_item_type)
            identity = mapper.source_identity(item)
            if identity is not None:
                if identity in seen:
                    raise DuplicateCollectionItemError(navigation.target_item_type, identity)
                seen.add(identity)
            child = present.get(identity) if identity is not None else None
            if child is not None:
                self._prepare_update(mapper, item, child, identity)
                self.walk(item, child, mapper)
            else:
                child = self._resolve_child(item, mapper, identity)
                if not _contains(target_items, child):
                    _append(target_items, child)
            matched[id(child)] = child

        if self._keeps_unmatched(navigation):
            return
        for child in [child for child in target_items if id(child) not in matched]:
            _discard(target_items, child)
            self._removed(navigation, target, child)

    def reconcile_reference(self, navigation: Navigation, source: Any, target: Any) -> None:
        source_child = navigation.get_source(source)
        current = navigation.get_target(target)
        if source_child is None:
            if current is None or self._keeps_unmatched(navigation):
                return
            navigation.set_target(target, None)
            self._removed(navigation, target, current)
            return

        mapper = self._lookup(type(source_child), navigation.target_item_type)
        identity = mapper.source_identity(source_child)
        if (
            identity is not None
            and current is not None
            and self._registry.identity_of(current) == identity
        ):
            self._prepare_update(mapper, source_child, current, identity)
            self.walk(source_child, current, mapper)
            return

        if identity is not None and self._storage is not None:
            child = self._session.target_for_identity(navigation.target_item_type, identity)
            if child is None:
                child = self._storage.get(navigation.target_item_type, identity)
            if child is None:
                raise EntityNotFoundError(navigation.target_item_type, identity)
            self._prepare_update(mapper, source_child, child, identity)
            self.walk(source_child, child, mapper)
        else:
            child = self._resolve_child(source_child, mapper, identity)

        if current is child:
            return
        navigation.set_target(target, child)
        if current is not None:
            self._removed(navigation, target, current)

    # helpers

    def _lookup(self, source_type: type[Any], target_type: type[Any]) -> MapperSet:
        mapper = self._registry.lookup(source_type, target_type)
        if mapper is None:
            raise UnregisteredMappingError(source_type, target_type)
        mode = self._mode(mapper)
        if self._storage is None and not mode.allows_memory:
            raise UnregisteredMappingError(
                source_type, target_type, reason=f"{mode} does not allow memory mapping"
            )
        if self._storage is not None and not mode.allows_storage:
            raise UnregisteredMappingError(
                source_type, target_type, reason=f"{mode} does not allow storage mapping"
            )
        return mapper

    def _mode(self, mapper: MapperSet) -> MapToStorageMode:
        if self._mode_override is None:
            return mapper.mode
        return mapper.mode & self._mode_override

    def _keeps_unmatched(self, navigation: Navigation) -> bool:
        if self._keep_unmatched is not None:
            return self._keep_unmatched
        return navigation.keep_unmatched

    def _require_storage(self) -> StorageContext:
        if self._storage is None:
            raise RuntimeError("GraphWalker was created without a storage context")
        return self._storage

    def _remember(self, source: object, mapper: MapperSet, target: Any) -> None:
        self._session.remember_new_target(source, mapper.target_type, target)
        identity = mapper.source_identity(source)
        if identity is not None:
            self._session.remember_identity(mapper.target_type, identity, target)

    def _memory_target(self, source: object, mapper: MapperSet) -> Any:
        target = self._session.new_target_for(source, mapper.target_type)
        if target is not None:
            return target
        identity = mapper.source_identity(source)
        if identity is not None:
            target = self._session.target_for_identity(mapper.target_type, identity)
            if target is not None:
                return target
        target = mapper.create_target()
        self._remember(source, mapper, target)
        return target

    def _resolve_child(self, source: Any, mapper: MapperSet, identity: object | None) -> Any:
        """Return the target for a source child that is not yet linked to the parent."""

        if self._storage is None:
            child = self._memory_target(source, mapper)
            self.walk(source, child, mapper)
            return child
        if identity is not None:
            raise EntityNotFoundError(mapper.target_type, identity)
        if not self._mode(mapper).allows_insert:
            raise UpdateWithoutIdentityError(mapper.source_type, mapper.target_type)
        return self._new_target(source, mapper)

    def _new_target(self, source: Any, mapper: MapperSet) -> Any:
        target = self._session.new_target_for(source, mapper.target_type)
        if target is not None:
            return target
        target = mapper.create_target()
        self._remember(source, mapper, target)
        self.walk(source, target, mapper)
        self._insert(target)
        return target

    def _insert(self, target: Any) -> None:
        log.debug("Registering new %s for insertion", type(target).__qualname__)
        self._require_storage().add(target)

    def _prepare_update(
        self, mapper: MapperSet, source: Any, target: Any, identity: object
    ) -> None:
        if self._storage is None:
            return
        if not self._mode(mapper).allows_update:
            raise InsertWithExistingIdentityError(mapper.target_type, identity)
        if mapper.source_token is None or mapper.target_token is None:
            return
        source_token = mapper.source_token(source)
        target_token = mapper.target_token(target)
        if source_token is None and target_token is None:
            return
        if target_token is None:
            raise MissingConcurrencyTokenError(mapper.target_type, identity)
        if source_token is None or source_token != target_token:
            raise ConcurrencyTokenError(mapper.target_type, identity)

    def _removed(self, navigation: Navigation, parent: Any, child: Any) -> None:
        """Unlink ``child`` from ``parent``; delete it unless the navigation keeps it."""

        for name in self._registry.reference_names(type(child)):
            if getattr(child, name, None) is parent:
                setattr(child, name, None)
        if self._storage is None or navigation.keep_on_removed:
            log.debug(
                "Unlinked %s from %s.%s",
                type(child).__qualname__,
                type(parent).__qualname__,
                navigation.name,
            )
            return
        log.debug(
            "Registering %s removed from %s.%s for deletion",
            type(child).__qualname__,
            type(parent).__qualname__,
            navigation.name,
        )
        self._storage.delete(child)


def _contains(collection: Any, item: Any) -> bool:
    return any(existing is item for existing in collection)


def _append(collection: Any, item: Any) -> None:
    if hasattr(collection, "append"):
        collection.append(item)
    else:
        collection.add(item)


def _discard(collection: Any, item: Any) -> None:
    if hasattr(collection, "discard"):
        collection.discard(item)
        return
    for index, existing in enumerate(collection):
        if existing is item:
            del collection[index]
            return
