"""Build-time compilation of type-pair configurations into mapper sets."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from .configuration import NavigationKind
from .errors import FactoryMethodError, UnregisteredMappingError, UselessExclusionError
from .introspection import PropertyKind, can_construct_without_arguments

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence

    from .configuration import (
        Converter,
        KeyPair,
        MapperConfiguration,
        ScalarPair,
        TypePair,
        TypePairConfig,
    )
    from .modes import MapToStorageMode

log = logging.getLogger(__name__)

type Getter = Callable[[Any], Any]
type Setter = Callable[[Any, Any], None]


class ChildReconciler(Protocol):
    """What ``MapperSet.reconcile_children`` needs from the walker."""

    def reconcile_collection(self, navigation: Navigation, source: Any, target: Any) -> None: ...

    def reconcile_reference(self, navigation: Navigation, source: Any, target: Any) -> None: ...


@dataclass(frozen=True, slots=True, kw_only=True)
class Navigation:
    """A compiled entity or entity-collection property of a type pair."""

    name: str
    kind: NavigationKind
    target_item_type: type[Any]
    keep_on_removed: bool
    keep_unmatched: bool
    get_source: Getter
    get_target: Getter
    set_target: Setter
    new_collection: Callable[[], Any]


@dataclass(frozen=True, slots=True, kw_only=True)
class MapperSet:
    """Compiled mapping functions for one (source, target) pair."""

    source_type: type[Any]
    target_type: type[Any]
    mode: MapToStorageMode
    copy_scalars: Callable[[Any, Any], None]
    copy_keys: Callable[[Any, Any], None]
    reconcile_children: Callable[[Any, Any, ChildReconciler], None]
    source_identity: Getter
    target_identity: Getter
    source_token: Getter | None
    target_token: Getter | None
    create_target: Callable[[], Any]
    navigations: tuple[Navigation, ...]


class MapperRegistry:
    """Read-only lookup of mapper sets keyed by (source type, target type)."""

    def __init__(
        self,
        mappers: Mapping[TypePair, MapperSet],
        identity_getters: Mapping[type[Any], Getter],
        reference_names: Mapping[type[Any], tuple[str, ...]],
    ) -> None:
        self._mappers = dict(mappers)
        self._identity_getters = dict(identity_getters)
        self._reference_names = dict(reference_names)

    def lookup(self, source_type: type[Any], target_type: type[Any]) -> MapperSet | None:
        return self._mappers.get((source_type, target_type))

    def identity_of(self, target: object) -> object | None:
        getter = self._identity_getters.get(type(target))
        return getter(target) if getter is not None else None

    def reference_names(self, target_type: type[Any]) -> tuple[str, ...]:
        """Names of the single-entity properties declared by ``target_type``."""

        return self._reference_names.get(target_type, ())

    def pairs(self) -> Iterator[TypePair]:
        return iter(self._mappers)

    def __contains__(self, pair: object) -> bool:
        return pair in self._mappers

    def __len__(self) -> int:
        return len(self._mappers)


def build_registry(
    configuration: MapperConfiguration, registered: Sequence[TypePair]
) -> MapperRegistry:
    """Resolve and compile every registered pair plus the nested pairs they reach."""

    known = set(registered)
    queue = deque(registered)
    mappers: dict[TypePair, MapperSet] = {}
    while queue:
        pair = queue.popleft()
        if pair in mappers:
            continue
        config = configuration.resolve(*pair)
        for navigation in config.navigations:
            nested = (navigation.source_item_type, navigation.target_item_type)
            if nested in known:
                continue
            if not configuration.global_settings.register_reachable_pairs:
                raise UnregisteredMappingError(
                    *nested,
                    reason=f"reached through {pair[0].__qualname__}.{navigation.name}",
                )
            log.debug(
                "Registering reachable pair %s -> %s",
                nested[0].__qualname__,
                nested[1].__qualname__,
            )
            configuration.add_known_types(*nested)
            known.add(nested)
            queue.append(nested)
        mappers[pair] = compile_mapper_set(config, configuration)

    participants = {entity_type for pair in mappers for entity_type in pair}
    for entity_type in configuration.types:
        configuration.validate_type(entity_type, participates=entity_type in participants)
    for pair, settings in configuration.pairs.items():
        if pair in mappers:
            continue
        if settings.excluded:
            raise UselessExclusionError(
                settings.target_type, min(settings.excluded), "type pair is never registered"
            )
        log.warning(
            "Configuration for %s -> %s is unused: the pair is never registered",
            pair[0].__qualname__,
            pair[1].__qualname__,
        )

    identity_getters: dict[type[Any], Getter] = {}
    reference_names: dict[type[Any], tuple[str, ...]] = {}
    for _, target_type in mappers:
        identity = configuration.key_properties(target_type).identity
        if identity is not None:
            identity_getters[target_type] = _getter(identity)
        reference_names[target_type] = tuple(
            name
            for name, info in configuration.properties(target_type).items()
            if info.kind is PropertyKind.ENTITY
        )
    return MapperRegistry(mappers, identity_getters, reference_names)


def compile_mapper_set(config: TypePairConfig, configuration: MapperConfiguration) -> MapperSet:
    target_type = config.target_type
    create_target = configuration.factories.get(target_type)
    if create_target is None:
        if not can_construct_without_arguments(target_type):
            raise FactoryMethodError(target_type)
        create_target = target_type

    navigations = tuple(
        Navigation(
            name=navigation.name,
            kind=navigation.kind,
            target_item_type=navigation.target_item_type,
            keep_on_removed=navigation.keep_on_removed,
            keep_unmatched=navigation.keep_unmatched,
            get_source=_getter(navigation.name),
            get_target=_getter(navigation.name),
            set_target=_setter(navigation.name),
            new_collection=navigation.collection_factory or list,
        )
        for navigation in config.navigations
    )
    keys = tuple(key for key in (config.identity, config.concurrency_token) if key is not None)
    has_token = config.concurrency_token is not None
    return MapperSet(
        source_type=config.source_type,
        target_type=target_type,
        mode=config.mode,
        copy_scalars=_compile_copy(config.scalars, config.custom_mappers),
        copy_keys=_compile_key_copy(keys),
        reconcile_children=_compile_reconcile(navigations),
        source_identity=_source_key(config.identity),
        target_identity=_target_key(config.identity),
        source_token=_source_key(config.concurrency_token) if has_token else None,
        target_token=_target_key(config.concurrency_token) if has_token else None,
        create_target=create_target,
        navigations=navigations,
    )


def _getter(name: str) -> Getter:
    def get(obj: Any) -> Any:
        return getattr(obj, name, None)

    return get


def _setter(name: str) -> Setter:
    def set_(obj: Any, value: Any) -> None:
        setattr(obj, name, value)

    return set_


def _converted(get: Getter, converter: Converter | None) -> Getter:
    if converter is None:
        return get

    def get_converted(obj: Any) -> Any:
        value = get(obj)
        return None if value is None else converter(value)

    return get_converted


def _source_key(key: KeyPair | None) -> Getter:
    if key is None:
        return _none
    return _converted(_getter(key.source_name), key.converter)


def _target_key(key: KeyPair | None) -> Getter:
    if key is None:
        return _none
    return _getter(key.target_name)


def _none(_obj: Any) -> None:
    return None


def _compile_copy(
    scalars: Iterable[ScalarPair], custom_mappers: Iterable[tuple[str, Converter]]
) -> Callable[[Any, Any], None]:
    copies = tuple(
        (_converted(_getter(scalar.name), scalar.converter), _setter(scalar.name))
        for scalar in scalars
    )
    overrides = tuple((value_of, _setter(name)) for name, value_of in custom_mappers)

    def copy_scalars(source: Any, target: Any) -> None:
        for get, set_ in copies:
            set_(target, get(source))
        for value_of, set_ in overrides:
            set_(target, value_of(source))

    return copy_scalars


def _compile_key_copy(keys: Iterable[KeyPair]) -> Callable[[Any, Any], None]:
    copies = tuple(
        (_converted(_getter(key.source_name), key.converter), _setter(key.target_name))
        for key in keys
    )

    def copy_keys(source: Any, target: Any) -> None:
        for get, set_ in copies:
            set_(target, get(source))

    return copy_keys


def _compile_reconcile(
    navigations: tuple[Navigation, ...],
) -> Callable[[Any, Any, ChildReconciler], None]:
    def reconcile_children(source: Any, target: Any, reconciler: ChildReconciler) -> None:
        for navigation in navigations:
            if navigation.kind is NavigationKind.COLLECTION:
                reconciler.reconcile_collection(navigation, source, target)
            else:
                reconciler.reconcile_reference(navigation, source, target)

    return reconcile_children
