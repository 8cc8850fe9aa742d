"""Layered mapping configuration and its resolution into per-pair records.

Three layers are kept: global settings, per-type settings and per-type-pair
settings. ``MapperConfiguration.resolve`` merges them (pair > type > global)
into an immutable :class:`TypePairConfig` and validates the combination.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from .errors import (
    CustomMappingConflictError,
    InvalidNavigationError,
    KeyPropertyExcludedError,
    UselessExclusionError,
)
from .introspection import PropertyInfo, PropertyKind, describe_properties

if TYPE_CHECKING:
    from collections.abc import Callable

    from graphmapper.config.mapper import MapperDefaults

    from .modes import MapToStorageMode

log = logging.getLogger(__name__)

type Converter = Callable[[Any], Any]
type TypePair = tuple[type[Any], type[Any]]


class NavigationKind(StrEnum):
    REFERENCE = "reference"
    COLLECTION = "collection"


@dataclass(slots=True, kw_only=True)
class GlobalSettings:
    identity_property_name: str
    concurrency_token_property_name: str | None
    excluded_properties: set[str]
    keep_entity_on_mapping_removed: bool
    map_to_storage_mode: MapToStorageMode
    throw_on_redundant_configuration: bool
    register_reachable_pairs: bool

    @classmethod
    def from_defaults(cls, defaults: MapperDefaults) -> GlobalSettings:
        return cls(
            identity_property_name=defaults.identity_property_name,
            concurrency_token_property_name=defaults.concurrency_token_property_name,
            excluded_properties=set(defaults.excluded_properties),
            keep_entity_on_mapping_removed=defaults.keep_entity_on_mapping_removed,
            map_to_storage_mode=defaults.map_to_storage_mode,
            throw_on_redundant_configuration=defaults.throw_on_redundant_configuration,
            register_reachable_pairs=defaults.register_reachable_pairs,
        )


@dataclass(slots=True, kw_only=True)
class TypeSettings:
    entity_type: type[Any]
    identity_property_name: str | None = None
    concurrency_token_property_name: str | None = None
    has_concurrency_token_override: bool = False
    excluded: set[str] = field(default_factory=set)
    keep_entity_on_mapping_removed: bool | None = None
    keep_unmatched: set[str] = field(default_factory=set)


@dataclass(slots=True, kw_only=True)
class TypePairSettings:
    source_type: type[Any]
    target_type: type[Any]
    custom_mappers: dict[str, Converter] = field(default_factory=dict)
    excluded: set[str] = field(default_factory=set)
    keep_on_removed: bool | None = None
    property_keep_on_removed: dict[str, bool] = field(default_factory=dict)
    keep_unmatched: set[str] = field(default_factory=set)
    mode: MapToStorageMode | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class KeyProperties:
    identity: str | None
    concurrency_token: str | None

    def names(self) -> frozenset[str]:
        return frozenset(name for name in (self.identity, self.concurrency_token) if name)


@dataclass(frozen=True, slots=True, kw_only=True)
class ScalarPair:
    name: str
    converter: Converter | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class KeyPair:
    """Identity or concurrency-token property on both sides of a pair."""

    source_name: str
    target_name: str
    converter: Converter | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class NavigationConfig:
    name: str
    kind: NavigationKind
    source_item_type: type[Any]
    target_item_type: type[Any]
    collection_factory: Callable[[], Any] | None
    keep_on_removed: bool
    keep_unmatched: bool


@dataclass(frozen=True, slots=True, kw_only=True)
class TypePairConfig:
    """Fully resolved configuration of one (source, target) pair."""

    source_type: type[Any]
    target_type: type[Any]
    identity: KeyPair | None
    concurrency_token: KeyPair | None
    scalars: tuple[ScalarPair, ...]
    custom_mappers: tuple[tuple[str, Converter], ...]
    navigations: tuple[NavigationConfig, ...]
    excluded: frozenset[str]
    mode: MapToStorageMode


class MapperConfiguration:
    """Mutable store behind the builders; read-only once the mapper is built."""

    def __init__(self, defaults: MapperDefaults) -> None:
        self.global_settings = GlobalSettings.from_defaults(defaults)
        self.types: dict[type[Any], TypeSettings] = {}
        self.pairs: dict[TypePair, TypePairSettings] = {}
        self.converters: dict[TypePair, Converter] = {}
        self.factories: dict[type[Any], Callable[[], Any]] = {}
        self._properties: dict[type[Any], dict[str, PropertyInfo]] = {}
        self._localns: dict[str, object] = {}

    # lookups

    def type_settings(self, entity_type: type[Any]) -> TypeSettings:
        settings = self.types.get(entity_type)
        if settings is None:
            settings = self.types[entity_type] = TypeSettings(entity_type=entity_type)
        return settings

    def pair_settings(self, source_type: type[Any], target_type: type[Any]) -> TypePairSettings:
        key = (source_type, target_type)
        settings = self.pairs.get(key)
        if settings is None:
            settings = self.pairs[key] = TypePairSettings(
                source_type=source_type, target_type=target_type
            )
        return settings

    def add_known_types(self, *entity_types: type[Any]) -> None:
        for entity_type in entity_types:
            self._localns.setdefault(entity_type.__name__, entity_type)

    def scalar_types(self) -> frozenset[type[Any]]:
        return frozenset(t for pair in self.converters for t in pair)

    def properties(self, entity_type: type[Any]) -> dict[str, PropertyInfo]:
        cached = self._properties.get(entity_type)
        if cached is None:
            cached = self._properties[entity_type] = describe_properties(
                entity_type, extra_scalars=self.scalar_types(), localns=self._localns
            )
        return cached

    def key_properties(self, entity_type: type[Any]) -> KeyProperties:
        settings = self.types.get(entity_type)
        identity = self.global_settings.identity_property_name
        token = self.global_settings.concurrency_token_property_name
        if settings is not None:
            identity = settings.identity_property_name or identity
            if settings.has_concurrency_token_override:
                token = settings.concurrency_token_property_name
        properties = self.properties(entity_type)
        return KeyProperties(
            identity=identity if identity in properties else None,
            concurrency_token=token if token and token in properties else None,
        )

    def keep_on_removed(
        self, pair: TypePairSettings | None, name: str, item_type: type[Any]
    ) -> bool:
        if pair is not None:
            if name in pair.property_keep_on_removed:
                return pair.property_keep_on_removed[name]
            if pair.keep_on_removed is not None:
                return pair.keep_on_removed
        item_settings = self.types.get(item_type)
        if item_settings is not None and item_settings.keep_entity_on_mapping_removed is not None:
            return item_settings.keep_entity_on_mapping_removed
        return self.global_settings.keep_entity_on_mapping_removed

    # validation

    def validate_type(self, entity_type: type[Any], *, participates: bool) -> None:
        settings = self.types.get(entity_type)
        if settings is None:
            return
        properties = self.properties(entity_type)
        keys = self.key_properties(entity_type)
        for name in sorted(settings.excluded):
            if name in keys.names():
                raise KeyPropertyExcludedError(entity_type, name)
            if name not in properties:
                raise UselessExclusionError(entity_type, name, "no such property")
            if not participates:
                raise UselessExclusionError(entity_type, name, "type is not part of any mapping")
        for name in sorted(settings.keep_unmatched):
            info = properties.get(name)
            if info is None or not info.is_navigation:
                raise InvalidNavigationError(entity_type, name)

    # resolution

    def resolve(self, source_type: type[Any], target_type: type[Any]) -> TypePairConfig:
        """Merge every layer for ``(source_type, target_type)`` and validate it."""

        source_props = self.properties(source_type)
        target_props = self.properties(target_type)
        source_keys = self.key_properties(source_type)
        target_keys = self.key_properties(target_type)
        pair = self.pairs.get((source_type, target_type))
        source_settings = self.types.get(source_type)
        target_settings = self.types.get(target_type)

        for name in sorted(self.global_settings.excluded_properties):
            if name in target_keys.names():
                raise KeyPropertyExcludedError(target_type, name)
            if name in source_keys.names():
                raise KeyPropertyExcludedError(source_type, name)

        custom = dict(pair.custom_mappers) if pair is not None else {}
        type_excluded: set[str] = set()
        for settings in (source_settings, target_settings):
            if settings is not None:
                type_excluded |= settings.excluded

        if pair is not None:
            self._validate_pair_exclusions(
                pair, source_props, target_props, source_keys, target_keys
            )
        for name in custom:
            if name not in target_props:
                raise CustomMappingConflictError(
                    source_type, target_type, name, "target type has no such property"
                )
            if name in type_excluded:
                raise CustomMappingConflictError(
                    source_type, target_type, name, "property is excluded for the type"
                )

        key_names = source_keys.names() | target_keys.names()
        excluded = frozenset(
            (self.global_settings.excluded_properties | type_excluded | set(custom))
            | (pair.excluded if pair is not None else set())
        ) - key_names

        scalars: list[ScalarPair] = []
        navigations: list[NavigationConfig] = []
        for name, target_info in target_props.items():
            if name in excluded or name in key_names:
                continue
            source_info = source_props.get(name)
            if source_info is None:
                continue
            if target_info.kind is PropertyKind.SCALAR and source_info.kind is PropertyKind.SCALAR:
                scalar = self._scalar_pair(name, source_info, target_info)
                if scalar is not None:
                    scalars.append(scalar)
                continue
            if target_info.kind is not source_info.kind:
                log.debug(
                    "Skipping %s on %s -> %s: %s vs %s",
                    name,
                    source_type.__qualname__,
                    target_type.__qualname__,
                    source_info.kind,
                    target_info.kind,
                )
                continue
            navigations.append(
                self._navigation(name, pair, target_settings, source_info, target_info)
            )

        if pair is not None:
            navigation_names = {navigation.name for navigation in navigations}
            for name in sorted(set(pair.property_keep_on_removed) | pair.keep_unmatched):
                if name not in navigation_names:
                    raise InvalidNavigationError(target_type, name)

        mode = self.global_settings.map_to_storage_mode
        if pair is not None and pair.mode is not None:
            mode = pair.mode

        return TypePairConfig(
            source_type=source_type,
            target_type=target_type,
            identity=self._key_pair(
                source_props, target_props, source_keys.identity, target_keys.identity
            ),
            concurrency_token=self._key_pair(
                source_props,
                target_props,
                source_keys.concurrency_token,
                target_keys.concurrency_token,
            ),
            scalars=tuple(scalars),
            custom_mappers=tuple(custom.items()),
            navigations=tuple(navigations),
            excluded=excluded,
            mode=mode,
        )

    def _validate_pair_exclusions(
        self,
        pair: TypePairSettings,
        source_props: dict[str, PropertyInfo],
        target_props: dict[str, PropertyInfo],
        source_keys: KeyProperties,
        target_keys: KeyProperties,
    ) -> None:
        for name in sorted(pair.excluded):
            if name in target_keys.names():
                raise KeyPropertyExcludedError(pair.target_type, name)
            if name in source_keys.names():
                raise KeyPropertyExcludedError(pair.source_type, name)
            if name in pair.custom_mappers:
                raise CustomMappingConflictError(
                    pair.source_type, pair.target_type, name, "property is also excluded"
                )
            if name not in target_props:
                raise UselessExclusionError(pair.target_type, name, "no such property")
            if name not in source_props:
                raise UselessExclusionError(pair.source_type, name, "no such property")

    def _navigation(
        self,
        name: str,
        pair: TypePairSettings | None,
        target_settings: TypeSettings | None,
        source_info: PropertyInfo,
        target_info: PropertyInfo,
    ) -> NavigationConfig:
        assert source_info.item_type is not None
        assert target_info.item_type is not None
        keep_unmatched = (pair is not None and name in pair.keep_unmatched) or (
            target_settings is not None and name in target_settings.keep_unmatched
        )
        return NavigationConfig(
            name=name,
            kind=(
                NavigationKind.COLLECTION
                if target_info.kind is PropertyKind.ENTITY_COLLECTION
                else NavigationKind.REFERENCE
            ),
            source_item_type=source_info.item_type,
            target_item_type=target_info.item_type,
            collection_factory=target_info.collection_factory,
            keep_on_removed=self.keep_on_removed(pair, name, target_info.item_type),
            keep_unmatched=keep_unmatched,
        )

    def _key_pair(
        self,
        source_props: dict[str, PropertyInfo],
        target_props: dict[str, PropertyInfo],
        source_name: str | None,
        target_name: str | None,
    ) -> KeyPair | None:
        if source_name is None or target_name is None:
            return None
        _, converter = self._converter(
            source_props[source_name].declared_type, target_props[target_name].declared_type
        )
        return KeyPair(source_name=source_name, target_name=target_name, converter=converter)

    def _scalar_pair(
        self, name: str, source_info: PropertyInfo, target_info: PropertyInfo
    ) -> ScalarPair | None:
        copyable, converter = self._converter(source_info.declared_type, target_info.declared_type)
        if not copyable:
            log.debug(
                "Skipping scalar %s: no converter from %s to %s",
                name,
                source_info.declared_type,
                target_info.declared_type,
            )
            return None
        return ScalarPair(name=name, converter=converter)

    def _converter(
        self, source_type: object, target_type: object
    ) -> tuple[bool, Converter | None]:
        if source_type == target_type:
            return True, None
        if isinstance(source_type, type) and isinstance(target_type, type):
            registered = self.converters.get((source_type, target_type))
            if registered is not None:
                return True, registered
            return issubclass(source_type, target_type), None
        return True, None
