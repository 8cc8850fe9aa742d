"""Fluent construction of a :class:`~graphmapper.domain.mapper.Mapper`.

Typical use::

    mapper = (
        MapperBuilder()
        .configure()
        .set_concurrency_token_property_name("version")
        .finish()
        .configure_type_pair(BookDTO, Book)
        .exclude_properties_by_name("internal_notes")
        .finish()
        .register_two_way(BookDTO, Book)
        .build()
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from graphmapper.config.mapper import MapperDefaults

from .configuration import MapperConfiguration
from .errors import RedundantConfigurationError, SameTypeError
from .mapper import Mapper
from .registry import build_registry

if TYPE_CHECKING:
    from collections.abc import Callable

    from .configuration import TypePair, TypePairSettings, TypeSettings
    from .modes import MapToStorageMode

log = logging.getLogger(__name__)


class MapperBuilder:
    def __init__(self, *, defaults: MapperDefaults | None = None) -> None:
        self._configuration = MapperConfiguration(defaults or MapperDefaults())
        self._registered: list[TypePair] = []
        self._global_configured = False

    @property
    def configuration(self) -> MapperConfiguration:
        return self._configuration

    def configure(self) -> ConfigurationBuilder:
        """Configure global defaults."""

        if self._global_configured:
            self.report_redundant("Global configuration is already set")
        self._global_configured = True
        return ConfigurationBuilder(self)

    def configure_type[T](self, entity_type: type[T]) -> TypeConfigBuilder[T]:
        """Configure settings that apply to ``entity_type`` in every pair."""

        if entity_type in self._configuration.types:
            self.report_redundant(f"{entity_type.__qualname__} is already configured")
        self._configuration.add_known_types(entity_type)
        return TypeConfigBuilder(self, self._configuration.type_settings(entity_type))

    def configure_type_pair[S, T](
        self, source_type: type[S], target_type: type[T]
    ) -> TypePairConfigBuilder[S, T]:
        """Configure settings for mapping ``source_type`` into ``target_type``."""

        if (source_type, target_type) in self._configuration.pairs:
            self.report_redundant(
                f"{source_type.__qualname__} -> {target_type.__qualname__} is already configured"
            )
        self._configuration.add_known_types(source_type, target_type)
        return TypePairConfigBuilder(
            self, self._configuration.pair_settings(source_type, target_type)
        )

    def register_scalar_converter[S, T](
        self, source_type: type[S], target_type: type[T], converter: Callable[[S], T]
    ) -> MapperBuilder:
        """Convert scalar values of ``source_type`` into ``target_type`` when copying."""

        if source_type is target_type:
            raise SameTypeError(source_type, "A scalar converter")
        if (source_type, target_type) in self._configuration.converters:
            self.report_redundant(
                f"A converter from {source_type.__qualname__} to "
                f"{target_type.__qualname__} is already registered"
            )
        self._configuration.converters[(source_type, target_type)] = converter
        return self

    def with_factory_method[T](
        self, entity_type: type[T], factory: Callable[[], T]
    ) -> MapperBuilder:
        """Create new ``entity_type`` targets with ``factory`` instead of the constructor."""

        if entity_type in self._configuration.factories:
            self.report_redundant(f"A factory for {entity_type.__qualname__} is already registered")
        self._configuration.factories[entity_type] = factory
        return self

    def register(self, source_type: type[Any], target_type: type[Any]) -> MapperBuilder:
        pair = (source_type, target_type)
        if pair in self._registered:
            self.report_redundant(
                f"{source_type.__qualname__} -> {target_type.__qualname__} is already registered"
            )
            return self
        self._configuration.add_known_types(source_type, target_type)
        self._registered.append(pair)
        return self

    def register_two_way(self, first_type: type[Any], second_type: type[Any]) -> MapperBuilder:
        if first_type is second_type:
            raise SameTypeError(first_type, "A two-way registration")
        return self.register(first_type, second_type).register(second_type, first_type)

    def build(self) -> Mapper:
        """Validate the configuration and compile every registered pair."""

        registry = build_registry(self._configuration, self._registered)
        log.info(
            "Built mapper with %d type pairs (%d registered explicitly)",
            len(registry),
            len(self._registered),
        )
        return Mapper(registry)

    def report_redundant(self, message: str) -> None:
        if self._configuration.global_settings.throw_on_redundant_configuration:
            raise RedundantConfigurationError(message)
        log.debug("%s; merging", message)


class ConfigurationBuilder:
    def __init__(self, parent: MapperBuilder) -> None:
        self._parent = parent
        self._settings = parent.configuration.global_settings

    def set_identity_property_name(self, name: str) -> ConfigurationBuilder:
        self._settings.identity_property_name = name
        return self

    def set_concurrency_token_property_name(self, name: str | None) -> ConfigurationBuilder:
        self._settings.concurrency_token_property_name = name
        return self

    def exclude_properties(self, *names: str) -> ConfigurationBuilder:
        self._settings.excluded_properties.update(names)
        return self

    def set_dependent_removal_policy(self, *, keep: bool) -> ConfigurationBuilder:
        """Keep (unlink) or delete entities whose link to a parent disappears."""

        self._settings.keep_entity_on_mapping_removed = keep
        return self

    def set_map_to_storage_mode(self, mode: MapToStorageMode) -> ConfigurationBuilder:
        self._settings.map_to_storage_mode = mode
        return self

    def set_throw_on_redundant_configuration(self, *, throw: bool) -> ConfigurationBuilder:
        self._settings.throw_on_redundant_configuration = throw
        return self

    def set_register_reachable_pairs(self, *, register: bool) -> ConfigurationBuilder:
        self._settings.register_reachable_pairs = register
        return self

    def finish(self) -> MapperBuilder:
        return self._parent


class TypeConfigBuilder[T]:
    def __init__(self, parent: MapperBuilder, settings: TypeSettings) -> None:
        self._parent = parent
        self._settings = settings

    def set_identity_property_name(self, name: str) -> TypeConfigBuilder[T]:
        self._settings.identity_property_name = name
        return self

    def set_concurrency_token_property_name(self, name: str | None) -> TypeConfigBuilder[T]:
        self._settings.concurrency_token_property_name = name
        self._settings.has_concurrency_token_override = True
        return self

    def exclude_properties(self, *names: str) -> TypeConfigBuilder[T]:
        self._settings.excluded.update(names)
        return self

    def set_keep_entity_on_mapping_removed(self, *, keep: bool) -> TypeConfigBuilder[T]:
        self._settings.keep_entity_on_mapping_removed = keep
        return self

    def keep_unmatched(self, *navigation_names: str) -> TypeConfigBuilder[T]:
        """Never remove children of these navigations that the source does not mention."""

        self._settings.keep_unmatched.update(navigation_names)
        return self

    def finish(self) -> MapperBuilder:
        return self._parent


class TypePairConfigBuilder[S, T]:
    def __init__(self, parent: MapperBuilder, settings: TypePairSettings) -> None:
        self._parent = parent
        self._settings = settings

    def map_property(
        self, target_name: str, value_of: Callable[[S], Any]
    ) -> TypePairConfigBuilder[S, T]:
        """Set ``target_name`` from ``value_of(source)`` after the default copy."""

        if target_name in self._settings.custom_mappers:
            self._parent.report_redundant(f"{target_name!r} is already custom-mapped")
        self._settings.custom_mappers[target_name] = value_of
        return self

    def exclude_properties_by_name(self, *names: str) -> TypePairConfigBuilder[S, T]:
        self._settings.excluded.update(names)
        return self

    def set_mapping_keep_on_removed(self, *, keep: bool) -> TypePairConfigBuilder[S, T]:
        self._settings.keep_on_removed = keep
        return self

    def set_property_keep_on_removed(
        self, name: str, *, keep: bool
    ) -> TypePairConfigBuilder[S, T]:
        self._settings.property_keep_on_removed[name] = keep
        return self

    def keep_unmatched(self, *navigation_names: str) -> TypePairConfigBuilder[S, T]:
        self._settings.keep_unmatched.update(navigation_names)
        return self

    def set_map_to_storage_mode(self, mode: MapToStorageMode) -> TypePairConfigBuilder[S, T]:
        self._settings.mode = mode
        return self

    def finish(self) -> MapperBuilder:
        return self._parent
