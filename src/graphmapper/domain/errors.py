"""Errors raised while building a mapper or walking an object graph.

Build-time errors derive from :class:`MapperBuildError` and are raised by
``MapperBuilder.build()`` (or by the builder call that introduced the problem).
Walk-time errors derive from :class:`MappingError` and surface directly from
``map``/``map_to_storage``/``map_async``; nothing is retried or swallowed.
"""

from __future__ import annotations

from typing import Any


def _type_name(cls: type[Any]) -> str:
    return cls.__qualname__


class MapperError(RuntimeError):
    """Base class for every graphmapper error."""


class MapperBuildError(MapperError):
    """Raised when the mapping configuration is inconsistent."""


class MappingError(MapperError):
    """Raised when a graph cannot be mapped."""


# build time


class KeyPropertyExcludedError(MapperBuildError):
    """Raised when an identity or concurrency-token property is excluded."""

    def __init__(self, entity_type: type[Any], property_name: str) -> None:
        self.entity_type = entity_type
        self.property_name = property_name
        super().__init__(
            f"Key property {property_name!r} of {_type_name(entity_type)} cannot be excluded"
        )


class UselessExclusionError(MapperBuildError):
    """Raised when an exclusion can never apply to a registered mapping."""

    def __init__(self, entity_type: type[Any], property_name: str, reason: str) -> None:
        self.entity_type = entity_type
        self.property_name = property_name
        super().__init__(
            f"Excluding {property_name!r} on {_type_name(entity_type)} has no effect: {reason}"
        )


class CustomMappingConflictError(MapperBuildError):
    """Raised when a custom-mapped property is also excluded or does not exist."""

    def __init__(
        self,
        source_type: type[Any],
        target_type: type[Any],
        property_name: str,
        reason: str,
    ) -> None:
        self.source_type = source_type
        self.target_type = target_type
        self.property_name = property_name
        super().__init__(
            f"Custom mapping of {property_name!r} for "
            f"{_type_name(source_type)} -> {_type_name(target_type)}: {reason}"
        )


class InvalidNavigationError(MapperBuildError):
    """Raised when a navigation-only setting names a non-navigation property."""

    def __init__(self, entity_type: type[Any], property_name: str) -> None:
        self.entity_type = entity_type
        self.property_name = property_name
        super().__init__(
            f"{property_name!r} is not an entity or entity-collection property "
            f"of {_type_name(entity_type)}"
        )


class RedundantConfigurationError(MapperBuildError):
    """Raised on repeated configuration when redundancy is configured to be an error."""


class SameTypeError(MapperBuildError):
    """Raised when a two-way pair or scalar converter uses the same type on both ends."""

    def __init__(self, entity_type: type[Any], what: str) -> None:
        self.entity_type = entity_type
        super().__init__(f"{what} needs two different types, got {_type_name(entity_type)} twice")


class FactoryMethodError(MapperBuildError):
    """Raised when a target type cannot be constructed without arguments."""

    def __init__(self, entity_type: type[Any]) -> None:
        self.entity_type = entity_type
        super().__init__(
            f"{_type_name(entity_type)} needs constructor arguments; "
            "register a factory with with_factory_method()"
        )


class UnregisteredMappingError(MapperBuildError, MappingError):
    """Raised when no usable mapper is registered for a type pair.

    Raised at build time for nested pairs that must be registered, and at walk
    time for runtime types never registered or whose mode forbids the mapping.
    """

    def __init__(self, source_type: type[Any], target_type: type[Any], reason: str = "") -> None:
        self.source_type = source_type
        self.target_type = target_type
        message = (
            f"No mapping registered for {_type_name(source_type)} -> {_type_name(target_type)}"
        )
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


# walk time


class EntityNotFoundError(MappingError):
    """Raised when a source identity has no matching persisted target."""

    def __init__(self, entity_type: type[Any], identity: object) -> None:
        self.entity_type = entity_type
        self.identity = identity
        super().__init__(f"{_type_name(entity_type)} with identity {identity!r} not found")


class ConcurrencyTokenError(MappingError):
    """Raised when a source concurrency token does not match the persisted one."""

    def __init__(self, entity_type: type[Any], identity: object) -> None:
        self.entity_type = entity_type
        self.identity = identity
        super().__init__(
            f"Concurrency token of {_type_name(entity_type)} {identity!r} does not match "
            "the persisted record"
        )


class MissingConcurrencyTokenError(MappingError):
    """Raised when a persisted record lacks the concurrency token the source carries."""

    def __init__(self, entity_type: type[Any], identity: object) -> None:
        self.entity_type = entity_type
        self.identity = identity
        super().__init__(
            f"Persisted {_type_name(entity_type)} {identity!r} has no concurrency token"
        )


class UpdateWithoutIdentityError(MappingError):
    """Raised when a new target would be created for a pair that only allows updates."""

    def __init__(self, source_type: type[Any], target_type: type[Any]) -> None:
        self.source_type = source_type
        self.target_type = target_type
        super().__init__(
            f"Cannot update {_type_name(target_type)} from {_type_name(source_type)} "
            "without an identity"
        )


class InsertWithExistingIdentityError(MappingError):
    """Raised when an existing record would be updated for a pair that only allows inserts."""

    def __init__(self, entity_type: type[Any], identity: object) -> None:
        self.entity_type = entity_type
        self.identity = identity
        super().__init__(
            f"Cannot insert {_type_name(entity_type)} {identity!r}: the record already exists"
        )


class DuplicateCollectionItemError(MappingError):
    """Raised when a source collection contains the same identity twice."""

    def __init__(self, entity_type: type[Any], identity: object) -> None:
        self.entity_type = entity_type
        self.identity = identity
        super().__init__(
            f"Source collection contains {_type_name(entity_type)} {identity!r} more than once"
        )


class ConcurrentSessionUseError(MappingError):
    """Raised when a mapping session is entered while another mapping is in flight."""
