from __future__ import annotations

from importlib import metadata

from graphmapper.domain.builder import MapperBuilder
from graphmapper.domain.errors import (
    ConcurrencyTokenError,
    ConcurrentSessionUseError,
    CustomMappingConflictError,
    DuplicateCollectionItemError,
    EntityNotFoundError,
    FactoryMethodError,
    InsertWithExistingIdentityError,
    InvalidNavigationError,
    KeyPropertyExcludedError,
    MapperBuildError,
    MapperError,
    MappingError,
    MissingConcurrencyTokenError,
    RedundantConfigurationError,
    SameTypeError,
    UnregisteredMappingError,
    UpdateWithoutIdentityError,
    UselessExclusionError,
)
from graphmapper.domain.mapper import Mapper
from graphmapper.domain.modes import MapToStorageMode

try:
    __version__ = metadata.version("graphmapper")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0+local"

__all__ = [
    "ConcurrencyTokenError",
    "ConcurrentSessionUseError",
    "CustomMappingConflictError",
    "DuplicateCollectionItemError",
    "EntityNotFoundError",
    "FactoryMethodError",
    "InsertWithExistingIdentityError",
    "InvalidNavigationError",
    "KeyPropertyExcludedError",
    "MapToStorageMode",
    "Mapper",
    "MapperBuildError",
    "MapperBuilder",
    "MapperError",
    "MappingError",
    "MissingConcurrencyTokenError",
    "RedundantConfigurationError",
    "SameTypeError",
    "UnregisteredMappingError",
    "UpdateWithoutIdentityError",
    "UselessExclusionError",
    "__version__",
]
