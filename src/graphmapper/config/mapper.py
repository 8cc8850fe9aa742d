"""Environment-driven defaults for the mapper builder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from graphmapper.domain.modes import MapToStorageMode

from .env import load_environment, optional_env_var, parse_bool
from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

IDENTITY_PROPERTY_ENV: Final[str] = "GRAPHMAPPER_IDENTITY_PROPERTY"
CONCURRENCY_TOKEN_PROPERTY_ENV: Final[str] = "GRAPHMAPPER_CONCURRENCY_TOKEN_PROPERTY"
EXCLUDED_PROPERTIES_ENV: Final[str] = "GRAPHMAPPER_EXCLUDED_PROPERTIES"
KEEP_ON_REMOVED_ENV: Final[str] = "GRAPHMAPPER_KEEP_ENTITY_ON_MAPPING_REMOVED"
MAP_TO_STORAGE_MODE_ENV: Final[str] = "GRAPHMAPPER_MAP_TO_STORAGE_MODE"
THROW_ON_REDUNDANT_ENV: Final[str] = "GRAPHMAPPER_THROW_ON_REDUNDANT_CONFIGURATION"


@dataclass(frozen=True, slots=True, kw_only=True)
class MapperDefaults:
    """Global defaults applied when neither a type nor a type pair overrides them."""

    identity_property_name: str = "id"
    concurrency_token_property_name: str | None = None
    excluded_properties: frozenset[str] = frozenset()
    keep_entity_on_mapping_removed: bool = False
    map_to_storage_mode: MapToStorageMode = MapToStorageMode.MEMORY_AND_UPSERT
    throw_on_redundant_configuration: bool = False
    register_reachable_pairs: bool = True


def get_mapper_defaults(
    *,
    env_file: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> MapperDefaults:
    """Build :class:`MapperDefaults` from ``GRAPHMAPPER_*`` variables.

    ``environ`` replaces the process environment entirely (useful in tests);
    otherwise the process environment is layered over ``env_file``.
    """

    source = load_environment(env_file) if environ is None else environ
    defaults = MapperDefaults()

    identity = optional_env_var(IDENTITY_PROPERTY_ENV, environ=source)
    token = optional_env_var(CONCURRENCY_TOKEN_PROPERTY_ENV, environ=source)
    excluded = optional_env_var(EXCLUDED_PROPERTIES_ENV, environ=source)
    keep = optional_env_var(KEEP_ON_REMOVED_ENV, environ=source)
    mode = optional_env_var(MAP_TO_STORAGE_MODE_ENV, environ=source)
    throw = optional_env_var(THROW_ON_REDUNDANT_ENV, environ=source)

    try:
        resolved_mode = MapToStorageMode.parse(mode) if mode else defaults.map_to_storage_mode
    except ValueError as exc:
        raise ConfigurationError(f"{MAP_TO_STORAGE_MODE_ENV}: {exc}") from exc

    return MapperDefaults(
        identity_property_name=identity or defaults.identity_property_name,
        concurrency_token_property_name=token,
        excluded_properties=(
            frozenset(name.strip() for name in excluded.split(",") if name.strip())
            if excluded
            else defaults.excluded_properties
        ),
        keep_entity_on_mapping_removed=(
            parse_bool(KEEP_ON_REMOVED_ENV, keep)
            if keep
            else defaults.keep_entity_on_mapping_removed
        ),
        map_to_storage_mode=resolved_mode,
        throw_on_redundant_configuration=(
            parse_bool(THROW_ON_REDUNDANT_ENV, throw)
            if throw
            else defaults.throw_on_redundant_configuration
        ),
    )
