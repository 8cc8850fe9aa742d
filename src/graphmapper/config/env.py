"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from dotenv import dotenv_values

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def load_environment(env_file: Path | str | None = None) -> dict[str, str]:
    """Return ``os.environ`` layered over the values of an optional ``.env`` file.

    Process environment wins over the file, matching ``load_dotenv(override=False)``.
    The process environment itself is never modified.
    """

    values: dict[str, str] = {}
    if env_file is not None:
        values.update(
            {key: value for key, value in dotenv_values(env_file).items() if value is not None}
        )
    values.update(os.environ)
    return values


def optional_env_var(name: str, *, environ: Mapping[str, str] | None = None) -> str | None:
    """Return the stripped value of ``name`` or ``None`` when unset or blank."""

    source = os.environ if environ is None else environ
    value = source.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")
