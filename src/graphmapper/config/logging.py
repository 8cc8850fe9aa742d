"""Root logger setup for applications embedding graphmapper.

Mapper builds and adapter startup/shutdown log at INFO; insert, delete and
unlink registrations during a walk log at DEBUG under ``graphmapper.domain.walker``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from .env import optional_env_var
from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

LOG_LEVEL_ENV: Final[str] = "GRAPHMAPPER_LOG_LEVEL"
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_log_level(
    level: int | str | None = None, *, environ: Mapping[str, str] | None = None
) -> int:
    """Turn a level name or number into a number; ``None`` reads ``GRAPHMAPPER_LOG_LEVEL``."""

    if level is None:
        level = optional_env_var(LOG_LEVEL_ENV, environ=environ) or logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelNamesMapping().get(level.strip().upper())
    if resolved is None:
        raise ConfigurationError(f"Unknown log level {level!r}")
    return resolved


def configure_logging(
    *,
    level: int | str | None = None,
    force: bool = False,
    environ: Mapping[str, str] | None = None,
) -> None:
    logging.basicConfig(
        level=resolve_log_level(level, environ=environ),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
