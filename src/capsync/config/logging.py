"""Root logger setup for the capsync CLI."""

from __future__ import annotations

import logging
import os
from typing import Final

from .errors import ConfigurationError

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# library loggers that drown out capsync's own INFO lines
_NOISY_LOGGERS: Final[tuple[str, ...]] = ("sqlalchemy.engine", "alembic.runtime.migration")


def resolve_log_level(default: int = logging.INFO) -> int:
    """Read ``CAPSYNC_LOG_LEVEL`` (a level name such as ``DEBUG``)."""

    raw = os.getenv("CAPSYNC_LOG_LEVEL", "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelNamesMapping().get(raw)
    if level is None:
        raise ConfigurationError(f"CAPSYNC_LOG_LEVEL must be a level name, got {raw!r}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger with a terse CLI format.

    ``level`` defaults to ``CAPSYNC_LOG_LEVEL`` or INFO. Pass ``force=True`` to
    replace handlers installed earlier.
    """

    effective = level if level is not None else resolve_log_level()
    logging.basicConfig(level=effective, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(effective, logging.WARNING))
