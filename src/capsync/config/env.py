"""Typed readers for capsync environment variables."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable


def require_env_vars(names: Iterable[str]) -> dict[str, str]:
    """Read every variable in ``names`` (stripped); raise listing all blank or unset ones."""

    found = {name: (os.getenv(name) or "").strip() for name in names}
    missing = [name for name, value in found.items() if not value]
    if missing:
        raise MissingConfigurationError(missing)
    return found


def positive_int_env(name: str, default: int) -> int:
    """Parse ``name`` as an integer > 0; unset or blank means ``default``."""

    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value
