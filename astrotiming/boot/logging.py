"""Logging setup shared by the astrotiming CLI and embedding services."""

from __future__ import annotations

import logging
import os
from typing import Any

__all__ = ["configure_logging", "resolve_level"]

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Checked in order when no explicit level is passed.
LEVEL_ENV_VARS = ("ASTROTIMING_LOG_LEVEL", "LOG_LEVEL")

_ALIASES = {
    "WARN": logging.WARNING,
    "QUIET": logging.ERROR,
    "VERBOSE": logging.DEBUG,
}


def resolve_level(value: str | int | None) -> int:
    """Map a level name, alias or number onto a :mod:`logging` level.

    Unknown names resolve to ``INFO`` so a typo in an environment
    variable never disables output.
    """

    if isinstance(value, int):
        return value
    text = (value or "").strip().upper()
    if not text:
        return logging.INFO
    if text.isdigit():
        return int(text)
    if text in _ALIASES:
        return _ALIASES[text]
    named = logging.getLevelName(text)
    return named if isinstance(named, int) else logging.INFO


def _level_from_env() -> str | None:
    return next((os.environ[name] for name in LEVEL_ENV_VARS if os.environ.get(name)), None)


def configure_logging(*, level: str | int | None = None, **kwargs: Any) -> int:
    """Install the root handler and return the level applied.

    ``level`` falls back to ``ASTROTIMING_LOG_LEVEL`` and then
    ``LOG_LEVEL``. Remaining ``kwargs`` go to :func:`logging.basicConfig`;
    an existing root configuration is replaced unless ``force=False``.
    """

    applied = resolve_level(level if level is not None else _level_from_env())
    kwargs.setdefault("format", LOG_FORMAT)
    kwargs.setdefault("datefmt", LOG_DATEFMT)
    kwargs.setdefault("force", True)
    logging.basicConfig(level=applied, **kwargs)
    return applied
