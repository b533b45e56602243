"""Ephemeris providers producing body positions for an instant."""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, runtime_checkable

from ..canonical import BodyPosition
from .cached import CachedEphemeris
from .periodic import DEFAULT_TERMS, BodyTerms, PeriodicEphemeris, PeriodicTerm

__all__ = [
    "BodyTerms",
    "CachedEphemeris",
    "DEFAULT_TERMS",
    "EphemerisProvider",
    "PeriodicEphemeris",
    "PeriodicTerm",
]


@runtime_checkable
class EphemerisProvider(Protocol):
    """Interface consumed by the projector and the timing engine.

    ``t_centuries`` is Julian centuries since J2000. Implementations raise
    :class:`astrotiming.errors.ValidationError` for unsupported bodies.
    """

    def supports(self, body: str) -> bool: ...

    def longitude(self, body: str, t_centuries: float) -> float: ...

    def speed(self, body: str, t_centuries: float) -> float: ...

    def position(self, body: str, moment: datetime | date) -> BodyPosition: ...

    def mean_daily_motion(self, body: str) -> float: ...
