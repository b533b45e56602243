"""Time scale conversions used by the ephemeris and the projector."""

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone

from ..errors import ValidationError

__all__ = [
    "DAYS_PER_JULIAN_CENTURY",
    "DAYS_PER_YEAR",
    "J2000_JD",
    "centuries_since_j2000",
    "elapsed_years",
    "ensure_utc",
    "julian_day",
]


UNIX_EPOCH_JD = 2440587.5
J2000_JD = 2451545.0
DAYS_PER_JULIAN_CENTURY = 36525.0
# Year length used for elapsed-time projection.
DAYS_PER_YEAR = 365.25


def ensure_utc(moment: datetime | date) -> datetime:
    """Return ``moment`` as an aware UTC :class:`datetime`.

    Naive datetimes are interpreted as UTC; plain dates map to midnight.
    """

    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc)
    if isinstance(moment, date):
        return datetime.combine(moment, time(0, 0), tzinfo=timezone.utc)
    raise ValidationError(
        "moment must be a date or datetime",
        context={"type": type(moment).__name__},
    )


def julian_day(moment: datetime | date) -> float:
    """Julian day number (UT) for ``moment``."""

    ts = ensure_utc(moment).timestamp()
    return ts / 86400.0 + UNIX_EPOCH_JD


def centuries_since_j2000(moment: datetime | date) -> float:
    return (julian_day(moment) - J2000_JD) / DAYS_PER_JULIAN_CENTURY


def elapsed_years(reference: datetime | date, moment: datetime | date) -> float:
    """Years between ``reference`` and ``moment`` using a 365.25 day year."""

    delta = ensure_utc(moment) - ensure_utc(reference)
    years = delta.total_seconds() / 86400.0 / DAYS_PER_YEAR
    if not math.isfinite(years):
        raise ValidationError("elapsed time is not finite")
    return years
