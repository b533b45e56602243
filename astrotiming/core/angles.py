"""Angular utilities shared across aspect and timing calculations.

Every longitude in the package lives on the ``[0, 360)`` circle. Comparing
separations against aspect targets with raw modulo arithmetic invites
subtle bugs around the 0°/360° boundary, so the helpers here centralise
the wrap-around rules and the folded (shortest arc) distance used by the
aspect detector.
"""

from __future__ import annotations

import math
from typing import Final

__all__ = [
    "EPSILON_DEG",
    "angular_distance",
    "directional_separation",
    "is_finite_angle",
    "normalize_degrees",
    "signed_delta",
    "within_orb",
]


EPSILON_DEG: Final[float] = 1e-9


def is_finite_angle(value: object) -> bool:
    """Return ``True`` when ``value`` is a real, finite number."""

    if isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False


def normalize_degrees(angle: float) -> float:
    """Return ``angle`` normalised to the ``[0, 360)`` interval.

    Parameters
    ----------
    angle:
        Value in **degrees**. Inputs outside the canonical range are
        wrapped by multiples of 360°.

    Returns
    -------
    float
        A degree value in ``[0, 360)``. Values within ``1e-9`` of ``360``
        are coerced to ``0`` so the function is idempotent and callers can
        rely on a consistent wrap-around contract.
    """

    wrapped = float(angle) % 360.0
    if wrapped >= 360.0 - EPSILON_DEG:
        wrapped = 0.0
    return wrapped if wrapped >= 0.0 else wrapped + 360.0


def signed_delta(angle: float) -> float:
    """Return ``angle`` wrapped to the ``[-180, 180)`` interval."""

    wrapped = normalize_degrees(angle)
    if wrapped >= 180.0:
        return wrapped - 360.0
    return wrapped


def directional_separation(from_deg: float, to_deg: float) -> float:
    """Counter-clockwise arc travelled from ``from_deg`` to ``to_deg``."""

    return normalize_degrees(float(to_deg) - float(from_deg))


def angular_distance(a: float, b: float) -> float:
    """Shortest arc between ``a`` and ``b`` in ``[0, 180]``.

    The result is symmetric in its arguments and unaffected by adding
    multiples of 360° to either input.
    """

    diff = directional_separation(a, b)
    return 360.0 - diff if diff > 180.0 else diff


def within_orb(measured: float, target: float, orb: float) -> bool:
    """Return ``True`` when ``measured`` lies within ``orb`` of ``target``."""

    return angular_distance(measured, target) <= float(orb) + EPSILON_DEG
