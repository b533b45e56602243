"""Low level helpers shared by every astrotiming component."""

from __future__ import annotations

from .angles import (
    angular_distance,
    directional_separation,
    normalize_degrees,
    signed_delta,
    within_orb,
)

__all__ = [
    "angular_distance",
    "directional_separation",
    "normalize_degrees",
    "signed_delta",
    "within_orb",
]
