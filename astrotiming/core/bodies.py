"""Body catalogue helpers for names, classes, and chart angles."""

from __future__ import annotations

from typing import Dict, FrozenSet

__all__ = [
    "CHART_ANGLES",
    "INNER_PLANETS",
    "KEY_TIMING_BODIES",
    "PLANETARY_BODIES",
    "body_class",
    "canonical_name",
    "is_chart_angle",
]


PLANETARY_BODIES: tuple[str, ...] = (
    "SUN",
    "MOON",
    "MERCURY",
    "VENUS",
    "MARS",
    "JUPITER",
    "SATURN",
    "URANUS",
    "NEPTUNE",
    "PLUTO",
)

# Bodies projected and transited by the timing engine.
KEY_TIMING_BODIES: tuple[str, ...] = ("SUN", "MOON", "MARS", "JUPITER", "SATURN")

INNER_PLANETS: FrozenSet[str] = frozenset({"MERCURY", "VENUS"})

CHART_ANGLES: FrozenSet[str] = frozenset({"ASC", "MC", "DSC", "IC"})

_BODY_CLASS: Dict[str, str] = {
    "SUN": "luminary",
    "MOON": "luminary",
    "MERCURY": "personal",
    "VENUS": "personal",
    "MARS": "personal",
    "JUPITER": "social",
    "SATURN": "social",
    "URANUS": "outer",
    "NEPTUNE": "outer",
    "PLUTO": "outer",
    "ASC": "angle",
    "MC": "angle",
    "DSC": "angle",
    "IC": "angle",
}

_BODY_ALIASES: Dict[str, str] = {
    "ASCENDANT": "ASC",
    "MIDHEAVEN": "MC",
    "DESCENDANT": "DSC",
    "IMUM_COELI": "IC",
}


def canonical_name(name: str) -> str:
    """Return the canonical upper-case identifier for ``name``."""

    key = str(name).strip().upper().replace(" ", "_").replace("-", "_")
    return _BODY_ALIASES.get(key, key)


def body_class(name: str) -> str:
    """Return the body class (``luminary``, ``personal`` ...) or ``other``."""

    return _BODY_CLASS.get(canonical_name(name), "other")


def is_chart_angle(name: str) -> bool:
    return canonical_name(name) in CHART_ANGLES
