"""Zodiac sign and element lookups keyed by ecliptic longitude."""

from __future__ import annotations

from collections.abc import Iterable

from .angles import normalize_degrees

__all__ = [
    "ELEMENTS",
    "MODALITIES",
    "SIGN_NAMES",
    "ZODIAC_ELEMENT_MAP",
    "common_element",
    "common_modality",
    "element_of_sign",
    "modality_of_sign",
    "sign_index",
    "sign_name",
]


SIGN_NAMES: tuple[str, ...] = (
    "aries",
    "taurus",
    "gemini",
    "cancer",
    "leo",
    "virgo",
    "libra",
    "scorpio",
    "sagittarius",
    "capricorn",
    "aquarius",
    "pisces",
)

ELEMENTS: tuple[str, ...] = ("fire", "earth", "air", "water")

ZODIAC_ELEMENT_MAP: tuple[str, ...] = tuple(ELEMENTS[idx % 4] for idx in range(12))

_SIGN_LOOKUP = {name: idx for idx, name in enumerate(SIGN_NAMES)}


def sign_index(longitude: float) -> int:
    """Return the 0-based zodiac sign index for ``longitude``."""

    return min(int(normalize_degrees(longitude) // 30.0), 11)


def sign_name(longitude: float) -> str:
    return SIGN_NAMES[sign_index(longitude)]


def element_of_sign(sign: str) -> str | None:
    """Return the element of ``sign`` or ``None`` when the sign is unknown."""

    idx = _SIGN_LOOKUP.get(str(sign).strip().lower())
    if idx is None:
        return None
    return ZODIAC_ELEMENT_MAP[idx]


def common_element(signs: Iterable[str]) -> str:
    """Return the shared element of ``signs`` or ``"mixed"``."""

    elements = {element_of_sign(sign) for sign in signs}
    if len(elements) == 1:
        (element,) = elements
        if element is not None:
            return element
    return "mixed"


MODALITIES: tuple[str, ...] = ("cardinal", "fixed", "mutable")


def modality_of_sign(sign: str) -> str | None:
    idx = _SIGN_LOOKUP.get(str(sign).strip().lower())
    if idx is None:
        return None
    return MODALITIES[idx % 3]


def common_modality(signs: Iterable[str]) -> str:
    """Return the shared modality of ``signs`` or ``"mixed"``."""

    modalities = {modality_of_sign(sign) for sign in signs}
    if len(modalities) == 1:
        (modality,) = modalities
        if modality is not None:
            return modality
    return "mixed"
