"""Aspect rules and pairwise detection."""

from __future__ import annotations

from ..canonical import ASPECT_ANGLES, AspectRule, AspectType, DetectedAspect
from .detector import (
    APPLYING_RULES,
    AspectDetector,
    aspects_between,
    aspects_for_body,
    is_applying,
    is_closing,
    sort_aspects,
)
from .rules import (
    ASPECT_NATURE,
    DEFAULT_INTENSITIES,
    DEFAULT_ORBS,
    MAJOR_ASPECTS,
    MAX_ORB,
    MINOR_ASPECTS,
    AspectRuleTable,
    aspect_nature,
)

__all__ = [
    "APPLYING_RULES",
    "ASPECT_ANGLES",
    "ASPECT_NATURE",
    "AspectDetector",
    "AspectRule",
    "AspectRuleTable",
    "AspectType",
    "DEFAULT_INTENSITIES",
    "DEFAULT_ORBS",
    "DetectedAspect",
    "MAJOR_ASPECTS",
    "MAX_ORB",
    "MINOR_ASPECTS",
    "aspect_nature",
    "aspects_between",
    "aspects_for_body",
    "is_applying",
    "is_closing",
    "sort_aspects",
]
