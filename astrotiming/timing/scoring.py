"""Strength, duration and confidence scoring for timing windows.

Everything here is a deterministic lookup or interpolation. The numbers
are heuristics carried over from the legacy timing service and are kept
stable so reports remain comparable between releases.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

import numpy as np

from ..canonical import DurationEstimate, TimingWindow
from ..errors import ConfigurationError

__all__ = [
    "CONFIDENCE_LEVELS",
    "ConfidenceWeights",
    "PEAK_DURATION_LABELS",
    "confidence_level",
    "confirming_windows",
    "days_to_exact",
    "duration_estimate",
    "estimate_window_days",
    "format_time_span",
    "period_confidence",
    "timing_precision",
    "window_confidence",
    "window_strength",
]


COUNT_BONUS_STEP: Final[float] = 0.1
COUNT_BONUS_CAP: Final[float] = 0.3
INDICATOR_STEP: Final[float] = 0.1
INDICATOR_CAP: Final[int] = 5
DEFAULT_WINDOW_ORB: Final[float] = 2.0
PRECISION_MAX_ORB: Final[float] = 15.0
MIN_DAILY_MOTION: Final[float] = 1e-6

# (strength, days) anchors for per-window influence span.
_DURATION_STRENGTH = np.array([0.0, 0.6, 0.8, 1.0])
_DURATION_DAYS = np.array([14.0, 30.0, 90.0, 180.0])

# (exclusive lower bound on mean strength, label, min days, max days)
_DURATION_BUCKETS: tuple[tuple[float, str, int, int], ...] = (
    (0.8, "3-6 months", 90, 180),
    (0.6, "1-3 months", 30, 90),
    (-math.inf, "2-4 weeks", 14, 28),
)

PEAK_DURATION_LABELS: Mapping[str, str] = MappingProxyType(
    {
        "solar_arc_angle": "2-3 months",
        "secondary_angle": "1-2 months",
        "trigger": "3-6 weeks",
        "concentration": "1 month",
    }
)

CONFIDENCE_LEVELS: tuple[tuple[float, str], ...] = (
    (0.8, "high"),
    (0.6, "medium"),
    (0.4, "low"),
)


def window_strength(strengths: Sequence[float]) -> float:
    """Mean aspect strength plus a bonus of 0.1 per aspect, capped at 0.3."""

    if not strengths:
        return 0.0
    mean = sum(strengths) / len(strengths)
    bonus = min(COUNT_BONUS_STEP * len(strengths), COUNT_BONUS_CAP)
    return min(1.0, mean + bonus)


def estimate_window_days(strength: float) -> float:
    return float(np.interp(float(strength), _DURATION_STRENGTH, _DURATION_DAYS))


def duration_estimate(windows: Sequence[TimingWindow]) -> DurationEstimate:
    """Bucket the mean window strength into an influence span."""

    if not windows:
        return DurationEstimate(
            label="none",
            min_days=0,
            max_days=0,
            based_on="0 timing indicators",
            mean_strength=0.0,
        )
    mean = sum(w.strength for w in windows) / len(windows)
    for bound, label, low, high in _DURATION_BUCKETS:
        if mean > bound:
            return DurationEstimate(
                label=label,
                min_days=low,
                max_days=high,
                based_on=f"{len(windows)} timing indicators",
                mean_strength=mean,
            )
    raise AssertionError("duration buckets must cover every strength")


def days_to_exact(orb: float, daily_motion: float | None) -> float | None:
    """Days the faster body needs to close ``orb`` at ``daily_motion``.

    ``None`` when the motion is unknown or too slow to measure.
    """

    if daily_motion is None:
        return None
    motion = abs(float(daily_motion))
    if motion < MIN_DAILY_MOTION:
        return None
    return abs(float(orb)) / motion


def timing_precision(
    orb: float | None,
    daily_motion: float | None = None,
    *,
    max_orb: float = PRECISION_MAX_ORB,
) -> float:
    """Inverse of the days remaining to exact, ``1 / (1 + days)``.

    ``daily_motion`` is the faster body's speed in degrees per day. Without
    a usable motion the score falls back to ``1 - orb / max_orb`` clamped
    to ``[0, 1]``. Windows without an orb count as a 2° orb.
    """

    value = DEFAULT_WINDOW_ORB if orb is None else abs(float(orb))
    days = days_to_exact(value, daily_motion)
    if days is None:
        return max(0.0, min(1.0, 1.0 - value / max_orb))
    return 1.0 / (1.0 + days)


@dataclass(frozen=True)
class ConfidenceWeights:
    """Relative weights of indicators, strength and precision."""

    indicators: float = 1.0
    strength: float = 1.0
    precision: float = 1.0

    def __post_init__(self) -> None:
        values = (self.indicators, self.strength, self.precision)
        if any(not math.isfinite(v) or v < 0 for v in values) or sum(values) <= 0:
            raise ConfigurationError("confidence weights must be non-negative with a positive sum")

    @property
    def total(self) -> float:
        return self.indicators + self.strength + self.precision


def _indicator_score(count: int) -> float:
    return min(max(count, 1), INDICATOR_CAP) * INDICATOR_STEP


def window_confidence(window: TimingWindow, weights: ConfidenceWeights = ConfidenceWeights()) -> float:
    """Confidence of a single window from its own aspect count."""

    score = (
        weights.indicators * _indicator_score(window.indicators)
        + weights.strength * window.strength
        + weights.precision * window.precision
    )
    return score / weights.total


def confirming_windows(windows: Sequence[TimingWindow]) -> int:
    """Number of independent windows; repeats of one kind and participant set count once."""

    return len({(w.kind, w.participants) for w in windows})


def period_confidence(
    windows: Sequence[TimingWindow], weights: ConfidenceWeights = ConfidenceWeights()
) -> float:
    """Weighted mean of confirming windows, mean strength and mean precision."""

    if not windows:
        return 0.0
    strength = sum(w.strength for w in windows) / len(windows)
    precision = sum(w.precision for w in windows) / len(windows)
    score = (
        weights.indicators * _indicator_score(confirming_windows(windows))
        + weights.strength * strength
        + weights.precision * precision
    )
    return min(1.0, score / weights.total)


def confidence_level(value: float) -> str:
    for threshold, label in CONFIDENCE_LEVELS:
        if value >= threshold:
            return label
    return "minimal"


def format_time_span(days: float) -> str:
    """Human readable span such as ``within 3 weeks``."""

    if days < 1:
        return "within 1 day"
    if days < 7:
        return f"within {math.ceil(days)} days"
    if days < 30:
        return f"within {math.ceil(days / 7)} weeks"
    if days < 365:
        return f"within {math.ceil(days / 30)} months"
    return f"within {math.ceil(days / 365)} years"
