from __future__ import annotations

from datetime import datetime, timezone

import pytest

from astrotiming.canonical import TimingWindow
from astrotiming.errors import ConfigurationError
from astrotiming.timing.scoring import (
    ConfidenceWeights,
    confidence_level,
    confirming_windows,
    days_to_exact,
    duration_estimate,
    estimate_window_days,
    format_time_span,
    period_confidence,
    timing_precision,
    window_confidence,
    window_strength,
)

WHEN = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _window(
    strength: float,
    *,
    indicators: int = 1,
    precision: float = 0.5,
    participants: tuple[str, ...] = (),
) -> TimingWindow:
    return TimingWindow(
        kind="trigger",
        date=WHEN,
        strength=strength,
        estimated_duration_days=estimate_window_days(strength),
        participants=participants,
        indicators=indicators,
        precision=precision,
    )


@pytest.mark.parametrize(
    ("strengths", "expected"),
    [
        ([], 0.0),
        ([0.5], 0.6),
        ([0.2] * 5, 0.5),
        ([1.0, 1.0], 1.0),
    ],
)
def test_window_strength(strengths: list[float], expected: float) -> None:
    assert window_strength(strengths) == pytest.approx(expected)


@pytest.mark.parametrize(
    ("strength", "days"),
    [(0.0, 14.0), (0.3, 22.0), (0.6, 30.0), (0.7, 60.0), (0.8, 90.0), (1.0, 180.0), (1.5, 180.0)],
)
def test_estimate_window_days(strength: float, days: float) -> None:
    assert estimate_window_days(strength) == pytest.approx(days)


def test_duration_buckets() -> None:
    assert duration_estimate([_window(0.9), _window(0.85)]).label == "3-6 months"
    medium = duration_estimate([_window(0.7)])
    assert (medium.label, medium.min_days, medium.max_days) == ("1-3 months", 30, 90)
    # Exactly 0.8 is not above the upper bound.
    assert duration_estimate([_window(0.8)]).label == "1-3 months"
    low = duration_estimate([_window(0.3), _window(0.5)])
    assert low.label == "2-4 weeks"
    assert low.based_on == "2 timing indicators"
    assert duration_estimate([]).label == "none"


def test_timing_precision_without_motion_uses_orb_scale() -> None:
    assert timing_precision(0.0) == 1.0
    assert timing_precision(7.5) == pytest.approx(0.5)
    assert timing_precision(30.0) == 0.0
    assert timing_precision(None) == pytest.approx(1.0 - 2.0 / 15.0)
    assert timing_precision(3.0, 0.0) == pytest.approx(0.8)


def test_timing_precision_normalises_by_daily_motion() -> None:
    assert days_to_exact(2.0, 13.0) == pytest.approx(2.0 / 13.0)
    assert days_to_exact(2.0, None) is None
    assert timing_precision(0.0, 13.0) == 1.0
    moon = timing_precision(2.0, 13.0)
    saturn = timing_precision(2.0, -0.03)
    assert moon == pytest.approx(1.0 / (1.0 + 2.0 / 13.0))
    assert saturn == pytest.approx(1.0 / (1.0 + 2.0 / 0.03))
    assert moon > saturn


def test_window_confidence_is_weighted_mean() -> None:
    window = _window(0.9, indicators=3, precision=0.6)
    assert window_confidence(window) == pytest.approx((0.3 + 0.9 + 0.6) / 3)
    weights = ConfidenceWeights(indicators=0.0, strength=1.0, precision=0.0)
    assert window_confidence(window, weights) == pytest.approx(0.9)
    # Indicator counts are capped at five.
    many = _window(0.9, indicators=12, precision=0.6)
    assert window_confidence(many) == pytest.approx((0.5 + 0.9 + 0.6) / 3)


def test_period_confidence() -> None:
    assert period_confidence([]) == 0.0
    windows = [_window(1.0, indicators=5, precision=1.0), _window(0.5, indicators=1, precision=0.5)]
    # Same kind and participants: one confirming window.
    assert confirming_windows(windows) == 1
    assert period_confidence(windows) == pytest.approx((0.1 + 0.75 + 0.75) / 3)


def test_more_confirming_windows_raise_confidence() -> None:
    one = [_window(0.7, precision=0.6, participants=("MARS", "SUN"))]
    pairs = [("MARS", "SUN"), ("MOON", "SUN"), ("SUN", "VENUS"), ("JUPITER", "SUN"), ("MOON", "VENUS")]
    five = [_window(0.7, precision=0.6, participants=pair) for pair in pairs]
    assert confirming_windows(five) == 5
    assert period_confidence(five) > period_confidence(one)
    assert period_confidence(five) == pytest.approx((0.5 + 0.7 + 0.6) / 3)
    # Repeats of one window on later dates do not count again.
    assert period_confidence(one * 4) == pytest.approx(period_confidence(one))
    six = five + [_window(0.7, precision=0.6, participants=("MARS", "MOON"))]
    assert period_confidence(six) == pytest.approx(period_confidence(five))


def test_confidence_weights_validation() -> None:
    with pytest.raises(ConfigurationError):
        ConfidenceWeights(indicators=-1.0)
    with pytest.raises(ConfigurationError):
        ConfidenceWeights(indicators=0.0, strength=0.0, precision=0.0)


@pytest.mark.parametrize(
    ("value", "label"),
    [(0.95, "high"), (0.8, "high"), (0.65, "medium"), (0.4, "low"), (0.1, "minimal")],
)
def test_confidence_level(value: float, label: str) -> None:
    assert confidence_level(value) == label


@pytest.mark.parametrize(
    ("days", "text"),
    [
        (0.5, "within 1 day"),
        (3, "within 3 days"),
        (10, "within 2 weeks"),
        (45, "within 2 months"),
        (400, "within 2 years"),
    ],
)
def test_format_time_span(days: float, text: str) -> None:
    assert format_time_span(days) == text
