"""Transit timing: trigger tables, window scoring and the timing engine."""

from __future__ import annotations

from .engine import WINDOW_KINDS, TimingEngineConfig, TimingRequest, TransitTimingEngine
from .scoring import (
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
from .triggers import DEFAULT_TRIGGERS, Trigger, TriggerTable

__all__ = [
    "ConfidenceWeights",
    "DEFAULT_TRIGGERS",
    "TimingEngineConfig",
    "TimingRequest",
    "TransitTimingEngine",
    "Trigger",
    "TriggerTable",
    "WINDOW_KINDS",
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
