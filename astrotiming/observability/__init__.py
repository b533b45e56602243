"""Runtime observability primitives for astrotiming modules."""

from __future__ import annotations

from .metrics import (
    ASPECT_COMPUTE_DURATION,
    COMPUTE_ERRORS,
    EPHEMERIS_CACHE_HITS,
    EPHEMERIS_CACHE_MISSES,
    EPHEMERIS_COMPUTE_DURATION,
    PATTERN_COMPUTE_DURATION,
    TIMING_RUN_DURATION,
    TIMING_WINDOWS_EMITTED,
    ensure_metrics_registered,
    record_error,
)

__all__ = [
    "ASPECT_COMPUTE_DURATION",
    "COMPUTE_ERRORS",
    "EPHEMERIS_CACHE_HITS",
    "EPHEMERIS_CACHE_MISSES",
    "EPHEMERIS_COMPUTE_DURATION",
    "PATTERN_COMPUTE_DURATION",
    "TIMING_RUN_DURATION",
    "TIMING_WINDOWS_EMITTED",
    "ensure_metrics_registered",
    "record_error",
]
