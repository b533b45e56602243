"""Prometheus metric definitions shared across astrotiming components."""

from __future__ import annotations

from collections.abc import Iterable

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

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


ASPECT_COMPUTE_DURATION = Histogram(
    "astrotiming_aspect_compute_duration_seconds",
    "Duration of pairwise aspect detection over a position set.",
    ("method",),
    registry=None,
)

PATTERN_COMPUTE_DURATION = Histogram(
    "astrotiming_pattern_compute_duration_seconds",
    "Duration of multi-body configuration detection.",
    ("kind",),
    registry=None,
)

EPHEMERIS_COMPUTE_DURATION = Histogram(
    "astrotiming_ephemeris_compute_duration_seconds",
    "Duration of periodic-term ephemeris evaluations.",
    ("adapter", "body"),
    registry=None,
)

EPHEMERIS_CACHE_HITS = Counter(
    "astrotiming_ephemeris_cache_hits_total",
    "Total ephemeris lookups served from the quantised cache.",
    ("adapter",),
    registry=None,
)

EPHEMERIS_CACHE_MISSES = Counter(
    "astrotiming_ephemeris_cache_misses_total",
    "Total ephemeris cache misses that required backend computation.",
    ("adapter",),
    registry=None,
)

TIMING_RUN_DURATION = Histogram(
    "astrotiming_timing_run_duration_seconds",
    "Duration of full transit timing runs.",
    ("event_category",),
    registry=None,
)

TIMING_WINDOWS_EMITTED = Counter(
    "astrotiming_timing_windows_total",
    "Timing windows emitted grouped by window kind.",
    ("kind",),
    registry=None,
)

COMPUTE_ERRORS = Counter(
    "astrotiming_compute_errors_total",
    "Count of runtime failures across compute-heavy routines.",
    ("component", "error"),
    registry=None,
)


def record_error(component: str, exc: BaseException) -> None:
    """Increment :data:`COMPUTE_ERRORS` for ``exc`` raised in ``component``."""

    COMPUTE_ERRORS.labels(component=component, error=type(exc).__name__).inc()


def _iter_metrics() -> Iterable[Counter | Histogram]:
    yield ASPECT_COMPUTE_DURATION
    yield PATTERN_COMPUTE_DURATION
    yield EPHEMERIS_COMPUTE_DURATION
    yield EPHEMERIS_CACHE_HITS
    yield EPHEMERIS_CACHE_MISSES
    yield TIMING_RUN_DURATION
    yield TIMING_WINDOWS_EMITTED
    yield COMPUTE_ERRORS


def ensure_metrics_registered(
    registry: CollectorRegistry | None = None,
) -> None:
    """Register shared metrics with ``registry`` if not already present."""

    target = registry or REGISTRY
    for metric in _iter_metrics():
        try:
            target.register(metric)
        except ValueError:
            # Prometheus raises when a metric name already exists in the registry.
            continue
