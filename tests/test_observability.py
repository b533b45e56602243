from __future__ import annotations

import logging

from prometheus_client import CollectorRegistry

from astrotiming.aspects import AspectDetector
from astrotiming.boot.logging import configure_logging, resolve_level
from astrotiming.canonical import BodyPosition
from astrotiming.errors import ValidationError
from astrotiming.observability.metrics import (
    COMPUTE_ERRORS,
    ensure_metrics_registered,
    record_error,
)


def _sample(registry: CollectorRegistry, metric: str, labels: dict[str, str]) -> float:
    return registry.get_sample_value(metric, labels) or 0.0


def test_aspect_detection_is_timed() -> None:
    registry = CollectorRegistry()
    ensure_metrics_registered(registry)
    ensure_metrics_registered(registry)
    before = _sample(
        registry, "astrotiming_aspect_compute_duration_seconds_count", {"method": "pairwise"}
    )
    AspectDetector().find_all_aspects([BodyPosition("SUN", 0.0), BodyPosition("MOON", 90.0)])
    after = _sample(
        registry, "astrotiming_aspect_compute_duration_seconds_count", {"method": "pairwise"}
    )
    assert after == before + 1.0


def test_record_error_counts_by_type() -> None:
    registry = CollectorRegistry()
    ensure_metrics_registered(registry)
    labels = {"component": "tests", "error": "ValidationError"}
    before = _sample(registry, "astrotiming_compute_errors_total", labels)
    record_error("tests", ValidationError("boom"))
    assert _sample(registry, "astrotiming_compute_errors_total", labels) == before + 1.0
    assert COMPUTE_ERRORS is not None


def test_configure_logging_levels(monkeypatch) -> None:
    monkeypatch.delenv("ASTROTIMING_LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    assert configure_logging() == logging.INFO
    assert configure_logging(level="debug") == logging.DEBUG
    assert configure_logging(level="nonsense") == logging.INFO
    monkeypatch.setenv("ASTROTIMING_LOG_LEVEL", "WARNING")
    assert configure_logging() == logging.WARNING
    assert logging.getLogger().level == logging.WARNING


def test_resolve_level_aliases() -> None:
    assert resolve_level("warn") == logging.WARNING
    assert resolve_level(" quiet ") == logging.ERROR
    assert resolve_level("15") == 15
    assert resolve_level(None) == logging.INFO
