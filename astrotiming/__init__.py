"""Angular aspect geometry and predictive timing for celestial positions."""

from __future__ import annotations

from .analysis import ChartAnalysis, ChartAnalyzer
from .aspects import AspectDetector, AspectRuleTable, AspectType
from .canonical import (
    BodyPosition,
    Configuration,
    DetectedAspect,
    NatalChart,
    ProjectedPositionSet,
    TimingReport,
    TimingWindow,
)
from .core.angles import angular_distance, directional_separation, normalize_degrees, within_orb
from .ephemeris import CachedEphemeris, EphemerisProvider, PeriodicEphemeris
from .errors import AstroTimingError, CalculationError, ConfigurationError, ValidationError
from .patterns import ConfigurationDetector
from .progressions import ProgressionProjector
from .timing import TimingRequest, TransitTimingEngine, TriggerTable

__version__ = "0.4.0"

__all__ = [
    "AspectDetector",
    "AspectRuleTable",
    "AspectType",
    "AstroTimingError",
    "BodyPosition",
    "CachedEphemeris",
    "CalculationError",
    "ChartAnalysis",
    "ChartAnalyzer",
    "Configuration",
    "ConfigurationDetector",
    "ConfigurationError",
    "DetectedAspect",
    "EphemerisProvider",
    "NatalChart",
    "PeriodicEphemeris",
    "ProgressionProjector",
    "ProjectedPositionSet",
    "TimingReport",
    "TimingRequest",
    "TimingWindow",
    "TransitTimingEngine",
    "TriggerTable",
    "ValidationError",
    "__version__",
    "angular_distance",
    "directional_separation",
    "normalize_degrees",
    "within_orb",
]
