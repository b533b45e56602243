"""Transit timing engine.

For every date in a requested range the engine projects the natal chart
with secondary progression and solar arc, samples transiting positions
from an ephemeris, and turns aspect hits between those sets into dated
:class:`~astrotiming.canonical.TimingWindow` records. Windows across the
whole range are then ranked into peak periods and summarised with a
duration estimate and a confidence score.
"""

from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from ..aspects.detector import AspectDetector
from ..aspects.rules import AspectRuleTable
from ..canonical import (
    AspectType,
    BodyPosition,
    NatalChart,
    PeriodSummary,
    ProjectedPositionSet,
    TimingReport,
    TimingWindow,
    WindowAspect,
)
from ..core.angles import angular_distance, normalize_degrees
from ..core.bodies import CHART_ANGLES, KEY_TIMING_BODIES, canonical_name
from ..core.time import elapsed_years, ensure_utc
from ..core.zodiac import SIGN_NAMES, sign_index
from ..ephemeris import CachedEphemeris, EphemerisProvider, PeriodicEphemeris
from ..errors import AstroTimingError, ConfigurationError, FailurePolicy, ValidationError
from ..observability.metrics import TIMING_RUN_DURATION, TIMING_WINDOWS_EMITTED, record_error
from ..progressions.projector import MeanMotionTable, ProgressionProjector
from .scoring import (
    ConfidenceWeights,
    confidence_level,
    duration_estimate,
    estimate_window_days,
    period_confidence,
    timing_precision,
    window_strength,
)
from .triggers import Trigger, TriggerTable

LOG = logging.getLogger(__name__)

__all__ = [
    "TimingEngineConfig",
    "TimingRequest",
    "TransitTimingEngine",
    "WINDOW_KINDS",
]

WINDOW_KINDS: tuple[str, ...] = ("trigger", "secondary_angle", "solar_arc_angle", "concentration")
_KIND_ORDER = {kind: idx for idx, kind in enumerate(WINDOW_KINDS)}
_ANGLE_OFFSETS: tuple[float, ...] = (0.0, 90.0, 180.0, 270.0)


@dataclass(frozen=True)
class TimingEngineConfig:
    """Tunable thresholds for :class:`TransitTimingEngine`."""

    key_bodies: tuple[str, ...] = KEY_TIMING_BODIES
    angle_threshold: float = 2.0
    secondary_angle_strength: float = 0.8
    solar_arc_angle_strength: float = 0.9
    concentration_strength: float = 0.7
    concentration_min_bodies: int = 3
    peak_count: int = 3
    max_lookahead_days: int = 3653
    max_years_after_reference: float = 150.0
    max_workers: int = 1
    failure_policy: FailurePolicy = FailurePolicy.SKIP
    confidence_weights: ConfidenceWeights = field(default_factory=ConfidenceWeights)
    required_bodies: tuple[str, ...] = ("SUN", "MOON")

    def __post_init__(self) -> None:
        object.__setattr__(self, "key_bodies", tuple(canonical_name(b) for b in self.key_bodies))
        object.__setattr__(
            self, "required_bodies", tuple(canonical_name(b) for b in self.required_bodies)
        )
        object.__setattr__(self, "failure_policy", FailurePolicy.parse(self.failure_policy))
        if not 0.0 < float(self.angle_threshold) <= 15.0:
            raise ConfigurationError("angle_threshold must lie in (0, 15]")
        if self.concentration_min_bodies < 2:
            raise ConfigurationError("concentration_min_bodies must be at least 2")
        if self.peak_count < 1:
            raise ConfigurationError("peak_count must be positive")
        if self.max_lookahead_days < 1:
            raise ConfigurationError("max_lookahead_days must be positive")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be positive")


@dataclass(frozen=True)
class TimingRequest:
    """One timing run: a natal chart, a date range and an event category."""

    chart: NatalChart
    start: datetime | date
    end: datetime | date
    event_category: str
    step_days: float = 1.0


@dataclass(frozen=True)
class _DateResult:
    windows: tuple[TimingWindow, ...]
    warnings: tuple[str, ...]


@dataclass(frozen=True)
class _PreparedTrigger:
    trigger: Trigger
    detector: AspectDetector


class TransitTimingEngine:
    """Aggregate progressed, directed and transiting aspects into windows."""

    def __init__(
        self,
        ephemeris: EphemerisProvider | None = None,
        *,
        rules: AspectRuleTable | None = None,
        triggers: TriggerTable | None = None,
        motions: MeanMotionTable | None = None,
        config: TimingEngineConfig | None = None,
    ) -> None:
        self.ephemeris = ephemeris if ephemeris is not None else CachedEphemeris(PeriodicEphemeris())
        self.rules = rules if rules is not None else AspectRuleTable.default()
        self.triggers = triggers if triggers is not None else TriggerTable.default()
        self.config = config if config is not None else TimingEngineConfig()
        if motions is None:
            motions = MeanMotionTable.from_provider(self.ephemeris)
        self.projector = ProgressionProjector(motions, failure_policy=self.config.failure_policy)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, request: TimingRequest) -> tuple[datetime, datetime, timedelta]:
        """Check ``request`` before any work is done.

        Returns the UTC start, end and step. Messages never include the
        reference date or chart payload.
        """

        chart = request.chart
        if not isinstance(chart, NatalChart):
            raise ValidationError("timing requests need a NatalChart", context={"field": "chart"})
        chart.require(self.config.required_bodies)
        self.triggers.for_category(request.event_category)

        if request.start is None or request.end is None:
            raise ValidationError("start and end dates are required", context={"field": "range"})
        start = ensure_utc(request.start)
        end = ensure_utc(request.end)
        if end < start:
            raise ValidationError("end must not precede start", context={"field": "range"})
        if start < chart.reference:
            raise ValidationError(
                "timing range must begin after the chart reference date",
                context={"field": "start"},
            )
        if elapsed_years(chart.reference, end) > self.config.max_years_after_reference:
            raise ValidationError(
                f"timing range must end within {self.config.max_years_after_reference:g} "
                "years of the chart reference date",
                context={"field": "end"},
            )
        span_days = (end - start).total_seconds() / 86400.0
        if span_days > self.config.max_lookahead_days:
            raise ValidationError(
                f"timing range exceeds {self.config.max_lookahead_days} days",
                context={"field": "range", "max_days": self.config.max_lookahead_days},
            )

        step = float(request.step_days)
        if not math.isfinite(step) or step <= 0:
            raise ValidationError("step_days must be a positive number", context={"field": "step_days"})
        return start, end, timedelta(days=step)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, request: TimingRequest) -> TimingReport:
        start, end, step = self.validate(request)
        category = request.event_category.strip().lower()
        prepared = self._prepare_triggers(self.triggers.for_category(category))
        moments = list(_iter_moments(start, end, step))
        LOG.info("timing run: category=%s dates=%d", category, len(moments))

        with TIMING_RUN_DURATION.labels(event_category=category).time():
            def evaluate(moment: datetime) -> _DateResult:
                return self.evaluate_date(request.chart, moment, prepared)

            if self.config.max_workers > 1 and len(moments) > 1:
                with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                    results = list(executor.map(evaluate, moments))
            else:
                results = [evaluate(moment) for moment in moments]

        windows = tuple(window for result in results for window in result.windows)
        warnings = tuple(dict.fromkeys(msg for result in results for msg in result.warnings))
        for kind, count in Counter(w.kind for w in windows).items():
            TIMING_WINDOWS_EMITTED.labels(kind=kind).inc(count)

        peaks = self.peak_periods(windows)
        summary = self.summarize(windows, peaks)
        return TimingReport(
            event_category=category,
            start=start,
            end=end,
            windows=windows,
            peak_periods=peaks,
            summary=summary,
            warnings=warnings,
        )

    def evaluate_date(
        self,
        chart: NatalChart,
        moment: datetime,
        prepared: Sequence[_PreparedTrigger],
    ) -> _DateResult:
        """Compute every window for a single date."""

        warnings: list[str] = []
        years = elapsed_years(chart.reference, moment)
        natal = self._projection_subset(chart, prepared)
        secondary = self.projector.secondary(natal, years, warnings=warnings)
        solar_arc = self.projector.solar_arc(natal, years, warnings=warnings)
        transits = self.transit_positions(self._transit_bodies(prepared), moment, warnings)

        windows: list[TimingWindow] = []
        for item in prepared:
            window = self._trigger_window(item, moment, secondary, solar_arc, transits)
            if window is not None:
                windows.append(window)
        baseline = chart.get("ASC")
        base = baseline.longitude if baseline is not None else 0.0
        windows.extend(
            self._angle_windows(secondary, moment, base, "secondary_angle", self.config.secondary_angle_strength)
        )
        windows.extend(
            self._angle_windows(solar_arc, moment, base, "solar_arc_angle", self.config.solar_arc_angle_strength)
        )
        windows.extend(self._concentration_windows(moment, secondary, solar_arc, transits))
        windows.sort(key=lambda w: (_KIND_ORDER[w.kind], w.participants))
        return _DateResult(windows=tuple(windows), warnings=tuple(warnings))

    def transit_positions(
        self,
        bodies: Iterable[str],
        moment: datetime,
        warnings: list[str],
    ) -> dict[str, BodyPosition]:
        """Sample transiting ``bodies`` applying the configured failure policy.

        Bodies the ephemeris does not cover (chart angles, house cusps) have
        no transit and are left out without a warning.
        """

        policy = self.config.failure_policy
        out: dict[str, BodyPosition] = {}
        for body in bodies:
            if not self.ephemeris.supports(body):
                continue
            try:
                out[body] = self.ephemeris.position(body, moment)
            except AstroTimingError as exc:
                record_error("timing.transits", exc)
                if policy is FailurePolicy.RAISE:
                    raise
                if policy is FailurePolicy.ZERO:
                    out[body] = BodyPosition(body, 0.0)
                    message = f"transit: position unavailable for {body}; placed at 0°"
                else:
                    message = f"transit: position unavailable for {body}; omitted"
                LOG.warning(message)
                warnings.append(message)
        return out

    def peak_periods(self, windows: Sequence[TimingWindow]) -> tuple[TimingWindow, ...]:
        """Top windows by strength; ties broken by date, kind and participants."""

        ranked = sorted(
            windows,
            key=lambda w: (-w.strength, w.date, _KIND_ORDER[w.kind], w.participants),
        )
        return tuple(ranked[: self.config.peak_count])

    def summarize(
        self, windows: Sequence[TimingWindow], peaks: Sequence[TimingWindow]
    ) -> PeriodSummary:
        confidence = period_confidence(windows, self.config.confidence_weights)
        mean = sum(w.strength for w in windows) / len(windows) if windows else 0.0
        return PeriodSummary(
            window_count=len(windows),
            mean_strength=mean,
            dominant_aspect_types=_dominant_aspects(windows),
            windows_by_kind=dict(Counter(w.kind for w in windows)),
            peak_periods=tuple(peaks),
            duration=duration_estimate(windows),
            confidence=confidence,
            confidence_level=confidence_level(confidence),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare_triggers(self, triggers: Sequence[Trigger]) -> tuple[_PreparedTrigger, ...]:
        prepared = []
        for trigger in triggers:
            kinds = [kind for kind in trigger.aspects if kind in self.rules]
            if not kinds:
                LOG.debug("trigger %s has no aspect in the rule table", trigger.label)
                continue
            prepared.append(_PreparedTrigger(trigger, AspectDetector(self.rules.subset(kinds))))
        return tuple(prepared)

    def _projection_subset(
        self, chart: NatalChart, prepared: Sequence[_PreparedTrigger]
    ) -> list[BodyPosition]:
        wanted = set(self.config.key_bodies) | CHART_ANGLES
        for item in prepared:
            wanted.update(item.trigger.bodies)
        return [position for name, position in chart.positions.items() if name in wanted]

    def _transit_bodies(self, prepared: Sequence[_PreparedTrigger]) -> tuple[str, ...]:
        names = dict.fromkeys(self.config.key_bodies)
        for item in prepared:
            names.update(dict.fromkeys(item.trigger.bodies))
        return tuple(names)

    def _trigger_window(
        self,
        item: _PreparedTrigger,
        moment: datetime,
        secondary: ProjectedPositionSet,
        solar_arc: ProjectedPositionSet,
        transits: dict[str, BodyPosition],
    ) -> TimingWindow | None:
        detector = item.detector
        hits: list[WindowAspect] = []
        # (orb, faster daily motion) per hit, for the precision of the closest one.
        closeness: list[tuple[float, float | None]] = []

        def collect(technique: str, a: BodyPosition, b: BodyPosition) -> None:
            motion = _faster_motion(a, b)
            for hit in detector.detect_pair(a, b):
                hits.append(WindowAspect(technique, hit))
                closeness.append((hit.orb_used, motion))

        for first, second in item.trigger.pairs():
            for technique, projected in (("secondary", secondary), ("solar_arc", solar_arc)):
                a, b = projected.get(first), projected.get(second)
                if a is not None and b is not None:
                    collect(technique, a, b)
            for mover, fixed in ((first, second), (second, first)):
                transit = transits.get(mover)
                if transit is None:
                    continue
                for technique, projected in (
                    ("transit_to_secondary", secondary),
                    ("transit_to_solar_arc", solar_arc),
                ):
                    target = projected.get(fixed)
                    if target is not None:
                        collect(technique, transit, target)
        if not hits:
            return None
        strength = window_strength([hit.aspect.strength for hit in hits])
        orb, motion = min(closeness, key=lambda entry: entry[0])
        return TimingWindow(
            kind="trigger",
            date=moment,
            strength=strength,
            estimated_duration_days=estimate_window_days(strength),
            contributing_aspects=tuple(hits),
            participants=tuple(sorted(item.trigger.bodies)),
            indicators=len(hits),
            orb=orb,
            precision=timing_precision(orb, motion),
            description=f"{item.trigger.label} trigger with {len(hits)} aspect(s)",
        )

    def _angle_windows(
        self,
        projected: ProjectedPositionSet,
        moment: datetime,
        baseline: float,
        kind: str,
        strength: float,
    ) -> list[TimingWindow]:
        threshold = float(self.config.angle_threshold)
        out: list[TimingWindow] = []
        for position in projected:
            if position.name in CHART_ANGLES:
                continue
            deviation, offset = min(
                (angular_distance(position.longitude, normalize_degrees(baseline + off)), off)
                for off in _ANGLE_OFFSETS
            )
            if deviation > threshold:
                continue
            out.append(
                TimingWindow(
                    kind=kind,
                    date=moment,
                    strength=strength,
                    estimated_duration_days=estimate_window_days(strength),
                    participants=(position.name,),
                    indicators=1,
                    orb=deviation,
                    precision=timing_precision(deviation, position.speed),
                    description=(
                        f"{projected.method} {position.name} within {deviation:.2f}° "
                        f"of the {offset:g}° angle"
                    ),
                )
            )
        return out

    def _concentration_windows(
        self,
        moment: datetime,
        *sources: ProjectedPositionSet | dict[str, BodyPosition],
    ) -> list[TimingWindow]:
        segments: dict[int, list[str]] = defaultdict(list)
        for source in sources:
            if isinstance(source, ProjectedPositionSet):
                label, positions = source.method, list(source)
            else:
                label, positions = "transit", list(source.values())
            for position in positions:
                segments[sign_index(position.longitude)].append(f"{label}:{position.name}")
        strength = self.config.concentration_strength
        out: list[TimingWindow] = []
        for segment in sorted(segments):
            members = segments[segment]
            if len(members) < self.config.concentration_min_bodies:
                continue
            out.append(
                TimingWindow(
                    kind="concentration",
                    date=moment,
                    strength=strength,
                    estimated_duration_days=estimate_window_days(strength),
                    participants=tuple(sorted(members)),
                    indicators=len(members),
                    orb=None,
                    precision=timing_precision(None),
                    description=f"{len(members)} positions concentrated in {SIGN_NAMES[segment]}",
                )
            )
        return out


def _iter_moments(start: datetime, end: datetime, step: timedelta) -> Iterable[datetime]:
    index = 0
    moment = start
    while moment <= end:
        yield moment
        index += 1
        moment = start + step * index


def _dominant_aspects(windows: Sequence[TimingWindow], limit: int = 3) -> tuple[str, ...]:
    counts: Counter[AspectType] = Counter(
        hit.aspect.type for window in windows for hit in window.contributing_aspects
    )
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0].order))
    return tuple(kind.value for kind, _ in ranked[:limit])


def _faster_motion(a: BodyPosition, b: BodyPosition) -> float | None:
    speeds = [abs(p.speed) for p in (a, b) if p.speed is not None]
    return max(speeds) if speeds else None
