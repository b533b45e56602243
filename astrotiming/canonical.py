"""Canonical record types shared by every astrotiming component.

All records are immutable and computed per call. Longitudes are stored in
``[0, 360)`` and speeds in signed degrees per day; a ``None`` speed means
the caller did not supply one.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from .core.angles import is_finite_angle, normalize_degrees
from .core.bodies import canonical_name
from .core.time import ensure_utc
from .core.zodiac import sign_name
from .errors import ConfigurationError, ValidationError

__all__ = [
    "ASPECT_ANGLES",
    "AspectRule",
    "AspectType",
    "BodyPosition",
    "Configuration",
    "ConfigurationKind",
    "DetectedAspect",
    "DurationEstimate",
    "NatalChart",
    "PeriodSummary",
    "ProjectedPositionSet",
    "TimingReport",
    "TimingWindow",
    "WindowAspect",
    "collect_positions",
    "positions_from_mapping",
    "to_payload",
]


class AspectType(str, Enum):
    """Aspect kinds in rule-enumeration order."""

    CONJUNCTION = "conjunction"
    SEMI_SEXTILE = "semi_sextile"
    SEMI_SQUARE = "semi_square"
    SEXTILE = "sextile"
    SQUARE = "square"
    TRINE = "trine"
    SESQUI_SQUARE = "sesqui_square"
    QUINCUNX = "quincunx"
    OPPOSITION = "opposition"

    @property
    def angle(self) -> float:
        return ASPECT_ANGLES[self]

    @property
    def order(self) -> int:
        return _ASPECT_ORDER[self]

    @property
    def is_major(self) -> bool:
        return self in _MAJOR_ASPECTS

    @classmethod
    def parse(cls, value: "AspectType | str") -> "AspectType":
        """Resolve ``value`` from an enum member, value or member name."""

        if isinstance(value, AspectType):
            return value
        key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        key = _ASPECT_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            raise ConfigurationError(
                f"unknown aspect type {value!r}",
                context={"aspect": str(value)},
            ) from exc


ASPECT_ANGLES: Mapping[AspectType, float] = MappingProxyType(
    {
        AspectType.CONJUNCTION: 0.0,
        AspectType.SEMI_SEXTILE: 30.0,
        AspectType.SEMI_SQUARE: 45.0,
        AspectType.SEXTILE: 60.0,
        AspectType.SQUARE: 90.0,
        AspectType.TRINE: 120.0,
        AspectType.SESQUI_SQUARE: 135.0,
        AspectType.QUINCUNX: 150.0,
        AspectType.OPPOSITION: 180.0,
    }
)

_ASPECT_ORDER = {member: idx for idx, member in enumerate(AspectType)}

_MAJOR_ASPECTS = frozenset(
    {
        AspectType.CONJUNCTION,
        AspectType.SEXTILE,
        AspectType.SQUARE,
        AspectType.TRINE,
        AspectType.OPPOSITION,
    }
)

_ASPECT_ALIASES = {
    "semisextile": "semi_sextile",
    "semisquare": "semi_square",
    "sesquisquare": "sesqui_square",
    "sesquiquadrate": "sesqui_square",
    "inconjunct": "quincunx",
}


def _require_finite(value: Any, field_name: str, body: str | None = None) -> float:
    if not is_finite_angle(value):
        context = {"field": field_name}
        if body:
            context["body"] = body
        raise ValidationError(f"{field_name} must be a finite number", context=context)
    return float(value)


@dataclass(frozen=True)
class BodyPosition:
    """Ecliptic position of a named body or chart point."""

    name: str
    longitude: float
    speed: float | None = None
    sign: str | None = None
    house: int | None = None

    def __post_init__(self) -> None:
        name = canonical_name(self.name) if self.name is not None else ""
        if not name:
            raise ValidationError("body name must be a non-empty string")
        object.__setattr__(self, "name", name)

        longitude = _require_finite(self.longitude, "longitude", name)
        if not 0.0 <= longitude < 360.0:
            raise ValidationError(
                "longitude must lie in [0, 360)",
                context={"field": "longitude", "body": name},
            )
        object.__setattr__(self, "longitude", longitude)

        if self.speed is not None:
            object.__setattr__(self, "speed", _require_finite(self.speed, "speed", name))

        if self.sign is None:
            object.__setattr__(self, "sign", sign_name(longitude))
        else:
            object.__setattr__(self, "sign", str(self.sign).strip().lower())

        if self.house is not None:
            try:
                house = int(self.house)
            except (TypeError, ValueError) as exc:
                raise ValidationError(
                    "house must be an integer",
                    context={"field": "house", "body": name},
                ) from exc
            object.__setattr__(self, "house", house)

    @classmethod
    def normalized(
        cls,
        name: str,
        longitude: float,
        speed: float | None = None,
        *,
        house: int | None = None,
    ) -> "BodyPosition":
        """Build a position after wrapping ``longitude`` into ``[0, 360)``."""

        lon = _require_finite(longitude, "longitude", str(name))
        return cls(name=name, longitude=normalize_degrees(lon), speed=speed, house=house)

    def moved_to(self, longitude: float, speed: float | None = None) -> "BodyPosition":
        """Return a copy at ``longitude`` with the sign recomputed."""

        return BodyPosition.normalized(self.name, longitude, speed, house=self.house)


@dataclass(frozen=True)
class AspectRule:
    """Exact angle, orb and intensity weight for one aspect type."""

    type: AspectType
    exact_angle: float
    orb: float
    intensity: float = 1.0

    def __post_init__(self) -> None:
        kind = AspectType.parse(self.type)
        object.__setattr__(self, "type", kind)
        if not is_finite_angle(self.exact_angle) or float(self.exact_angle) != kind.angle:
            raise ConfigurationError(
                f"{kind.value} must use an exact angle of {kind.angle:g}",
                context={"aspect": kind.value},
            )
        object.__setattr__(self, "exact_angle", float(self.exact_angle))
        if not is_finite_angle(self.orb) or float(self.orb) <= 0.0:
            raise ConfigurationError(
                "orb must be a positive finite number",
                context={"aspect": kind.value},
            )
        object.__setattr__(self, "orb", float(self.orb))
        if not is_finite_angle(self.intensity) or float(self.intensity) < 0.0:
            raise ConfigurationError(
                "intensity must be a non-negative finite number",
                context={"aspect": kind.value},
            )
        object.__setattr__(self, "intensity", float(self.intensity))


@dataclass(frozen=True)
class DetectedAspect:
    """One aspect matched between two bodies."""

    body_a: str
    body_b: str
    type: AspectType
    exact_angle: float
    actual_separation: float
    orb_used: float
    strength: float
    exact: bool
    applying: bool | None

    @property
    def pair(self) -> tuple[str, str]:
        return tuple(sorted((self.body_a, self.body_b)))  # type: ignore[return-value]

    @property
    def separating(self) -> bool | None:
        if self.applying is None:
            return None
        return not self.applying

    def involves(self, body: str) -> bool:
        key = canonical_name(body)
        return key in (self.body_a, self.body_b)


class ConfigurationKind(str, Enum):
    GRAND_TRINE = "grand_trine"
    T_SQUARE = "t_square"
    STELLIUM = "stellium"


@dataclass(frozen=True)
class Configuration:
    """Multi-body pattern such as a Grand Trine, T-Square or Stellium.

    ``classifier`` holds the shared element for a Grand Trine (or
    ``"mixed"``), the sign for a Stellium and the modality label for a
    T-Square.
    """

    kind: ConfigurationKind
    participants: tuple[str, ...]
    classifier: str
    strength: float
    apex: str | None = None
    count: int | None = None
    aspects: tuple[DetectedAspect, ...] = ()

    @property
    def sign(self) -> str | None:
        if self.kind is ConfigurationKind.STELLIUM:
            return self.classifier
        return None


@dataclass(frozen=True)
class ProjectedPositionSet:
    """Body positions projected from a natal set by one method."""

    method: str
    elapsed_years: float
    positions: Mapping[str, BodyPosition]

    def __post_init__(self) -> None:
        object.__setattr__(self, "positions", MappingProxyType(dict(self.positions)))

    def __iter__(self):
        return iter(self.positions.values())

    def __len__(self) -> int:
        return len(self.positions)

    def get(self, body: str) -> BodyPosition | None:
        return self.positions.get(canonical_name(body))

    def subset(self, bodies: Iterable[str]) -> "ProjectedPositionSet":
        wanted = {canonical_name(body) for body in bodies}
        return ProjectedPositionSet(
            method=self.method,
            elapsed_years=self.elapsed_years,
            positions={k: v for k, v in self.positions.items() if k in wanted},
        )


@dataclass(frozen=True)
class WindowAspect:
    """An aspect tagged with the projection technique that produced it."""

    technique: str
    aspect: DetectedAspect


@dataclass(frozen=True)
class TimingWindow:
    kind: str
    date: datetime
    strength: float
    estimated_duration_days: float
    contributing_aspects: tuple[WindowAspect, ...] = ()
    participants: tuple[str, ...] = ()
    indicators: int = 0
    orb: float | None = None
    precision: float = 0.5
    description: str = ""


@dataclass(frozen=True)
class DurationEstimate:
    label: str
    min_days: int
    max_days: int
    based_on: str
    mean_strength: float


@dataclass(frozen=True)
class PeriodSummary:
    window_count: int
    mean_strength: float
    dominant_aspect_types: tuple[str, ...]
    windows_by_kind: Mapping[str, int]
    peak_periods: tuple[TimingWindow, ...]
    duration: DurationEstimate
    confidence: float
    confidence_level: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "windows_by_kind", MappingProxyType(dict(self.windows_by_kind)))


@dataclass(frozen=True)
class TimingReport:
    event_category: str
    start: datetime
    end: datetime
    windows: tuple[TimingWindow, ...]
    peak_periods: tuple[TimingWindow, ...]
    summary: PeriodSummary
    warnings: tuple[str, ...] = ()


# Reference dates outside this range are rejected.
MIN_REFERENCE_YEAR = 1900
MAX_REFERENCE_YEAR = 2100


@dataclass(frozen=True)
class NatalChart:
    """Reference instant plus the body positions recorded at it."""

    reference: datetime
    positions: Mapping[str, BodyPosition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.reference is None:
            raise ValidationError(
                "chart reference date is required", context={"field": "reference"}
            )
        if not isinstance(self.reference, (date, datetime)):
            raise ValidationError(
                "chart reference must be a date or datetime",
                context={"field": "reference"},
            )
        reference = ensure_utc(self.reference)
        if not MIN_REFERENCE_YEAR <= reference.year <= MAX_REFERENCE_YEAR:
            raise ValidationError(
                f"chart reference year must lie between {MIN_REFERENCE_YEAR} "
                f"and {MAX_REFERENCE_YEAR}",
                context={"field": "reference"},
            )
        object.__setattr__(self, "reference", reference)

        positions: dict[str, BodyPosition] = {}
        for key, position in self.positions.items():
            if not isinstance(position, BodyPosition):
                raise ValidationError(
                    "chart positions must be BodyPosition instances",
                    context={"body": str(key)},
                )
            if position.name in positions:
                raise ValidationError(
                    "duplicate body in chart", context={"body": position.name}
                )
            positions[position.name] = position
        object.__setattr__(self, "positions", MappingProxyType(positions))

    @classmethod
    def from_mapping(
        cls, reference: datetime | date | str | None, bodies: Mapping[str, Any]
    ) -> "NatalChart":
        """Build a chart from ``name -> {longitude, speed, sign, house}``.

        Plain numbers are accepted as bare longitudes. ``reference`` may be
        an ISO-8601 string.
        """

        if isinstance(reference, str):
            try:
                reference = datetime.fromisoformat(reference.strip())
            except ValueError as exc:
                raise ValidationError(
                    "chart reference is not a valid ISO-8601 date",
                    context={"field": "reference"},
                ) from exc
        return cls(reference=reference, positions=positions_from_mapping(bodies))  # type: ignore[arg-type]

    def __contains__(self, body: object) -> bool:
        return isinstance(body, str) and canonical_name(body) in self.positions

    def get(self, body: str) -> BodyPosition | None:
        return self.positions.get(canonical_name(body))

    def require(self, bodies: Iterable[str]) -> None:
        """Raise :class:`ValidationError` when any of ``bodies`` is absent."""

        missing = sorted(
            canonical_name(body) for body in bodies if canonical_name(body) not in self.positions
        )
        if missing:
            raise ValidationError(
                "chart is missing required bodies",
                context={"missing": missing},
            )


def to_payload(value: Any) -> Any:
    """Return a JSON-serialisable copy of ``value``.

    Dataclasses become dictionaries, enums collapse to their values and
    datetimes are rendered in ISO-8601.
    """

    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_payload(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): to_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_payload(item) for item in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def collect_positions(bodies: Any) -> list[BodyPosition]:
    """Return the positions held by ``bodies`` as a list.

    Accepts a :class:`NatalChart`, a :class:`ProjectedPositionSet`, a
    mapping of name to position or any iterable of positions. Duplicate
    body names are rejected.
    """

    if isinstance(bodies, (NatalChart, ProjectedPositionSet)):
        items: Iterable[Any] = bodies.positions.values()
    elif isinstance(bodies, Mapping):
        items = bodies.values()
    else:
        items = bodies
    out: list[BodyPosition] = []
    seen: set[str] = set()
    for position in items:
        if not isinstance(position, BodyPosition):
            raise ValidationError(
                "expected BodyPosition entries",
                context={"type": type(position).__name__},
            )
        if position.name in seen:
            raise ValidationError("duplicate body name", context={"body": position.name})
        seen.add(position.name)
        out.append(position)
    return out


def positions_from_mapping(bodies: Mapping[str, Any]) -> dict[str, BodyPosition]:
    """Parse ``name -> {longitude, speed, sign, house}`` into positions.

    Plain numbers are accepted as bare longitudes.
    """

    positions: dict[str, BodyPosition] = {}
    for name, payload in bodies.items():
        if isinstance(payload, Mapping):
            if "longitude" not in payload:
                raise ValidationError(
                    "body payload is missing a longitude",
                    context={"body": str(name)},
                )
            position = BodyPosition(
                name=name,
                longitude=payload["longitude"],
                speed=payload.get("speed"),
                sign=payload.get("sign"),
                house=payload.get("house"),
            )
        else:
            position = BodyPosition(name=name, longitude=payload)
        if position.name in positions:
            raise ValidationError("duplicate body in chart", context={"body": position.name})
        positions[position.name] = position
    return positions
