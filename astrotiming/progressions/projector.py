"""Secondary progression and solar arc projection.

Both techniques compress time: one day of mean motion stands for one year
of life. Secondary progression moves every body by its own mean daily
motion per elapsed year; solar arc moves every body by the Sun's arc.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Final

from ..canonical import BodyPosition, ProjectedPositionSet, collect_positions
from ..core.bodies import CHART_ANGLES, PLANETARY_BODIES, canonical_name
from ..core.time import DAYS_PER_YEAR, elapsed_years
from ..ephemeris.periodic import PeriodicEphemeris
from ..errors import ConfigurationError, FailurePolicy, ValidationError

LOG = logging.getLogger(__name__)

__all__ = [
    "MeanMotionTable",
    "PROJECTION_METHODS",
    "ProgressionProjector",
]

SECONDARY: Final[str] = "secondary"
SOLAR_ARC: Final[str] = "solar_arc"
PROJECTION_METHODS: tuple[str, ...] = (SECONDARY, SOLAR_ARC)


class MeanMotionTable:
    """Immutable mapping of body name to mean motion in degrees per day."""

    __slots__ = ("_rates",)

    def __init__(self, rates: Mapping[str, float]) -> None:
        clean: dict[str, float] = {}
        for name, value in rates.items():
            try:
                rate = float(value)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(
                    "mean motion must be numeric", context={"body": str(name)}
                ) from exc
            if not math.isfinite(rate):
                raise ConfigurationError(
                    "mean motion must be finite", context={"body": str(name)}
                )
            clean[canonical_name(name)] = rate
        self._rates = MappingProxyType(clean)

    @classmethod
    def from_provider(
        cls, provider: Any, bodies: Iterable[str] = PLANETARY_BODIES
    ) -> "MeanMotionTable":
        """Derive rates from ``provider.mean_daily_motion``.

        Chart angles progress at the solar rate.
        """

        rates = {canonical_name(body): provider.mean_daily_motion(body) for body in bodies}
        solar = rates.get("SUN", provider.mean_daily_motion("SUN"))
        for angle in CHART_ANGLES:
            rates.setdefault(angle, solar)
        return cls(rates)

    @classmethod
    def default(cls) -> "MeanMotionTable":
        return _default_table()

    def rate(self, body: str) -> float:
        key = canonical_name(body)
        try:
            return self._rates[key]
        except KeyError:
            raise ValidationError(
                f"no mean motion known for {key!r}",
                error_code="unsupported_body",
                context={"body": key},
            ) from None

    def with_rates(self, overrides: Mapping[str, float]) -> "MeanMotionTable":
        merged = dict(self._rates)
        merged.update({canonical_name(k): v for k, v in overrides.items()})
        return MeanMotionTable(merged)

    def as_dict(self) -> dict[str, float]:
        return dict(self._rates)

    def __contains__(self, body: object) -> bool:
        return isinstance(body, str) and canonical_name(body) in self._rates

    def __len__(self) -> int:
        return len(self._rates)


@lru_cache(maxsize=1)
def _default_table() -> MeanMotionTable:
    return MeanMotionTable.from_provider(PeriodicEphemeris())


class ProgressionProjector:
    """Project natal positions forward by elapsed years.

    ``failure_policy`` decides what happens to a body without a known mean
    motion: ``raise`` propagates :class:`ValidationError`, ``skip`` omits
    the body, ``zero`` places it at 0°. The latter two append a message to
    the caller supplied ``warnings`` list.
    """

    def __init__(
        self,
        motions: MeanMotionTable | None = None,
        *,
        failure_policy: FailurePolicy | str = FailurePolicy.RAISE,
    ) -> None:
        self.motions = motions if motions is not None else MeanMotionTable.default()
        if "SUN" not in self.motions:
            raise ConfigurationError("mean motion table must include the Sun")
        self.failure_policy = FailurePolicy.parse(failure_policy)

    @staticmethod
    def elapsed_years(reference: datetime | date, moment: datetime | date) -> float:
        return elapsed_years(reference, moment)

    @staticmethod
    def _check_years(years: float) -> float:
        value = float(years)
        if not math.isfinite(value):
            raise ValidationError("elapsed years must be finite", context={"field": "elapsed_years"})
        return value

    def solar_arc_value(self, years: float) -> float:
        """Arc in degrees travelled by the progressed Sun after ``years``."""

        return self.motions.rate("SUN") * self._check_years(years)

    def secondary(
        self,
        natal: Any,
        years: float,
        *,
        warnings: list[str] | None = None,
    ) -> ProjectedPositionSet:
        years = self._check_years(years)
        projected: dict[str, BodyPosition] = {}
        for position in collect_positions(natal):
            try:
                rate = self.motions.rate(position.name)
            except ValidationError as exc:
                fallback = self._on_failure(exc, position, SECONDARY, warnings)
                if fallback is not None:
                    projected[position.name] = fallback
                continue
            projected[position.name] = self._shift(position, rate * years, rate)
        return ProjectedPositionSet(method=SECONDARY, elapsed_years=years, positions=projected)

    def solar_arc(
        self,
        natal: Any,
        years: float,
        *,
        warnings: list[str] | None = None,
    ) -> ProjectedPositionSet:
        arc = self.solar_arc_value(years)
        rate = self.motions.rate("SUN")
        projected = {
            position.name: self._shift(position, arc, rate)
            for position in collect_positions(natal)
        }
        return ProjectedPositionSet(method=SOLAR_ARC, elapsed_years=float(years), positions=projected)

    def project(
        self,
        method: str,
        natal: Any,
        years: float,
        *,
        warnings: list[str] | None = None,
    ) -> ProjectedPositionSet:
        if method == SECONDARY:
            return self.secondary(natal, years, warnings=warnings)
        if method == SOLAR_ARC:
            return self.solar_arc(natal, years, warnings=warnings)
        raise ValidationError(
            f"unknown projection method {method!r}",
            context={"method": str(method)},
        )

    @staticmethod
    def _shift(position: BodyPosition, offset: float, rate: float) -> BodyPosition:
        # Projected speeds are per real day, also at zero elapsed years.
        return position.moved_to(position.longitude + offset, rate / DAYS_PER_YEAR)

    def _on_failure(
        self,
        exc: ValidationError,
        position: BodyPosition,
        method: str,
        warnings: list[str] | None,
    ) -> BodyPosition | None:
        if self.failure_policy is FailurePolicy.RAISE:
            raise exc
        if self.failure_policy is FailurePolicy.ZERO:
            message = f"{method}: no mean motion for {position.name}; placed at 0°"
            fallback: BodyPosition | None = BodyPosition(position.name, 0.0, house=position.house)
        else:
            message = f"{method}: no mean motion for {position.name}; omitted"
            fallback = None
        LOG.warning(message)
        if warnings is not None:
            warnings.append(message)
        return fallback
