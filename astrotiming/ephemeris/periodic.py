"""Periodic-term ephemeris for the Sun, Moon and major planets.

Each body's geocentric ecliptic longitude is a polynomial in Julian
centuries since J2000 plus a sum of periodic terms::

    λ(T) = Σ c_i T^i + Σ A_j T^k_j cos(φ_j + ω_j T)

Sun and Moon use the truncated mean-element series. Planets combine their
mean heliocentric longitude with a geocentric correction expanded from
``arg(1 + q e^{ix}) = Σ (-1)^(n+1) q^n / n sin(n x)``: inner planets are
expanded around the Sun (``q = a``), outer planets around their own
longitude (``q = 1 / a``). Retrograde loops fall out of the expansion.
Accuracy is at the degree level, which is enough for orb comparisons.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from types import MappingProxyType

import numpy as np
from numpy.polynomial import polynomial as P

from ..canonical import BodyPosition
from ..core.angles import normalize_degrees
from ..core.bodies import INNER_PLANETS, canonical_name
from ..core.time import DAYS_PER_JULIAN_CENTURY, centuries_since_j2000
from ..errors import CalculationError, ValidationError

__all__ = [
    "BodyTerms",
    "DEFAULT_TERMS",
    "PeriodicEphemeris",
    "PeriodicTerm",
    "build_default_terms",
]

_HALF_PI = math.pi / 2.0
# General precession in longitude, degrees per Julian century.
PRECESSION_DEG_PER_CENTURY = 1.396971


@dataclass(frozen=True)
class PeriodicTerm:
    """``amplitude_deg * T**power * cos(phase_rad + rate_rad_per_century * T)``."""

    amplitude_deg: float
    phase_rad: float
    rate_rad_per_century: float
    power: int = 0


@dataclass(frozen=True)
class BodyTerms:
    body: str
    polynomial: tuple[float, ...]
    terms: tuple[PeriodicTerm, ...] = ()

    @property
    def mean_rate_deg_per_century(self) -> float:
        return self.polynomial[1] if len(self.polynomial) > 1 else 0.0


def _sine(amplitude: float, phase_deg: float, rate_deg: float, power: int = 0) -> PeriodicTerm:
    """Express ``amplitude * sin(phase + rate T)`` as a cosine term."""

    return PeriodicTerm(
        amplitude_deg=amplitude,
        phase_rad=math.radians(phase_deg) - _HALF_PI,
        rate_rad_per_century=math.radians(rate_deg),
        power=power,
    )


# Meeus, chapter 25 (low accuracy solar coordinates).
_SUN_MEAN = (280.46646, 36000.76983, 0.0003032)
_SUN_ANOMALY = (357.52911, 35999.05029)

# Meeus, chapter 47 fundamental arguments: D, M, M', F.
_MOON_MEAN = (218.3164477, 481267.88123421)
_MOON_ARGS = (
    (297.8501921, 445267.1114034),
    (357.5291092, 35999.0502909),
    (134.9633964, 477198.8675055),
    (93.2720950, 483202.0175233),
)
# (D, M, M', F multipliers, amplitude in degrees)
_MOON_SERIES = (
    ((0, 0, 1, 0), 6.288774),
    ((2, 0, -1, 0), 1.274027),
    ((2, 0, 0, 0), 0.658314),
    ((0, 0, 2, 0), 0.213618),
    ((0, 1, 0, 0), -0.185116),
    ((0, 0, 0, 2), -0.114332),
    ((2, 0, -2, 0), 0.058793),
    ((2, -1, -1, 0), 0.057066),
    ((2, 0, 1, 0), 0.053322),
    ((2, -1, 0, 0), 0.045758),
    ((0, 1, -1, 0), -0.040923),
    ((1, 0, 0, 0), -0.034720),
    ((0, 1, 1, 0), -0.030383),
)

# J2000 mean elements: L0, dL/dT (deg/century), perihelion, eccentricity,
# semi-major axis (AU), number of geocentric correction terms.
_PLANET_ELEMENTS: Mapping[str, tuple[float, float, float, float, float, int]] = {
    "MERCURY": (252.2503, 149472.6741, 77.4578, 0.2056, 0.387098, 8),
    "VENUS": (181.9791, 58517.8154, 131.6025, 0.00678, 0.723332, 16),
    "MARS": (-4.5534, 19140.3027, -23.9436, 0.0934, 1.523679, 14),
    "JUPITER": (34.3964, 3034.7461, 14.7285, 0.0484, 5.2026, 6),
    "SATURN": (49.9542, 1222.4936, 92.5989, 0.0539, 9.5549, 5),
    "URANUS": (313.2381, 428.4820, 170.9543, 0.0473, 19.2184, 3),
    "NEPTUNE": (-55.1200, 218.4595, 44.9648, 0.0086, 30.1104, 3),
    "PLUTO": (238.9290, 145.2078, 224.0689, 0.2488, 39.4821, 3),
}


def _sun_terms() -> BodyTerms:
    m0, m1 = _SUN_ANOMALY
    return BodyTerms(
        body="SUN",
        polynomial=_SUN_MEAN,
        terms=(
            _sine(1.914602, m0, m1),
            _sine(-0.004817, m0, m1, power=1),
            _sine(0.019993, 2 * m0, 2 * m1),
            _sine(0.000289, 3 * m0, 3 * m1),
        ),
    )


def _moon_terms() -> BodyTerms:
    terms = []
    for multipliers, amplitude in _MOON_SERIES:
        phase = sum(k * arg[0] for k, arg in zip(multipliers, _MOON_ARGS))
        rate = sum(k * arg[1] for k, arg in zip(multipliers, _MOON_ARGS))
        terms.append(_sine(amplitude, phase, rate))
    return BodyTerms(body="MOON", polynomial=_MOON_MEAN, terms=tuple(terms))


def _geocentric_series(q: float, phase_deg: float, rate_deg: float, count: int) -> list[PeriodicTerm]:
    terms = []
    for n in range(1, count + 1):
        amplitude = math.degrees((-1) ** (n + 1) * q**n / n)
        terms.append(_sine(amplitude, n * phase_deg, n * rate_deg))
    return terms


def _planet_terms(name: str, sun: BodyTerms) -> BodyTerms:
    l0, rate, perihelion, ecc, axis, count = _PLANET_ELEMENTS[name]
    rate += PRECESSION_DEG_PER_CENTURY
    s0, s1 = sun.polynomial[0], sun.polynomial[1]
    if name in INNER_PLANETS:
        # Seen from Earth an inner planet oscillates around the Sun.
        series = _geocentric_series(axis, l0 - s0, rate - s1, count)
        return BodyTerms(body=name, polynomial=sun.polynomial, terms=sun.terms + tuple(series))
    series = _geocentric_series(1.0 / axis, s0 - l0, s1 - rate, count)
    center = _sine(math.degrees(2.0 * ecc), l0 - perihelion, rate)
    return BodyTerms(body=name, polynomial=(l0, rate), terms=(center, *series))


def build_default_terms() -> Mapping[str, BodyTerms]:
    """Return the default term table keyed by canonical body name."""

    sun = _sun_terms()
    table: dict[str, BodyTerms] = {"SUN": sun, "MOON": _moon_terms()}
    for name in _PLANET_ELEMENTS:
        table[name] = _planet_terms(name, sun)
    return MappingProxyType(table)


DEFAULT_TERMS = build_default_terms()


@dataclass(frozen=True)
class _CompiledTerms:
    polynomial: np.ndarray
    derivative: np.ndarray
    amplitude: np.ndarray
    phase: np.ndarray
    rate: np.ndarray
    power: np.ndarray


def _compile(terms: BodyTerms) -> _CompiledTerms:
    poly = np.asarray(terms.polynomial, dtype=float)
    return _CompiledTerms(
        polynomial=poly,
        derivative=P.polyder(poly) if poly.size > 1 else np.zeros(1),
        amplitude=np.asarray([t.amplitude_deg for t in terms.terms], dtype=float),
        phase=np.asarray([t.phase_rad for t in terms.terms], dtype=float),
        rate=np.asarray([t.rate_rad_per_century for t in terms.terms], dtype=float),
        power=np.asarray([t.power for t in terms.terms], dtype=float),
    )


class PeriodicEphemeris:
    """Deterministic ephemeris evaluating :class:`BodyTerms` with numpy."""

    adapter_id = "periodic"

    def __init__(self, terms: Mapping[str, BodyTerms] | None = None) -> None:
        table = DEFAULT_TERMS if terms is None else terms
        self._terms = MappingProxyType({canonical_name(k): v for k, v in table.items()})
        self._compiled = {name: _compile(body) for name, body in self._terms.items()}

    @property
    def bodies(self) -> tuple[str, ...]:
        return tuple(self._terms)

    def supports(self, body: str) -> bool:
        return canonical_name(body) in self._compiled

    def terms_for(self, body: str) -> BodyTerms:
        return self._terms[self._resolve(body)]

    def _resolve(self, body: str) -> str:
        key = canonical_name(body)
        if key not in self._compiled:
            raise ValidationError(
                f"unsupported body {key!r}",
                error_code="unsupported_body",
                context={"body": key},
            )
        return key

    @staticmethod
    def _check_time(t_centuries: float) -> float:
        t = float(t_centuries)
        if not math.isfinite(t):
            raise ValidationError("time argument must be finite", context={"field": "t"})
        return t

    def longitude(self, body: str, t_centuries: float) -> float:
        """Geocentric ecliptic longitude of ``body`` in degrees."""

        key = self._resolve(body)
        t = self._check_time(t_centuries)
        c = self._compiled[key]
        periodic = c.amplitude * np.power(t, c.power) * np.cos(c.phase + c.rate * t)
        value = float(P.polyval(t, c.polynomial) + periodic.sum())
        if not math.isfinite(value):
            raise CalculationError("ephemeris produced a non-finite longitude", context={"body": key})
        return normalize_degrees(value)

    def speed(self, body: str, t_centuries: float) -> float:
        """Signed longitudinal speed in degrees per day."""

        key = self._resolve(body)
        t = self._check_time(t_centuries)
        c = self._compiled[key]
        arg = c.phase + c.rate * t
        lowered = np.where(c.power > 0, c.power * np.power(t, np.maximum(c.power - 1.0, 0.0)), 0.0)
        periodic = c.amplitude * (lowered * np.cos(arg) - np.power(t, c.power) * c.rate * np.sin(arg))
        per_century = float(P.polyval(t, c.derivative) + periodic.sum())
        if not math.isfinite(per_century):
            raise CalculationError("ephemeris produced a non-finite speed", context={"body": key})
        return per_century / DAYS_PER_JULIAN_CENTURY

    def position(self, body: str, moment: datetime | date) -> BodyPosition:
        t = centuries_since_j2000(moment)
        return BodyPosition.normalized(body, self.longitude(body, t), self.speed(body, t))

    def positions(self, bodies: Iterable[str], moment: datetime | date) -> dict[str, BodyPosition]:
        return {canonical_name(body): self.position(body, moment) for body in bodies}

    def mean_daily_motion(self, body: str) -> float:
        """Secular motion of ``body`` in degrees per day."""

        return self.terms_for(body).mean_rate_deg_per_century / DAYS_PER_JULIAN_CENTURY

    def mean_motions(self, bodies: Sequence[str] | None = None) -> dict[str, float]:
        names = self.bodies if bodies is None else bodies
        return {canonical_name(name): self.mean_daily_motion(name) for name in names}
