from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from prometheus_client import CollectorRegistry

from astrotiming.core.qcache import QCache, qbin
from astrotiming.ephemeris import (
    BodyTerms,
    CachedEphemeris,
    EphemerisProvider,
    PeriodicEphemeris,
    PeriodicTerm,
)
from astrotiming.errors import ConfigurationError, ValidationError
from astrotiming.observability.metrics import ensure_metrics_registered

J2000 = datetime(2000, 1, 1, 12, tzinfo=timezone.utc)


@pytest.fixture(scope="module")
def ephemeris() -> PeriodicEphemeris:
    return PeriodicEphemeris()


def test_provider_protocol(ephemeris: PeriodicEphemeris) -> None:
    assert isinstance(ephemeris, EphemerisProvider)
    assert isinstance(CachedEphemeris(ephemeris), EphemerisProvider)


def test_sun_longitude_at_j2000(ephemeris: PeriodicEphemeris) -> None:
    assert ephemeris.longitude("SUN", 0.0) == pytest.approx(280.38, abs=0.05)
    position = ephemeris.position("sun", J2000)
    assert position.name == "SUN"
    assert position.sign == "capricorn"
    assert 0.95 < position.speed < 1.05


def test_moon_speed_in_physical_range(ephemeris: PeriodicEphemeris) -> None:
    for day in range(0, 28, 3):
        speed = ephemeris.position("MOON", J2000 + timedelta(days=day)).speed
        assert 10.5 < speed < 16.0


def test_mars_retrogrades_around_opposition(ephemeris: PeriodicEphemeris) -> None:
    start = datetime(2020, 6, 1, tzinfo=timezone.utc)
    speeds = [ephemeris.position("MARS", start + timedelta(days=7 * week)).speed for week in range(40)]
    assert min(speeds) < 0.0 < max(speeds)


def test_every_default_body_is_supported(ephemeris: PeriodicEphemeris) -> None:
    assert ephemeris.bodies[:2] == ("SUN", "MOON")
    for body in ephemeris.bodies:
        lon = ephemeris.longitude(body, 0.25)
        assert 0.0 <= lon < 360.0


def test_mean_daily_motion(ephemeris: PeriodicEphemeris) -> None:
    assert ephemeris.mean_daily_motion("SUN") == pytest.approx(0.98565, abs=1e-4)
    assert ephemeris.mean_daily_motion("MOON") == pytest.approx(13.176, abs=1e-2)
    motions = ephemeris.mean_motions(["SATURN", "JUPITER"])
    assert motions["SATURN"] < motions["JUPITER"]


def test_unsupported_body_raises(ephemeris: PeriodicEphemeris) -> None:
    assert not ephemeris.supports("CHIRON")
    with pytest.raises(ValidationError) as excinfo:
        ephemeris.longitude("CHIRON", 0.0)
    assert excinfo.value.error_code == "unsupported_body"
    assert excinfo.value.context == {"body": "CHIRON"}


def test_non_finite_time_raises(ephemeris: PeriodicEphemeris) -> None:
    with pytest.raises(ValidationError):
        ephemeris.longitude("SUN", float("nan"))


def test_custom_terms_are_evaluated() -> None:
    terms = {
        "test": BodyTerms(
            body="TEST",
            polynomial=(10.0, 36525.0),
            terms=(PeriodicTerm(amplitude_deg=2.0, phase_rad=0.0, rate_rad_per_century=0.0),),
        )
    }
    ephemeris = PeriodicEphemeris(terms)
    assert ephemeris.bodies == ("TEST",)
    assert ephemeris.longitude("TEST", 0.0) == pytest.approx(12.0)
    assert ephemeris.speed("TEST", 0.0) == pytest.approx(1.0)
    assert ephemeris.mean_daily_motion("TEST") == pytest.approx(1.0)


def test_positions_are_deterministic(ephemeris: PeriodicEphemeris) -> None:
    moment = datetime(2024, 3, 20, 3, 6, tzinfo=timezone.utc)
    first = ephemeris.positions(["SUN", "MOON", "VENUS"], moment)
    second = ephemeris.positions(["SUN", "MOON", "VENUS"], moment)
    assert first == second


def test_qbin_groups_instants() -> None:
    jd = 2451545.0
    assert qbin(jd, 60.0) == qbin(jd + 10.0 / 86400.0, 60.0)
    assert qbin(jd, 60.0) != qbin(jd + 120.0 / 86400.0, 60.0)


def test_qcache_evicts_least_recently_used() -> None:
    cache = QCache(maxsize=2)
    cache.put(("a",), 1)
    cache.put(("b",), 2)
    assert cache.get(("a",)) == 1
    cache.put(("c",), 3)
    assert cache.get(("b",)) is None
    assert len(cache) == 2
    assert cache.hits == 1 and cache.misses == 1
    with pytest.raises(ConfigurationError):
        QCache(maxsize=0)


def test_cached_ephemeris_reuses_bucket(ephemeris: PeriodicEphemeris) -> None:
    registry = CollectorRegistry()
    ensure_metrics_registered(registry)
    before = registry.get_sample_value(
        "astrotiming_ephemeris_cache_hits_total", {"adapter": "periodic"}
    ) or 0.0

    cached = CachedEphemeris(ephemeris, cache=QCache(maxsize=8), qsec=60.0)
    first = cached.position("MARS", J2000 + timedelta(seconds=10))
    second = cached.position("mars", J2000 + timedelta(seconds=20))
    assert first is second
    assert cached.cache.hits == 1
    assert cached.cache.misses == 1
    after = registry.get_sample_value(
        "astrotiming_ephemeris_cache_hits_total", {"adapter": "periodic"}
    )
    assert after == before + 1.0
    assert cached.mean_daily_motion("SUN") == ephemeris.mean_daily_motion("SUN")


def test_cached_ephemeris_rejects_non_positive_bucket(ephemeris: PeriodicEphemeris) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        CachedEphemeris(ephemeris, qsec=0.0)
    assert excinfo.value.error_code == "configuration_error"
