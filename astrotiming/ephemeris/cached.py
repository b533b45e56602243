"""Quantised LRU cache in front of any ephemeris provider."""

from __future__ import annotations

import time
from datetime import date, datetime
from typing import TYPE_CHECKING

from ..canonical import BodyPosition
from ..core.bodies import canonical_name
from ..core.qcache import DEFAULT_QSEC, QCache, qbin
from ..core.time import julian_day
from ..errors import ConfigurationError
from ..observability.metrics import (
    EPHEMERIS_CACHE_HITS,
    EPHEMERIS_CACHE_MISSES,
    EPHEMERIS_COMPUTE_DURATION,
)

if TYPE_CHECKING:
    from . import EphemerisProvider

__all__ = ["CachedEphemeris"]


class CachedEphemeris:
    """Wrap ``provider`` so repeated lookups within one time bucket are reused.

    Positions are keyed by ``(body, bucket)`` where the bucket is the
    instant quantised to ``qsec`` seconds. Any lookup inside a bucket
    returns the position computed for the first instant seen in it.
    """

    adapter_id = "cached"

    def __init__(
        self,
        provider: "EphemerisProvider",
        *,
        cache: QCache | None = None,
        qsec: float = DEFAULT_QSEC,
        maxsize: int = 4096,
    ) -> None:
        if qsec <= 0:
            raise ConfigurationError("qsec must be positive", context={"qsec": qsec})
        self.provider = provider
        self.cache = cache if cache is not None else QCache(maxsize=maxsize)
        self.qsec = float(qsec)
        self._label = getattr(provider, "adapter_id", type(provider).__name__)

    def supports(self, body: str) -> bool:
        return self.provider.supports(body)

    def longitude(self, body: str, t_centuries: float) -> float:
        return self.provider.longitude(body, t_centuries)

    def speed(self, body: str, t_centuries: float) -> float:
        return self.provider.speed(body, t_centuries)

    def mean_daily_motion(self, body: str) -> float:
        return self.provider.mean_daily_motion(body)

    def position(self, body: str, moment: datetime | date) -> BodyPosition:
        key = (canonical_name(body), qbin(julian_day(moment), self.qsec))
        cached = self.cache.get(key)
        if cached is not None:
            EPHEMERIS_CACHE_HITS.labels(adapter=self._label).inc()
            return cached
        EPHEMERIS_CACHE_MISSES.labels(adapter=self._label).inc()
        start = time.perf_counter()
        value = self.provider.position(body, moment)
        EPHEMERIS_COMPUTE_DURATION.labels(adapter=self._label, body=key[0]).observe(
            time.perf_counter() - start
        )
        self.cache.put(key, value)
        return value
