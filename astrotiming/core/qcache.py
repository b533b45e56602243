"""Process-local LRU cache for time-quantised ephemeris lookups."""

from __future__ import annotations

import os
import threading
from collections import OrderedDict
from dataclasses import dataclass
from math import floor
from typing import Any, Hashable, Optional, Tuple

from ..errors import ConfigurationError

__all__ = ["DEFAULT_QSEC", "QCache", "qbin"]

# Quantization size in seconds. Tune via env if needed.
DEFAULT_QSEC = float(os.getenv("ASTROTIMING_QCACHE_SEC", "60.0"))


def qbin(jd: float, qsec: float = DEFAULT_QSEC) -> int:
    """Quantize a Julian day into ``qsec``-sized bins."""

    # 1 day = 86400 s
    return int(floor((jd * 86400.0) / qsec))


@dataclass(slots=True)
class _Entry:
    key: Tuple[Hashable, ...]
    value: Any


class QCache:
    """LRU cache with a maxsize bound, safe for concurrent inserts."""

    __slots__ = ("maxsize", "_data", "_lock", "hits", "misses")

    def __init__(self, maxsize: int = 16384) -> None:
        if maxsize <= 0:
            raise ConfigurationError("maxsize must be positive", context={"maxsize": maxsize})
        self.maxsize = maxsize
        self._data: "OrderedDict[Tuple[Hashable, ...], _Entry]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: Tuple[Hashable, ...]) -> Optional[Any]:
        with self._lock:
            val = self._data.get(key)
            if val is None:
                self.misses += 1
                return None
            # move to end (most recently used)
            self._data.move_to_end(key)
            self.hits += 1
            return val.value

    def put(self, key: Tuple[Hashable, ...], value: Any) -> None:
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
                self._data[key].value = value
            else:
                self._data[key] = _Entry(key, value)
                if len(self._data) > self.maxsize:
                    self._data.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.hits = 0
            self.misses = 0
