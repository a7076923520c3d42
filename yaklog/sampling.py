"""Log levels and samplers that decide whether a record is emitted."""

from __future__ import annotations

import abc
import enum
import hashlib
import math
import os
import threading
import time
from typing import Callable, Optional

_MAX_UINT64 = (1 << 64) - 1
_GOLDEN = 0x9E3779B97F4A7C15


class Level(enum.IntEnum):
    """Severity of a log record; higher is more severe."""

    TRACE = -2
    DEBUG = -1
    INFO = 0
    WARN = 1
    ERROR = 2
    PANIC = 3
    FATAL = 4


class Sampler(abc.ABC):
    """Decides whether a record may be emitted. Implementations are thread safe."""

    @abc.abstractmethod
    def sample(self, level: Level, msg: str) -> bool:
        """Return True to keep the record, False to drop it."""


class RateSampler(Sampler):
    """Token-bucket sampler: at most ``rate`` records per second, bursts up to ``burst``."""

    def __init__(self, rate: int, burst: int) -> None:
        if rate <= 0:
            raise ValueError("rate must be > 0")
        if burst <= 0:
            raise ValueError("burst must be > 0")
        self._rate = float(rate)
        self._burst = float(burst)
        self._tokens = float(burst)
        self._last = time.monotonic()
        self._lock = threading.Lock()
        self.allow_fn: Optional[Callable[[], bool]] = None

    def _allow(self) -> bool:
        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last
            self._last = now
            self._tokens = min(self._burst, self._tokens + elapsed * self._rate)
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def sample(self, level: Level, msg: str) -> bool:
        if self.allow_fn is not None:
            return self.allow_fn()
        return self._allow()


def rate_to_limit(rate: float) -> int:
    """Convert a sampling rate in (0, 1] to a 64-bit hash threshold."""
    if math.isnan(rate) or rate <= 0:
        return 0
    if rate >= 1:
        return _MAX_UINT64
    return min(round(float(_MAX_UINT64) * rate), _MAX_UINT64)


class HashSampler(Sampler):
    """Keeps a stable fraction of records by hashing level and message.

    The hash key is random per process, so results are stable within a
    process but not across processes. Each level has its own threshold.
    """

    def __init__(self, rate: float) -> None:
        self._seed = os.urandom(16)
        self._limits = [rate_to_limit(rate)] * 8

    def set_rate(self, rate: float) -> None:
        """Set the sampling rate of every level."""
        self._limits = [rate_to_limit(rate)] * 8

    def set_rate_for_level(self, level: Level, rate: float) -> None:
        """Set the sampling rate of one level."""
        self._limits[int(level) & 7] = rate_to_limit(rate)

    def sample(self, level: Level, msg: str) -> bool:
        digest = hashlib.blake2b(
            msg.encode("utf-8", "surrogatepass"), digest_size=8, key=self._seed
        ).digest()
        lvl = int(level) & 0xFF
        h = int.from_bytes(digest, "little") ^ ((lvl * _GOLDEN) & _MAX_UINT64)
        return h <= self._limits[int(level) & 7]