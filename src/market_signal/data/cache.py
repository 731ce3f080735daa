"""Process-wide candle cache and request throttle, owned by the caller."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from market_signal.core.models import CandleSeries

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, int]


@dataclass(frozen=True)
class CacheEntry:
    candles: CandleSeries
    stored_at: float


class FetchContext:
    """Shared cache + last-request timestamp for every fetcher using it.

    Throttle slots are reserved under the lock, so two concurrent runs can
    never both skip the minimum interval. The sleep itself happens outside
    the lock and only blocks the run that has to wait.
    """

    def __init__(
        self,
        min_interval_seconds: float = 1.0,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval = max(min_interval_seconds, 0.0)
        self._ttl = ttl_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._last_request_at: float | None = None

    @property
    def last_request_at(self) -> float | None:
        return self._last_request_at

    def lookup(self, key: CacheKey) -> Optional[CandleSeries]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._ttl is not None and self._clock() - entry.stored_at >= self._ttl:
                del self._entries[key]
                logger.debug("Cache entry expired for %s", key)
                return None
            return entry.candles

    def record_response(self, key: CacheKey, candles: CandleSeries) -> None:
        """Cache a fresh network result and stamp the request clock together."""
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(candles=tuple(candles), stored_at=now)
            if self._last_request_at is None or now > self._last_request_at:
                self._last_request_at = now

    def invalidate(self, key: CacheKey | None = None) -> None:
        """Drop one cached series, or all of them when no key is given."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def throttle(self) -> float:
        """Wait until the next request may be issued; return the delay slept."""
        delay = self._reserve_slot()
        if delay > 0:
            logger.debug("Rate limit: waiting %.3fs before next request", delay)
            self._sleep(delay)
        return delay

    def _reserve_slot(self) -> float:
        with self._lock:
            now = self._clock()
            if self._last_request_at is None:
                delay = 0.0
            else:
                delay = max(self._last_request_at + self._min_interval - now, 0.0)
            self._last_request_at = now + delay
            return delay
