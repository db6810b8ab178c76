# src/dealscope/adapters/cache.py
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    value: V
    expires_at: Optional[float]  # clock() seconds, None = never expires


@dataclass(frozen=True)
class CacheStats:
    size: int
    keys: list[str]


class TTLCache(Generic[V]):
    """
    In-memory key/value cache with per-entry expiry.

    Expired entries are dropped lazily on get()/has() and by a background
    sweep every `sweep_interval_s` seconds, so keys that are never read again
    do not pile up. Pass sweep_interval_s=None to disable the sweep thread
    (tests, short-lived scripts) and call sweep() yourself.

    All access is serialized on one lock; the sweep thread takes the same lock.
    """

    def __init__(
        self,
        default_ttl_s: float | None = 300.0,
        *,
        sweep_interval_s: float | None = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl_s = default_ttl_s
        self._clock = clock
        self._lock = threading.RLock()
        self._store: dict[str, CacheEntry[V]] = {}

        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None
        if sweep_interval_s:
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                args=(sweep_interval_s,),
                name="ttl-cache-sweep",
                daemon=True,
            )
            self._sweeper.start()

    # ------------------------------------------------------------------
    # point operations
    # ------------------------------------------------------------------
    def set(self, key: str, value: V, ttl_s: float | None = None) -> None:
        ttl = ttl_s if ttl_s is not None else self.default_ttl_s
        with self._lock:
            expires_at = self._clock() + ttl if ttl is not None else None
            self._store[key] = CacheEntry(value=value, expires_at=expires_at)

    def get(self, key: str, default: V | None = None) -> V | None:
        with self._lock:
            entry = self._live_entry(key)
            return entry.value if entry is not None else default

    def has(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def _live_entry(self, key: str) -> CacheEntry[V] | None:
        # caller holds the lock
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._store[key]
            return None
        return entry

    @staticmethod
    def _is_expired(entry: CacheEntry[V], now: float) -> bool:
        return entry.expires_at is not None and entry.expires_at < now

    # ------------------------------------------------------------------
    # housekeeping
    # ------------------------------------------------------------------
    def sweep(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._store.items() if self._is_expired(e, now)]
            for k in expired:
                del self._store[k]
            return len(expired)

    def _sweep_loop(self, interval_s: float) -> None:
        while not self._stop.wait(interval_s):
            self.sweep()

    def close(self) -> None:
        self._stop.set()
        if self._sweeper is not None and self._sweeper is not threading.current_thread():
            self._sweeper.join(timeout=1.0)
        self._sweeper = None

    def __enter__(self) -> "TTLCache[V]":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # helper for debugging / dashboards
    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(size=len(self._store), keys=list(self._store))

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
