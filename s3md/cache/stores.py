"""
In-memory cache stores: InMemoryTTLStore and InMemoryKeyRegistry.

Why: Single-node deployments and tests need a cache without infrastructure.
For multi-process deployments use the Postgres-backed stores in stores_db.

Concurrency: every operation takes the store's lock; no lock is held across
network calls because the stores never perform any.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional
import threading
import time


def _now() -> float:
    return time.time()


@dataclass
class CacheEntry:
    cache_key: str
    rendered_html: str
    inserted_at: float
    ttl: int

    @property
    def expires_at(self) -> float:
        return self.inserted_at + self.ttl


class InMemoryTTLStore:
    """Dict-backed TTL store with passive expiry (checked on read)."""

    def __init__(self, clock: Callable[[], float] = _now):
        self._data: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            rec = self._data.get(key)
            if not rec:
                return None
            if rec.expires_at <= self._clock():
                self._data.pop(key, None)
                return None
            return rec.rendered_html

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        rec = CacheEntry(cache_key=key, rendered_html=value, inserted_at=self._clock(), ttl=int(ttl_seconds))
        with self._lock:
            self._data[key] = rec

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Raw record including expired ones (diagnostics and tests)."""
        with self._lock:
            return self._data.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class InMemoryKeyRegistry:
    """Insertion-ordered set of cache keys."""

    def __init__(self):
        # dict preserves insertion order; values unused
        self._keys: Dict[str, None] = {}
        self._lock = threading.Lock()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._keys)

    def add(self, key: str) -> bool:
        with self._lock:
            if key in self._keys:
                return False
            self._keys[key] = None
            return True

    def discard_many(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._keys.pop(key, None)


__all__ = ["CacheEntry", "InMemoryTTLStore", "InMemoryKeyRegistry"]
