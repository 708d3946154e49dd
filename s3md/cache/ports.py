"""
Cache persistence ports used by the document cache.

Keep these small and framework-agnostic so tests can supply simple fakes and
deployments can back them with memory or Postgres.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Protocol


class TTLStore(Protocol):
    """Keyed string store with per-entry expiry.

    Intent:
        Hold rendered HTML under an opaque cache key. An expired entry must
        never be returned by `get`.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...


class KeyRegistry(Protocol):
    """Ordered set of live cache keys, used to flush without wildcard scans.

    `add` is idempotent and returns True only when the key was newly added.
    """

    def keys(self) -> List[str]: ...

    def add(self, key: str) -> bool: ...

    def discard_many(self, keys: Iterable[str]) -> None: ...


__all__ = ["TTLStore", "KeyRegistry"]
