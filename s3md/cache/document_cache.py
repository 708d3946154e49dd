"""Rendered-document cache keyed by document identifier."""
from __future__ import annotations

import logging
from typing import Optional

from s3md.cache.ports import KeyRegistry, TTLStore
from s3md.storage.config import DEFAULT_CACHE_TTL_SECONDS
from s3md.storage.keys import make_cache_key

_log = logging.getLogger("s3md.cache")


class DocumentCache:
    """Map identifiers to rendered HTML with a ttl and a flushable key registry.

    Entries live in a TTLStore under `make_cache_key(identifier)`; every stored
    key is also recorded in a KeyRegistry so `flush_all` can remove entries
    without scanning the store.
    """

    def __init__(
        self,
        store: TTLStore,
        registry: KeyRegistry,
        *,
        default_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.entries = store
        self.registry = registry
        self.default_ttl = default_ttl

    def lookup(self, identifier: str) -> Optional[str]:
        return self.entries.get(make_cache_key(identifier))

    def store(self, identifier: str, html: str, ttl: Optional[int] = None) -> str:
        """Insert or overwrite the entry for `identifier`; returns its cache key."""
        ttl_seconds = self.default_ttl if ttl is None else int(ttl)
        if ttl_seconds <= 0:
            raise ValueError("ttl must be positive")
        cache_key = make_cache_key(identifier)
        self.entries.set(cache_key, html, ttl_seconds)
        if self.registry.add(cache_key):
            _log.debug("cache key registered key=%s", cache_key)
        return cache_key

    def flush_all(self) -> int:
        """Remove every registered entry; returns the number of keys processed.

        The snapshotted keys leave the registry before their entries are
        deleted. `store` writes the entry before registering its key, so an
        entry written by a concurrent store at any point of the flush is
        registered again and reached by the next flush.
        """
        snapshot = self.registry.keys()
        self.registry.discard_many(snapshot)
        for cache_key in snapshot:
            self.entries.delete(cache_key)
        _log.info("cache flushed keys=%d", len(snapshot))
        return len(snapshot)


def create_document_cache(
    backend: str = "memory",
    *,
    default_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
    dsn: str = "",
) -> DocumentCache:
    """Instantiate the configured cache backend ("memory" or "db").

    Raises:
        ValueError: unknown backend name.
        RuntimeError: db backend selected without a DSN.
    """
    if backend == "memory":
        from s3md.cache.stores import InMemoryKeyRegistry, InMemoryTTLStore

        return DocumentCache(InMemoryTTLStore(), InMemoryKeyRegistry(), default_ttl=default_ttl)

    if backend == "db":
        from s3md.cache.stores_db import DBKeyRegistry, DBTTLStore

        if not dsn:
            raise RuntimeError("S3MD_DATABASE_URL must be set when S3MD_CACHE_BACKEND=db")
        return DocumentCache(DBTTLStore(dsn), DBKeyRegistry(dsn), default_ttl=default_ttl)

    raise ValueError(f"Unsupported cache backend: {backend!r}")


__all__ = ["DocumentCache", "create_document_cache"]
