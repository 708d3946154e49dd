"""
Shared helper for wiring the document service.

Why:
    The web app and the CLI need the same object graph (cache backend,
    fetcher, renderer). Building it in one place keeps both entry points
    consistent and lets tests construct the service with fakes instead.

Behavior:
    - The cache backend follows S3MD_CACHE_BACKEND. When the db backend cannot
      be created (no DSN) the helper logs a warning and falls back to memory.
    - For the db backend the tables are created on a best-effort basis.
"""
from __future__ import annotations

import logging

from s3md.cache.document_cache import DocumentCache, create_document_cache
from s3md.pipeline.service import DocumentService
from s3md.rendering.markdown import MarkdownRenderer
from s3md.storage.config import (
    get_cache_backend,
    get_cache_dsn,
    get_cache_ttl_seconds,
    get_default_file,
    get_fetch_timeout_seconds,
)
from s3md.storage.fetcher import ObjectFetcher
from s3md.web.config import get_dispatcher_base

_log = logging.getLogger("s3md.web")


def build_document_cache() -> DocumentCache:
    backend = get_cache_backend()
    ttl = get_cache_ttl_seconds()
    try:
        cache = create_document_cache(backend, default_ttl=ttl, dsn=get_cache_dsn())
    except (RuntimeError, ValueError) as exc:
        _log.warning("cache backend %r unavailable (%s); using memory", backend, exc)
        return create_document_cache("memory", default_ttl=ttl)

    if backend == "db":
        for part in (cache.entries, cache.registry):
            try:
                part.ensure_schema()
            except Exception as exc:
                # Database may be unreachable at startup; lookups then fail per request and count as misses.
                _log.warning("cache schema bootstrap skipped: %s: %s", exc.__class__.__name__, str(exc))
    _log.info("cache backend wired: %s ttl=%d", backend, ttl)
    return cache


def build_document_service() -> DocumentService:
    """Construct the process-wide DocumentService from environment configuration."""
    return DocumentService(
        cache=build_document_cache(),
        fetcher=ObjectFetcher(timeout=get_fetch_timeout_seconds()),
        renderer=MarkdownRenderer(dispatcher_base=get_dispatcher_base()),
        default_file=get_default_file(),
    )


__all__ = ["build_document_cache", "build_document_service"]
