"""
Document service: validate -> cache -> fetch -> render -> store.

Intent:
    Provide the single entry point used by the web layer and the CLI. The
    contract is "always returns renderable text": every failure becomes an
    inert HTML comment instead of an exception.

Behavior:
    - Invalid identifiers return a fixed placeholder; the input is never
      echoed back.
    - Missing configuration short-circuits before any network call.
    - Fetch failures return a diagnostic comment naming the failure kind and
      the requested identifier (HTML-escaped). Nothing is cached for them.
    - Successful renders are wrapped in <div class="s3md-content"> and cached.

Concurrency:
    The service holds no locks. The cache check happens before the network
    call and the cache store after it.
"""
from __future__ import annotations

import html
import logging
from dataclasses import dataclass, replace
from typing import Optional

from s3md.cache.document_cache import DocumentCache
from s3md.rendering.markdown import MarkdownRenderer
from s3md.storage.config import DEFAULT_FILE, StorageSettings
from s3md.storage.fetcher import FetchError, ObjectFetcher
from s3md.storage.keys import resolve_storage_key, validate_identifier

_log = logging.getLogger("s3md.pipeline")

CONTENT_CLASS = "s3md-content"
INVALID_PATH_PLACEHOLDER = "<!-- s3md: invalid file path -->"
NOT_CONFIGURED_PLACEHOLDER = "<!-- s3md: plugin not configured -->"
RENDER_FAILED_PLACEHOLDER = "<!-- s3md error: rendering failed -->"


def _comment_text(text: str) -> str:
    """Escape text for embedding inside an HTML comment."""
    escaped = html.escape(text, quote=True)
    while "--" in escaped:
        escaped = escaped.replace("--", "- -")
    return escaped


def error_placeholder(error: FetchError) -> str:
    return f"<!-- s3md error: {_comment_text(error.message)} -->"


def wrap_content(body_html: str) -> str:
    return f'<div class="{CONTENT_CLASS}">{body_html}</div>'


@dataclass
class DocumentService:
    """Resolve document identifiers to embeddable HTML.

    Dependencies are injected once per process; the storage settings are
    passed in on every call.
    """

    cache: DocumentCache
    fetcher: ObjectFetcher
    renderer: Optional[MarkdownRenderer] = None
    default_file: str = DEFAULT_FILE

    def __post_init__(self) -> None:
        if self.renderer is None:
            self.renderer = MarkdownRenderer()

    def resolve(self, raw_identifier: Optional[str], settings: StorageSettings) -> str:
        if raw_identifier is None or not str(raw_identifier).strip():
            raw_identifier = self.default_file

        check = validate_identifier(raw_identifier)
        if not check.ok or check.identifier is None:
            _log.info("resolve rejected reason=%s", check.reason)
            return INVALID_PATH_PLACEHOLDER
        identifier = check.identifier

        try:
            cached = self.cache.lookup(identifier)
        except Exception as exc:
            _log.warning("cache lookup failed identifier=%s error=%s", identifier, type(exc).__name__)
            cached = None
        if cached is not None:
            _log.debug("resolve cache hit identifier=%s", identifier)
            return cached

        if not settings.is_configured:
            _log.warning("resolve skipped: storage not configured")
            return NOT_CONFIGURED_PLACEHOLDER

        storage_key = resolve_storage_key(identifier, settings.key_prefix)
        try:
            result = self.fetcher.fetch(storage_key, settings)
        except Exception:
            _log.exception("fetch raised identifier=%s", identifier)
            return error_placeholder(FetchError("network_error", identifier))
        if not result.ok:
            error = result.error or FetchError("transport_error", identifier)
            # Report the requested identifier, never the prefixed storage key.
            return error_placeholder(replace(error, key=identifier))

        try:
            rendered = self.renderer.render(result.body, identifier)
        except Exception:
            _log.exception("render failed identifier=%s", identifier)
            return RENDER_FAILED_PLACEHOLDER

        output = wrap_content(rendered.html)
        try:
            self.cache.store(identifier, output)
        except Exception as exc:
            _log.warning("cache store failed identifier=%s error=%s", identifier, type(exc).__name__)
        _log.info("resolve ok identifier=%s links=%d", identifier, len(rendered.links))
        return output


__all__ = [
    "CONTENT_CLASS",
    "INVALID_PATH_PLACEHOLDER",
    "NOT_CONFIGURED_PLACEHOLDER",
    "RENDER_FAILED_PLACEHOLDER",
    "DocumentService",
    "error_placeholder",
    "wrap_content",
]
