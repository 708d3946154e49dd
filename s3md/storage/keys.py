"""
Helpers to validate document identifiers and derive storage/cache keys.

Why:
    Identifiers arrive from templates and from end-user query parameters. They
    must be checked before they reach the bucket so a client can never address
    an object outside the configured key space.

Conventions:
    - Identifier: relative path of [A-Za-z0-9_-/.] characters ending in .md
      (extension case-insensitive), without any ".." segment.
    - Storage key: {prefix}/{identifier} when a prefix is configured.
    - Cache key: s3md_{sha256(identifier)}.

Security:
    - Validation returns a typed result instead of raising; invalid input is
      an expected, common case.
    - Leading slashes are stripped so accepted identifiers are always relative.
"""
from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Optional

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_\-/.]+\.md$", re.IGNORECASE)

CACHE_KEY_PREFIX = "s3md_"


@dataclass(frozen=True, slots=True)
class IdentifierCheck:
    """Outcome of identifier validation.

    `identifier` holds the normalized (relative) identifier when `ok` is True
    and is None otherwise. `reason` is a short machine-readable code.
    """

    ok: bool
    identifier: Optional[str]
    reason: str


def has_parent_segment(path: str) -> bool:
    return any(segment == ".." for segment in path.split("/"))


def validate_identifier(raw: object) -> IdentifierCheck:
    """Check a client-supplied document path.

    Returns IdentifierCheck(ok=True, identifier=<relative path>, reason="ok")
    on success; otherwise ok=False with reason "empty", "invalid_characters"
    or "parent_segment".
    """
    if not isinstance(raw, str):
        return IdentifierCheck(False, None, "empty")
    value = raw.strip()
    if not value:
        return IdentifierCheck(False, None, "empty")
    if not _IDENTIFIER_RE.match(value):
        return IdentifierCheck(False, None, "invalid_characters")
    if has_parent_segment(value):
        return IdentifierCheck(False, None, "parent_segment")
    relative = value.lstrip("/")
    if not _IDENTIFIER_RE.match(relative):
        # "/.md" and similar collapse to a bare extension
        return IdentifierCheck(False, None, "invalid_characters")
    return IdentifierCheck(True, relative, "ok")


def resolve_storage_key(identifier: str, prefix: str = "") -> str:
    """Map a validated identifier to the object key inside the bucket."""
    trimmed = (prefix or "").strip("/")
    if not trimmed:
        return identifier
    return f"{trimmed}/{identifier}"


def make_cache_key(identifier: str) -> str:
    """Stable cache key for an identifier (same identifier, same key)."""
    digest = hashlib.sha256(identifier.encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"


__all__ = [
    "CACHE_KEY_PREFIX",
    "IdentifierCheck",
    "has_parent_segment",
    "validate_identifier",
    "resolve_storage_key",
    "make_cache_key",
]
