"""
Centralized storage configuration for the markdown bucket and the cache.

Intent:
    Provide a single source of truth for the bucket credentials, request
    timeout and cache lifetime. Values come from environment variables with
    sane fallbacks so the web layer and the CLI load identical settings and
    pass them into the pipeline explicitly.

Behavior:
    - load_storage_settings() reads S3MD_* variables, trims whitespace and
      substitutes the default region for a blank one.
    - get_cache_ttl_seconds() / get_fetch_timeout_seconds() parse integers and
      clamp them to contract maxima.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional


DEFAULT_REGION = "us-east-1"
DEFAULT_FILE = "index.md"
DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60
DEFAULT_FETCH_TIMEOUT_SECONDS = 15

_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
_REGION_RE = re.compile(r"^[a-z0-9-]+$")


@dataclass(frozen=True, slots=True)
class StorageSettings:
    """Credentials for the single-object GET against the markdown bucket.

    The secret key is excluded from repr so settings can appear in logs and
    tracebacks without leaking it.
    """

    bucket: str = ""
    region: str = DEFAULT_REGION
    access_key_id: str = ""
    secret_key: str = field(default="", repr=False)
    key_prefix: str = ""

    @property
    def host(self) -> str:
        return f"{self.bucket}.s3.{self.region}.amazonaws.com"

    @property
    def is_configured(self) -> bool:
        """True when all credentials are present and bucket/region are valid host labels."""
        if not (self.bucket and self.access_key_id and self.secret_key):
            return False
        if not _BUCKET_RE.match(self.bucket) or ".." in self.bucket:
            return False
        return bool(_REGION_RE.match(self.region or ""))


def _env(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def load_storage_settings(env: Optional[Mapping[str, str]] = None) -> StorageSettings:
    """Build StorageSettings from the environment (or an explicit mapping for tests).

    Env:
        S3MD_BUCKET, S3MD_REGION (default us-east-1), S3MD_ACCESS_KEY_ID,
        S3MD_SECRET_ACCESS_KEY, S3MD_KEY_PREFIX.
    """
    source = os.environ if env is None else env
    return StorageSettings(
        bucket=_env(source, "S3MD_BUCKET"),
        region=_env(source, "S3MD_REGION") or DEFAULT_REGION,
        access_key_id=_env(source, "S3MD_ACCESS_KEY_ID"),
        secret_key=_env(source, "S3MD_SECRET_ACCESS_KEY"),
        key_prefix=_env(source, "S3MD_KEY_PREFIX"),
    )


def get_default_file() -> str:
    """Identifier served when the caller does not name one (S3MD_DEFAULT_FILE)."""
    return (os.getenv("S3MD_DEFAULT_FILE") or DEFAULT_FILE).strip() or DEFAULT_FILE


def get_cache_backend() -> str:
    """Configured cache backend name: "memory" (default) or "db"."""
    return (os.getenv("S3MD_CACHE_BACKEND") or "memory").strip().lower()


def get_cache_dsn() -> str:
    """Postgres DSN for the db cache backend (S3MD_DATABASE_URL, then DATABASE_URL)."""
    return (os.getenv("S3MD_DATABASE_URL") or os.getenv("DATABASE_URL") or "").strip()


__all__ = [
    "DEFAULT_REGION",
    "DEFAULT_FILE",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_FETCH_TIMEOUT_SECONDS",
    "StorageSettings",
    "load_storage_settings",
    "get_default_file",
    "get_cache_backend",
    "get_cache_dsn",
]

# --- Limits --------------------------------------------------------------------

def _parse_int_env(name: str, default: int, *, contract_max: int | None = None) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    if isinstance(contract_max, int) and contract_max > 0:
        value = min(value, contract_max)
    return value


def get_cache_ttl_seconds() -> int:
    """Lifetime of a rendered document in the cache (default 24h, clamped 30 days)."""
    return _parse_int_env(
        "S3MD_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS, contract_max=30 * 24 * 60 * 60
    )


def get_fetch_timeout_seconds() -> int:
    """Timeout for the storage GET (default 15s, clamped 60s)."""
    return _parse_int_env(
        "S3MD_FETCH_TIMEOUT_SECONDS", DEFAULT_FETCH_TIMEOUT_SECONDS, contract_max=60
    )


__all__ += [
    "get_cache_ttl_seconds",
    "get_fetch_timeout_seconds",
]
