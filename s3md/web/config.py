"""
Configuration and startup security checks for the s3md web service.

Why: The service exposes an administrative cache flush and reads credentials
for a private bucket. This module provides a single guard that enforces
minimal production safety constraints without burdening local development.

Permissions: The caller needs no special privileges. The functions simply
read environment variables; the guard raises `SystemExit` on fatal
misconfiguration.
"""
from __future__ import annotations

import os


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def get_admin_token() -> str:
    """Bearer token guarding POST /internal/cache/flush (S3MD_ADMIN_TOKEN)."""
    return (os.getenv("S3MD_ADMIN_TOKEN") or "").strip()


def get_dispatcher_base() -> str:
    """Base URL that rewritten document links point at (S3MD_DISPATCHER_BASE).

    Empty (default) keeps links query-only so they re-enter whichever page
    embeds the document.
    """
    return (os.getenv("S3MD_DISPATCHER_BASE") or "").strip()


def should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via S3MD_ENABLE_DOTENV (default true outside pytest).
    """
    import sys

    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("S3MD_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - S3MD_ADMIN_TOKEN must be set and not a placeholder, otherwise anyone
      could flush the cache (or the flush would be silently disabled).
    - The db cache backend must not explicitly disable TLS.
    """

    env = os.getenv("S3MD_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    # 1) Admin token for cache flush
    token = get_admin_token()
    if not token or token.upper().startswith("CHANGE_ME") or token.upper() == "DUMMY_DO_NOT_USE":
        raise SystemExit(
            "Refusing to start: S3MD_ADMIN_TOKEN is unset or a placeholder in production."
        )

    # 2) Postgres TLS for the shared cache
    backend = (os.getenv("S3MD_CACHE_BACKEND") or "memory").strip().lower()
    if backend == "db":
        dsn = os.getenv("S3MD_DATABASE_URL") or os.getenv("DATABASE_URL") or ""
        if "sslmode=disable" in dsn:
            raise SystemExit(
                "Refusing to start: the cache DSN contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )


__all__ = [
    "ensure_secure_config_on_startup",
    "get_admin_token",
    "get_dispatcher_base",
    "should_load_dotenv",
]
