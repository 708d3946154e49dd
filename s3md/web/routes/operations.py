"""Operations endpoints (internal tooling for site operators)."""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from s3md.storage.config import load_storage_settings
from s3md.web.config import get_admin_token

operations_router = APIRouter(tags=["Operations"])
logger = logging.getLogger("s3md.web.operations")


def _private_response(body: dict, *, status_code: int) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _require_admin(request: Request):
    expected = get_admin_token()
    if not expected:
        return _private_response({"error": "flush_disabled"}, status_code=503)
    scheme, _, token = (request.headers.get("authorization") or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return _private_response({"error": "unauthenticated"}, status_code=401)
    if not secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        return _private_response({"error": "unauthenticated"}, status_code=401)
    return None


@operations_router.post("/internal/cache/flush")
async def flush_document_cache(request: Request):
    """
    Drop every cached document so the next request re-fetches from the bucket.

    Permissions:
        Caller must present `Authorization: Bearer <S3MD_ADMIN_TOKEN>`.
    """
    error = _require_admin(request)
    if error:
        return error

    service = request.app.state.document_service
    try:
        flushed = await run_in_threadpool(service.cache.flush_all)
    except Exception as exc:
        logger.warning("cache flush failed: %s: %s", exc.__class__.__name__, str(exc))
        return _private_response({"error": "flush_failed"}, status_code=503)
    return _private_response({"flushed": flushed}, status_code=200)


@operations_router.get("/internal/health")
async def health(request: Request):
    """Liveness plus whether bucket credentials are configured (never the values)."""
    settings = load_storage_settings()
    return _private_response({"status": "ok", "configured": settings.is_configured}, status_code=200)
