"""Document endpoints: embeddable fragment and a minimal viewer page."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse

from s3md.storage.config import load_storage_settings

documents_router = APIRouter(tags=["Documents"])

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Documents</title>
</head>
<body>
{fragment}
</body>
</html>
"""


async def _resolve(request: Request, file: Optional[str]) -> str:
    service = request.app.state.document_service
    # Settings are loaded per request; the service itself never reads the environment.
    settings = load_storage_settings()
    # resolve() performs blocking network I/O; keep it off the event loop.
    return await run_in_threadpool(service.resolve, file, settings)


@documents_router.get("/documents", response_class=HTMLResponse)
async def get_document_fragment(request: Request, file: Optional[str] = None):
    """
    Return the rendered document as an HTML fragment for embedding.

    Always 200: invalid paths, missing configuration and storage failures are
    encoded as HTML comments in the body.
    """
    html = await _resolve(request, file)
    return HTMLResponse(html, headers={"Cache-Control": "no-cache"})


@documents_router.get("/", response_class=HTMLResponse)
async def get_document_page(request: Request, file: Optional[str] = None):
    """Full page around the fragment; rewritten "?file=" links navigate here."""
    html = await _resolve(request, file)
    return HTMLResponse(_PAGE_TEMPLATE.format(fragment=html), headers={"Cache-Control": "no-cache"})
