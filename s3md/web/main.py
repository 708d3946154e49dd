"s3md web service"
from __future__ import annotations

from dotenv import load_dotenv
from fastapi import FastAPI

from s3md.web import config as _cfg
from s3md.web.routes.documents import documents_router
from s3md.web.routes.operations import operations_router
from s3md.web.wiring import build_document_service

if _cfg.should_load_dotenv():
    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

app = FastAPI(
    title="s3md",
    description="Render markdown documents from an S3 bucket",
    version="1.0.0",
)

# One service object per process; routes reach it through app.state so tests
# can swap in a service built from fakes.
app.state.document_service = build_document_service()

app.include_router(documents_router)
app.include_router(operations_router)
