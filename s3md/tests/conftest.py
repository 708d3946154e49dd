"""
Pytest configuration for s3md tests.

Why: Force AnyIO to use the asyncio backend for ASGI tests and keep the
process environment free of real bucket credentials so no test can reach
the network by accident.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

_S3MD_VARS = (
    "S3MD_BUCKET",
    "S3MD_REGION",
    "S3MD_ACCESS_KEY_ID",
    "S3MD_SECRET_ACCESS_KEY",
    "S3MD_KEY_PREFIX",
    "S3MD_CACHE_TTL_SECONDS",
    "S3MD_FETCH_TIMEOUT_SECONDS",
    "S3MD_CACHE_BACKEND",
    "S3MD_DATABASE_URL",
    "S3MD_ADMIN_TOKEN",
    "S3MD_DEFAULT_FILE",
    "S3MD_DISPATCHER_BASE",
    "S3MD_ENV",
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clean_s3md_env(monkeypatch: pytest.MonkeyPatch):
    for name in _S3MD_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    yield


@pytest.fixture
def storage_settings():
    from s3md.storage.config import StorageSettings

    return StorageSettings(
        bucket="docs-bucket",
        region="eu-west-1",
        access_key_id="AKIDEXAMPLE",
        secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
    )


@pytest.fixture
def s3md_env(monkeypatch: pytest.MonkeyPatch):
    """Configure bucket credentials through the environment."""
    monkeypatch.setenv("S3MD_BUCKET", "docs-bucket")
    monkeypatch.setenv("S3MD_REGION", "eu-west-1")
    monkeypatch.setenv("S3MD_ACCESS_KEY_ID", "AKIDEXAMPLE")
    monkeypatch.setenv("S3MD_SECRET_ACCESS_KEY", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY")
    return os.environ
