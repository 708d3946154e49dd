"""
HTTP contract tests for the document and operations endpoints.

The app's document service is swapped for one built on a fake fetcher so the
tests never reach a bucket.
"""
from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport

from s3md.cache.document_cache import create_document_cache
from s3md.pipeline.service import DocumentService
from s3md.storage.fetcher import FetchError, FetchResult
from s3md.web import main


pytestmark = pytest.mark.anyio("asyncio")


class _FakeFetcher:
    def __init__(self, objects):
        self.objects = objects
        self.calls = []

    def fetch(self, storage_key, credentials):
        self.calls.append(storage_key)
        if storage_key in self.objects:
            return FetchResult(body=self.objects[storage_key])
        return FetchResult(error=FetchError("not_found", storage_key, 404))


class _BrokenCache:
    def flush_all(self):
        raise ConnectionError("db down")


@pytest.fixture
def fetcher(monkeypatch: pytest.MonkeyPatch) -> _FakeFetcher:
    fake = _FakeFetcher({"index.md": b"# Home\n\n[Guide](docs/guide.md)", "docs/guide.md": b"guide"})
    service = DocumentService(cache=create_document_cache("memory"), fetcher=fake)
    monkeypatch.setattr(main.app.state, "document_service", service)
    return fake


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test")


@pytest.mark.anyio
async def test_fragment_endpoint_renders_default_document(s3md_env, fetcher):
    async with _client() as c:
        r = await c.get("/documents")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert r.headers.get("Cache-Control") == "no-cache"
    assert '<div class="s3md-content">' in r.text
    assert "<h1>Home</h1>" in r.text
    assert 'href="?file=docs%2Fguide.md"' in r.text
    assert "<html" not in r.text


@pytest.mark.anyio
async def test_page_endpoint_wraps_fragment(s3md_env, fetcher):
    async with _client() as c:
        r = await c.get("/", params={"file": "docs/guide.md"})
    assert r.status_code == 200
    assert r.text.startswith("<!DOCTYPE html>")
    assert "guide" in r.text
    assert fetcher.calls == ["docs/guide.md"]


@pytest.mark.anyio
async def test_errors_are_returned_as_comments_with_200(s3md_env, fetcher):
    async with _client() as c:
        invalid = await c.get("/documents", params={"file": "../etc/passwd"})
        missing = await c.get("/documents", params={"file": "nope.md"})
    assert invalid.status_code == 200
    assert invalid.text == "<!-- s3md: invalid file path -->"
    assert missing.status_code == 200
    assert "not found" in missing.text


@pytest.mark.anyio
async def test_unconfigured_environment_returns_placeholder(fetcher):
    async with _client() as c:
        r = await c.get("/documents")
    assert r.text == "<!-- s3md: plugin not configured -->"
    assert fetcher.calls == []


@pytest.mark.anyio
async def test_flush_disabled_without_admin_token(fetcher):
    async with _client() as c:
        r = await c.post("/internal/cache/flush")
    assert r.status_code == 503
    assert r.json() == {"error": "flush_disabled"}
    cc = r.headers.get("Cache-Control", "")
    assert "private" in cc and "no-store" in cc


@pytest.mark.anyio
@pytest.mark.parametrize("header", [None, "Bearer wrong", "Basic s3cret-token", "Bearer "])
async def test_flush_rejects_missing_or_wrong_token(monkeypatch: pytest.MonkeyPatch, fetcher, header):
    monkeypatch.setenv("S3MD_ADMIN_TOKEN", "s3cret-token")
    headers = {"Authorization": header} if header is not None else {}
    async with _client() as c:
        r = await c.post("/internal/cache/flush", headers=headers)
    assert r.status_code == 401
    assert r.json() == {"error": "unauthenticated"}


@pytest.mark.anyio
async def test_flush_with_token_empties_cache(monkeypatch: pytest.MonkeyPatch, s3md_env, fetcher):
    monkeypatch.setenv("S3MD_ADMIN_TOKEN", "s3cret-token")
    async with _client() as c:
        await c.get("/documents")
        await c.get("/documents", params={"file": "docs/guide.md"})
        r = await c.post("/internal/cache/flush", headers={"Authorization": "Bearer s3cret-token"})
        await c.get("/documents")
    assert r.status_code == 200
    assert r.json() == {"flushed": 2}
    assert fetcher.calls == ["index.md", "docs/guide.md", "index.md"]


@pytest.mark.anyio
async def test_flush_failure_reports_503(monkeypatch: pytest.MonkeyPatch, fetcher):
    monkeypatch.setenv("S3MD_ADMIN_TOKEN", "s3cret-token")
    monkeypatch.setattr(main.app.state.document_service, "cache", _BrokenCache())
    async with _client() as c:
        r = await c.post("/internal/cache/flush", headers={"Authorization": "Bearer s3cret-token"})
    assert r.status_code == 503
    assert r.json() == {"error": "flush_failed"}


@pytest.mark.anyio
async def test_health_reports_configuration_without_values(s3md_env):
    async with _client() as c:
        r = await c.get("/internal/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "configured": True}
    assert "docs-bucket" not in r.text


@pytest.mark.anyio
async def test_health_unconfigured():
    async with _client() as c:
        r = await c.get("/internal/health")
    assert r.json() == {"status": "ok", "configured": False}
