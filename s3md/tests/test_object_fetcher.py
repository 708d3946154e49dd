"""
ObjectFetcher: signed GET and response classification.

Uses httpx.MockTransport so no request leaves the process.
"""
from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from s3md.storage.fetcher import FetchError, ObjectFetcher
from s3md.storage.signing import EMPTY_PAYLOAD_SHA256, sign_request

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _fetcher(handler, **kwargs) -> ObjectFetcher:
    return ObjectFetcher(transport=httpx.MockTransport(handler), clock=lambda: FIXED_NOW, **kwargs)


def test_success_returns_body_and_sends_signed_headers(storage_settings):
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = dict(request.headers)
        seen["method"] = request.method
        return httpx.Response(200, content=b"# Hello")

    result = _fetcher(handler).fetch("docs/guide.md", storage_settings)

    assert result.ok
    assert result.body == b"# Hello"
    assert result.error is None
    assert seen["method"] == "GET"
    assert seen["url"] == "https://docs-bucket.s3.eu-west-1.amazonaws.com/docs/guide.md"
    assert seen["headers"]["x-amz-date"] == "20240102T030405Z"
    assert seen["headers"]["x-amz-content-sha256"] == EMPTY_PAYLOAD_SHA256
    expected = sign_request(
        "GET",
        "docs-bucket.s3.eu-west-1.amazonaws.com",
        "/docs/guide.md",
        EMPTY_PAYLOAD_SHA256,
        "20240102T030405Z",
        storage_settings,
    )
    assert seen["headers"]["authorization"] == expected.authorization


def test_key_is_percent_encoded_with_slashes_preserved(storage_settings):
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["raw_path"] = request.url.raw_path
        return httpx.Response(200, content=b"x")

    _fetcher(handler).fetch("site/my docs/a+b.md", storage_settings)
    assert seen["raw_path"] == b"/site/my%20docs/a%2Bb.md"


@pytest.mark.parametrize(
    "status,kind",
    [
        (403, "forbidden"),
        (404, "not_found"),
        (500, "transport_error"),
        (503, "transport_error"),
        (301, "transport_error"),
        (400, "transport_error"),
    ],
)
def test_non_2xx_statuses_are_classified(storage_settings, status, kind):
    result = _fetcher(lambda request: httpx.Response(status, content=b"<Error/>")).fetch("index.md", storage_settings)
    assert not result.ok
    assert result.body is None
    assert result.error == FetchError(kind, "index.md", status)


@pytest.mark.parametrize(
    "exc_type",
    [httpx.ConnectError, httpx.ReadTimeout, httpx.ConnectTimeout, httpx.DecodingError],
)
def test_transport_failures_are_network_errors(storage_settings, exc_type):
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("boom", request=request)

    result = _fetcher(handler).fetch("index.md", storage_settings)
    assert not result.ok
    assert result.error is not None
    assert result.error.kind == "network_error"
    assert result.error.status is None


def test_undecodable_body_is_a_network_error(storage_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all")

    result = _fetcher(handler).fetch("index.md", storage_settings)
    assert result.body is None
    assert result.error == FetchError("network_error", "index.md")


def test_no_retry_on_failure(storage_settings):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    _fetcher(handler).fetch("index.md", storage_settings)
    assert len(calls) == 1


def test_error_messages_name_kind_and_key():
    assert FetchError("not_found", "index.md", 404).message == "S3 object not found (404): index.md"
    assert "access denied" in FetchError("forbidden", "a.md", 403).message
    assert "HTTP 502" in FetchError("transport_error", "a.md", 502).message
    assert "network error" in FetchError("network_error", "a.md").message


def test_fetch_logs_never_contain_secret(storage_settings, caplog: pytest.LogCaptureFixture):
    caplog.set_level("DEBUG", logger="s3md.storage")
    _fetcher(lambda request: httpx.Response(404)).fetch("index.md", storage_settings)
    assert caplog.records
    assert storage_settings.secret_key not in caplog.text
