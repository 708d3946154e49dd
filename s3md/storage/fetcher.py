"""
Signed single-object GET against the markdown bucket.

The fetcher builds the virtual-hosted URL for a storage key, signs the request
(see s3md.storage.signing) and classifies the response into a FetchResult.
There is no retry: one failed attempt is surfaced to the caller, which turns
it into a placeholder.

Classification:
    2xx            -> ok, body bytes
    403            -> forbidden
    404            -> not_found
    other status   -> transport_error (status kept; includes 3xx because
                      redirects are never followed)
    httpx errors   -> network_error (DNS, connect, TLS, timeout, decoding)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Literal, Optional

import httpx

from s3md.storage.config import DEFAULT_FETCH_TIMEOUT_SECONDS, StorageSettings
from s3md.storage.signing import EMPTY_PAYLOAD_SHA256, amz_timestamp, encode_key_path, sign_request

_log = logging.getLogger("s3md.storage")

FailureKind = Literal["not_found", "forbidden", "transport_error", "network_error"]


@dataclass(frozen=True, slots=True)
class FetchError:
    kind: FailureKind
    key: str
    status: Optional[int] = None

    @property
    def message(self) -> str:
        """Human-readable diagnostic, e.g. 'S3 object not found (404): index.md'."""
        if self.kind == "not_found":
            return f"S3 object not found (404): {self.key}"
        if self.kind == "forbidden":
            return f"S3 access denied (403) for key: {self.key}"
        if self.kind == "transport_error":
            return f"S3 returned HTTP {self.status} for key: {self.key}"
        return f"S3 request failed (network error) for key: {self.key}"


@dataclass(frozen=True, slots=True)
class FetchResult:
    body: Optional[bytes] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.body is not None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ObjectFetcher:
    """Issue signed GET requests for single objects.

    Parameters
    ----------
    timeout:
        Request timeout in seconds (connect + read), 15s by default.
    transport:
        Optional httpx transport; tests pass httpx.MockTransport.
    clock:
        Returns the current UTC time; the timestamp is taken once per fetch.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._clock = clock

    def build_request(self, storage_key: str, credentials: StorageSettings) -> tuple[str, dict[str, str]]:
        """Return (url, headers) for a signed GET of `storage_key`."""
        host = credentials.host
        path = encode_key_path(storage_key)
        timestamp = amz_timestamp(self._clock())
        signed = sign_request("GET", host, path, EMPTY_PAYLOAD_SHA256, timestamp, credentials)
        headers = {
            "Authorization": signed.authorization,
            "x-amz-content-sha256": EMPTY_PAYLOAD_SHA256,
            "x-amz-date": timestamp,
        }
        return f"https://{host}{path}", headers

    def fetch(self, storage_key: str, credentials: StorageSettings) -> FetchResult:
        url, headers = self.build_request(storage_key, credentials)
        try:
            with httpx.Client(
                timeout=self._timeout,
                follow_redirects=False,
                transport=self._transport,
            ) as client:
                resp = client.get(url, headers=headers)
        except httpx.RequestError as exc:
            _log.warning("fetch failed key=%s error=%s", storage_key, type(exc).__name__)
            return FetchResult(error=FetchError("network_error", storage_key))

        code = int(resp.status_code)
        if 200 <= code < 300:
            _log.info("fetch ok key=%s status=%s bytes=%d", storage_key, code, len(resp.content))
            return FetchResult(body=resp.content)
        if code == 403:
            error = FetchError("forbidden", storage_key, code)
        elif code == 404:
            error = FetchError("not_found", storage_key, code)
        else:
            error = FetchError("transport_error", storage_key, code)
        _log.warning("fetch rejected key=%s status=%s kind=%s", storage_key, code, error.kind)
        return FetchResult(error=error)


__all__ = ["FailureKind", "FetchError", "FetchResult", "ObjectFetcher"]
