"""
AWS Signature Version 4 for a single S3 GET with an empty body.

Why:
    The service only ever issues one kind of request (GET of a named object
    with an empty body). Signing it directly keeps the dependency surface
    small and the output byte-for-byte predictable for tests.

Contract:
    sign_request() is a pure function of its inputs. Callers must generate the
    timestamp once and reuse it for both the signature and the x-amz-date
    request header.
"""
from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import quote

from s3md.storage.config import StorageSettings

ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
TERMINATOR = "aws4_request"
SIGNED_HEADERS = "host;x-amz-content-sha256;x-amz-date"
EMPTY_PAYLOAD_SHA256 = hashlib.sha256(b"").hexdigest()


@dataclass(frozen=True, slots=True)
class SignedRequest:
    authorization: str
    signed_headers: str
    signature: str
    scope: str


def _sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def amz_timestamp(moment: datetime) -> str:
    """Format a moment as YYYYMMDDThhmmssZ (naive datetimes are taken as UTC)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def encode_key_path(key: str) -> str:
    """Percent-encode an object key for the request path; "/" stays literal."""
    return "/" + quote(key, safe="/~")


def build_canonical_request(method: str, host: str, canonical_uri: str, payload_hash: str, timestamp: str) -> str:
    canonical_headers = (
        f"host:{host}\n"
        f"x-amz-content-sha256:{payload_hash}\n"
        f"x-amz-date:{timestamp}\n"
    )
    return "\n".join(
        [
            method,
            canonical_uri,
            "",  # no query string
            canonical_headers,
            SIGNED_HEADERS,
            payload_hash,
        ]
    )


def credential_scope(timestamp: str, region: str) -> str:
    return f"{timestamp[:8]}/{region}/{SERVICE}/{TERMINATOR}"


def build_string_to_sign(timestamp: str, scope: str, canonical_request: str) -> str:
    return "\n".join([ALGORITHM, timestamp, scope, _sha256_hex(canonical_request)])


def derive_signing_key(secret_key: str, date: str, region: str, service: str = SERVICE) -> bytes:
    """Chain the four HMAC-SHA256 derivations seeded with "AWS4" + secret."""
    k_date = _hmac(("AWS4" + secret_key).encode("utf-8"), date)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def sign_request(
    method: str,
    host: str,
    canonical_uri: str,
    payload_hash: str,
    timestamp: str,
    credentials: StorageSettings,
) -> SignedRequest:
    """Compute the Authorization header for one request.

    Parameters:
        method: HTTP method, e.g. "GET".
        host: Virtual-hosted bucket host.
        canonical_uri: Already encoded path (see encode_key_path).
        payload_hash: Hex SHA-256 of the body (EMPTY_PAYLOAD_SHA256 for GET).
        timestamp: YYYYMMDDThhmmssZ, identical to the x-amz-date header.
        credentials: Access key id, secret key and region.

    Raises:
        ValueError: on empty inputs. These are programming faults; the
        pipeline only signs after the configuration check passed.
    """
    if not (method and host and canonical_uri and payload_hash and timestamp):
        raise ValueError("signing_input_missing")
    if not (credentials.access_key_id and credentials.secret_key and credentials.region):
        raise ValueError("signing_credentials_missing")

    canonical_request = build_canonical_request(method, host, canonical_uri, payload_hash, timestamp)
    scope = credential_scope(timestamp, credentials.region)
    string_to_sign = build_string_to_sign(timestamp, scope, canonical_request)
    signing_key = derive_signing_key(credentials.secret_key, timestamp[:8], credentials.region)
    signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()
    authorization = (
        f"{ALGORITHM} Credential={credentials.access_key_id}/{scope}, "
        f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
    )
    return SignedRequest(
        authorization=authorization,
        signed_headers=SIGNED_HEADERS,
        signature=signature,
        scope=scope,
    )


__all__ = [
    "ALGORITHM",
    "EMPTY_PAYLOAD_SHA256",
    "SIGNED_HEADERS",
    "SignedRequest",
    "amz_timestamp",
    "encode_key_path",
    "build_canonical_request",
    "build_string_to_sign",
    "credential_scope",
    "derive_signing_key",
    "sign_request",
]
