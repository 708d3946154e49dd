"""
Database-backed cache stores for production use (Postgres).

Why: In-memory entries are lost on restart and are not shared between worker
processes. These stores persist rendered documents and the key registry in
Postgres so every worker sees the same cache and a flush reaches all of them.

Schema (created by `ensure_schema`):
- s3md_cache_entries(cache_key text primary key, html text, inserted_at timestamptz, expires_at timestamptz)
- s3md_cache_keys(cache_key text primary key, position bigserial)

Note: This module uses psycopg3. It is imported only when enabled via
`S3MD_CACHE_BACKEND=db`. Tests use a fake psycopg driver.
"""
from __future__ import annotations

from typing import Iterable, List, Optional
import re

import psycopg
from psycopg import sql as _sql

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")


def _identifier(table: str) -> _sql.Composable:
    """Validate and compose a (schema-qualified) table name."""
    if not _TABLE_RE.match(table or ""):
        raise ValueError("Invalid table name")
    if "." in table:
        schema, name = table.split(".", 1)
    else:
        schema, name = "public", table
    return _sql.Identifier(schema, name)


class _DBStoreBase:
    def __init__(self, dsn: str, table: str) -> None:
        if not dsn:
            raise RuntimeError("No database DSN provided for cache store")
        self._dsn = dsn
        self._table = _identifier(table)

    def _connect(self, *, autocommit: bool = False):
        return psycopg.connect(self._dsn, autocommit=autocommit)


class DBTTLStore(_DBStoreBase):
    """Postgres-backed TTL store; expiry is enforced in SQL."""

    def __init__(self, dsn: str, table: str = "public.s3md_cache_entries") -> None:
        super().__init__(dsn, table)

    def ensure_schema(self) -> None:
        stmt = _sql.SQL(
            "create table if not exists {} ("
            "cache_key text primary key, html text not null, "
            "inserted_at timestamptz not null default now(), expires_at timestamptz not null)"
        ).format(self._table)
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt)

    def get(self, key: str) -> Optional[str]:
        stmt = _sql.SQL("select html from {} where cache_key = %s and expires_at > now()").format(self._table)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (key,))
                row = cur.fetchone()
        return str(row[0]) if row else None

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        stmt = _sql.SQL(
            "insert into {} (cache_key, html, inserted_at, expires_at) "
            "values (%s, %s, now(), now() + make_interval(secs => %s)) "
            "on conflict (cache_key) do update set html = excluded.html, "
            "inserted_at = excluded.inserted_at, expires_at = excluded.expires_at"
        ).format(self._table)
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (key, value, int(ttl_seconds)))

    def delete(self, key: str) -> None:
        stmt = _sql.SQL("delete from {} where cache_key = %s").format(self._table)
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (key,))


class DBKeyRegistry(_DBStoreBase):
    """Postgres-backed key registry; insertion order kept by a bigserial column."""

    def __init__(self, dsn: str, table: str = "public.s3md_cache_keys") -> None:
        super().__init__(dsn, table)

    def ensure_schema(self) -> None:
        stmt = _sql.SQL(
            "create table if not exists {} (cache_key text primary key, position bigserial not null)"
        ).format(self._table)
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt)

    def keys(self) -> List[str]:
        stmt = _sql.SQL("select cache_key from {} order by position").format(self._table)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(stmt)
                rows = cur.fetchall()
        return [str(row[0]) for row in rows]

    def add(self, key: str) -> bool:
        stmt = _sql.SQL(
            "insert into {} (cache_key) values (%s) on conflict (cache_key) do nothing returning cache_key"
        ).format(self._table)
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (key,))
                row = cur.fetchone()
        return row is not None

    def discard_many(self, keys: Iterable[str]) -> None:
        batch = list(keys)
        if not batch:
            return
        stmt = _sql.SQL("delete from {} where cache_key = any(%s)").format(self._table)
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (batch,))


__all__ = ["DBTTLStore", "DBKeyRegistry"]
