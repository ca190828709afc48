from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..models.config_models import DatabaseConfig, ImportConfig

"""Import session: owner id, config and database cursor for one CLI run.

Replaces module-level connection state. open_session() connects, yields the
session and closes cursor/connection on exit; after that every use of the
session raises SessionError.

接続情報の優先順位:
    1. DATABASE_URL / PGDSN (DSN 全体)
    2. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. config の database セクション
"""

__all__ = [
    "SessionError",
    "ImportSession",
    "resolve_dsn",
    "open_session",
]

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Session missing an owner, failed to connect, or used after close."""


class ImportSession:
    """Explicit per-run context. cursor=None is mock mode (nothing is sent)."""

    def __init__(self, owner_id: str, config: ImportConfig, cursor: Any = None) -> None:
        if not owner_id:
            raise SessionError("owner id is required (config owner_id or --owner)")
        self._owner_id = owner_id
        self._config = config
        self._cursor = cursor
        self._closed = False

    def _check(self) -> None:
        if self._closed:
            raise SessionError("import session is closed")

    @property
    def owner_id(self) -> str:
        self._check()
        return self._owner_id

    @property
    def config(self) -> ImportConfig:
        self._check()
        return self._config

    @property
    def cursor(self) -> Any:
        self._check()
        return self._cursor

    @property
    def mock(self) -> bool:
        return self.cursor is None

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._cursor = None
        self._closed = True


def resolve_dsn(db: DatabaseConfig, environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    dsn = env.get("DATABASE_URL") or env.get("PGDSN") or db.dsn
    if dsn:
        return dsn
    host = env.get("PGHOST", db.host or "localhost")
    port = env.get("PGPORT", str(db.port) if db.port else "5432")
    user = env.get("PGUSER", db.user or "postgres")
    password = env.get("PGPASSWORD", db.password or "")
    database = env.get("PGDATABASE", db.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def open_session(
    config: ImportConfig,
    owner_id: str | None = None,
    *,
    connect: bool = True,
) -> Iterator[ImportSession]:
    """Yield an ImportSession; connect=False gives a mock-mode session.

    The connection runs in autocommit mode so the commit executor's explicit
    BEGIN / COMMIT / ROLLBACK are the transaction boundaries.
    """
    owner = owner_id or config.owner_id or ""
    if not owner:
        raise SessionError("owner id is required (config owner_id or --owner)")
    if not connect:
        session = ImportSession(owner, config, cursor=None)
        try:
            yield session
        finally:
            session.close()
        return

    try:
        conn = psycopg2.connect(resolve_dsn(config.database))
    except psycopg2.Error as e:
        raise SessionError(f"database connection failed: {e}") from e
    cur = None
    try:
        conn.autocommit = True
        cur = conn.cursor()
        session = ImportSession(owner, config, cursor=cur)
        try:
            yield session
        finally:
            session.close()
    finally:
        if cur is not None:
            try:
                cur.close()
            except psycopg2.Error as e:  # pragma: no cover
                logger.debug("cursor close failed: %s", e)
        try:
            conn.close()
        except psycopg2.Error as e:  # pragma: no cover
            logger.debug("connection close failed: %s", e)
