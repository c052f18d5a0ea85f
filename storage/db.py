"""DuckDB-backed response cache shared by the API and the warm-up job."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

import duckdb

DB_ENV_VAR = "TUFE_CACHE_DB_PATH"
DEFAULT_DB_PATH = Path("data/tufe_cache.duckdb")

RESPONSE_CACHE_TABLE = "response_cache"

logger = logging.getLogger(__name__)


class CacheError(RuntimeError):
    """Raised when the response cache store cannot be opened or queried."""


def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def get_database_path(override: str | os.PathLike[str] | None = None) -> Path:
    """Resolve the DuckDB file path from an explicit override or environment variable."""

    if override is not None:
        return Path(override)
    env_value = os.getenv(DB_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_DB_PATH


def connect(
    path: str | os.PathLike[str] | None = None,
    *,
    ensure: bool = True,
) -> duckdb.DuckDBPyConnection:
    """Create a DuckDB connection, optionally ensuring schema availability."""

    db_path = get_database_path(path)
    _ensure_parent_dir(db_path)
    conn = duckdb.connect(str(db_path))
    if ensure:
        ensure_response_cache_table(conn)
    return conn


def ensure_response_cache_table(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the cache table if it does not already exist."""

    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {RESPONSE_CACHE_TABLE} (
            cache_key TEXT PRIMARY KEY,
            body BLOB NOT NULL,
            expires_at DOUBLE NOT NULL
        )
        """
    )


class DuckDBResponseCache:
    """``ResponseCache`` persisted in a DuckDB file; one connection per operation.

    Store failures, such as the file being locked by another process, surface
    as ``CacheError``.
    """

    def __init__(
        self,
        path: str | os.PathLike[str] | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = get_database_path(path)
        self._clock = clock
        try:
            with self._connection():
                pass
        except CacheError as exc:
            logger.warning("Response cache not ready, will retry on first use: %s", exc)

    @contextmanager
    def _connection(self) -> Iterator[duckdb.DuckDBPyConnection]:
        try:
            conn = connect(self.path)
        except duckdb.Error as exc:
            raise CacheError(f"cannot open {self.path}: {exc}") from exc
        try:
            yield conn
        except duckdb.Error as exc:
            raise CacheError(f"query on {self.path} failed: {exc}") from exc
        finally:
            conn.close()

    def get(self, key: str) -> bytes | None:
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT body FROM {RESPONSE_CACHE_TABLE} WHERE cache_key = ? AND expires_at > ?",
                [key, self._clock()],
            ).fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def put(self, key: str, body: bytes, ttl_seconds: float) -> None:
        with self._connection() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {RESPONSE_CACHE_TABLE} (cache_key, body, expires_at)"
                " VALUES (?, ?, ?)",
                [key, body, self._clock() + ttl_seconds],
            )

    def purge_expired(self) -> int:
        """Delete expired rows and return how many were removed."""

        now = self._clock()
        with self._connection() as conn:
            removed = conn.execute(
                f"SELECT COUNT(*) FROM {RESPONSE_CACHE_TABLE} WHERE expires_at <= ?",
                [now],
            ).fetchone()[0]
            conn.execute(f"DELETE FROM {RESPONSE_CACHE_TABLE} WHERE expires_at <= ?", [now])
        return int(removed)


__all__ = [
    "CacheError",
    "DuckDBResponseCache",
    "RESPONSE_CACHE_TABLE",
    "connect",
    "ensure_response_cache_table",
    "get_database_path",
]
