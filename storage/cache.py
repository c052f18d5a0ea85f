"""Response cache interface and an in-process implementation."""

from __future__ import annotations

import threading
import time
from typing import Callable, Protocol

from storage.db import CacheError, DuckDBResponseCache


class ResponseCache(Protocol):
    """Key-value store for serialized response bodies with a time-to-live.

    Implementations raise ``CacheError`` when the backing store is unusable.
    """

    def get(self, key: str) -> bytes | None: ...

    def put(self, key: str, body: bytes, ttl_seconds: float) -> None: ...


class MemoryResponseCache:
    """Expiring in-memory cache, scoped to a single process."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, bytes]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, body = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return body

    def put(self, key: str, body: bytes, ttl_seconds: float) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, body)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def open_response_cache(backend: str = "duckdb", path: str | None = None) -> ResponseCache:
    """Build the cache implementation named by ``backend`` ('duckdb' or 'memory')."""

    if backend == "memory":
        return MemoryResponseCache()
    if backend == "duckdb":
        return DuckDBResponseCache(path)
    raise ValueError(f"Unsupported cache backend '{backend}'.")


__all__ = ["CacheError", "MemoryResponseCache", "ResponseCache", "open_response_cache"]
