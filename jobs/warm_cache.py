"""Job that resolves the latest CPI figures and stores the response body in the cache."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Iterable

import httpx
from dotenv import load_dotenv

from api.envelope import encode_json, success_payload
from jobs.config import Settings, load_settings, resolve_candidates
from pipelines.model import ChangeResult
from pipelines.orchestrator import (
    Diagnostics,
    SourceCandidate,
    SourcesUnavailableError,
    resolve_latest,
)
from storage.cache import ResponseCache, open_response_cache
from storage.db import CacheError, DuckDBResponseCache

load_dotenv()

logger = logging.getLogger(__name__)


async def fetch_latest(
    candidates: Iterable[SourceCandidate] | None = None,
    *,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    diagnostics: Diagnostics | None = None,
) -> ChangeResult:
    settings = settings or load_settings()
    candidates = tuple(candidates) if candidates is not None else resolve_candidates(settings)
    return await resolve_latest(
        candidates,
        client=client,
        diagnostics=diagnostics,
        candidate_timeout=settings.candidate_timeout_seconds,
    )


async def warm_cache_async(
    candidates: Iterable[SourceCandidate] | None = None,
    *,
    settings: Settings | None = None,
    cache: ResponseCache | None = None,
    client: httpx.AsyncClient | None = None,
) -> ChangeResult:
    """Resolve the latest figures and write the serialized body under the cache key."""

    settings = settings or load_settings()
    if cache is None:
        cache = open_response_cache(settings.cache_backend, settings.cache_db_path)
    if isinstance(cache, DuckDBResponseCache):
        removed = cache.purge_expired()
        if removed:
            logger.info("Purged %s expired cache entries.", removed)

    result = await fetch_latest(candidates, settings=settings, client=client)
    cache.put(settings.cache_key, encode_json(success_payload(result)), settings.cache_ttl_seconds)
    logger.info(
        "Cached CPI for %s from %s under %s.", result.period, result.source, settings.cache_key
    )
    return result


def main(candidates: Iterable[SourceCandidate] | None = None) -> int:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    try:
        asyncio.run(warm_cache_async(candidates))
    except (SourcesUnavailableError, CacheError) as exc:
        logger.error("Cache warm-up failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
