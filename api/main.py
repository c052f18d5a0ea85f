"""FastAPI service exposing the latest Turkish CPI change figures."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator

import httpx
from dotenv import load_dotenv
from fastapi import BackgroundTasks, Depends, FastAPI, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from api.envelope import encode_json, error_payload, json_response, success_payload
from jobs.config import Settings, load_settings, resolve_candidates
from pipelines.orchestrator import (
    Diagnostics,
    SourceCandidate,
    SourcesUnavailableError,
    resolve_latest,
)
from storage.cache import CacheError, ResponseCache, open_response_cache

_DEBUG_TRUTHY = {"", "1", "true", "yes", "on"}
load_dotenv()

logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def _open_cache(backend: str, path: str | None) -> ResponseCache:
    return open_response_cache(backend, path)


def get_cache(settings: Settings = Depends(get_settings)) -> ResponseCache:
    return _open_cache(settings.cache_backend, settings.cache_db_path)


async def get_http_client(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        timeout=settings.http_timeout_seconds, follow_redirects=True
    ) as client:
        yield client


def get_candidates(settings: Settings = Depends(get_settings)) -> tuple[SourceCandidate, ...]:
    return resolve_candidates(settings)


@asynccontextmanager
async def lifespan(_: FastAPI):
    settings = get_settings()
    logger.info(
        "Serving CPI from sources %s (cache backend=%s).",
        ", ".join(candidate.key for candidate in resolve_candidates(settings)),
        settings.cache_backend,
    )
    yield


app = FastAPI(title="TÜFE Latest API", version="0.1.0", lifespan=lifespan)


def _configure_cors() -> None:
    raw_origins = os.getenv("API_CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )


_configure_cors()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def _debug_enabled(raw: str | None) -> bool:
    return raw is not None and raw.strip().lower() in _DEBUG_TRUTHY


async def _read_cache(cache: ResponseCache, key: str) -> bytes | None:
    try:
        return await run_in_threadpool(cache.get, key)
    except CacheError as exc:
        logger.warning("Response cache read failed, treating as a miss: %s", exc)
        return None


def _write_cache(cache: ResponseCache, key: str, body: bytes, ttl_seconds: float) -> None:
    try:
        cache.put(key, body, ttl_seconds)
    except CacheError as exc:
        logger.warning("Response cache write failed: %s", exc)


@app.get("/api/tufe/latest")
async def tufe_latest(
    background_tasks: BackgroundTasks,
    debug: str | None = Query(
        None, description="Skip the cache read and include diagnostic logs ('1' or bare flag)"
    ),
    settings: Settings = Depends(get_settings),
    cache: ResponseCache = Depends(get_cache),
    client: httpx.AsyncClient = Depends(get_http_client),
    candidates: tuple[SourceCandidate, ...] = Depends(get_candidates),
) -> Response:
    debug_on = _debug_enabled(debug)

    if not debug_on:
        cached = await _read_cache(cache, settings.cache_key)
        if cached is not None:
            return json_response(cached)

    diagnostics = Diagnostics()
    try:
        result = await resolve_latest(
            candidates,
            client=client,
            diagnostics=diagnostics,
            candidate_timeout=settings.candidate_timeout_seconds,
        )
    except SourcesUnavailableError as exc:
        logger.warning("CPI unavailable: %s", exc)
        logs = [*diagnostics.logs, str(exc)] if debug_on else None
        return json_response(encode_json(error_payload(logs)), status_code=502)

    body = encode_json(success_payload(result))
    background_tasks.add_task(
        _write_cache, cache, settings.cache_key, body, settings.cache_ttl_seconds
    )
    if debug_on:
        return json_response(encode_json(success_payload(result, diagnostics.logs)))
    return json_response(body)
