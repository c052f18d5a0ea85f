"""Runtime settings and the ordered registry of CPI source candidates."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from dotenv import load_dotenv

from pipelines.orchestrator import DEFAULT_CANDIDATE_TIMEOUT_SECONDS, SourceCandidate
from pipelines.sources.dbnomics import dbnomics_candidates
from pipelines.sources.oecd import (
    OECD_REST_START_PERIOD_OFFSET_YEARS,
    oecd_legacy_candidate,
    oecd_rest_csv_candidate,
    oecd_rest_json_candidate,
)
from pipelines.sources.tcmb import tcmb_candidate

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CACHE_KEY = "/__tufe_latest_v1"
DEFAULT_CACHE_TTL_SECONDS = 6 * 60 * 60
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
CACHE_BACKENDS = ("duckdb", "memory")


@dataclass(frozen=True)
class Settings:
    """Service configuration resolved from the environment."""

    cache_backend: str = "duckdb"
    cache_db_path: str | None = None
    cache_key: str = DEFAULT_CACHE_KEY
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    candidate_timeout_seconds: float = DEFAULT_CANDIDATE_TIMEOUT_SECONDS
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    source_keys: tuple[str, ...] | None = None


def _split_keys(raw: str | None) -> tuple[str, ...] | None:
    if not raw:
        return None
    keys = tuple(key.strip() for key in raw.split(",") if key.strip())
    return keys or None


def load_settings() -> Settings:
    backend = os.getenv("TUFE_CACHE_BACKEND", "duckdb").strip().lower()
    if backend not in CACHE_BACKENDS:
        logger.warning("TUFE_CACHE_BACKEND=%s is not supported; using duckdb.", backend)
        backend = "duckdb"
    return Settings(
        cache_backend=backend,
        cache_db_path=os.getenv("TUFE_CACHE_DB_PATH") or None,
        cache_key=os.getenv("TUFE_CACHE_KEY", DEFAULT_CACHE_KEY),
        cache_ttl_seconds=int(os.getenv("TUFE_CACHE_TTL_SECONDS", str(DEFAULT_CACHE_TTL_SECONDS))),
        candidate_timeout_seconds=float(
            os.getenv("TUFE_CANDIDATE_TIMEOUT_SECONDS", str(DEFAULT_CANDIDATE_TIMEOUT_SECONDS))
        ),
        http_timeout_seconds=float(
            os.getenv("TUFE_HTTP_TIMEOUT_SECONDS", str(DEFAULT_HTTP_TIMEOUT_SECONDS))
        ),
        source_keys=_split_keys(os.getenv("TUFE_SOURCES")),
    )


def build_source_candidates(today: date | None = None) -> tuple[SourceCandidate, ...]:
    """Candidates in default priority order."""

    start_year = (today or date.today()).year - OECD_REST_START_PERIOD_OFFSET_YEARS
    return (
        oecd_legacy_candidate(),
        oecd_rest_json_candidate(start_year),
        oecd_rest_csv_candidate(start_year),
        *dbnomics_candidates(),
        tcmb_candidate(),
    )


SOURCE_CANDIDATES: tuple[SourceCandidate, ...] = build_source_candidates()


def get_candidate_by_key(key: str) -> SourceCandidate | None:
    for candidate in SOURCE_CANDIDATES:
        if candidate.key == key:
            return candidate
    return None


def iter_candidates(keys: Iterable[str] | None = None) -> Iterable[SourceCandidate]:
    if keys is None:
        return SOURCE_CANDIDATES
    selected = []
    for key in keys:
        candidate = get_candidate_by_key(key)
        if candidate:
            selected.append(candidate)
    return tuple(selected)


def resolve_candidates(settings: Settings) -> tuple[SourceCandidate, ...]:
    """Apply ``TUFE_SOURCES`` selection and ordering, falling back to the defaults."""

    if not settings.source_keys:
        return SOURCE_CANDIDATES
    selected = tuple(iter_candidates(settings.source_keys))
    if selected:
        return selected
    logger.warning(
        "TUFE_SOURCES=%s did not match any configured source; falling back to defaults.",
        ",".join(settings.source_keys),
    )
    return SOURCE_CANDIDATES


__all__ = [
    "CACHE_BACKENDS",
    "DEFAULT_CACHE_KEY",
    "DEFAULT_CACHE_TTL_SECONDS",
    "SOURCE_CANDIDATES",
    "Settings",
    "build_source_candidates",
    "get_candidate_by_key",
    "iter_candidates",
    "load_settings",
    "resolve_candidates",
]
