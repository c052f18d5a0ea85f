"""Ordered fallback across CPI providers.

Candidates are attempted one at a time, in priority order, and the first one
that yields a usable ``ChangeResult`` wins. Every failure is recorded in a
``Diagnostics`` log and the next candidate is tried; results are never merged
across candidates.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Mapping

import httpx

from pipelines.calculator import (
    IndexChanges,
    InsufficientHistoryError,
    compute_from_levels,
    compute_from_monthly,
    round2,
)
from pipelines.common import DEFAULT_TIMEOUT_SECONDS, fetch_text
from pipelines.extract import extract_series
from pipelines.model import ChangeResult, Series
from pipelines.numeric import is_finite
from pipelines.periods import to_display

DEFAULT_CANDIDATE_TIMEOUT_SECONDS = 20.0

SeriesKind = Literal["index", "monthly_pct"]
Parser = Callable[[str], Series]
Metric = Literal["yoy_pct", "monthly_pct"]

logger = logging.getLogger(__name__)


class EmptySeriesError(ValueError):
    """Raised when a provider answered but no observations could be extracted."""


class SourcesUnavailableError(RuntimeError):
    """Raised when every candidate source failed."""


@dataclass(frozen=True)
class SupplementSource:
    """Published series consulted for one optional metric of the latest period.

    ``url=None`` re-parses the primary response body instead of fetching.
    """

    metric: Metric
    url: str | None = None
    params: Mapping[str, Any] | None = None
    parser: Parser = extract_series


@dataclass(frozen=True)
class SourceCandidate:
    """Provider endpoint and how to interpret the series it returns."""

    key: str
    source: str
    url: str
    series_kind: SeriesKind = "index"
    params: Mapping[str, Any] | None = None
    parser: Parser = extract_series
    supplements: tuple[SupplementSource, ...] = ()
    allow_monthly_only: bool = False


@dataclass
class Diagnostics:
    """Collects failure notes for the ``debug`` response and mirrors them to the log."""

    logs: list[str] = field(default_factory=list)

    def record(self, message: str) -> None:
        self.logs.append(message)
        logger.info("%s", message)


def _describe_failure(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"http_{exc.response.status_code} {exc.request.url}"
    if isinstance(exc, httpx.HTTPError):
        return f"transport_error {type(exc).__name__}: {exc}"
    if isinstance(exc, asyncio.TimeoutError):
        return "timeout"
    return f"{type(exc).__name__}: {exc}"


async def _supplement_value(
    supplement: SupplementSource,
    *,
    candidate: SourceCandidate,
    primary_body: str,
    period: str,
    client: httpx.AsyncClient,
    diagnostics: Diagnostics,
    timeout: float,
) -> float | None:
    label = f"{candidate.key}.{supplement.metric}"
    try:
        if supplement.url is None:
            body = primary_body
        else:
            body = await asyncio.wait_for(
                fetch_text(supplement.url, client=client, params=supplement.params),
                timeout=timeout,
            )
        series = supplement.parser(body)
    except (httpx.HTTPError, ValueError, asyncio.TimeoutError) as exc:
        diagnostics.record(f"{label}: {_describe_failure(exc)}")
        return None

    for observation in series:
        if observation.period == period and is_finite(observation.value):
            return observation.value
    diagnostics.record(f"{label}: no value for {period}")
    return None


def _monthly_only(series: Series) -> IndexChanges | None:
    finite = [obs for obs in series if is_finite(obs.value)]
    if not finite:
        return None
    latest = finite[-1]
    return IndexChanges(
        period=latest.period,
        avg12_pct=None,
        yoy_pct=None,
        monthly_pct=latest.value,
    )


def _compute(candidate: SourceCandidate, series: Series) -> IndexChanges:
    if candidate.series_kind == "index":
        return compute_from_levels(series)
    try:
        return compute_from_monthly(series)
    except InsufficientHistoryError:
        if not candidate.allow_monthly_only:
            raise
        changes = _monthly_only(series)
        if changes is None:
            raise
        return changes


async def _primary_changes(
    candidate: SourceCandidate,
    *,
    client: httpx.AsyncClient,
    diagnostics: Diagnostics,
) -> tuple[str, IndexChanges]:
    body = await fetch_text(candidate.url, client=client, params=candidate.params)
    series = candidate.parser(body)
    if not series:
        raise EmptySeriesError("no observations extracted")
    diagnostics.record(
        f"{candidate.key}: {len(series)} observations {series[0].period}..{series[-1].period}"
    )
    return body, _compute(candidate, series)


async def attempt_candidate(
    candidate: SourceCandidate,
    *,
    client: httpx.AsyncClient,
    diagnostics: Diagnostics,
    timeout: float = DEFAULT_CANDIDATE_TIMEOUT_SECONDS,
) -> ChangeResult:
    """Fetch, extract and compute a single candidate; raise on any failure.

    ``timeout`` bounds the primary fetch and each supplementary fetch
    separately. A slow supplement only leaves its metric absent.
    """

    body, changes = await asyncio.wait_for(
        _primary_changes(candidate, client=client, diagnostics=diagnostics),
        timeout=timeout,
    )

    metrics: dict[str, float | None] = {
        "yoy_pct": changes.yoy_pct,
        "monthly_pct": changes.monthly_pct,
    }
    if candidate.supplements:
        published = await asyncio.gather(
            *(
                _supplement_value(
                    supplement,
                    candidate=candidate,
                    primary_body=body,
                    period=changes.period,
                    client=client,
                    diagnostics=diagnostics,
                    timeout=timeout,
                )
                for supplement in candidate.supplements
            )
        )
        for supplement, value in zip(candidate.supplements, published):
            if value is not None:
                metrics[supplement.metric] = value

    return ChangeResult(
        period=to_display(changes.period),
        avg12_pct=round2(changes.avg12_pct),
        yoy_pct=round2(metrics["yoy_pct"]),
        monthly_pct=round2(metrics["monthly_pct"]),
        source=candidate.source,
    )


async def resolve_latest(
    candidates: Iterable[SourceCandidate],
    *,
    client: httpx.AsyncClient | None = None,
    diagnostics: Diagnostics | None = None,
    candidate_timeout: float = DEFAULT_CANDIDATE_TIMEOUT_SECONDS,
) -> ChangeResult:
    """Return the first well-formed result from ``candidates``.

    Raises ``SourcesUnavailableError`` once every candidate has failed.
    """

    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    if client is None:
        async with httpx.AsyncClient(
            timeout=DEFAULT_TIMEOUT_SECONDS, follow_redirects=True
        ) as own_client:
            return await resolve_latest(
                candidates,
                client=own_client,
                diagnostics=diagnostics,
                candidate_timeout=candidate_timeout,
            )

    attempted = 0
    for candidate in candidates:
        attempted += 1
        try:
            result = await attempt_candidate(
                candidate, client=client, diagnostics=diagnostics, timeout=candidate_timeout
            )
        except (httpx.HTTPError, ValueError, asyncio.TimeoutError) as exc:
            diagnostics.record(f"{candidate.key}: {_describe_failure(exc)}")
            continue
        diagnostics.record(f"{candidate.key}: ok")
        return result

    logger.warning("All %s CPI sources failed.", attempted)
    raise SourcesUnavailableError(f"all {attempted} candidate sources failed")


__all__ = [
    "DEFAULT_CANDIDATE_TIMEOUT_SECONDS",
    "Diagnostics",
    "EmptySeriesError",
    "SourceCandidate",
    "SourcesUnavailableError",
    "SupplementSource",
    "attempt_candidate",
    "resolve_latest",
]
