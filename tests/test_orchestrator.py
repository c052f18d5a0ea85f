"""Fallback behaviour of the CPI source orchestrator."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from pipelines.orchestrator import (
    Diagnostics,
    SourceCandidate,
    SourcesUnavailableError,
    SupplementSource,
    resolve_latest,
)
from pipelines.sources.oecd import oecd_legacy_candidate
from pipelines.sources.tcmb import tcmb_candidate

PRIMARY = SourceCandidate(key="primary", source="Primary", url="https://primary.test/cpi")
BACKUP = SourceCandidate(key="backup", source="Backup", url="https://backup.test/cpi")


def _json(request: httpx.Request, payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode(), request=request)


async def test_first_success_short_circuits(mock_client_factory, levels_24, dbnomics_body):
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.host)
        return _json(request, dbnomics_body(*levels_24))

    async with mock_client_factory(handler) as client:
        result = await resolve_latest([PRIMARY, BACKUP], client=client)

    assert requested == ["primary.test"]
    assert result.to_payload() == {
        "period": "12-2024",
        "avg12_pct": 10.0,
        "yoy_pct": 10.0,
        "monthly_pct": 0.0,
        "source": "Primary",
    }


async def test_failed_candidate_falls_through_with_diagnostics(
    mock_client_factory, levels_24, sdmx_body
):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "primary.test":
            return httpx.Response(404, request=request)
        return _json(request, sdmx_body(*levels_24))

    diagnostics = Diagnostics()
    async with mock_client_factory(handler) as client:
        result = await resolve_latest([PRIMARY, BACKUP], client=client, diagnostics=diagnostics)

    assert result.source == "Backup"
    assert diagnostics.logs[0] == "primary: http_404 https://primary.test/cpi"
    assert diagnostics.logs[-1] == "backup: ok"


async def test_insufficient_history_and_empty_series_are_candidate_failures(
    mock_client_factory, months, sdmx_body
):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "primary.test":
            return _json(request, sdmx_body(months(2024, 1, 12), [100.0] * 12))
        return httpx.Response(200, text="<html>maintenance</html>", request=request)

    diagnostics = Diagnostics()
    async with mock_client_factory(handler) as client:
        with pytest.raises(SourcesUnavailableError):
            await resolve_latest([PRIMARY, BACKUP], client=client, diagnostics=diagnostics)

    assert any(log.startswith("primary: InsufficientHistoryError") for log in diagnostics.logs)
    assert any(log.startswith("backup: EmptySeriesError") for log in diagnostics.logs)


async def test_transport_errors_are_recorded(mock_client_factory):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    diagnostics = Diagnostics()
    async with mock_client_factory(handler) as client:
        with pytest.raises(SourcesUnavailableError, match="all 1 candidate sources failed"):
            await resolve_latest([PRIMARY], client=client, diagnostics=diagnostics)

    assert diagnostics.logs == ["primary: transport_error ConnectError: connection refused"]


async def test_slow_candidate_times_out(mock_client_factory, levels_24, dbnomics_body):
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "primary.test":
            await asyncio.sleep(5)
        return _json(request, dbnomics_body(*levels_24))

    diagnostics = Diagnostics()
    async with mock_client_factory(handler) as client:
        result = await resolve_latest(
            [PRIMARY, BACKUP], client=client, diagnostics=diagnostics, candidate_timeout=0.05
        )

    assert result.source == "Backup"
    assert "primary: timeout" in diagnostics.logs


async def test_published_supplements_override_derived_metrics(
    mock_client_factory, levels_24, sdmx_body
):
    periods, values = levels_24

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if "IXOB" in url:
            return _json(request, sdmx_body(periods, values))
        if "GY" in url:
            return _json(request, sdmx_body(periods[-3:], [44.1, 44.2, 44.38]))
        return httpx.Response(404, request=request)

    diagnostics = Diagnostics()
    async with mock_client_factory(handler) as client:
        result = await resolve_latest(
            [oecd_legacy_candidate()], client=client, diagnostics=diagnostics
        )

    assert result.yoy_pct == 44.38
    assert result.monthly_pct == 0.0
    assert result.avg12_pct == 10.0
    assert any(log.startswith("oecd_sdmx_legacy.monthly_pct: http_404") for log in diagnostics.logs)


async def test_supplement_without_exact_period_is_ignored(
    mock_client_factory, levels_24, sdmx_body
):
    periods, values = levels_24
    candidate = SourceCandidate(
        key="primary",
        source="Primary",
        url="https://primary.test/cpi",
        supplements=(SupplementSource(metric="yoy_pct", url="https://primary.test/yoy"),),
    )

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/yoy":
            return _json(request, sdmx_body(["2024-11"], [50.0]))
        return _json(request, sdmx_body(periods, values))

    diagnostics = Diagnostics()
    async with mock_client_factory(handler) as client:
        result = await resolve_latest([candidate], client=client, diagnostics=diagnostics)

    assert result.yoy_pct == 10.0
    assert "primary.yoy_pct: no value for 2024-12" in diagnostics.logs


async def test_slow_supplement_leaves_primary_result_intact(
    mock_client_factory, levels_24, sdmx_body
):
    periods, values = levels_24
    candidate = SourceCandidate(
        key="primary",
        source="Primary",
        url="https://primary.test/cpi",
        supplements=(SupplementSource(metric="yoy_pct", url="https://primary.test/yoy"),),
    )

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/yoy":
            await asyncio.sleep(5)
        return _json(request, sdmx_body(periods, values))

    diagnostics = Diagnostics()
    async with mock_client_factory(handler) as client:
        result = await resolve_latest(
            [candidate], client=client, diagnostics=diagnostics, candidate_timeout=0.2
        )

    assert result.avg12_pct == 10.0
    assert result.yoy_pct == 10.0
    assert "primary.yoy_pct: timeout" in diagnostics.logs
    assert diagnostics.logs[-1] == "primary: ok"


def _tcmb_page(rows: list[tuple[str, str, str]]) -> str:
    body = "".join(f"<tr><td>{p}</td><td>{y}</td><td>{m}</td></tr>" for p, y, m in rows)
    return (
        "<html><body><table>"
        "<tr><th>AY-YIL</th><th>TÜFE (Yıllık % Değişim)</th><th>TÜFE (Aylık % Değişim)</th></tr>"
        f"{body}</table></body></html>"
    )


async def test_monthly_change_candidate_reconstructs_levels(mock_client_factory, months):
    periods = months(2023, 1, 24)
    rows = [(f"{p[5:]}-{p[:4]}", "40,50", "1,00") for p in reversed(periods)]
    page = _tcmb_page(rows)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=page, request=request)

    async with mock_client_factory(handler) as client:
        result = await resolve_latest([tcmb_candidate()], client=client)

    assert result.period == "12-2024"
    assert result.avg12_pct == 12.68
    assert result.monthly_pct == 1.0
    assert result.yoy_pct == 40.5


async def test_monthly_only_result_when_history_is_short(mock_client_factory):
    page = _tcmb_page([("09-2025", "33,29", "3,23"), ("08-2025", "32,95", "2,04")])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=page, request=request)

    async with mock_client_factory(handler) as client:
        result = await resolve_latest([tcmb_candidate()], client=client)

    assert result.to_payload() == {
        "period": "09-2025",
        "monthly_pct": 3.23,
        "yoy_pct": 33.29,
        "source": "TCMB Tüketici Fiyatları (HTML)",
    }
