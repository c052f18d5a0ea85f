from __future__ import annotations

from typing import Any, Callable, Sequence

import httpx
import pytest


def month_range(start_year: int, start_month: int, count: int) -> list[str]:
    periods = []
    year, month = start_year, start_month
    for _ in range(count):
        periods.append(f"{year}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return periods


def build_sdmx(periods: Sequence[str], values: Sequence[float | None]) -> dict[str, Any]:
    """Legacy OECD SDMX-JSON body with one series keyed by the time dimension."""

    observations = {
        str(idx): [value, 0, None]
        for idx, value in enumerate(values)
        if value is not None
    }
    return {
        "header": {"id": "test"},
        "dataSets": [
            {"action": "Information", "series": {"0:0:0:0": {"observations": observations}}}
        ],
        "structure": {
            "dimensions": {
                "series": [
                    {"id": "LOCATION", "values": [{"id": "TUR"}]},
                    {"id": "SUBJECT", "values": [{"id": "CPALTT01"}]},
                    {"id": "MEASURE", "values": [{"id": "IXOB"}]},
                    {"id": "FREQUENCY", "values": [{"id": "M"}]},
                ],
                "observation": [
                    {
                        "id": "TIME_PERIOD",
                        "values": [{"id": period, "name": period} for period in periods],
                    }
                ],
            }
        },
    }


def build_dbnomics(periods: Sequence[str], values: Sequence[float | None]) -> dict[str, Any]:
    return {
        "series": {
            "docs": [
                {
                    "series_code": "TUR.CPALTT01.IXOB.M",
                    "period": list(periods),
                    "value": [value if value is not None else "NA" for value in values],
                }
            ],
            "num_found": 1,
        }
    }


def split_levels() -> tuple[list[str], list[float]]:
    """24 months where the first year averages 100 and the second 110."""

    periods = month_range(2023, 1, 24)
    return periods, [100.0] * 12 + [110.0] * 12


@pytest.fixture()
def levels_24() -> tuple[list[str], list[float]]:
    return split_levels()


@pytest.fixture()
def sdmx_body() -> Callable[..., dict[str, Any]]:
    return build_sdmx


@pytest.fixture()
def dbnomics_body() -> Callable[..., dict[str, Any]]:
    return build_dbnomics


@pytest.fixture()
def months() -> Callable[[int, int, int], list[str]]:
    return month_range


@pytest.fixture()
def mock_client_factory() -> Callable[[Callable[[httpx.Request], Any]], httpx.AsyncClient]:
    def _factory(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _factory
