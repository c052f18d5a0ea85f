"""OECD consumer price candidates (SDMX-JSON and CSV).

Two generations of the OECD API are covered: the legacy ``stats.oecd.org``
SDMX-JSON endpoint for the ``PRICES_CPI`` dataset, whose Turkey series also
publish year-over-year (``GY``) and month-over-month (``GP``) growth, and the
``sdmx.oecd.org`` REST endpoint, which can answer in SDMX-JSON or CSV.
"""

from __future__ import annotations

from pipelines.orchestrator import SourceCandidate, SupplementSource

OECD_LEGACY_BASE_URL = "https://stats.oecd.org/SDMX-JSON/data/PRICES_CPI"
OECD_LEGACY_INDEX_KEY = "TUR.CPALTT01.IXOB.M"
OECD_LEGACY_YOY_KEY = "TUR.CPALTT01.GY.M"
OECD_LEGACY_MONTHLY_KEY = "TUR.CPALTT01.GP.M"

OECD_REST_BASE_URL = "https://sdmx.oecd.org/public/rest/data"
OECD_REST_DATAFLOW = "OECD.SDD.TPS,DSD_PRICES@DF_PRICES_ALL,1.0"
OECD_REST_INDEX_KEY = "TUR.M.N.CPI.IX._T.N._Z"
# Two windows of history plus slack for a late publication.
OECD_REST_START_PERIOD_OFFSET_YEARS = 4


def _legacy_url(series_key: str) -> str:
    return f"{OECD_LEGACY_BASE_URL}/{series_key}/all"


def _rest_url(series_key: str) -> str:
    return f"{OECD_REST_BASE_URL}/{OECD_REST_DATAFLOW}/{series_key}"


def oecd_legacy_candidate() -> SourceCandidate:
    """Index level from ``PRICES_CPI`` with the published growth series as supplements."""

    return SourceCandidate(
        key="oecd_sdmx_legacy",
        source="OECD PRICES_CPI (SDMX-JSON)",
        url=_legacy_url(OECD_LEGACY_INDEX_KEY),
        series_kind="index",
        supplements=(
            SupplementSource(metric="yoy_pct", url=_legacy_url(OECD_LEGACY_YOY_KEY)),
            SupplementSource(metric="monthly_pct", url=_legacy_url(OECD_LEGACY_MONTHLY_KEY)),
        ),
    )


def oecd_rest_json_candidate(start_year: int) -> SourceCandidate:
    return SourceCandidate(
        key="oecd_sdmx",
        source="OECD DF_PRICES_ALL (SDMX-JSON)",
        url=_rest_url(OECD_REST_INDEX_KEY),
        params={
            "startPeriod": f"{start_year}-01",
            "dimensionAtObservation": "TIME_PERIOD",
            "format": "jsondata",
        },
        series_kind="index",
    )


def oecd_rest_csv_candidate(start_year: int) -> SourceCandidate:
    return SourceCandidate(
        key="oecd_csv",
        source="OECD DF_PRICES_ALL (CSV)",
        url=_rest_url(OECD_REST_INDEX_KEY),
        params={"startPeriod": f"{start_year}-01", "format": "csvfilewithlabels"},
        series_kind="index",
    )


__all__ = [
    "OECD_LEGACY_BASE_URL",
    "OECD_REST_BASE_URL",
    "OECD_REST_START_PERIOD_OFFSET_YEARS",
    "oecd_legacy_candidate",
    "oecd_rest_csv_candidate",
    "oecd_rest_json_candidate",
]
