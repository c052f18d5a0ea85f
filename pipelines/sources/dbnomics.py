"""DBnomics mirrors of the Turkish consumer price index."""

from __future__ import annotations

from pipelines.orchestrator import SourceCandidate

DBNOMICS_BASE_URL = "https://api.db.nomics.world/v22/series"

# DBnomics series id -> source label
DBNOMICS_CPI_SERIES: dict[str, str] = {
    "OECD/MEI/TUR.CPALTT01.IXOB.M": "DBnomics OECD/MEI CPALTT01",
    "IMF/CPI/M.TR.PCPI_IX": "DBnomics IMF/CPI PCPI_IX",
}


def dbnomics_candidate(series_id: str, *, key: str | None = None) -> SourceCandidate:
    """Index-level candidate for a ``PROVIDER/DATASET/SERIES`` id.

    The v22 API wraps the parallel ``period``/``value`` arrays in
    ``series.docs[0]``.
    """

    parts = [part for part in series_id.split("/") if part]
    if len(parts) < 3:
        raise ValueError("DBnomics series_id must look like PROVIDER/DATASET/SERIES")
    provider_code = parts[0]
    return SourceCandidate(
        key=key or f"dbnomics_{provider_code.lower()}",
        source=DBNOMICS_CPI_SERIES.get(series_id, f"DBnomics {series_id}"),
        url=f"{DBNOMICS_BASE_URL}/{'/'.join(parts)}",
        params={"observations": "1", "format": "json"},
        series_kind="index",
    )


def dbnomics_candidates() -> tuple[SourceCandidate, ...]:
    return tuple(dbnomics_candidate(series_id) for series_id in DBNOMICS_CPI_SERIES)


__all__ = ["DBNOMICS_BASE_URL", "DBNOMICS_CPI_SERIES", "dbnomics_candidate", "dbnomics_candidates"]
