"""Central Bank of the Republic of Türkiye (TCMB) consumer price table scrape.

Best effort only: the page is plain HTML without a stable schema, so columns
are located by their header text. The table publishes month-over-month and
year-over-year changes rather than index levels.
"""

from __future__ import annotations

import logging
from typing import Literal

from bs4 import BeautifulSoup

from pipelines.extract import build_series
from pipelines.model import Series
from pipelines.orchestrator import SourceCandidate, SupplementSource

TCMB_CPI_URL = (
    "https://www.tcmb.gov.tr/wps/wcm/connect/TR/TCMB+TR/Main+Menu/"
    "Istatistikler/Enflasyon+Verileri/Tuketici+Fiyatlari"
)

ChangeColumn = Literal["monthly", "yearly"]

_PERIOD_HEADER_KEYWORDS = ("ay-yil", "ay yil", "ay/yil", "tarih", "donem", "period", "date")
_CHANGE_HEADER_KEYWORDS: dict[str, tuple[str, ...]] = {
    "monthly": ("aylik", "monthly"),
    "yearly": ("yillik", "annual", "yearly"),
}

_TURKISH_FOLDS = (
    ("\u0131", "i"),
    ("\u0307", ""),
    ("\u00f6", "o"),
    ("\u00fc", "u"),
    ("\u015f", "s"),
    ("\u011f", "g"),
    ("\u00e7", "c"),
)

logger = logging.getLogger(__name__)


def _fold(text: str) -> str:
    """Case-fold Turkish header text down to ASCII-ish keywords."""

    folded = " ".join(text.split()).casefold()
    for source, target in _TURKISH_FOLDS:
        folded = folded.replace(source, target)
    return folded


def _find_header_index(cells: list[str], keywords: tuple[str, ...]) -> int | None:
    for idx, cell in enumerate(cells):
        if any(keyword in cell for keyword in keywords):
            return idx
    return None


def parse_tcmb_table(html: str, column: ChangeColumn = "monthly") -> Series:
    """Extract ``(period, change)`` rows for ``column`` from the TCMB CPI page."""

    if not isinstance(html, str) or "<table" not in html.lower():
        return []
    soup = BeautifulSoup(html, "html.parser")
    change_keywords = _CHANGE_HEADER_KEYWORDS[column]

    for table in soup.find_all("table"):
        period_idx: int | None = None
        value_idx: int | None = None
        pairs: list[tuple[str, str]] = []
        for row in table.find_all("tr"):
            cells = [cell.get_text(" ", strip=True) for cell in row.find_all(["td", "th"])]
            if not cells:
                continue
            if period_idx is None or value_idx is None:
                folded = [_fold(cell) for cell in cells]
                period_idx = _find_header_index(folded, _PERIOD_HEADER_KEYWORDS)
                value_idx = _find_header_index(folded, change_keywords)
                continue
            if len(cells) <= max(period_idx, value_idx):
                continue
            pairs.append((cells[period_idx], cells[value_idx].replace("%", "").strip()))

        series = build_series(pairs)
        if series:
            return series

    logger.debug("No TCMB CPI table with a %s change column found.", column)
    return []


def parse_tcmb_monthly(html: str) -> Series:
    return parse_tcmb_table(html, "monthly")


def parse_tcmb_yearly(html: str) -> Series:
    return parse_tcmb_table(html, "yearly")


def tcmb_candidate() -> SourceCandidate:
    """Month-over-month changes; the published yearly column re-uses the same page."""

    return SourceCandidate(
        key="tcmb_html",
        source="TCMB Tüketici Fiyatları (HTML)",
        url=TCMB_CPI_URL,
        series_kind="monthly_pct",
        parser=parse_tcmb_monthly,
        supplements=(SupplementSource(metric="yoy_pct", url=None, parser=parse_tcmb_yearly),),
        allow_monthly_only=True,
    )


__all__ = [
    "TCMB_CPI_URL",
    "parse_tcmb_monthly",
    "parse_tcmb_table",
    "parse_tcmb_yearly",
    "tcmb_candidate",
]
