"""Index arithmetic: twelve-month average change, year-over-year and monthly change."""

from __future__ import annotations

import math
from dataclasses import dataclass
from statistics import fmean
from typing import Iterable, Sequence

from pipelines.model import Series
from pipelines.numeric import is_finite

WINDOW_MONTHS = 12
REQUIRED_OBSERVATIONS = 2 * WINDOW_MONTHS
SYNTHETIC_BASE = 100.0


class InsufficientHistoryError(ValueError):
    """Raised when a series cannot support the 12/12 month window comparison."""


@dataclass(frozen=True)
class IndexChanges:
    """Unrounded change figures for the last finite observation of a series."""

    period: str
    avg12_pct: float | None
    yoy_pct: float | None
    monthly_pct: float | None


def round2(value: float | None) -> float | None:
    """Round to two decimals, halves away from zero."""

    if value is None:
        return None
    return math.copysign(math.floor(abs(value) * 100 + 0.5), value) / 100


def pct_change(current: float | None, previous: float | None) -> float | None:
    if not is_finite(current) or not is_finite(previous) or previous == 0:
        return None
    return (current / previous - 1) * 100


def _finite_tail(series: Series) -> tuple[str, list[float]]:
    finite = [obs for obs in series if is_finite(obs.value)]
    if not finite:
        raise InsufficientHistoryError("series has no finite observations")
    return finite[-1].period, [obs.value for obs in finite]


def changes_from_levels(period: str, levels: Sequence[float]) -> IndexChanges:
    if len(levels) < REQUIRED_OBSERVATIONS:
        raise InsufficientHistoryError(
            f"need {REQUIRED_OBSERVATIONS} finite observations, got {len(levels)}"
        )
    cur12 = fmean(levels[-WINDOW_MONTHS:])
    prev12 = fmean(levels[-REQUIRED_OBSERVATIONS:-WINDOW_MONTHS])
    avg12_pct = pct_change(cur12, prev12)
    if avg12_pct is None or not math.isfinite(avg12_pct):
        raise InsufficientHistoryError("twelve-month averages are not comparable")
    return IndexChanges(
        period=period,
        avg12_pct=avg12_pct,
        yoy_pct=pct_change(levels[-1], levels[-1 - WINDOW_MONTHS]),
        monthly_pct=pct_change(levels[-1], levels[-2]),
    )


def compute_from_levels(series: Series) -> IndexChanges:
    """Compute change figures from index-level observations.

    Non-finite observations are dropped before windowing, so trailing gaps
    are tolerated and interior gaps shift the window contents.
    """

    period, levels = _finite_tail(series)
    return changes_from_levels(period, levels)


def reconstruct_levels(pcts: Iterable[float], base: float = SYNTHETIC_BASE) -> list[float]:
    """Compound month-over-month percentage changes into a synthetic index."""

    levels: list[float] = []
    level = base
    for pct in pcts:
        level = level * (1 + pct / 100)
        levels.append(level)
    return levels


def compute_from_monthly(series: Series) -> IndexChanges:
    """Compute change figures from month-over-month percentage changes.

    The index is rebuilt from an arbitrary base of 100, so ``avg12_pct`` is an
    approximation of the figure the true base-period index would give.
    """

    period, pcts = _finite_tail(series)
    return changes_from_levels(period, reconstruct_levels(pcts))


__all__ = [
    "IndexChanges",
    "InsufficientHistoryError",
    "REQUIRED_OBSERVATIONS",
    "changes_from_levels",
    "compute_from_levels",
    "compute_from_monthly",
    "pct_change",
    "reconstruct_levels",
    "round2",
]
