"""Conversion between provider period labels and the canonical ``YYYY-MM`` key."""

from __future__ import annotations

import re
from typing import Any

CANONICAL_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")

# (pattern, year group, month group), tried in order.
_PERIOD_PATTERNS: tuple[tuple[re.Pattern[str], int, int], ...] = (
    (re.compile(r"^(\d{4})-(\d{1,2})$"), 1, 2),
    (re.compile(r"^(\d{4})/(\d{1,2})$"), 1, 2),
    (re.compile(r"^(\d{4})(\d{2})$"), 1, 2),
    (re.compile(r"^(\d{4})-?M(\d{1,2})$", re.IGNORECASE), 1, 2),
    (re.compile(r"^(\d{4})-(\d{2})-\d{2}(?:[T ].*)?$"), 1, 2),
    (re.compile(r"^(\d{1,2})[-./](\d{4})$"), 2, 1),
)


def normalize_period(raw: Any) -> str:
    """Return the canonical ``YYYY-MM`` key for a provider period label.

    Labels that are not recognized, or that name a month outside 1..12, are
    returned unchanged so extraction can keep a best-effort value.
    """

    text = "" if raw is None else str(raw)
    candidate = text.strip()
    for pattern, year_group, month_group in _PERIOD_PATTERNS:
        match = pattern.match(candidate)
        if not match:
            continue
        month = int(match.group(month_group))
        if not 1 <= month <= 12:
            return text
        return f"{match.group(year_group)}-{month:02d}"
    return text


def to_display(period: str) -> str:
    """Format a canonical period as ``MM-YYYY``; anything else is returned as is."""

    match = CANONICAL_PERIOD_RE.match(str(period))
    if not match:
        return str(period)
    return f"{match.group(2)}-{match.group(1)}"


def is_canonical(period: str) -> bool:
    return bool(CANONICAL_PERIOD_RE.match(period))


__all__ = ["normalize_period", "to_display", "is_canonical", "CANONICAL_PERIOD_RE"]
