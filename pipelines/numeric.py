"""Locale-tolerant numeric coercion for upstream statistical payloads."""

from __future__ import annotations

import math
from typing import Any

_SENTINEL_VALUES = {".", "NA", "N/A", "NaN", "nan", "-", "..", ""}


def to_number(raw: Any) -> float | None:
    """Coerce ``raw`` into a finite float.

    Strings may use a comma as the decimal separator (``"2,06"``). Returns
    ``None`` when the value is missing, a provider sentinel, or not finite, so
    callers can filter unavailable points before aggregating.
    """

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        numeric = float(raw)
    elif isinstance(raw, str):
        stripped = raw.strip()
        if stripped in _SENTINEL_VALUES:
            return None
        try:
            numeric = float(stripped.replace(",", ".", 1))
        except ValueError:
            return None
    else:
        return None

    if math.isnan(numeric) or math.isinf(numeric):
        return None
    return numeric


def is_finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


__all__ = ["to_number", "is_finite"]
