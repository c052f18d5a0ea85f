"""Canonical data model for CPI series and the derived change figures."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat


class Observation(BaseModel):
    """Single monthly observation of a normalized series."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    period: str = Field(
        ..., description="Canonical sortable period key in 'YYYY-MM' form."
    )
    value: Optional[FiniteFloat] = Field(
        default=None,
        description="Finite observation value, or None when the provider reported no figure.",
    )


Series = list[Observation]


class ChangeResult(BaseModel):
    """Percentage-change figures for the latest reporting period."""

    model_config = ConfigDict(frozen=True)

    period: str = Field(..., description="Latest reporting period formatted as 'MM-YYYY'.")
    avg12_pct: Optional[FiniteFloat] = Field(
        default=None,
        description="Twelve-month average change of the index level, in percent.",
    )
    yoy_pct: Optional[FiniteFloat] = Field(
        default=None,
        description="Change against the same month of the previous year, in percent.",
    )
    monthly_pct: Optional[FiniteFloat] = Field(
        default=None,
        description="Change against the previous month, in percent.",
    )
    source: str = Field(..., description="Human-readable label of the upstream provider.")

    def to_payload(self) -> dict[str, Any]:
        """Serialize with metrics that could not be computed left out."""

        return self.model_dump(mode="json", exclude_none=True)


__all__ = ["Observation", "Series", "ChangeResult"]
