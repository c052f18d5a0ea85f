"""Adapters turning heterogeneous provider payloads into a canonical ``Series``.

Each strategy is a pure function from a decoded payload to a list of raw
``(period, value)`` pairs. ``extract_series`` tries them in a fixed order and
normalizes the first non-empty result: canonical periods, coerced values,
duplicates collapsed (later rows win) and ascending order.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from typing import Any, Callable, Iterable, Mapping, Sequence

from pipelines.model import Observation, Series
from pipelines.numeric import to_number
from pipelines.periods import is_canonical, normalize_period

logger = logging.getLogger(__name__)

RawPairs = list[tuple[Any, Any]]
Strategy = Callable[[Any], RawPairs]

TIME_COLUMN_ALIASES = ("TIME_PERIOD", "TIME", "Time", "DATE", "PERIOD", "Time period")
VALUE_COLUMN_ALIASES = ("OBS_VALUE", "Value", "Observation value", "VALUE")

_TIME_DIMENSION_IDS = {"TIME_PERIOD", "TIME"}
_PERIOD_KEYS = ("period", "periods")
_VALUE_KEYS = ("value", "values")


def decode_payload(body: str | bytes | Any) -> Any:
    """Decode JSON text when possible, otherwise return the text unchanged."""

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if not isinstance(body, str):
        return body
    text = body.lstrip("\ufeff").strip()
    if not text:
        return ""
    if text[0] in "[{":
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Payload looked like JSON but failed to decode; treating as text.")
    return text


def _sdmx_root(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    wrapped = payload.get("data")
    if isinstance(wrapped, Mapping) and "dataSets" in wrapped:
        return wrapped
    return payload


def _time_dimension(structure: Any) -> tuple[int, int, list[str]] | None:
    if isinstance(structure, list):
        structure = structure[0] if structure else None
    if not isinstance(structure, Mapping):
        return None
    dimensions = structure.get("dimensions")
    observation_dims = dimensions.get("observation") if isinstance(dimensions, Mapping) else None
    if not isinstance(observation_dims, list) or not observation_dims:
        return None
    series_dims = dimensions.get("series")
    series_dim_count = len(series_dims) if isinstance(series_dims, list) else 0

    position = 0
    for idx, dim in enumerate(observation_dims):
        if isinstance(dim, Mapping) and str(dim.get("id", "")).upper() in _TIME_DIMENSION_IDS:
            position = idx
            break

    dim = observation_dims[position]
    values = dim.get("values") if isinstance(dim, Mapping) else None
    if not isinstance(values, list):
        return None
    labels = []
    for item in values:
        if isinstance(item, Mapping):
            labels.append(str(item.get("id") or item.get("name") or ""))
        else:
            labels.append(str(item))
    return position, series_dim_count, labels


def dimension_map(payload: Any) -> RawPairs:
    """SDMX-JSON: observation keys index into the time dimension's values."""

    if not isinstance(payload, Mapping):
        return []
    root = _sdmx_root(payload)
    datasets = root.get("dataSets")
    if not isinstance(datasets, list) or not datasets or not isinstance(datasets[0], Mapping):
        return []
    time_dim = _time_dimension(root.get("structure") or root.get("structures"))
    if time_dim is None:
        return []
    position, series_dim_count, labels = time_dim

    dataset = datasets[0]
    observations: Any = None
    series = dataset.get("series")
    if isinstance(series, Mapping) and series:
        first = next(iter(series.values()))
        if isinstance(first, Mapping):
            observations = first.get("observations")
    if observations is None:
        # Flat dataset-level keys also carry the series dimensions.
        observations = dataset.get("observations")
        position += series_dim_count
    if not isinstance(observations, Mapping):
        return []

    pairs: RawPairs = []
    for key, raw_value in observations.items():
        parts = str(key).split(":")
        try:
            index = int(parts[position] if position < len(parts) else parts[-1])
        except ValueError:
            continue
        if not 0 <= index < len(labels):
            continue
        if isinstance(raw_value, list):
            if not raw_value or raw_value[0] is None:
                continue
            value = raw_value[0]
        else:
            value = raw_value
        pairs.append((labels[index], value))
    return pairs


def _find_column(header: Sequence[str], aliases: Iterable[str]) -> int | None:
    folded = [name.strip().lower() for name in header]
    for alias in aliases:
        try:
            return folded.index(alias.lower())
        except ValueError:
            continue
    return None


def csv_columnar(payload: Any) -> RawPairs:
    """Comma-separated text with a recognizable time and value column."""

    if not isinstance(payload, str) or "," not in payload:
        return []
    reader = csv.reader(io.StringIO(payload.lstrip("\ufeff")))
    try:
        header = next(reader)
    except (StopIteration, csv.Error):
        return []
    time_idx = _find_column(header, TIME_COLUMN_ALIASES)
    value_idx = _find_column(header, VALUE_COLUMN_ALIASES)
    if time_idx is None or value_idx is None:
        return []

    pairs: RawPairs = []
    try:
        for row in reader:
            if len(row) <= max(time_idx, value_idx):
                continue
            pairs.append((row[time_idx], row[value_idx]))
    except csv.Error as exc:
        logger.debug("CSV payload truncated at malformed row: %s", exc)
    return pairs


def _pick(mapping: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def parallel_arrays(payload: Any) -> RawPairs:
    """``{"period": [...], "value": [...]}`` indexed positionally."""

    if not isinstance(payload, Mapping):
        return []
    periods = _pick(payload, _PERIOD_KEYS)
    values = _pick(payload, _VALUE_KEYS)
    if not isinstance(periods, list) or not isinstance(values, list):
        return []
    if len(periods) != len(values):
        return []
    return list(zip(periods, values))


def _first_document(payload: Any) -> Any:
    if not isinstance(payload, Mapping):
        return None
    series = payload.get("series")
    if isinstance(series, Mapping):
        docs = series.get("docs")
        if isinstance(docs, list):
            return docs[0] if docs else None
        return series
    if isinstance(series, list):
        return series[0] if series else None
    docs = payload.get("docs")
    if isinstance(docs, list) and docs:
        return docs[0]
    return None


def wrapped_parallel_arrays(payload: Any) -> RawPairs:
    """Parallel arrays nested under a first-document wrapper (DBnomics style)."""

    return parallel_arrays(_first_document(payload))


def row_pairs(payload: Any) -> RawPairs:
    """``[[period, value], ...]`` rows, at the top level or under ``data``."""

    rows = payload.get("data") if isinstance(payload, Mapping) else payload
    if not isinstance(rows, list):
        return []
    pairs: RawPairs = []
    for row in rows:
        if isinstance(row, (list, tuple)) and len(row) == 2:
            pairs.append((row[0], row[1]))
    return pairs


EXTRACTION_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("dimension_map", dimension_map),
    ("csv_columnar", csv_columnar),
    ("parallel_arrays", parallel_arrays),
    ("wrapped_parallel_arrays", wrapped_parallel_arrays),
    ("row_pairs", row_pairs),
)


def build_series(pairs: Iterable[tuple[Any, Any]]) -> Series:
    """Normalize raw pairs into an ascending, deduplicated series.

    Rows whose period is not a calendar month (quarters, annual totals, labels)
    are dropped so they cannot sort past the latest month.
    """

    by_period: dict[str, float | None] = {}
    for raw_period, raw_value in pairs:
        period = normalize_period(raw_period).strip()
        if not is_canonical(period):
            continue
        by_period[period] = to_number(raw_value)
    return [
        Observation(period=period, value=value)
        for period, value in sorted(by_period.items())
    ]


def extract_series(body: str | bytes | Any) -> Series:
    """Run the extraction strategies in order and return the first non-empty series."""

    payload = decode_payload(body)
    for name, strategy in EXTRACTION_STRATEGIES:
        pairs = strategy(payload)
        if not pairs:
            continue
        series = build_series(pairs)
        if series:
            logger.debug("Extracted %s observations using %s.", len(series), name)
            return series
    return []


__all__ = [
    "EXTRACTION_STRATEGIES",
    "build_series",
    "csv_columnar",
    "decode_payload",
    "dimension_map",
    "extract_series",
    "parallel_arrays",
    "row_pairs",
    "wrapped_parallel_arrays",
]
