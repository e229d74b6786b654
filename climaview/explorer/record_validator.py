# -*- coding: utf-8 -*-
"""
Record Validator/Normalizer - Climate Explorer

Turns raw tabular rows (mappings of column name to string or number) into
validated :class:`~climaview.explorer.models.Record` values and assembles
the read-only :class:`~climaview.explorer.models.Dataset`.

Malformed rows are dropped and counted per reason, never raised. A batch
never fails because of its content:

    missing_field     a required column is absent, None or blank
    not_numeric       year/lat/lon/value cannot be parsed as a number
    not_finite        a numeric field is NaN or infinite
    empty_scenario    the scenario column is present but blank
    non_integer_year  the year carries a fractional part (e.g. 2015.5)
    out_of_range      lat outside [-90, 90], lon outside [-180, 360),
                      or value < 0

Longitude normalisation is explicit (``lon_mode``):

    raw      keep the source value
    wrap180  map [180, 360) onto [-180, 0)
    wrap360  map [-180, 0) onto [180, 360)

Example:
    >>> from climaview.explorer.record_validator import validate_rows
    >>> ds = validate_rows([
    ...     {"year": "2015", "lat": "10", "lon": "200",
    ...      "pr_mm_day": "1.5", "scenario": "ssp126"},
    ...     {"year": "abc", "lat": "10", "lon": "20",
    ...      "pr_mm_day": "1.0", "scenario": "ssp126"},
    ... ])
    >>> len(ds), ds.dropped_count, ds.records[0].lon
    (1, 1, -160.0)
"""

from __future__ import annotations

import logging
import math
import numbers
import time
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from climaview.exceptions import ConfigurationError
from climaview.explorer.config import VALID_LON_MODES
from climaview.explorer.metrics import observe_load_duration, record_rows
from climaview.explorer.models import ColumnMap, Dataset, Extent, Record

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Drop reasons
# ---------------------------------------------------------------------------

REASON_OK = "ok"
REASON_MISSING_FIELD = "missing_field"
REASON_NOT_NUMERIC = "not_numeric"
REASON_NOT_FINITE = "not_finite"
REASON_EMPTY_SCENARIO = "empty_scenario"
REASON_NON_INTEGER_YEAR = "non_integer_year"
REASON_OUT_OF_RANGE = "out_of_range"

DROP_REASONS = (
    REASON_MISSING_FIELD,
    REASON_NOT_NUMERIC,
    REASON_NOT_FINITE,
    REASON_EMPTY_SCENARIO,
    REASON_NON_INTEGER_YEAR,
    REASON_OUT_OF_RANGE,
)

_LAT_MIN, _LAT_MAX = -90.0, 90.0
_LON_MIN, _LON_MAX = -180.0, 360.0

ColumnMapLike = Union[ColumnMap, Mapping[str, str], None]


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------


class _Reject(Exception):
    """Internal signal carrying the drop reason for one row."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def _coerce_number(raw: Any) -> float:
    """Parse one numeric cell, raising :class:`_Reject` on failure."""
    if raw is None:
        raise _Reject(REASON_MISSING_FIELD)
    # bool is an int subclass but never a measurement
    if isinstance(raw, bool):
        raise _Reject(REASON_NOT_NUMERIC)
    if isinstance(raw, numbers.Real):
        number = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise _Reject(REASON_MISSING_FIELD)
        try:
            number = float(text)
        except ValueError:
            raise _Reject(REASON_NOT_NUMERIC) from None
    else:
        raise _Reject(REASON_NOT_NUMERIC)
    if not math.isfinite(number):
        raise _Reject(REASON_NOT_FINITE)
    return number


def _coerce_scenario(raw: Any) -> str:
    if raw is None:
        raise _Reject(REASON_MISSING_FIELD)
    text = str(raw).strip()
    if not text:
        raise _Reject(REASON_EMPTY_SCENARIO)
    return text


def normalize_longitude(lon: float, lon_mode: str) -> float:
    """Apply the configured longitude convention to an in-range longitude."""
    if lon_mode == "wrap180":
        return lon - 360.0 if lon >= 180.0 else lon
    if lon_mode == "wrap360":
        return lon + 360.0 if lon < 0.0 else lon
    return lon


def _resolve_columns(column_map: ColumnMapLike) -> ColumnMap:
    if column_map is None:
        return ColumnMap()
    if isinstance(column_map, ColumnMap):
        return column_map
    return ColumnMap(**dict(column_map))


def _check_lon_mode(lon_mode: str) -> str:
    mode = (lon_mode or "").lower()
    if mode not in VALID_LON_MODES:
        raise ConfigurationError(
            message=(
                f"lon_mode must be one of {sorted(VALID_LON_MODES)}, "
                f"got {lon_mode!r}"
            ),
            component="record_validator",
            config_key="lon_mode",
        )
    return mode


def _parse(row: Mapping[str, Any], cols: ColumnMap, lon_mode: str) -> Record:
    year = _coerce_number(row.get(cols.year))
    lat = _coerce_number(row.get(cols.lat))
    lon = _coerce_number(row.get(cols.lon))
    value = _coerce_number(row.get(cols.value))
    scenario = _coerce_scenario(row.get(cols.scenario))

    if not year.is_integer():
        raise _Reject(REASON_NON_INTEGER_YEAR)
    if not (_LAT_MIN <= lat <= _LAT_MAX):
        raise _Reject(REASON_OUT_OF_RANGE)
    if not (_LON_MIN <= lon < _LON_MAX):
        raise _Reject(REASON_OUT_OF_RANGE)
    if value < 0.0:
        raise _Reject(REASON_OUT_OF_RANGE)

    return Record(
        year=int(year),
        lat=lat,
        lon=normalize_longitude(lon, lon_mode),
        value=value,
        scenario=scenario,
    )


def classify_row(
    row: Mapping[str, Any],
    column_map: ColumnMapLike = None,
    lon_mode: str = "wrap180",
) -> Tuple[Optional[Record], str]:
    """Parse one row and report the outcome.

    Returns:
        ``(record, "ok")`` for a valid row, ``(None, reason)`` otherwise.
    """
    cols = _resolve_columns(column_map)
    mode = _check_lon_mode(lon_mode)
    try:
        return _parse(row, cols, mode), REASON_OK
    except _Reject as rej:
        return None, rej.reason


def parse_row(
    row: Mapping[str, Any],
    column_map: ColumnMapLike = None,
    lon_mode: str = "wrap180",
) -> Optional[Record]:
    """Parse one row into a Record, or ``None`` when it is malformed."""
    record, _ = classify_row(row, column_map, lon_mode)
    return record


# ---------------------------------------------------------------------------
# Batch validation
# ---------------------------------------------------------------------------


def validate_rows(
    rows: Iterable[Mapping[str, Any]],
    column_map: ColumnMapLike = None,
    lon_mode: str = "wrap180",
) -> Dataset:
    """Validate a batch of raw rows and build the Dataset.

    Rows are consumed in a single pass, so ``rows`` may be any iterable
    including a generator over a file.

    Args:
        rows: Raw row mappings keyed by source column name.
        column_map: Source column names; defaults to :class:`ColumnMap`.
        lon_mode: ``raw``, ``wrap180`` or ``wrap360``.

    Returns:
        Dataset with records in source order, sorted distinct years and
        scenarios, the global value extent and drop statistics.

    Raises:
        ConfigurationError: If ``lon_mode`` is unknown.
        pydantic.ValidationError: If ``column_map`` names an empty column.
    """
    start = time.monotonic()
    cols = _resolve_columns(column_map)
    mode = _check_lon_mode(lon_mode)

    records: List[Record] = []
    drops: Counter = Counter()
    years = set()
    scenarios = set()
    total = 0

    for row in rows:
        total += 1
        try:
            rec = _parse(row, cols, mode)
        except _Reject as rej:
            drops[rej.reason] += 1
            continue
        records.append(rec)
        years.add(rec.year)
        scenarios.add(rec.scenario)

    dataset = Dataset(
        records=tuple(records),
        years=tuple(sorted(years)),
        scenarios=tuple(sorted(scenarios)),
        extent=Extent.from_values(r.value for r in records),
        source_row_count=total,
        dropped_count=sum(drops.values()),
        drop_reasons=dict(drops),
    )

    record_rows("valid", REASON_OK, len(records))
    for reason, count in drops.items():
        record_rows("dropped", reason, count)
    elapsed = time.monotonic() - start
    observe_load_duration("validate", elapsed)

    if drops:
        logger.info(
            "Validated %d rows: %d records kept, %d dropped %s (%.3fs)",
            total,
            len(records),
            dataset.dropped_count,
            _format_drops(drops),
            elapsed,
        )
    else:
        logger.info(
            "Validated %d rows: %d records kept, none dropped (%.3fs)",
            total,
            len(records),
            elapsed,
        )
    return dataset


def _format_drops(drops: Mapping[str, int]) -> Dict[str, int]:
    return {reason: drops[reason] for reason in DROP_REASONS if reason in drops}


__all__ = [
    "DROP_REASONS",
    "REASON_OK",
    "REASON_MISSING_FIELD",
    "REASON_NOT_NUMERIC",
    "REASON_NOT_FINITE",
    "REASON_EMPTY_SCENARIO",
    "REASON_NON_INTEGER_YEAR",
    "REASON_OUT_OF_RANGE",
    "normalize_longitude",
    "classify_row",
    "parse_row",
    "validate_rows",
]
