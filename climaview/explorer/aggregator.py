# -*- coding: utf-8 -*-
"""
Aggregator - Climate Explorer

Derived aggregates over the scenario/year index:

- per-scenario-per-year means for the time-series chart, computed once
  after load in a single pass;
- grouped means over an arbitrary record selection for the brush chart.

A (scenario, year) pair without records has mean ``None``, never ``0``, so
renderers can leave a gap instead of drawing a misleading drop.
"""

from __future__ import annotations

import logging
import time
from typing import (
    Callable,
    Dict,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from climaview.explorer.index_builder import ScenarioYearIndex
from climaview.explorer.metrics import observe_load_duration
from climaview.explorer.models import Extent, Record, YearlyMean

logger = logging.getLogger(__name__)

MeanTable = Dict[Tuple[str, int], Optional[float]]


def _by_scenario(record: Record) -> str:
    return record.scenario


def mean_by_scenario_year(index: ScenarioYearIndex) -> MeanTable:
    """Mean value for every known scenario x every year seen in the index.

    Pairs without records map to ``None``.
    """
    start = time.monotonic()
    years = index.years()
    means: MeanTable = {}
    for scenario in index.scenarios():
        for year in years:
            means[(scenario, year)] = None

    for key, recs in index.buckets():
        if recs:
            means[key] = sum(r.value for r in recs) / len(recs)

    elapsed = time.monotonic() - start
    observe_load_duration("aggregate", elapsed)
    logger.debug(
        "Computed %d scenario/year means (%d empty) in %.3fs",
        len(means),
        sum(1 for m in means.values() if m is None),
        elapsed,
    )
    return means


def lookup_mean(means: Mapping[Tuple[str, int], Optional[float]],
                scenario: str, year: int) -> Optional[float]:
    return means.get((scenario, year))


def yearly_means(
    means: Mapping[Tuple[str, int], Optional[float]],
    scenario: str,
    years: Sequence[int],
) -> List[YearlyMean]:
    """Time-series points for one scenario, ordered by year."""
    return [
        YearlyMean(year=year, scenario=scenario, mean=means.get((scenario, year)))
        for year in sorted(years)
    ]


def mean_over_selection(
    records: Iterable[Record],
    key_fn: Callable[[Record], Hashable] = _by_scenario,
) -> Dict[Hashable, float]:
    """Group ``records`` by ``key_fn`` and average each group.

    Groups appear in first-seen order. Empty input yields an empty dict.
    """
    sums: Dict[Hashable, float] = {}
    counts: Dict[Hashable, int] = {}
    for rec in records:
        key = key_fn(rec)
        sums[key] = sums.get(key, 0.0) + rec.value
        counts[key] = counts.get(key, 0) + 1
    return {key: sums[key] / counts[key] for key in sums}


def means_extent(
    means: Mapping[Tuple[str, int], Optional[float]],
) -> Optional[Extent]:
    """Extent of the non-null means; the time-series y-axis range."""
    return Extent.from_values(m for m in means.values() if m is not None)


__all__ = [
    "MeanTable",
    "mean_by_scenario_year",
    "lookup_mean",
    "yearly_means",
    "mean_over_selection",
    "means_extent",
]
