# -*- coding: utf-8 -*-
"""
Index Builder - Climate Explorer

Builds the :class:`ScenarioYearIndex` (scenario -> year -> records) over a
validated Dataset in a single linear pass. Every record lands in exactly one
bucket and insertion order is preserved inside a bucket, so the union of all
buckets reproduces the Dataset.

Per-slice value extents are only needed by the per-frame color policy and
are computed lazily on first request, then cached.

Example:
    >>> from climaview.explorer.index_builder import build_index
    >>> index = build_index(dataset)
    >>> index.bucket("ssp126", 2015)
    (Record(year=2015, ...), ...)
    >>> index.slice_extent("ssp126", 2015)
    Extent(min=1.0, max=3.0)
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from climaview.explorer.metrics import observe_load_duration, record_index_build
from climaview.explorer.models import Dataset, Extent, Record

logger = logging.getLogger(__name__)

SliceKey = Tuple[str, int]

_EMPTY: Tuple[Record, ...] = ()


def compute_extent(records: Iterable[Record]) -> Optional[Extent]:
    """Value extent of ``records`` in one scan; ``None`` when empty."""
    return Extent.from_values(r.value for r in records)


class ScenarioYearIndex:
    """Two-level mapping scenario -> year -> tuple of records.

    Instances are read-only after construction. Use :func:`build_index`
    rather than calling the constructor directly.
    """

    def __init__(self, buckets: Dict[str, Dict[int, Tuple[Record, ...]]]) -> None:
        self._buckets = buckets
        self._total = sum(
            len(recs) for by_year in buckets.values() for recs in by_year.values()
        )
        self._extent_cache: Dict[SliceKey, Optional[Extent]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def bucket(self, scenario: str, year: int) -> Tuple[Record, ...]:
        """Records for ``(scenario, year)``; empty tuple when absent."""
        by_year = self._buckets.get(scenario)
        if by_year is None:
            return _EMPTY
        return by_year.get(year, _EMPTY)

    def scenarios(self) -> List[str]:
        return sorted(self._buckets)

    def years(self, scenario: Optional[str] = None) -> List[int]:
        """Sorted years present for ``scenario``, or across all scenarios."""
        if scenario is not None:
            return sorted(self._buckets.get(scenario, {}))
        seen = set()
        for by_year in self._buckets.values():
            seen.update(by_year)
        return sorted(seen)

    def buckets(self) -> Iterator[Tuple[SliceKey, Tuple[Record, ...]]]:
        for scenario, by_year in self._buckets.items():
            for year, recs in by_year.items():
                yield (scenario, year), recs

    def total_records(self) -> int:
        return self._total

    @property
    def bucket_count(self) -> int:
        return sum(len(by_year) for by_year in self._buckets.values())

    def __contains__(self, key: SliceKey) -> bool:
        scenario, year = key
        return year in self._buckets.get(scenario, {})

    def __len__(self) -> int:
        return self._total

    # ------------------------------------------------------------------
    # Lazily cached slice extents
    # ------------------------------------------------------------------

    def slice_extent(self, scenario: str, year: int) -> Optional[Extent]:
        """Value extent of one slice, computed on first use."""
        key = (scenario, year)
        with self._lock:
            if key in self._extent_cache:
                return self._extent_cache[key]
        extent = compute_extent(self.bucket(scenario, year))
        with self._lock:
            self._extent_cache.setdefault(key, extent)
        return extent

    def __repr__(self) -> str:
        return (
            f"ScenarioYearIndex(scenarios={len(self._buckets)}, "
            f"buckets={self.bucket_count}, records={self._total})"
        )


def build_index(dataset: Dataset) -> ScenarioYearIndex:
    """Group the records of ``dataset`` by scenario then year in O(n)."""
    start = time.monotonic()
    grouped: Dict[str, Dict[int, List[Record]]] = {}
    for rec in dataset.records:
        grouped.setdefault(rec.scenario, {}).setdefault(rec.year, []).append(rec)

    frozen = {
        scenario: {year: tuple(recs) for year, recs in by_year.items()}
        for scenario, by_year in grouped.items()
    }
    index = ScenarioYearIndex(frozen)

    elapsed = time.monotonic() - start
    record_index_build()
    observe_load_duration("index", elapsed)
    logger.info(
        "Built scenario/year index: %d scenarios, %d buckets, %d records (%.3fs)",
        len(frozen),
        index.bucket_count,
        index.total_records(),
        elapsed,
    )
    return index


__all__ = [
    "ScenarioYearIndex",
    "build_index",
    "compute_extent",
]
