# -*- coding: utf-8 -*-
"""
Climate Explorer Data Models

Data models shared by every explorer engine. High-volume, immutable values
(one per dataset row) are plain frozen dataclasses; small, validated value
objects exchanged with renderers and the service facade are Pydantic v2
models.

Dataclasses (3):
    - Record, Dataset, HoverHit

Pydantic models (6):
    - Extent, ColumnMap, YearlyMean, ViewState, LegendStop, DatasetSummary

Enumerations (2):
    - PanelSlot, DomainPolicy
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Default source column names, as found in the reference precipitation CSV.
DEFAULT_COLUMNS: Dict[str, str] = {
    "year": "year",
    "lat": "lat",
    "lon": "lon",
    "value": "pr_mm_day",
    "scenario": "scenario",
}

#: Intensity returned by the color scale when the domain has zero width.
MIDPOINT_INTENSITY: float = 0.5


# =============================================================================
# Enumerations
# =============================================================================


class PanelSlot(str, Enum):
    """One of the two comparison panels. ``A`` is left of the split."""

    A = "A"
    B = "B"


class DomainPolicy(str, Enum):
    """Color-domain policy.

    GLOBAL: Dataset-wide extent, computed once; colors keep their meaning
        while scrubbing years.
    PER_FRAME: Union extent of the two visible slices, recomputed whenever
        the visible year or scenarios change; better contrast per frame.
    """

    GLOBAL = "global"
    PER_FRAME = "per-frame"


# =============================================================================
# Record / Dataset
# =============================================================================


@dataclass(frozen=True, slots=True)
class Record:
    """One validated observation.

    Attributes:
        year: Calendar year of the observation.
        lat: Latitude in degrees, in [-90, 90].
        lon: Longitude in degrees, normalised according to the configured
            longitude mode.
        value: Observed value (>= 0), e.g. precipitation in mm/day.
        scenario: Non-empty scenario identifier such as ``"ssp126"``.
    """

    year: int
    lat: float
    lon: float
    value: float
    scenario: str


@dataclass(frozen=True)
class Dataset:
    """Validated records plus metadata derived once at load time.

    Attributes:
        records: Validated records in source order.
        years: Sorted distinct years.
        scenarios: Sorted distinct scenario identifiers.
        extent: Global value extent, ``None`` for an empty dataset.
        source_row_count: Number of rows offered to the validator.
        dropped_count: Number of rows rejected as malformed.
        drop_reasons: Rejected-row counts keyed by reason.
    """

    records: Tuple[Record, ...] = ()
    years: Tuple[int, ...] = ()
    scenarios: Tuple[str, ...] = ()
    extent: Optional["Extent"] = None
    source_row_count: int = 0
    dropped_count: int = 0
    drop_reasons: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def year_index(self, year: int) -> Optional[int]:
        """Return the position of ``year`` in :attr:`years`, or None."""
        try:
            return self.years.index(year)
        except ValueError:
            return None


@dataclass(frozen=True)
class HoverHit:
    """Tooltip lookup result for the map panels.

    Attributes:
        record: Nearest record within the hover radius.
        x: Projected screen x of the record.
        y: Projected screen y of the record.
        distance: Screen distance between pointer and record.
        scenario: Scenario shown on the hovered side of the split.
        year: Year currently displayed.
        slot: Panel slot on the hovered side of the split.
    """

    record: Record
    x: float
    y: float
    distance: float
    scenario: str
    year: int
    slot: PanelSlot

    def describe(self, unit: str = "mm/day") -> str:
        """Multi-line tooltip text for this hit."""
        return (
            f"{self.year} - {self.scenario}\n"
            f"Lat: {self.record.lat:.2f}, Lon: {self.record.lon:.2f}\n"
            f"pr: {self.record.value:.3f} {unit}"
        )


# =============================================================================
# Value objects
# =============================================================================


class Extent(BaseModel):
    """Closed numeric range ``[min, max]`` of some record subset."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(..., description="Smallest value in the range")
    max: float = Field(..., description="Largest value in the range")

    @model_validator(mode="after")
    def _check_order(self) -> "Extent":
        if not (math.isfinite(self.min) and math.isfinite(self.max)):
            raise ValueError(
                f"extent bounds must be finite, got ({self.min}, {self.max})"
            )
        if self.min > self.max:
            raise ValueError(
                f"extent min ({self.min}) must be <= max ({self.max})"
            )
        return self

    @property
    def span(self) -> float:
        return self.max - self.min

    def union(self, other: Optional["Extent"]) -> "Extent":
        """Smallest extent covering both ``self`` and ``other``."""
        if other is None:
            return self
        return Extent(min=min(self.min, other.min), max=max(self.max, other.max))

    def as_tuple(self) -> Tuple[float, float]:
        return (self.min, self.max)

    @classmethod
    def from_values(cls, values: Iterable[float]) -> Optional["Extent"]:
        """Single linear scan; ``None`` when ``values`` is empty."""
        lo = hi = None
        for v in values:
            if lo is None:
                lo = hi = v
            elif v < lo:
                lo = v
            elif v > hi:
                hi = v
        if lo is None:
            return None
        return cls(min=lo, max=hi)


class ColumnMap(BaseModel):
    """Source column name for each record field."""

    model_config = ConfigDict(frozen=True)

    year: str = DEFAULT_COLUMNS["year"]
    lat: str = DEFAULT_COLUMNS["lat"]
    lon: str = DEFAULT_COLUMNS["lon"]
    value: str = DEFAULT_COLUMNS["value"]
    scenario: str = DEFAULT_COLUMNS["scenario"]

    @field_validator("year", "lat", "lon", "value", "scenario")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("column name must not be empty")
        return v


class YearlyMean(BaseModel):
    """Mean value of one (scenario, year) slice; ``None`` when the slice is empty."""

    model_config = ConfigDict(frozen=True)

    year: int
    scenario: str
    mean: Optional[float] = None


class ViewState(BaseModel):
    """Immutable snapshot of the interactive view state.

    Owned by :class:`~climaview.explorer.view_state.ViewStateController`;
    every transition produces a new snapshot.
    """

    model_config = ConfigDict(frozen=True)

    current_year_index: int = Field(default=0, ge=0)
    scenario_a: str = ""
    scenario_b: str = ""
    point_size: float = Field(default=2.0, gt=0)
    point_alpha: float = Field(default=0.85, ge=0.0, le=1.0)
    split_position: float = 500.0
    playing: bool = False

    def scenario_for(self, slot: PanelSlot) -> str:
        return self.scenario_a if slot is PanelSlot.A else self.scenario_b


class LegendStop(BaseModel):
    """One gradient stop of the color legend."""

    model_config = ConfigDict(frozen=True)

    offset: float = Field(..., ge=0.0, le=1.0)
    value: float
    color: Any = None


class DatasetSummary(BaseModel):
    """Counts and metadata describing the loaded dataset."""

    loaded: bool = False
    record_count: int = 0
    source_row_count: int = 0
    dropped_count: int = 0
    drop_reasons: Dict[str, int] = Field(default_factory=dict)
    years: Tuple[int, ...] = ()
    scenarios: Tuple[str, ...] = ()
    extent: Optional[Extent] = None
    bucket_count: int = 0
    color_domain_policy: str = DomainPolicy.GLOBAL.value
    provenance_hash: Optional[str] = None


__all__ = [
    "DEFAULT_COLUMNS",
    "MIDPOINT_INTENSITY",
    "PanelSlot",
    "DomainPolicy",
    "Record",
    "Dataset",
    "HoverHit",
    "Extent",
    "ColumnMap",
    "YearlyMean",
    "ViewState",
    "LegendStop",
    "DatasetSummary",
]
