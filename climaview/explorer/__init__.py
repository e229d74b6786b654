# -*- coding: utf-8 -*-
"""
Climaview Climate Explorer Core
===============================

This package turns a tabular climate dataset (year, latitude, longitude,
value, scenario) into the structures the explorer views draw from, and
keeps those views consistent while the user scrubs years, swaps scenarios
or drags a brush. It supports:

- Row validation and normalisation with per-reason drop counts and
  configurable longitude convention (raw, wrap180, wrap360)
- Scenario/year index with O(1) slice lookup and lazily cached slice
  extents
- Per-scenario-per-year means for the time-series chart and grouped
  means over brush selections
- Screen-space nearest-point and rectangle queries over an external
  projection
- View-state controller with split panels, point styling and an
  asyncio-driven play timer
- Sequential color scale with global or per-frame domain policy and
  matplotlib colormap interpolators
- SHA-256 provenance chain tracking for every dataset load
- 8 Prometheus metrics with climaview_explorer_ prefix
- Thread-safe configuration with CLIMAVIEW_EXPLORER_ env prefix

Key Components:
    - config: ExplorerConfig with CLIMAVIEW_EXPLORER_ env prefix
    - models: Record/Dataset dataclasses and Pydantic v2 value objects
    - record_validator: Row validation and Dataset assembly
    - index_builder: Scenario/year index
    - aggregator: Derived means
    - spatial_query: Nearest-point and brush-rectangle queries
    - view_state: View-state controller and play timer
    - color_scale: Color scale manager
    - loader: CSV/JSON fetchers for the async load
    - provenance: SHA-256 chain-hashed audit trails
    - metrics: Prometheus metrics with climaview_explorer_ prefix
    - setup: ClimateExplorerService facade

Example:
    >>> from climaview.explorer import ClimateExplorerService
    >>> service = ClimateExplorerService()
    >>> summary = service.load_rows(rows)
    >>> service.controller.set_year(2050)
    True
    >>> service.get_visible_slice("A")[:1]
"""

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from climaview.explorer.config import (
    ExplorerConfig,
    get_config,
    set_config,
    reset_config,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
from climaview.explorer.models import (
    ColumnMap,
    Dataset,
    DatasetSummary,
    DomainPolicy,
    Extent,
    HoverHit,
    LegendStop,
    PanelSlot,
    Record,
    ViewState,
    YearlyMean,
)

# ---------------------------------------------------------------------------
# Provenance and metrics
# ---------------------------------------------------------------------------
from climaview.explorer.provenance import ProvenanceTracker, fingerprint_records
from climaview.explorer.metrics import PROMETHEUS_AVAILABLE

# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------
from climaview.explorer.record_validator import parse_row, validate_rows
from climaview.explorer.index_builder import (
    ScenarioYearIndex,
    build_index,
    compute_extent,
)
from climaview.explorer.aggregator import (
    lookup_mean,
    mean_by_scenario_year,
    mean_over_selection,
    means_extent,
    yearly_means,
)
from climaview.explorer.spatial_query import nearest, nearest_with_position, within_rect
from climaview.explorer.view_state import AsyncioScheduler, ViewStateController
from climaview.explorer.color_scale import ColorScale, colormap_interpolator
from climaview.explorer.loader import csv_rows_fetcher, json_fetcher

# ---------------------------------------------------------------------------
# Service facade
# ---------------------------------------------------------------------------
from climaview.explorer.setup import (
    ClimateExplorerService,
    get_service,
    reset_service,
)

__all__ = [
    "__version__",
    # Configuration
    "ExplorerConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Models
    "ColumnMap",
    "Dataset",
    "DatasetSummary",
    "DomainPolicy",
    "Extent",
    "HoverHit",
    "LegendStop",
    "PanelSlot",
    "Record",
    "ViewState",
    "YearlyMean",
    # Provenance and metrics
    "ProvenanceTracker",
    "fingerprint_records",
    "PROMETHEUS_AVAILABLE",
    # Engines
    "parse_row",
    "validate_rows",
    "ScenarioYearIndex",
    "build_index",
    "compute_extent",
    "lookup_mean",
    "mean_by_scenario_year",
    "mean_over_selection",
    "means_extent",
    "yearly_means",
    "nearest",
    "nearest_with_position",
    "within_rect",
    "AsyncioScheduler",
    "ViewStateController",
    "ColorScale",
    "colormap_interpolator",
    "csv_rows_fetcher",
    "json_fetcher",
    # Service facade
    "ClimateExplorerService",
    "get_service",
    "reset_service",
]
