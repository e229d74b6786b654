# -*- coding: utf-8 -*-
"""
Climate Explorer Service Setup

Provides the ``ClimateExplorerService`` facade, which wires the explorer
engines (record validator, scenario/year index, aggregator, spatial query
engine, view-state controller, color scale manager) together with the
provenance tracker behind one object, and ``get_service()`` for
programmatic singleton access.

Load sequence:
    1. Fetch rows and basemap concurrently (``asyncio.gather``).
    2. Validate rows into a Dataset, dropping malformed rows.
    3. Build the scenario/year index.
    4. Compute per-scenario-per-year means.
    5. Create the view-state controller and the color scale.

Nothing is published until every step succeeds, so a failed fetch leaves
the service exactly as it was.

Usage:
    >>> import asyncio
    >>> from climaview.explorer.loader import csv_rows_fetcher, json_fetcher
    >>> from climaview.explorer.setup import get_service
    >>> service = get_service()
    >>> asyncio.run(service.load(csv_rows_fetcher("precip.csv")))
    >>> service.get_yearly_means("ssp126")[0]
    YearlyMean(year=2015, scenario='ssp126', mean=2.41)
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from climaview.exceptions import (
    DatasetNotLoadedError,
    LoadFailure,
    format_exception_chain,
)
from climaview.explorer.aggregator import (
    MeanTable,
    mean_by_scenario_year,
    mean_over_selection,
    means_extent,
    yearly_means,
)
from climaview.explorer.color_scale import ColorScale, Interpolator, colormap_interpolator
from climaview.explorer.config import ExplorerConfig, get_config
from climaview.explorer.index_builder import ScenarioYearIndex, build_index
from climaview.explorer.loader import BasemapFetcher, RowsFetcher
from climaview.explorer.metrics import (
    PROMETHEUS_AVAILABLE,
    observe_load_duration,
    record_query,
    set_dataset_records,
    set_metrics_enabled,
    set_scenarios,
)
from climaview.explorer.models import (
    Dataset,
    DatasetSummary,
    Extent,
    HoverHit,
    LegendStop,
    PanelSlot,
    Record,
    YearlyMean,
)
from climaview.explorer.provenance import ProvenanceTracker, fingerprint_records
from climaview.explorer.record_validator import validate_rows
from climaview.explorer.spatial_query import (
    Projection,
    nearest_with_position,
    within_rect,
)
from climaview.explorer.view_state import (
    Scheduler,
    StateCallback,
    ViewStateController,
    resolve_slot,
)

logger = logging.getLogger(__name__)


# ===================================================================
# Service facade
# ===================================================================


class ClimateExplorerService:
    """Unified facade over the climate explorer engines.

    Holds the loaded Dataset, its index and derived means, the view-state
    controller and the color scale, and answers every query the renderers
    need. Each load records provenance and updates Prometheus metrics.

    Attributes:
        config: ExplorerConfig instance.
        provenance: ProvenanceTracker instance for SHA-256 audit trails.

    Example:
        >>> service = ClimateExplorerService()
        >>> service.load_rows(rows)
        >>> hit = service.query_nearest(412.0, 180.0, project)
        >>> print(hit.describe() if hit else "no data here")
    """

    def __init__(
        self,
        config: Optional[ExplorerConfig] = None,
        provenance: Optional[ProvenanceTracker] = None,
        interpolator: Optional[Interpolator] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        """Initialize the service facade.

        Args:
            config: Optional configuration. Uses global config if None.
            provenance: Optional ProvenanceTracker. Creates a new one
                if None.
            interpolator: Color interpolator; defaults to the configured
                matplotlib colormap.
            scheduler: Play-timer scheduler handed to the view-state
                controller; defaults to the running asyncio loop.
        """
        self.config = config if config is not None else get_config()
        logging.getLogger("climaview").setLevel(self.config.log_level)
        set_metrics_enabled(self.config.enable_metrics)

        self.provenance = (
            provenance
            if provenance is not None
            else ProvenanceTracker(genesis_hash=self.config.genesis_hash)
        )
        self._interpolator = (
            interpolator
            if interpolator is not None
            else colormap_interpolator(self.config.colormap)
        )
        self._scheduler = scheduler

        self._lock = threading.Lock()
        self._dataset: Optional[Dataset] = None
        self._index: Optional[ScenarioYearIndex] = None
        self._means: MeanTable = {}
        self._controller: Optional[ViewStateController] = None
        self._color_scale: Optional[ColorScale] = None
        self._basemap: Any = None

        self._total_loads: int = 0
        self._total_queries: int = 0

        logger.info("ClimateExplorerService facade created")

    # ==================================================================
    # Loading
    # ==================================================================

    async def load(
        self,
        fetch_rows: RowsFetcher,
        fetch_basemap: Optional[BasemapFetcher] = None,
    ) -> DatasetSummary:
        """Fetch, validate, index and aggregate the dataset.

        The rows fetch and the basemap fetch run concurrently; indexes are
        built only after both have resolved.

        Raises:
            LoadFailure: If either fetch raises. The service is left
                unchanged.
        """
        start = time.monotonic()
        fetches = [self._fetch("rows", fetch_rows)]
        if fetch_basemap is not None:
            fetches.append(self._fetch("basemap", fetch_basemap))

        results = await asyncio.gather(*fetches, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        observe_load_duration("fetch", time.monotonic() - start)

        rows = results[0]
        basemap = results[1] if fetch_basemap is not None else None
        summary = self.load_rows(rows, basemap=basemap)
        observe_load_duration("full_load", time.monotonic() - start)
        return summary

    @staticmethod
    async def _fetch(source: str, fetcher: Callable[[], Any]) -> Any:
        try:
            return await fetcher()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error(
                "Dataset load failed while fetching %s: %s",
                source,
                format_exception_chain(exc),
            )
            raise LoadFailure(
                message=f"Failed to fetch {source}: {exc}",
                component="ClimateExplorerService",
                context={"cause": type(exc).__name__},
                source=source,
            ) from exc

    def load_rows(self, rows: Any, basemap: Any = None) -> DatasetSummary:
        """Build every derived structure from rows already in memory."""
        dataset = validate_rows(
            rows,
            column_map=self.config.column_map(),
            lon_mode=self.config.lon_mode,
        )
        index = build_index(dataset)
        means = mean_by_scenario_year(index)
        controller = ViewStateController(
            dataset.years,
            dataset.scenarios,
            config=self.config,
            scheduler=self._scheduler,
        )
        color_scale = ColorScale(
            dataset.extent,
            interpolator=self._interpolator,
            policy=self.config.color_domain_policy,
        )

        if self.config.enable_provenance:
            self._record_provenance(dataset, index, means)

        with self._lock:
            previous = self._controller
            self._dataset = dataset
            self._index = index
            self._means = means
            self._controller = controller
            self._color_scale = color_scale
            self._basemap = basemap
            self._total_loads += 1
        if previous is not None:
            previous.close()

        set_dataset_records(len(dataset))
        set_scenarios(len(dataset.scenarios))
        logger.info(
            "Dataset loaded: %d records (%d dropped), %d years, "
            "scenarios=%s, extent=%s",
            len(dataset),
            dataset.dropped_count,
            len(dataset.years),
            list(dataset.scenarios),
            dataset.extent.as_tuple() if dataset.extent else None,
        )
        return self.get_statistics()

    def _record_provenance(
        self,
        dataset: Dataset,
        index: ScenarioYearIndex,
        means: MeanTable,
    ) -> None:
        fingerprint = fingerprint_records(dataset.records)
        entity_id = f"dataset:{fingerprint[:16]}"
        self.provenance.record(
            "dataset",
            "load_dataset",
            entity_id,
            data={
                "fingerprint": fingerprint,
                "records": len(dataset),
                "source_rows": dataset.source_row_count,
                "dropped": dataset.dropped_count,
            },
            metadata={
                "years": list(dataset.years),
                "scenarios": list(dataset.scenarios),
                "drop_reasons": dict(dataset.drop_reasons),
            },
        )
        self.provenance.record(
            "index",
            "build_index",
            entity_id,
            data={
                "fingerprint": fingerprint,
                "buckets": index.bucket_count,
                "records": index.total_records(),
            },
        )
        self.provenance.record(
            "aggregate",
            "compute_means",
            entity_id,
            data={
                "fingerprint": fingerprint,
                "means": {f"{s}|{y}": m for (s, y), m in sorted(means.items())},
            },
        )

    # ==================================================================
    # Accessors
    # ==================================================================

    @property
    def is_loaded(self) -> bool:
        return self._dataset is not None

    def _require_loaded(self) -> None:
        if self._dataset is None:
            raise DatasetNotLoadedError(
                message="Dataset not loaded; call load() or load_rows() first",
                component="ClimateExplorerService",
            )

    @property
    def dataset(self) -> Dataset:
        self._require_loaded()
        return self._dataset

    @property
    def index(self) -> ScenarioYearIndex:
        self._require_loaded()
        return self._index

    @property
    def controller(self) -> ViewStateController:
        self._require_loaded()
        return self._controller

    @property
    def color_scale(self) -> ColorScale:
        self._require_loaded()
        return self._color_scale

    @property
    def means(self) -> MeanTable:
        self._require_loaded()
        return dict(self._means)

    @property
    def basemap(self) -> Any:
        self._require_loaded()
        return self._basemap

    # ==================================================================
    # Slices and time series
    # ==================================================================

    def get_visible_slice(
        self,
        slot: Union[PanelSlot, str],
        year: Optional[int] = None,
    ) -> Tuple[Record, ...]:
        """Records drawn in one panel for ``year`` (default: current year).

        Raises:
            DatasetNotLoadedError: Before a successful load.
            ValidationError: If ``slot`` is not ``A`` or ``B``.
        """
        self._require_loaded()
        panel = resolve_slot(slot)
        if year is None:
            year = self._controller.current_year
        if year is None:
            return ()
        scenario = self._controller.state.scenario_for(panel)
        records = self._index.bucket(scenario, year)
        self._count_query("slice", "hit" if records else "empty")
        return records

    def get_yearly_means(self, scenario: str) -> List[YearlyMean]:
        """Time-series points for ``scenario`` across every dataset year."""
        self._require_loaded()
        points = yearly_means(self._means, scenario, self._dataset.years)
        has_data = any(p.mean is not None for p in points)
        self._count_query("yearly_means", "hit" if has_data else "empty")
        return points

    def get_time_series(self) -> Dict[str, List[YearlyMean]]:
        """Yearly means for every scenario, keyed by scenario."""
        self._require_loaded()
        return {
            scenario: yearly_means(self._means, scenario, self._dataset.years)
            for scenario in self._dataset.scenarios
        }

    def time_series_extent(self) -> Optional[Extent]:
        """Shared y-axis range of the time-series chart."""
        self._require_loaded()
        return means_extent(self._means)

    # ==================================================================
    # Spatial queries
    # ==================================================================

    def query_nearest(
        self,
        px: float,
        py: float,
        project: Projection,
    ) -> Optional[HoverHit]:
        """Tooltip lookup under the pointer.

        The scenario searched is the one shown on the pointer's side of the
        split; the radius follows the current point size.
        """
        self._require_loaded()
        controller = self._controller
        year = controller.current_year
        if year is None:
            self._count_query("nearest", "miss")
            return None
        slot = controller.side_of(px)
        scenario = controller.state.scenario_for(slot)
        found = nearest_with_position(
            self._index.bucket(scenario, year),
            px,
            py,
            controller.hover_radius,
            project,
        )
        if found is None:
            self._count_query("nearest", "miss")
            return None
        record, x, y, d2 = found
        self._count_query("nearest", "hit")
        return HoverHit(
            record=record,
            x=x,
            y=y,
            distance=math.sqrt(d2),
            scenario=scenario,
            year=year,
            slot=slot,
        )

    def _brush_candidates(
        self,
        all_years: bool,
        slot: Optional[Union[PanelSlot, str]],
    ) -> List[Record]:
        state = self._controller.state
        if slot is None:
            scenarios: Sequence[str] = list(
                dict.fromkeys([state.scenario_a, state.scenario_b])
            )
        else:
            scenarios = [state.scenario_for(resolve_slot(slot))]

        if all_years:
            years: Sequence[int] = self._dataset.years
        else:
            current = self._controller.current_year
            years = [] if current is None else [current]

        candidates: List[Record] = []
        for scenario in scenarios:
            for year in years:
                candidates.extend(self._index.bucket(scenario, year))
        return candidates

    def query_rect(
        self,
        x0: float,
        y0: float,
        x1: float,
        y1: float,
        project: Projection,
        all_years: bool = False,
        slot: Optional[Union[PanelSlot, str]] = None,
    ) -> List[Record]:
        """Records inside the brush rectangle.

        Args:
            x0, y0, x1, y1: Brush corners; an inverted rectangle selects
                nothing.
            project: ``(lon, lat) -> (x, y) | None``.
            all_years: Search every year instead of the current one.
            slot: Restrict to one panel's scenario; both selected scenarios
                when None.
        """
        self._require_loaded()
        selected = within_rect(
            self._brush_candidates(all_years, slot), x0, y0, x1, y1, project
        )
        self._count_query("rect", "hit" if selected else "empty")
        return selected

    def brush_means(
        self,
        x0: float,
        y0: float,
        x1: float,
        y1: float,
        project: Projection,
        all_years: bool = True,
    ) -> Dict[str, float]:
        """Mean value per scenario over the brush selection."""
        self._require_loaded()
        selected = within_rect(
            self._brush_candidates(all_years, None), x0, y0, x1, y1, project
        )
        means = mean_over_selection(selected)
        self._count_query("brush_means", "hit" if means else "empty")
        return means

    # ==================================================================
    # Color
    # ==================================================================

    def current_domain(self) -> Optional[Extent]:
        """Color domain for the frame currently on screen."""
        self._require_loaded()
        year = self._controller.current_year
        if year is None:
            return self._color_scale.global_extent
        state = self._controller.state
        return self._color_scale.domain_from_extents(
            self._index.slice_extent(state.scenario_a, year),
            self._index.slice_extent(state.scenario_b, year),
        )

    def color_for(self, value: float) -> Any:
        return self.color_scale.color_for(value, self.current_domain())

    def legend(self) -> List[LegendStop]:
        return self.color_scale.legend_stops(
            self.current_domain(), self.config.legend_stops
        )

    # ==================================================================
    # Subscriptions
    # ==================================================================

    def on_state_change(self, callback: StateCallback) -> Callable[[], None]:
        """Subscribe to view-state transitions; returns the unsubscribe call."""
        return self.controller.subscribe(callback)

    # ==================================================================
    # Statistics, provenance and lifecycle
    # ==================================================================

    def _count_query(self, kind: str, result: str) -> None:
        self._total_queries += 1
        record_query(kind, result)

    def get_statistics(self) -> DatasetSummary:
        """Counts and metadata describing the loaded dataset."""
        dataset = self._dataset
        if dataset is None:
            return DatasetSummary(
                loaded=False,
                color_domain_policy=self.config.color_domain_policy,
            )
        return DatasetSummary(
            loaded=True,
            record_count=len(dataset),
            source_row_count=dataset.source_row_count,
            dropped_count=dataset.dropped_count,
            drop_reasons=dict(dataset.drop_reasons),
            years=dataset.years,
            scenarios=dataset.scenarios,
            extent=dataset.extent,
            bucket_count=self._index.bucket_count,
            color_domain_policy=self.config.color_domain_policy,
            provenance_hash=(
                self.provenance.last_chain_hash
                if self.config.enable_provenance
                else None
            ),
        )

    def get_provenance(self) -> ProvenanceTracker:
        return self.provenance

    def get_metrics(self) -> Dict[str, Any]:
        """Service counters as a plain dictionary."""
        return {
            "total_loads": self._total_loads,
            "total_queries": self._total_queries,
            "provenance_entries": self.provenance.entry_count,
            "provenance_chain_valid": self.provenance.verify_chain(),
            "prometheus_available": PROMETHEUS_AVAILABLE,
        }

    def shutdown(self) -> None:
        """Stop the play timer and drop subscribers. The dataset stays."""
        controller = self._controller
        if controller is not None:
            controller.close()
        set_dataset_records(0)
        set_scenarios(0)
        logger.info("ClimateExplorerService shut down")


# ===================================================================
# Thread-safe singleton access
# ===================================================================

_singleton_instance: Optional[ClimateExplorerService] = None
_singleton_lock = threading.Lock()


def get_service() -> ClimateExplorerService:
    """Get the singleton ClimateExplorerService instance.

    Creates a new instance if one does not exist yet. Uses
    double-checked locking for thread safety.
    """
    global _singleton_instance
    if _singleton_instance is None:
        with _singleton_lock:
            if _singleton_instance is None:
                _singleton_instance = ClimateExplorerService()
    return _singleton_instance


def reset_service() -> None:
    """Shut down and discard the singleton (mainly for tests)."""
    global _singleton_instance
    with _singleton_lock:
        service = _singleton_instance
        _singleton_instance = None
    if service is not None:
        service.shutdown()


__all__ = [
    "ClimateExplorerService",
    "get_service",
    "reset_service",
]
