# -*- coding: utf-8 -*-
"""Tests for explorer data models and metric helpers."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from climaview.explorer import metrics
from climaview.explorer.models import (
    ColumnMap,
    Extent,
    HoverHit,
    LegendStop,
    PanelSlot,
    Record,
    ViewState,
)


class TestExtent:
    """Extent value object."""

    def test_min_must_not_exceed_max(self):
        with pytest.raises(PydanticValidationError):
            Extent(min=2, max=1)

    def test_non_finite_rejected(self):
        with pytest.raises(PydanticValidationError):
            Extent(min=0, max=float("inf"))

    def test_union(self):
        assert Extent(min=1, max=3).union(Extent(min=2, max=5)).as_tuple() == (1, 5)
        assert Extent(min=1, max=3).union(None).as_tuple() == (1, 3)

    def test_from_values(self):
        assert Extent.from_values([3, 1, 2]).as_tuple() == (1, 3)
        assert Extent.from_values([]) is None


class TestValueObjects:
    """Frozen models and dataclasses."""

    def test_record_is_immutable(self):
        rec = Record(year=2015, lat=0.0, lon=0.0, value=1.0, scenario="s")
        with pytest.raises(AttributeError):
            rec.value = 2.0

    def test_view_state_constraints(self):
        with pytest.raises(PydanticValidationError):
            ViewState(point_alpha=1.5)
        with pytest.raises(PydanticValidationError):
            ViewState(current_year_index=-1)

    def test_view_state_scenario_for(self):
        state = ViewState(scenario_a="x", scenario_b="y")
        assert state.scenario_for(PanelSlot.A) == "x"
        assert state.scenario_for(PanelSlot.B) == "y"

    def test_column_map_rejects_blank(self):
        with pytest.raises(PydanticValidationError):
            ColumnMap(value="  ")

    def test_legend_stop_offset_range(self):
        with pytest.raises(PydanticValidationError):
            LegendStop(offset=1.5, value=0.0)

    def test_hover_hit_describe(self):
        rec = Record(year=2050, lat=12.3456, lon=-45.678, value=3.14159, scenario="ssp585")
        hit = HoverHit(record=rec, x=1, y=2, distance=0.5, scenario="ssp585", year=2050, slot=PanelSlot.B)
        assert hit.describe() == (
            "2050 - ssp585\nLat: 12.35, Lon: -45.68\npr: 3.142 mm/day"
        )


class TestMetricHelpers:
    """Metric helpers never raise, with or without prometheus_client."""

    def test_helpers_are_safe(self):
        metrics.record_rows("valid", "ok", 3)
        metrics.record_rows("dropped", "not_numeric", 0)
        metrics.record_index_build()
        metrics.record_query("nearest", "hit")
        metrics.record_state_transition("playing")
        metrics.record_play_tick()
        metrics.set_dataset_records(10)
        metrics.set_scenarios(2)
        metrics.observe_load_duration("validate", 0.01)

    def test_disabled_metrics_are_noops(self):
        metrics.set_metrics_enabled(False)
        try:
            assert metrics._active() is False
            metrics.record_query("rect", "empty")
        finally:
            metrics.set_metrics_enabled(True)
        assert metrics._active() is metrics.PROMETHEUS_AVAILABLE
