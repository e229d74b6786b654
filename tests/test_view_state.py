# -*- coding: utf-8 -*-
"""Tests for the view-state controller and its play timer."""

import asyncio

import pytest

from climaview.exceptions import ValidationError
from climaview.explorer.config import ExplorerConfig
from climaview.explorer.models import PanelSlot
from climaview.explorer.view_state import (
    AsyncioScheduler,
    ViewStateController,
    resolve_slot,
)

YEARS = [2015, 2016, 2017]
SCENARIOS = ["ssp126", "ssp245", "ssp585"]


@pytest.fixture
def controller(explorer_config, scheduler):
    return ViewStateController(YEARS, SCENARIOS, config=explorer_config, scheduler=scheduler)


@pytest.fixture
def changes(controller):
    seen = []
    controller.subscribe(lambda state, changed: seen.append((state, changed)))
    return seen


class TestInitialState:
    """Defaults derived from the dataset and config."""

    def test_defaults(self, controller, explorer_config):
        state = controller.state
        assert state.current_year_index == 0
        assert state.scenario_a == "ssp126"
        assert state.scenario_b == "ssp245"
        assert state.point_size == explorer_config.default_point_size
        assert state.point_alpha == explorer_config.default_point_alpha
        assert state.split_position == explorer_config.panel_width / 2
        assert state.playing is False
        assert controller.current_year == 2015

    def test_single_scenario_fills_both_panels(self, explorer_config, scheduler):
        ctl = ViewStateController([2015], ["only"], config=explorer_config, scheduler=scheduler)
        assert ctl.state.scenario_a == ctl.state.scenario_b == "only"

    def test_empty_dataset(self, explorer_config, scheduler):
        ctl = ViewStateController([], [], config=explorer_config, scheduler=scheduler)
        assert ctl.current_year is None
        assert ctl.state.scenario_a == ""
        assert ctl.set_year_index(5).current_year_index == 0


class TestYearSelection:
    """Year slider transitions."""

    def test_set_year_index(self, controller, changes):
        controller.set_year_index(2)
        assert controller.current_year == 2017
        assert changes[-1][1] == ("current_year_index",)

    @pytest.mark.parametrize("requested, expected", [(-4, 0), (99, 2), (1, 1)])
    def test_clamped(self, controller, requested, expected):
        assert controller.set_year_index(requested).current_year_index == expected

    def test_idempotent_and_silent(self, controller, changes):
        controller.set_year_index(1)
        snapshot = controller.state
        controller.set_year_index(1)
        assert controller.state == snapshot
        assert len(changes) == 1

    def test_set_year_by_value(self, controller):
        assert controller.set_year(2016) is True
        assert controller.current_year == 2016

    def test_set_unknown_year_ignored(self, controller, changes):
        assert controller.set_year(1999) is False
        assert controller.current_year == 2015
        assert changes == []


class TestScenarioSelection:
    """Panel scenario transitions."""

    def test_set_scenario(self, controller, changes):
        controller.set_scenario("B", "ssp585")
        assert controller.state.scenario_b == "ssp585"
        assert changes[-1][1] == ("scenario_b",)

    def test_slot_is_case_insensitive(self, controller):
        controller.set_scenario("a", "ssp585")
        assert controller.state.scenario_a == "ssp585"

    def test_unknown_scenario_falls_back_to_first(self, controller, caplog):
        controller.set_scenario(PanelSlot.B, "ssp999")
        assert controller.state.scenario_b == "ssp126"
        assert "ssp999" in caplog.text

    @pytest.mark.parametrize("slot", ["C", "", 1, None])
    def test_invalid_slot_raises(self, controller, slot):
        with pytest.raises(ValidationError):
            controller.set_scenario(slot, "ssp126")

    def test_resolve_slot(self):
        assert resolve_slot(" b ") is PanelSlot.B
        assert resolve_slot(PanelSlot.A) is PanelSlot.A


class TestSplitAndStyling:
    """Split line and point styling."""

    @pytest.mark.parametrize("x, expected", [(-50, 0.0), (250, 250.0), (5000, 1000.0)])
    def test_split_clamped(self, controller, x, expected):
        assert controller.set_split(x).split_position == expected

    def test_side_of(self, controller):
        controller.set_split(300)
        assert controller.side_of(299.9) is PanelSlot.A
        assert controller.side_of(300) is PanelSlot.A
        assert controller.side_of(300.1) is PanelSlot.B
        assert controller.scenario_for_side(100) == "ssp126"
        assert controller.scenario_for_side(900) == "ssp245"

    def test_point_size_clamped(self, controller, explorer_config):
        assert controller.set_point_size(0).point_size == explorer_config.min_point_size
        assert controller.set_point_size(100).point_size == explorer_config.max_point_size
        assert controller.set_point_size(3).point_size == 3.0

    def test_point_alpha_clamped(self, controller):
        assert controller.set_point_alpha(1.5).point_alpha == 1.0
        assert controller.set_point_alpha(-1).point_alpha == 0.0

    def test_hover_radius_tracks_point_size(self, controller):
        controller.set_point_size(3)
        assert controller.hover_radius == 12.0

    def test_non_finite_input_ignored(self, controller, changes):
        controller.set_split(float("nan"))
        controller.set_point_size(float("inf"))
        assert changes == []


class TestPlayTimer:
    """Play/pause driven by a manual scheduler."""

    def test_play_schedules_first_advance_later(self, controller, scheduler, explorer_config):
        controller.play()
        assert controller.state.playing is True
        assert controller.current_year == 2015
        assert len(scheduler.pending) == 1
        assert scheduler.pending[0].delay == explorer_config.frame_delay_seconds

    def test_ticks_advance_and_wrap(self, controller, scheduler):
        controller.play()
        visited = []
        for _ in range(4):
            scheduler.fire()
            visited.append(controller.current_year)
        assert visited == [2016, 2017, 2015, 2016]
        assert len(scheduler.pending) == 1

    def test_toggle_twice_before_tick(self, controller, scheduler):
        controller.toggle_play()
        controller.toggle_play()
        assert controller.state.current_year_index == 0
        assert controller.state.playing is False
        assert scheduler.pending == []

    def test_pause_cancels_pending_tick(self, controller, scheduler):
        controller.play()
        scheduler.fire()
        controller.pause()
        assert scheduler.pending == []
        assert scheduler.fire() is False
        assert controller.current_year == 2016

    def test_play_when_playing_keeps_one_timer(self, controller, scheduler):
        controller.play()
        controller.play()
        assert len(scheduler.pending) == 1

    def test_subscriber_pausing_during_tick_stops_timer(self, controller, scheduler):
        def stop_at_2017(state, changed):
            if "current_year_index" in changed and state.current_year_index == 2:
                controller.pause()

        controller.subscribe(stop_at_2017)
        controller.play()
        scheduler.fire()
        scheduler.fire()
        assert controller.current_year == 2017
        assert controller.state.playing is False
        assert scheduler.pending == []

    def test_subscriber_restarting_on_play_keeps_one_timer(self, controller, scheduler):
        restarted = []

        def restart_once(state, changed):
            if "playing" in changed and state.playing and not restarted:
                restarted.append(True)
                controller.pause()
                controller.play()

        controller.subscribe(restart_once)
        controller.play()
        assert controller.state.playing is True
        assert len(scheduler.pending) == 1
        scheduler.fire()
        assert controller.state.current_year_index == 1
        assert len(scheduler.pending) == 1

    def test_subscriber_pausing_on_play_leaves_nothing_scheduled(self, controller, scheduler):
        controller.subscribe(
            lambda state, changed: controller.pause() if state.playing else None
        )
        controller.play()
        assert controller.state.playing is False
        assert scheduler.pending == []

    def test_scheduler_failure_leaves_state_paused(self, explorer_config):
        # AsyncioScheduler outside a running loop
        ctl = ViewStateController(YEARS, SCENARIOS, config=explorer_config)
        changes = []
        ctl.subscribe(lambda state, changed: changes.append(changed))
        with pytest.raises(RuntimeError):
            ctl.toggle_play()
        assert ctl.state.playing is False
        assert changes == []
        assert ctl.set_year_index(1).current_year_index == 1

    def test_manual_scrub_while_playing(self, controller, scheduler):
        controller.play()
        controller.set_year_index(2)
        scheduler.fire()
        assert controller.current_year == 2015

    @pytest.mark.asyncio
    async def test_asyncio_scheduler_drives_timer(self):
        config = ExplorerConfig(frame_delay_ms=10)
        ctl = ViewStateController(YEARS, SCENARIOS, config=config, scheduler=AsyncioScheduler())
        ticks = []
        ctl.subscribe(
            lambda state, changed: ticks.append(state.current_year_index)
            if "current_year_index" in changed else None
        )
        ctl.play()
        await asyncio.sleep(0.1)
        ctl.pause()
        assert ctl.state.playing is False
        assert ticks[:2] == [1, 2]
        count = len(ticks)
        await asyncio.sleep(0.05)
        assert len(ticks) == count


class TestSubscriptions:
    """Change notification."""

    def test_notified_once_per_transition(self, controller, changes):
        controller.set_split(100)
        controller.set_point_alpha(0.5)
        assert [c for _, c in changes] == [("split_position",), ("point_alpha",)]

    def test_subscriber_receives_new_snapshot(self, controller, changes):
        controller.set_year_index(1)
        state, _ = changes[-1]
        assert state is controller.state
        assert state.current_year_index == 1

    def test_unsubscribe(self, controller):
        seen = []
        unsubscribe = controller.subscribe(lambda s, c: seen.append(c))
        unsubscribe()
        unsubscribe()
        controller.set_year_index(1)
        assert seen == []

    def test_on_state_change_alias(self, controller):
        seen = []
        controller.on_state_change(lambda s, c: seen.append(c))
        controller.set_year_index(1)
        assert seen == [("current_year_index",)]

    def test_snapshots_are_immutable(self, controller):
        state = controller.state
        with pytest.raises(Exception):
            state.current_year_index = 2
        controller.set_year_index(2)
        assert state.current_year_index == 0

    def test_close_stops_timer_and_subscribers(self, controller, scheduler, changes):
        controller.play()
        controller.close()
        count = len(changes)
        controller.set_year_index(2)
        assert scheduler.pending == []
        assert len(changes) == count
