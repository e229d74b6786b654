# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from climaview.explorer.config import ExplorerConfig, reset_config, set_config
from climaview.explorer.index_builder import build_index
from climaview.explorer.record_validator import validate_rows
from climaview.explorer.setup import ClimateExplorerService, reset_service


def _row(year, lat, lon, value, scenario) -> Dict[str, Any]:
    return {
        "year": year,
        "lat": lat,
        "lon": lon,
        "pr_mm_day": value,
        "scenario": scenario,
    }


# Seven valid rows across three scenarios and two years, plus four
# malformed rows (one per drop reason exercised here).
SAMPLE_ROWS: List[Dict[str, Any]] = [
    _row("2015", "10", "20", "1.0", "ssp126"),
    _row("2015", "10", "21", "3.0", "ssp126"),
    _row("2016", "11", "20", "2.0", "ssp126"),
    _row("2015", "-5", "200", "4.0", "ssp585"),
    _row("2016", "-5", "30", "6.0", "ssp585"),
    _row("2016", "0", "0", "0.0", "ssp585"),
    _row("2016", "20", "40", "5.0", "ssp245"),
    _row("abc", "10", "20", "1.0", "ssp126"),
    _row("2015", "", "20", "1.0", "ssp126"),
    _row("2015", "10", "20", "-1", "ssp126"),
    _row("2015", "10", "20", "1.0", "   "),
]


class FakeHandle:
    """Timer handle recorded by :class:`FakeScheduler`."""

    def __init__(self, delay: float, callback: Callable[[], Any]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual scheduler: nothing runs until the test calls :meth:`fire`."""

    def __init__(self) -> None:
        self.handles: List[FakeHandle] = []

    def call_later(self, delay: float, callback: Callable[[], Any]) -> FakeHandle:
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> List[FakeHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire(self) -> bool:
        """Run the oldest pending callback; False when nothing is pending."""
        pending = self.pending
        if not pending:
            return False
        handle = pending[0]
        handle.fired = True
        handle.callback()
        return True


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Isolate tests from each other's config and service singletons."""
    reset_config()
    reset_service()
    yield
    reset_config()
    reset_service()


@pytest.fixture
def explorer_config() -> ExplorerConfig:
    config = ExplorerConfig()
    set_config(config)
    return config


@pytest.fixture
def sample_rows() -> List[Dict[str, Any]]:
    return [dict(r) for r in SAMPLE_ROWS]


@pytest.fixture
def dataset(sample_rows):
    return validate_rows(sample_rows)


@pytest.fixture
def index(dataset):
    return build_index(dataset)


@pytest.fixture
def identity_projection() -> Callable[[float, float], Optional[Tuple[float, float]]]:
    """Screen x = lon, screen y = lat."""
    return lambda lon, lat: (lon, lat)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def service(explorer_config, scheduler) -> ClimateExplorerService:
    return ClimateExplorerService(
        config=explorer_config,
        interpolator=lambda t: t,
        scheduler=scheduler,
    )


@pytest.fixture
def loaded_service(service, sample_rows) -> ClimateExplorerService:
    service.load_rows(sample_rows)
    return service
