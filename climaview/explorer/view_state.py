# -*- coding: utf-8 -*-
"""
View-State Controller - Climate Explorer

Owns the interactive state shared by the coupled views (map panels, legend,
time-series chart, brush chart): the selected year, the scenario shown in
each panel, the split position, point styling and the play timer.

Every transition replaces the immutable :class:`ViewState` snapshot and
notifies subscribers once with the names of the fields that changed.
Transitions that change nothing are silent.

The controller is driven from a single event loop. The play timer is the
only scheduled activity; it goes through a small scheduler protocol so the
timer can be driven by asyncio in production and by hand in tests.

Example:
    >>> ctl = ViewStateController([2015, 2016], ["ssp126", "ssp585"])
    >>> unsubscribe = ctl.subscribe(lambda state, changed: print(changed))
    >>> _ = ctl.set_year_index(1)
    ('current_year_index',)
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple, Union

from climaview.exceptions import ValidationError
from climaview.explorer.config import ExplorerConfig, get_config
from climaview.explorer.metrics import record_play_tick, record_state_transition
from climaview.explorer.models import PanelSlot, ViewState

logger = logging.getLogger(__name__)

StateCallback = Callable[[ViewState, Tuple[str, ...]], Any]


# ---------------------------------------------------------------------------
# Scheduler protocol
# ---------------------------------------------------------------------------


class TimerHandle(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    """Anything that can run ``callback`` once after ``delay`` seconds."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop.

    Raises ``RuntimeError`` from :meth:`call_later` when no loop is running;
    outside a loop, pass the controller a scheduler of your own.
    """

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def resolve_slot(slot: Union[PanelSlot, str]) -> PanelSlot:
    """Parse a panel slot name (case insensitive).

    Raises:
        ValidationError: If ``slot`` is not ``A`` or ``B``.
    """
    if isinstance(slot, PanelSlot):
        return slot
    if isinstance(slot, str) and slot.strip().upper() in ("A", "B"):
        return PanelSlot(slot.strip().upper())
    raise ValidationError(
        message=f"Unknown panel slot {slot!r}",
        component="ViewStateController",
        invalid_fields={"slot": "must be 'A' or 'B'"},
    )


class ViewStateController:
    """Single owner of the explorer's :class:`ViewState`.

    Args:
        years: Sorted distinct years of the dataset.
        scenarios: Sorted distinct scenario identifiers of the dataset.
        config: Explorer configuration; defaults to :func:`get_config`.
        scheduler: Play-timer scheduler; defaults to :class:`AsyncioScheduler`.
    """

    def __init__(
        self,
        years: Sequence[int],
        scenarios: Sequence[str],
        config: Optional[ExplorerConfig] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._config = config or get_config()
        self._years: Tuple[int, ...] = tuple(years)
        self._scenarios: Tuple[str, ...] = tuple(scenarios)
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._timer: Optional[TimerHandle] = None
        self._subscribers: List[StateCallback] = []

        first = self._scenarios[0] if self._scenarios else ""
        second = self._scenarios[1] if len(self._scenarios) > 1 else first
        self._state = ViewState(
            current_year_index=0,
            scenario_a=first,
            scenario_b=second,
            point_size=self._config.default_point_size,
            point_alpha=self._config.default_point_alpha,
            split_position=self._config.panel_width / 2.0,
            playing=False,
        )
        logger.debug(
            "ViewStateController created: %d years, scenarios A=%s B=%s",
            len(self._years),
            first,
            second,
        )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def years(self) -> Tuple[int, ...]:
        return self._years

    @property
    def scenarios(self) -> Tuple[str, ...]:
        return self._scenarios

    @property
    def current_year(self) -> Optional[int]:
        if not self._years:
            return None
        return self._years[self._state.current_year_index]

    @property
    def hover_radius(self) -> float:
        """Tooltip search radius in screen units."""
        return self._state.point_size * self._config.hover_radius_factor

    @property
    def is_playing(self) -> bool:
        return self._state.playing

    def side_of(self, x: float) -> PanelSlot:
        """Panel under screen x; the split line itself belongs to A."""
        return PanelSlot.A if x <= self._state.split_position else PanelSlot.B

    def scenario_for_side(self, x: float) -> str:
        return self._state.scenario_for(self.side_of(x))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def set_year_index(self, index: int) -> ViewState:
        """Select a year by position, clamped to the known years."""
        upper = max(len(self._years) - 1, 0)
        self._apply(current_year_index=int(_clamp(int(index), 0, upper)))
        return self._state

    def set_year(self, year: int) -> bool:
        """Select a year by value. Unknown years are ignored."""
        try:
            index = self._years.index(year)
        except ValueError:
            logger.debug("set_year ignored unknown year %r", year)
            return False
        self.set_year_index(index)
        return True

    def set_scenario(self, slot: Union[PanelSlot, str], scenario_id: str) -> ViewState:
        """Select the scenario for one panel.

        Unknown scenario ids fall back to the first known scenario.

        Raises:
            ValidationError: If ``slot`` is not ``A`` or ``B``.
        """
        panel = resolve_slot(slot)
        if scenario_id in self._scenarios:
            chosen = scenario_id
        else:
            chosen = self._scenarios[0] if self._scenarios else ""
            logger.warning(
                "Unknown scenario %r for panel %s, falling back to %r",
                scenario_id,
                panel.value,
                chosen,
            )
        field = "scenario_a" if panel is PanelSlot.A else "scenario_b"
        self._apply(**{field: chosen})
        return self._state

    def set_split(self, x: float) -> ViewState:
        """Move the split line, clamped to the panel width."""
        if not math.isfinite(x):
            return self._state
        self._apply(split_position=_clamp(float(x), 0.0, self._config.panel_width))
        return self._state

    def set_point_size(self, size: float) -> ViewState:
        if not math.isfinite(size):
            return self._state
        self._apply(
            point_size=_clamp(
                float(size),
                self._config.min_point_size,
                self._config.max_point_size,
            )
        )
        return self._state

    def set_point_alpha(self, alpha: float) -> ViewState:
        if not math.isfinite(alpha):
            return self._state
        self._apply(point_alpha=_clamp(float(alpha), 0.0, 1.0))
        return self._state

    # ------------------------------------------------------------------
    # Play timer
    # ------------------------------------------------------------------

    def play(self) -> None:
        """Start advancing one year per frame delay. No-op when playing."""
        if self._state.playing:
            return
        # the timer exists before subscribers hear playing=True
        self._schedule()
        self._apply(playing=True)

    def pause(self) -> None:
        """Stop playing and cancel the pending advance."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._apply(playing=False)

    def toggle_play(self) -> bool:
        """Flip between playing and paused; returns the new playing flag."""
        if self._state.playing:
            self.pause()
        else:
            self.play()
        return self._state.playing

    def _schedule(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._timer = self._scheduler.call_later(
            self._config.frame_delay_seconds, self._tick
        )

    def _tick(self) -> None:
        self._timer = None
        if not self._state.playing:
            return
        if self._years:
            nxt = (self._state.current_year_index + 1) % len(self._years)
            self._apply(current_year_index=nxt)
        record_play_tick()
        # a subscriber may have paused during notification
        if self._state.playing and self._timer is None:
            self._schedule()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Register ``callback(state, changed_fields)``.

        Returns:
            A callable that removes the subscription; calling it twice is
            harmless.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    on_state_change = subscribe

    def close(self) -> None:
        """Stop the timer and drop every subscriber."""
        self.pause()
        self._subscribers.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply(self, **updates: Any) -> Tuple[str, ...]:
        current = self._state
        changed = tuple(
            name for name, value in updates.items()
            if getattr(current, name) != value
        )
        if not changed:
            return changed

        self._state = current.model_copy(
            update={name: updates[name] for name in changed}
        )
        for name in changed:
            record_state_transition(name)
        logger.debug(
            "View state changed: %s",
            ", ".join(f"{n}={getattr(self._state, n)!r}" for n in changed),
        )

        snapshot = self._state
        for callback in list(self._subscribers):
            callback(snapshot, changed)
        return changed

    def __repr__(self) -> str:
        return (
            f"ViewStateController(year={self.current_year}, "
            f"A={self._state.scenario_a!r}, B={self._state.scenario_b!r}, "
            f"playing={self._state.playing})"
        )


__all__ = [
    "Scheduler",
    "TimerHandle",
    "AsyncioScheduler",
    "StateCallback",
    "ViewStateController",
    "resolve_slot",
]
