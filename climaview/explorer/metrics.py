# -*- coding: utf-8 -*-
"""
Prometheus Metrics - Climate Explorer

Eight Prometheus metrics for the explorer core with graceful fallback when
prometheus_client is not installed.

All metric names use the ``climaview_explorer_`` prefix.

Metrics:
    1. climaview_explorer_rows_processed_total      (Counter,   labels: status, reason)
    2. climaview_explorer_index_builds_total        (Counter)
    3. climaview_explorer_queries_total             (Counter,   labels: kind, result)
    4. climaview_explorer_state_transitions_total   (Counter,   labels: field)
    5. climaview_explorer_play_ticks_total          (Counter)
    6. climaview_explorer_dataset_records           (Gauge)
    7. climaview_explorer_scenarios                 (Gauge)
    8. climaview_explorer_load_duration_seconds     (Histogram, labels: stage)

Label Values Reference:
    status: valid, dropped.
    reason: ok, missing_field, not_numeric, not_finite, empty_scenario,
        out_of_range, non_integer_year.
    kind: nearest, rect, slice, yearly_means, brush_means.
    result: hit, miss, empty.
    field: current_year_index, scenario_a, scenario_b, point_size,
        point_alpha, split_position, playing.
    stage: fetch, validate, index, aggregate, full_load.

Example:
    >>> from climaview.explorer.metrics import record_rows, set_dataset_records
    >>> record_rows("valid", "ok", 1200)
    >>> set_dataset_records(1200)
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Graceful prometheus_client import
# ---------------------------------------------------------------------------

try:
    from prometheus_client import Counter, Gauge, Histogram
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    logger.info(
        "prometheus_client not installed; climate explorer metrics disabled"
    )

# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

if PROMETHEUS_AVAILABLE:
    # 1. Rows offered to the validator by outcome
    cve_rows_processed_total = Counter(
        "climaview_explorer_rows_processed_total",
        "Total dataset rows processed by the record validator",
        labelnames=["status", "reason"],
    )

    # 2. Scenario/year index builds
    cve_index_builds_total = Counter(
        "climaview_explorer_index_builds_total",
        "Total scenario/year index builds",
    )

    # 3. Read-side queries by kind and outcome
    cve_queries_total = Counter(
        "climaview_explorer_queries_total",
        "Total explorer queries served",
        labelnames=["kind", "result"],
    )

    # 4. View-state transitions by changed field
    cve_state_transitions_total = Counter(
        "climaview_explorer_state_transitions_total",
        "Total view-state field changes",
        labelnames=["field"],
    )

    # 5. Play-timer year advances
    cve_play_ticks_total = Counter(
        "climaview_explorer_play_ticks_total",
        "Total automatic year advances while playing",
    )

    # 6. Records in the loaded dataset
    cve_dataset_records = Gauge(
        "climaview_explorer_dataset_records",
        "Number of validated records in the loaded dataset",
    )

    # 7. Distinct scenarios in the loaded dataset
    cve_scenarios = Gauge(
        "climaview_explorer_scenarios",
        "Number of distinct scenarios in the loaded dataset",
    )

    # 8. Load pipeline stage durations
    cve_load_duration_seconds = Histogram(
        "climaview_explorer_load_duration_seconds",
        "Duration of dataset load pipeline stages in seconds",
        labelnames=["stage"],
        buckets=(0.01, 0.05, 0.1, 0.5, 1, 2, 5, 10, 30),
    )

else:
    cve_rows_processed_total = None         # type: ignore[assignment]
    cve_index_builds_total = None           # type: ignore[assignment]
    cve_queries_total = None                # type: ignore[assignment]
    cve_state_transitions_total = None      # type: ignore[assignment]
    cve_play_ticks_total = None             # type: ignore[assignment]
    cve_dataset_records = None              # type: ignore[assignment]
    cve_scenarios = None                    # type: ignore[assignment]
    cve_load_duration_seconds = None        # type: ignore[assignment]


# Runtime export switch, driven by ExplorerConfig.enable_metrics
_metrics_enabled = True


def set_metrics_enabled(enabled: bool) -> None:
    """Turn metric recording on or off for this process."""
    global _metrics_enabled
    _metrics_enabled = bool(enabled)


def _active() -> bool:
    return PROMETHEUS_AVAILABLE and _metrics_enabled


# ---------------------------------------------------------------------------
# Helper functions (safe to call even without prometheus_client)
# ---------------------------------------------------------------------------


def record_rows(status: str, reason: str, count: int = 1) -> None:
    """Record validator outcomes.

    Args:
        status: ``valid`` or ``dropped``.
        reason: ``ok`` for valid rows, otherwise the drop reason.
        count: Number of rows with this outcome.
    """
    if not _active() or count <= 0:
        return
    cve_rows_processed_total.labels(status=status, reason=reason).inc(count)


def record_index_build() -> None:
    """Record one scenario/year index build."""
    if not _active():
        return
    cve_index_builds_total.inc()


def record_query(kind: str, result: str) -> None:
    """Record a read-side query.

    Args:
        kind: nearest, rect, slice, yearly_means, brush_means.
        result: hit, miss or empty.
    """
    if not _active():
        return
    cve_queries_total.labels(kind=kind, result=result).inc()


def record_state_transition(field: str) -> None:
    """Record a change of one view-state field."""
    if not _active():
        return
    cve_state_transitions_total.labels(field=field).inc()


def record_play_tick() -> None:
    """Record one automatic year advance."""
    if not _active():
        return
    cve_play_ticks_total.inc()


def set_dataset_records(count: int) -> None:
    """Set the gauge for validated records (absolute, not an increment)."""
    if not _active():
        return
    cve_dataset_records.set(count)


def set_scenarios(count: int) -> None:
    """Set the gauge for distinct scenarios (absolute, not an increment)."""
    if not _active():
        return
    cve_scenarios.set(count)


def observe_load_duration(stage: str, seconds: float) -> None:
    """Record the duration of a load pipeline stage.

    Args:
        stage: fetch, validate, index, aggregate or full_load.
        seconds: Wall-clock time in seconds.
    """
    if not _active():
        return
    cve_load_duration_seconds.labels(stage=stage).observe(seconds)


__all__ = [
    "PROMETHEUS_AVAILABLE",
    # Metric objects
    "cve_rows_processed_total",
    "cve_index_builds_total",
    "cve_queries_total",
    "cve_state_transitions_total",
    "cve_play_ticks_total",
    "cve_dataset_records",
    "cve_scenarios",
    "cve_load_duration_seconds",
    # Helper functions
    "set_metrics_enabled",
    "record_rows",
    "record_index_build",
    "record_query",
    "record_state_transition",
    "record_play_tick",
    "set_dataset_records",
    "set_scenarios",
    "observe_load_duration",
]
