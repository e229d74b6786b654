# -*- coding: utf-8 -*-
"""
Spatial Query Engine - Climate Explorer

Screen-space lookups over a candidate record set, used for map tooltips
(nearest record under the pointer) and for the rectangular brush.

Projection is external: every query takes ``project(lon, lat)`` returning
screen coordinates ``(x, y)`` or ``None`` when the point is not visible in
the current projection. Candidates that do not project to finite
coordinates are skipped.

Both queries are linear scans over the candidates; callers narrow the
candidates to one (scenario, year) bucket first, which keeps a scan in
the few-thousand-points range of a single map frame.
"""

from __future__ import annotations

import math
from typing import Callable, Iterable, List, Optional, Tuple

from climaview.explorer.models import Record

Projection = Callable[[float, float], Optional[Tuple[float, float]]]


def _project(project: Projection, record: Record) -> Optional[Tuple[float, float]]:
    xy = project(record.lon, record.lat)
    if xy is None:
        return None
    x, y = xy
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return x, y


def nearest_with_position(
    candidates: Iterable[Record],
    px: float,
    py: float,
    max_radius: float,
    project: Projection,
) -> Optional[Tuple[Record, float, float, float]]:
    """Closest candidate to ``(px, py)`` within ``max_radius``.

    Returns:
        ``(record, x, y, squared_distance)`` or ``None`` when no candidate
        projects within the radius. Among equidistant candidates the first
        one in iteration order wins.
    """
    if max_radius < 0:
        return None
    limit = max_radius * max_radius
    best: Optional[Tuple[Record, float, float, float]] = None
    for rec in candidates:
        xy = _project(project, rec)
        if xy is None:
            continue
        dx = xy[0] - px
        dy = xy[1] - py
        d2 = dx * dx + dy * dy
        if d2 > limit:
            continue
        if best is None or d2 < best[3]:
            best = (rec, xy[0], xy[1], d2)
    return best


def nearest(
    candidates: Iterable[Record],
    px: float,
    py: float,
    max_radius: float,
    project: Projection,
) -> Optional[Record]:
    """Closest candidate within ``max_radius``, or ``None``."""
    hit = nearest_with_position(candidates, px, py, max_radius, project)
    return hit[0] if hit is not None else None


def within_rect(
    candidates: Iterable[Record],
    x0: float,
    y0: float,
    x1: float,
    y1: float,
    project: Projection,
) -> List[Record]:
    """Candidates projecting inside ``[x0, x1] x [y0, y1]`` (inclusive).

    A degenerate or inverted rectangle (``x0 >= x1`` or ``y0 >= y1``)
    selects nothing.
    """
    if x0 >= x1 or y0 >= y1:
        return []
    selected: List[Record] = []
    for rec in candidates:
        xy = _project(project, rec)
        if xy is None:
            continue
        x, y = xy
        if x0 <= x <= x1 and y0 <= y <= y1:
            selected.append(rec)
    return selected


__all__ = [
    "Projection",
    "nearest",
    "nearest_with_position",
    "within_rect",
]
