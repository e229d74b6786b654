# -*- coding: utf-8 -*-
"""
Color Scale Manager - Climate Explorer

Maps values to colors for the map panels and the legend through a
sequential scale: a value is normalised against the active color domain to
an intensity in ``[0, 1]``, and the intensity is handed to an interpolator
(``t -> color``).

Two domain policies are supported:

- ``global``: the Dataset-wide extent, so a color keeps its meaning while
  the user scrubs through years.
- ``per-frame``: the union extent of the two visible slices, trading
  cross-year comparability for contrast inside one frame. Falls back to
  the global extent when both slices are empty.

The interpolator is opaque. :func:`colormap_interpolator` adapts any
matplotlib colormap into one that returns hex strings.

Example:
    >>> scale = ColorScale(Extent(min=0.0, max=10.0))
    >>> scale.normalize(5.0, (0.0, 10.0))
    0.5
    >>> scale.color_for(5.0)
    0.5
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

from matplotlib import colormaps
from matplotlib.colors import to_hex

from climaview.exceptions import ConfigurationError
from climaview.explorer.index_builder import compute_extent
from climaview.explorer.models import (
    MIDPOINT_INTENSITY,
    DomainPolicy,
    Extent,
    LegendStop,
    Record,
)

logger = logging.getLogger(__name__)

Interpolator = Callable[[float], Any]
DomainLike = Union[Extent, Tuple[float, float], None]


def _identity(t: float) -> float:
    return t


def colormap_interpolator(name: str = "turbo") -> Interpolator:
    """Build an interpolator from a named matplotlib colormap.

    Raises:
        ConfigurationError: If matplotlib does not know ``name``.
    """
    try:
        cmap = colormaps.get_cmap(name)
    except (KeyError, ValueError) as exc:
        raise ConfigurationError(
            message=f"Unknown colormap {name!r}",
            component="color_scale",
            config_key="colormap",
        ) from exc

    def interpolate(t: float) -> str:
        return to_hex(cmap(max(0.0, min(1.0, t))))

    interpolate.__name__ = f"colormap_{name}"
    return interpolate


def _as_extent(domain: DomainLike) -> Optional[Extent]:
    if domain is None or isinstance(domain, Extent):
        return domain
    lo, hi = domain
    return Extent(min=lo, max=hi)


class ColorScale:
    """Sequential value-to-color scale with a selectable domain policy.

    Args:
        global_extent: Dataset-wide value extent (``None`` for an empty
            dataset).
        interpolator: ``t -> color`` for ``t`` in ``[0, 1]``; identity when
            omitted, so colors are the raw intensities.
        policy: ``global`` or ``per-frame``.

    Raises:
        ConfigurationError: If ``policy`` is unknown.
    """

    def __init__(
        self,
        global_extent: DomainLike,
        interpolator: Optional[Interpolator] = None,
        policy: Union[DomainPolicy, str] = DomainPolicy.GLOBAL,
    ) -> None:
        self._global = _as_extent(global_extent)
        self._interpolator: Interpolator = interpolator or _identity
        try:
            self._policy = DomainPolicy(policy)
        except ValueError:
            raise ConfigurationError(
                message=(
                    f"color domain policy must be one of "
                    f"{[p.value for p in DomainPolicy]}, got {policy!r}"
                ),
                component="ColorScale",
                config_key="color_domain_policy",
            ) from None

    @property
    def policy(self) -> DomainPolicy:
        return self._policy

    @property
    def global_extent(self) -> Optional[Extent]:
        return self._global

    @staticmethod
    def normalize(value: float, domain: DomainLike) -> float:
        """Position of ``value`` inside ``domain``, clamped to ``[0, 1]``.

        A zero-width or missing domain maps every value to the midpoint.
        """
        extent = _as_extent(domain)
        if extent is None or extent.span == 0:
            return MIDPOINT_INTENSITY
        t = (value - extent.min) / extent.span
        return max(0.0, min(1.0, t))

    def color_for(self, value: float, domain: DomainLike = None) -> Any:
        """Color of ``value``; ``domain`` defaults to the global extent."""
        extent = _as_extent(domain) if domain is not None else self._global
        return self._interpolator(self.normalize(value, extent))

    def domain_from_extents(
        self,
        extent_a: Optional[Extent],
        extent_b: Optional[Extent],
    ) -> Optional[Extent]:
        """Active domain given the extents of the two visible slices."""
        if self._policy is DomainPolicy.GLOBAL:
            return self._global
        if extent_a is None and extent_b is None:
            return self._global
        if extent_a is None:
            return extent_b
        return extent_a.union(extent_b)

    def domain_for(
        self,
        slice_a: Iterable[Record],
        slice_b: Iterable[Record],
    ) -> Optional[Extent]:
        """Active domain for the two visible record slices."""
        if self._policy is DomainPolicy.GLOBAL:
            return self._global
        return self.domain_from_extents(
            compute_extent(slice_a), compute_extent(slice_b)
        )

    def legend_stops(self, domain: DomainLike, count: int = 11) -> List[LegendStop]:
        """Evenly spaced gradient stops across ``domain``.

        Returns an empty list when there is no domain to describe.
        """
        if count < 2:
            raise ValueError(f"legend needs at least 2 stops, got {count}")
        extent = _as_extent(domain)
        if extent is None:
            return []
        stops: List[LegendStop] = []
        for i in range(count):
            offset = i / (count - 1)
            stops.append(
                LegendStop(
                    offset=offset,
                    value=extent.min + offset * extent.span,
                    color=self._interpolator(offset),
                )
            )
        return stops

    def __repr__(self) -> str:
        return (
            f"ColorScale(policy={self._policy.value}, "
            f"global_extent={self._global.as_tuple() if self._global else None})"
        )


__all__ = [
    "Interpolator",
    "ColorScale",
    "colormap_interpolator",
]
