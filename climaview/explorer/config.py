# -*- coding: utf-8 -*-
"""
Climate Explorer Configuration

Centralized configuration for the climate-data explorer core covering:
- Logging level
- Source column mapping for the tabular dataset
- Longitude normalisation mode (raw, wrap180, wrap360)
- Color domain policy (global or per-frame) and legend sampling
- Panel geometry and point styling defaults
- Play-timer frame delay and hover radius factor
- Provenance tracking (genesis hash, SHA-256 chain anchoring)
- Prometheus metrics export toggle

All settings can be overridden via environment variables with the
``CLIMAVIEW_EXPLORER_`` prefix (e.g. ``CLIMAVIEW_EXPLORER_FRAME_DELAY_MS``,
``CLIMAVIEW_EXPLORER_COLOR_DOMAIN_POLICY``).

Environment Variable Reference (CLIMAVIEW_EXPLORER_ prefix):
    CLIMAVIEW_EXPLORER_LOG_LEVEL              - Logging level (DEBUG/INFO/WARNING/ERROR)
    CLIMAVIEW_EXPLORER_COLUMN_YEAR            - Source column holding the year
    CLIMAVIEW_EXPLORER_COLUMN_LAT             - Source column holding the latitude
    CLIMAVIEW_EXPLORER_COLUMN_LON             - Source column holding the longitude
    CLIMAVIEW_EXPLORER_COLUMN_VALUE           - Source column holding the value
    CLIMAVIEW_EXPLORER_COLUMN_SCENARIO        - Source column holding the scenario id
    CLIMAVIEW_EXPLORER_LON_MODE               - raw, wrap180 or wrap360
    CLIMAVIEW_EXPLORER_COLOR_DOMAIN_POLICY    - global or per-frame
    CLIMAVIEW_EXPLORER_COLORMAP               - matplotlib colormap name
    CLIMAVIEW_EXPLORER_LEGEND_STOPS           - Number of legend gradient stops
    CLIMAVIEW_EXPLORER_FRAME_DELAY_MS         - Play-timer interval in milliseconds
    CLIMAVIEW_EXPLORER_PANEL_WIDTH            - Map panel width in screen units
    CLIMAVIEW_EXPLORER_PANEL_HEIGHT           - Map panel height in screen units
    CLIMAVIEW_EXPLORER_DEFAULT_POINT_SIZE     - Initial point radius
    CLIMAVIEW_EXPLORER_MIN_POINT_SIZE         - Smallest allowed point radius
    CLIMAVIEW_EXPLORER_MAX_POINT_SIZE         - Largest allowed point radius
    CLIMAVIEW_EXPLORER_DEFAULT_POINT_ALPHA    - Initial point opacity (0-1)
    CLIMAVIEW_EXPLORER_HOVER_RADIUS_FACTOR    - Hover radius = point size * factor
    CLIMAVIEW_EXPLORER_ENABLE_PROVENANCE      - Enable SHA-256 provenance chain tracking
    CLIMAVIEW_EXPLORER_GENESIS_HASH           - Genesis anchor string for provenance chain
    CLIMAVIEW_EXPLORER_ENABLE_METRICS         - Enable Prometheus metrics export

Example:
    >>> from climaview.explorer.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.color_domain_policy, cfg.frame_delay_ms)
    global 900

    >>> # Override for testing
    >>> from climaview.explorer.config import ExplorerConfig, set_config, reset_config
    >>> set_config(ExplorerConfig(color_domain_policy="per-frame"))
    >>> reset_config()  # teardown
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "CLIMAVIEW_EXPLORER_"

# ---------------------------------------------------------------------------
# Valid enumerated values
# ---------------------------------------------------------------------------

_VALID_LOG_LEVELS = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
)

VALID_LON_MODES = frozenset({"raw", "wrap180", "wrap360"})

VALID_DOMAIN_POLICIES = frozenset({"global", "per-frame"})


# ---------------------------------------------------------------------------
# ExplorerConfig
# ---------------------------------------------------------------------------


@dataclass
class ExplorerConfig:
    """Complete configuration for the climate-data explorer core.

    Attributes:
        log_level: Logging verbosity applied to the ``climaview`` logger.
        column_year: Source column holding the integer year.
        column_lat: Source column holding the latitude in degrees.
        column_lon: Source column holding the longitude in degrees.
        column_value: Source column holding the observed value
            (precipitation in mm/day for the reference dataset).
        column_scenario: Source column holding the scenario identifier.
        lon_mode: Longitude normalisation applied by the validator.
            ``raw`` keeps source values, ``wrap180`` maps [180, 360) onto
            [-180, 0), ``wrap360`` maps [-180, 0) onto [180, 360).
        color_domain_policy: ``global`` keeps the Dataset-wide extent as the
            color domain; ``per-frame`` recomputes it from the two visible
            slices on every year/scenario change.
        colormap: matplotlib colormap used by the default interpolator.
        legend_stops: Number of evenly spaced gradient stops in the legend.
        frame_delay_ms: Interval between year advances while playing.
        panel_width: Width of the map panels; bounds the split position.
        panel_height: Height of the map panels.
        default_point_size: Initial point radius.
        min_point_size: Smallest point radius accepted by the controller.
        max_point_size: Largest point radius accepted by the controller.
        default_point_alpha: Initial point opacity in [0, 1].
        hover_radius_factor: Multiplier applied to the point size to obtain
            the tooltip search radius.
        enable_provenance: Record SHA-256 provenance entries for dataset
            loads, index builds and aggregate computations.
        genesis_hash: Anchor string used as the root of the provenance chain.
        enable_metrics: When True, Prometheus metrics are exported under
            the ``climaview_explorer_`` prefix.
    """

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    # -- Column mapping ------------------------------------------------------
    column_year: str = "year"
    column_lat: str = "lat"
    column_lon: str = "lon"
    column_value: str = "pr_mm_day"
    column_scenario: str = "scenario"

    # -- Normalisation -------------------------------------------------------
    lon_mode: str = "wrap180"

    # -- Color scale ---------------------------------------------------------
    color_domain_policy: str = "global"
    colormap: str = "turbo"
    legend_stops: int = 11

    # -- Playback ------------------------------------------------------------
    frame_delay_ms: int = 900

    # -- Panel geometry and point styling ------------------------------------
    panel_width: float = 1000.0
    panel_height: float = 560.0
    default_point_size: float = 2.0
    min_point_size: float = 0.5
    max_point_size: float = 12.0
    default_point_alpha: float = 0.85
    hover_radius_factor: float = 4.0

    # -- Provenance tracking -------------------------------------------------
    enable_provenance: bool = True
    genesis_hash: str = "climaview-explorer-genesis"

    # -- Metrics export ------------------------------------------------------
    enable_metrics: bool = True

    # ------------------------------------------------------------------
    # Post-init validation
    # ------------------------------------------------------------------

    def __post_init__(self) -> None:
        """Validate configuration constraints after initialisation.

        Normalises enumerated values (log level to uppercase, lon mode and
        domain policy to lowercase) and checks every numeric range.

        Raises:
            ValueError: If any value is invalid. The message lists every
                detected error, not just the first one.
        """
        errors: list[str] = []

        # -- Logging ---------------------------------------------------------
        normalised_log = self.log_level.upper()
        if normalised_log not in _VALID_LOG_LEVELS:
            errors.append(
                f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}, "
                f"got '{self.log_level}'"
            )
        else:
            self.log_level = normalised_log

        # -- Column mapping --------------------------------------------------
        columns = {
            "column_year": self.column_year,
            "column_lat": self.column_lat,
            "column_lon": self.column_lon,
            "column_value": self.column_value,
            "column_scenario": self.column_scenario,
        }
        for cname, cval in columns.items():
            if not cval or not cval.strip():
                errors.append(f"{cname} must not be empty")
        if len(set(columns.values())) != len(columns):
            errors.append(
                f"column names must be distinct, got {sorted(columns.values())}"
            )

        # -- Normalisation ---------------------------------------------------
        normalised_lon = self.lon_mode.lower()
        if normalised_lon not in VALID_LON_MODES:
            errors.append(
                f"lon_mode must be one of {sorted(VALID_LON_MODES)}, "
                f"got '{self.lon_mode}'"
            )
        else:
            self.lon_mode = normalised_lon

        # -- Color scale -----------------------------------------------------
        normalised_policy = self.color_domain_policy.lower()
        if normalised_policy not in VALID_DOMAIN_POLICIES:
            errors.append(
                f"color_domain_policy must be one of "
                f"{sorted(VALID_DOMAIN_POLICIES)}, "
                f"got '{self.color_domain_policy}'"
            )
        else:
            self.color_domain_policy = normalised_policy

        if not self.colormap:
            errors.append("colormap must not be empty")
        if self.legend_stops < 2:
            errors.append(
                f"legend_stops must be >= 2, got {self.legend_stops}"
            )

        # -- Playback --------------------------------------------------------
        if self.frame_delay_ms <= 0:
            errors.append(
                f"frame_delay_ms must be > 0, got {self.frame_delay_ms}"
            )

        # -- Panel geometry --------------------------------------------------
        if self.panel_width <= 0:
            errors.append(
                f"panel_width must be > 0, got {self.panel_width}"
            )
        if self.panel_height <= 0:
            errors.append(
                f"panel_height must be > 0, got {self.panel_height}"
            )

        # -- Point styling ---------------------------------------------------
        if self.min_point_size <= 0:
            errors.append(
                f"min_point_size must be > 0, got {self.min_point_size}"
            )
        if self.max_point_size < self.min_point_size:
            errors.append(
                f"max_point_size ({self.max_point_size}) must be >= "
                f"min_point_size ({self.min_point_size})"
            )
        if not (
            self.min_point_size
            <= self.default_point_size
            <= self.max_point_size
        ):
            errors.append(
                f"default_point_size must be in "
                f"[{self.min_point_size}, {self.max_point_size}], "
                f"got {self.default_point_size}"
            )
        if not (0.0 <= self.default_point_alpha <= 1.0):
            errors.append(
                f"default_point_alpha must be in [0.0, 1.0], "
                f"got {self.default_point_alpha}"
            )
        if self.hover_radius_factor <= 0:
            errors.append(
                f"hover_radius_factor must be > 0, "
                f"got {self.hover_radius_factor}"
            )

        # -- Provenance ------------------------------------------------------
        if not self.genesis_hash:
            errors.append("genesis_hash must not be empty")

        if errors:
            raise ValueError(
                "ExplorerConfig validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )

        logger.debug(
            "ExplorerConfig validated successfully: "
            "columns=(%s, %s, %s, %s, %s), lon_mode=%s, "
            "policy=%s, colormap=%s, frame_delay_ms=%d, "
            "panel=%.0fx%.0f, provenance=%s, metrics=%s",
            self.column_year,
            self.column_lat,
            self.column_lon,
            self.column_value,
            self.column_scenario,
            self.lon_mode,
            self.color_domain_policy,
            self.colormap,
            self.frame_delay_ms,
            self.panel_width,
            self.panel_height,
            self.enable_provenance,
            self.enable_metrics,
        )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def frame_delay_seconds(self) -> float:
        """Play-timer interval in seconds."""
        return self.frame_delay_ms / 1000.0

    def column_map(self) -> Dict[str, str]:
        """Return the record-field -> source-column mapping."""
        return {
            "year": self.column_year,
            "lat": self.column_lat,
            "lon": self.column_lon,
            "value": self.column_value,
            "scenario": self.column_scenario,
        }

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> ExplorerConfig:
        """Build an ExplorerConfig from environment variables.

        Every field can be overridden via ``CLIMAVIEW_EXPLORER_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive). Malformed
        numeric values fall back to the class-level default and emit a
        WARNING log.

        Returns:
            Populated ExplorerConfig instance, validated via
            ``__post_init__``.

        Example:
            >>> import os
            >>> os.environ["CLIMAVIEW_EXPLORER_FRAME_DELAY_MS"] = "500"
            >>> ExplorerConfig.from_env().frame_delay_ms
            500
        """
        prefix = _ENV_PREFIX

        def _env(name: str) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}")

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.strip().lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val.strip())
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%r, using default %d",
                    prefix,
                    name,
                    val,
                    default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val.strip())
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%r, using default %f",
                    prefix,
                    name,
                    val,
                    default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val.strip()

        config = cls(
            log_level=_str("LOG_LEVEL", cls.log_level),
            # Column mapping
            column_year=_str("COLUMN_YEAR", cls.column_year),
            column_lat=_str("COLUMN_LAT", cls.column_lat),
            column_lon=_str("COLUMN_LON", cls.column_lon),
            column_value=_str("COLUMN_VALUE", cls.column_value),
            column_scenario=_str("COLUMN_SCENARIO", cls.column_scenario),
            # Normalisation
            lon_mode=_str("LON_MODE", cls.lon_mode),
            # Color scale
            color_domain_policy=_str(
                "COLOR_DOMAIN_POLICY",
                cls.color_domain_policy,
            ),
            colormap=_str("COLORMAP", cls.colormap),
            legend_stops=_int("LEGEND_STOPS", cls.legend_stops),
            # Playback
            frame_delay_ms=_int("FRAME_DELAY_MS", cls.frame_delay_ms),
            # Panel geometry and point styling
            panel_width=_float("PANEL_WIDTH", cls.panel_width),
            panel_height=_float("PANEL_HEIGHT", cls.panel_height),
            default_point_size=_float(
                "DEFAULT_POINT_SIZE",
                cls.default_point_size,
            ),
            min_point_size=_float("MIN_POINT_SIZE", cls.min_point_size),
            max_point_size=_float("MAX_POINT_SIZE", cls.max_point_size),
            default_point_alpha=_float(
                "DEFAULT_POINT_ALPHA",
                cls.default_point_alpha,
            ),
            hover_radius_factor=_float(
                "HOVER_RADIUS_FACTOR",
                cls.hover_radius_factor,
            ),
            # Provenance tracking
            enable_provenance=_bool(
                "ENABLE_PROVENANCE",
                cls.enable_provenance,
            ),
            genesis_hash=_str("GENESIS_HASH", cls.genesis_hash),
            # Metrics export
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
        )

        logger.info(
            "ExplorerConfig loaded: value_column=%s, lon_mode=%s, "
            "policy=%s, colormap=%s, frame_delay_ms=%d, "
            "panel=%.0fx%.0f, provenance=%s, metrics=%s",
            config.column_value,
            config.lon_mode,
            config.color_domain_policy,
            config.colormap,
            config.frame_delay_ms,
            config.panel_width,
            config.panel_height,
            config.enable_provenance,
            config.enable_metrics,
        )
        return config

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the configuration to a plain Python dictionary.

        Returns:
            Dictionary of JSON-serialisable primitives.
        """
        return {
            "log_level": self.log_level,
            "column_year": self.column_year,
            "column_lat": self.column_lat,
            "column_lon": self.column_lon,
            "column_value": self.column_value,
            "column_scenario": self.column_scenario,
            "lon_mode": self.lon_mode,
            "color_domain_policy": self.color_domain_policy,
            "colormap": self.colormap,
            "legend_stops": self.legend_stops,
            "frame_delay_ms": self.frame_delay_ms,
            "panel_width": self.panel_width,
            "panel_height": self.panel_height,
            "default_point_size": self.default_point_size,
            "min_point_size": self.min_point_size,
            "max_point_size": self.max_point_size,
            "default_point_alpha": self.default_point_alpha,
            "hover_radius_factor": self.hover_radius_factor,
            "enable_provenance": self.enable_provenance,
            "genesis_hash": self.genesis_hash,
            "enable_metrics": self.enable_metrics,
        }


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[ExplorerConfig] = None
_config_lock = threading.Lock()


def get_config() -> ExplorerConfig:
    """Return the singleton ExplorerConfig, creating from env if needed.

    Uses double-checked locking; the instance is created on first call by
    reading all ``CLIMAVIEW_EXPLORER_*`` environment variables.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = ExplorerConfig.from_env()
    return _config_instance


def set_config(config: ExplorerConfig) -> None:
    """Replace the singleton ExplorerConfig (testing / dependency injection).

    Args:
        config: New :class:`ExplorerConfig` to install as the singleton.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info(
        "ExplorerConfig replaced programmatically: policy=%s, "
        "lon_mode=%s, frame_delay_ms=%d",
        config.color_domain_policy,
        config.lon_mode,
        config.frame_delay_ms,
    )


def reset_config() -> None:
    """Reset the singleton so the next :func:`get_config` re-reads the env."""
    global _config_instance
    with _config_lock:
        _config_instance = None
    logger.debug("ExplorerConfig singleton reset")


__all__ = [
    "ExplorerConfig",
    "VALID_LON_MODES",
    "VALID_DOMAIN_POLICIES",
    "get_config",
    "set_config",
    "reset_config",
]
