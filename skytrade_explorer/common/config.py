"""Configuration helpers for the SkyTrade explorer."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError
from .models import BOTH, DRONE, TABS, GeoBounds

USA_BOUNDS = GeoBounds(north=49.384358, south=24.396308, east=-66.93457, west=-125.0)


@dataclass(frozen=True)
class ApiConfig:
    """Where the point endpoints live and how hard to hit them."""

    base_url_env: str = "SKYTRADE_API_URL"
    max_points_per_request: int = 500
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class ViewportConfig:
    """Initial view plus the fetch-planning knobs."""

    initial_bounds: GeoBounds = USA_BOUNDS
    initial_zoom: float = 4.0
    tab: str = BOTH
    debounce_seconds: float = 0.3
    full_detail_zoom: float = 10.0
    overlap_threshold: float = 0.85
    overlap_history: int = 10


@dataclass(frozen=True)
class HexGridConfig:
    """Binning limits."""

    max_features: int = 2000
    sampling_threshold: int = 5000
    cache_size: int = 10
    visibility_threshold: int = 10000


@dataclass(frozen=True)
class PerformanceConfig:
    """Frame sampler cadence and performance-mode hysteresis."""

    sample_interval_seconds: float = 1.0
    enter_fps: float = 20.0
    exit_fps: float = 40.0


@dataclass(frozen=True)
class OutputConfig:
    """Where exported GeoJSON collections land."""

    base_path: str = "./data/output"


@dataclass(frozen=True)
class DashboardConfig:
    """Dashboard defaults."""

    default_tab: str = DRONE


@dataclass(frozen=True)
class AppConfig:
    """Aggregated configuration model."""

    api: ApiConfig = field(default_factory=ApiConfig)
    viewport: ViewportConfig = field(default_factory=ViewportConfig)
    hexgrid: HexGridConfig = field(default_factory=HexGridConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)


def load_config(path: str | Path) -> AppConfig:
    """Parse a YAML config file into an AppConfig dataclass."""

    raw = _load_yaml(path)
    api_cfg = raw.get("api", {})
    viewport_cfg = raw.get("viewport", {})
    hexgrid_cfg = raw.get("hexgrid", {})
    performance_cfg = raw.get("performance", {})
    output_cfg = raw.get("output", {})
    dashboard_cfg = raw.get("dashboard", {})

    api = ApiConfig(
        base_url_env=str(api_cfg.get("base_url_env", "SKYTRADE_API_URL")),
        max_points_per_request=int(api_cfg.get("max_points_per_request", 500)),
        timeout_seconds=float(api_cfg.get("timeout_seconds", 10.0)),
    )
    viewport = ViewportConfig(
        initial_bounds=_parse_bounds(viewport_cfg.get("initial_bounds")),
        initial_zoom=float(viewport_cfg.get("initial_zoom", 4.0)),
        tab=_parse_tab(viewport_cfg.get("tab", BOTH)),
        debounce_seconds=float(viewport_cfg.get("debounce_seconds", 0.3)),
        full_detail_zoom=float(viewport_cfg.get("full_detail_zoom", 10.0)),
        overlap_threshold=float(viewport_cfg.get("overlap_threshold", 0.85)),
        overlap_history=int(viewport_cfg.get("overlap_history", 10)),
    )
    hexgrid = HexGridConfig(
        max_features=int(hexgrid_cfg.get("max_features", 2000)),
        sampling_threshold=int(hexgrid_cfg.get("sampling_threshold", 5000)),
        cache_size=int(hexgrid_cfg.get("cache_size", 10)),
        visibility_threshold=int(hexgrid_cfg.get("visibility_threshold", 10000)),
    )
    performance = PerformanceConfig(
        sample_interval_seconds=float(performance_cfg.get("sample_interval_seconds", 1.0)),
        enter_fps=float(performance_cfg.get("enter_fps", 20.0)),
        exit_fps=float(performance_cfg.get("exit_fps", 40.0)),
    )
    if performance.enter_fps >= performance.exit_fps:
        raise ValueError("performance.enter_fps must be lower than performance.exit_fps.")
    output = OutputConfig(base_path=str(output_cfg.get("base_path", "./data/output")))
    dashboard = DashboardConfig(default_tab=_parse_tab(dashboard_cfg.get("default_tab", DRONE)))
    return AppConfig(
        api=api,
        viewport=viewport,
        hexgrid=hexgrid,
        performance=performance,
        output=output,
        dashboard=dashboard,
    )


def resolve_api_base_url(config: AppConfig, environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the API base URL without a trailing slash.

    Reads ``os.environ`` (after loading a ``.env`` file) unless an explicit
    mapping is given. A missing or blank value is a ConfigurationError.
    """

    if environ is None:
        load_dotenv()
        environ = os.environ
    value = (environ.get(config.api.base_url_env) or "").strip()
    if not value:
        raise ConfigurationError(f"API URL not configured: set {config.api.base_url_env}.")
    return value.rstrip("/")


def _parse_bounds(raw: Any) -> GeoBounds:
    if raw is None:
        return USA_BOUNDS
    if not isinstance(raw, dict):
        raise ValueError("viewport.initial_bounds must be a mapping of north/south/east/west.")
    try:
        bounds = GeoBounds(
            north=float(raw["north"]),
            south=float(raw["south"]),
            east=float(raw["east"]),
            west=float(raw["west"]),
        )
    except KeyError as exc:
        raise ValueError(f"viewport.initial_bounds is missing {exc.args[0]!r}.") from exc
    if bounds.north < bounds.south:
        raise ValueError("viewport.initial_bounds north must not be below south.")
    return bounds


def _parse_tab(raw: Any) -> str:
    tab = str(raw)
    if tab not in TABS:
        raise ValueError(f"Unknown tab {tab!r}; expected one of {', '.join(TABS)}.")
    return tab


def _load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a top-level mapping.")
    return data
