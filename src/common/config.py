"""Configuration helpers for the incident map."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple

import yaml

# Result caps for the two incident feeds. Kept separate because the global
# feed and the home-scoped feed are sized differently by the backend.
LATEST_FETCH_LIMIT = 30000
NEAR_FETCH_LIMIT = 1000

MTL_CENTER = (45.5017, -73.5673)


@dataclass(frozen=True)
class ApiConfig:
    """Backend location."""

    base_url: str = "http://localhost:3000"
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class LimitsConfig:
    """Maximum incidents requested per feed."""

    latest_limit: int = LATEST_FETCH_LIMIT
    near_limit: int = NEAR_FETCH_LIMIT


@dataclass(frozen=True)
class JitterConfig:
    """Ring spread for overlapping incidents."""

    precision: int = 5
    base_radius_m: float = 12.0
    max_radius_m: float = 30.0


@dataclass(frozen=True)
class MapConfig:
    """Initial view and zoom limits."""

    center: Tuple[float, float] = MTL_CENTER
    zoom: int = 11
    min_zoom: int = 11
    max_zoom: int = 18


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass(frozen=True)
class DashboardConfig:
    """Dashboard defaults."""

    show_stations: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Aggregated configuration model."""

    api: ApiConfig
    limits: LimitsConfig
    jitter: JitterConfig
    map: MapConfig
    logging: LoggingConfig
    dashboard: DashboardConfig


def load_config(path: str | Path) -> AppConfig:
    """Parse a YAML config file into an AppConfig dataclass."""

    raw = _load_yaml(path)
    api_cfg = raw.get("api", {})
    limits_cfg = raw.get("limits", {})
    jitter_cfg = raw.get("jitter", {})
    map_cfg = raw.get("map", {})
    logging_cfg = raw.get("logging", {})
    dashboard_cfg = raw.get("dashboard", {})

    api = ApiConfig(
        base_url=str(api_cfg.get("base_url", "http://localhost:3000")).rstrip("/"),
        timeout_seconds=float(api_cfg.get("timeout_seconds", 30.0)),
    )
    limits = LimitsConfig(
        latest_limit=int(limits_cfg.get("latest_limit", LATEST_FETCH_LIMIT)),
        near_limit=int(limits_cfg.get("near_limit", NEAR_FETCH_LIMIT)),
    )
    jitter = JitterConfig(
        precision=int(jitter_cfg.get("precision", 5)),
        base_radius_m=float(jitter_cfg.get("base_radius_m", 12.0)),
        max_radius_m=float(jitter_cfg.get("max_radius_m", 30.0)),
    )
    map_view = MapConfig(
        center=_pair(map_cfg.get("center", MTL_CENTER)),
        zoom=int(map_cfg.get("zoom", 11)),
        min_zoom=int(map_cfg.get("min_zoom", 11)),
        max_zoom=int(map_cfg.get("max_zoom", 18)),
    )
    logging_section = LoggingConfig(
        level=str(logging_cfg.get("level", "INFO")).upper(),
        file=logging_cfg.get("file"),
    )
    dashboard = DashboardConfig(
        show_stations=bool(dashboard_cfg.get("show_stations", True)),
    )
    return AppConfig(
        api=api,
        limits=limits,
        jitter=jitter,
        map=map_view,
        logging=logging_section,
        dashboard=dashboard,
    )


def _pair(value: Any) -> Tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"Expected a [lat, lng] pair, got {value!r}.")
    return float(value[0]), float(value[1])


def _load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a top-level mapping.")
    return data
