"""Turn displaced incidents, stations and the home circle into drawable frames."""

from __future__ import annotations

import math
from datetime import timezone
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from src.common.models import DisplacedPoint, HomeProfile, IncidentPoint, PoliceStationPoint
from src.pipeline.hover import HoverLink

INCIDENT_RADIUS = 5
INCIDENT_FILL = [255, 41, 41, 128]
INCIDENT_LINE = [247, 70, 70, 255]

HIGHLIGHT_RADIUS = 12
HIGHLIGHT_FILL = [99, 128, 254, 242]
HIGHLIGHT_LINE = [99, 128, 254, 255]

STATION_RADIUS = 7
STATION_FILL = [65, 119, 255, 204]
STATION_LINE = [0, 255, 255, 255]

HOME_FILL = [44, 177, 254, 31]
HOME_LINE = [44, 177, 254, 255]

INCIDENT_COLUMNS = [
    "id",
    "category",
    "timestamp",
    "latitude",
    "longitude",
    "j_lat",
    "j_lng",
    "group_size",
    "highlighted",
    "radius",
    "fill_color",
    "line_color",
    "tooltip",
]


def incident_tooltip(point: DisplacedPoint) -> str:
    lines = [point.category_label, point.timestamp or "", f"id: {point.id}"]
    if point.group_size > 1:
        lines.append(f"Overlaps here: {point.group_size}")
    return "\n".join(lines)


def incident_frame(points: Iterable[DisplacedPoint], hover: Optional[HoverLink] = None) -> pd.DataFrame:
    """One row per displaced incident, in draw order (highlight last)."""

    hover = hover or HoverLink()
    rows = []
    for point in hover.draw_order(points):
        highlighted = hover.is_highlighted(point)
        rows.append(
            {
                "id": str(point.id),
                "category": point.category_label,
                "timestamp": point.timestamp,
                "latitude": point.latitude,
                "longitude": point.longitude,
                "j_lat": point.j_lat,
                "j_lng": point.j_lng,
                "group_size": point.group_size,
                "highlighted": highlighted,
                "radius": HIGHLIGHT_RADIUS if highlighted else INCIDENT_RADIUS,
                "fill_color": HIGHLIGHT_FILL if highlighted else INCIDENT_FILL,
                "line_color": HIGHLIGHT_LINE if highlighted else INCIDENT_LINE,
                "tooltip": incident_tooltip(point),
            }
        )
    return pd.DataFrame(rows, columns=INCIDENT_COLUMNS)


def station_frame(stations: Iterable[PoliceStationPoint]) -> pd.DataFrame:
    rows = [
        {
            "id": station.id,
            "name": station.name or f"PDQ {station.id}",
            "latitude": station.latitude,
            "longitude": station.longitude,
            "radius": STATION_RADIUS,
            "fill_color": STATION_FILL,
            "line_color": STATION_LINE,
            "tooltip": f"PDQ {station.id}",
        }
        for station in stations
    ]
    return pd.DataFrame(
        rows,
        columns=["id", "name", "latitude", "longitude", "radius", "fill_color", "line_color", "tooltip"],
    )


def can_draw_home_circle(profile: Optional[HomeProfile], show: bool = True) -> bool:
    if not show or profile is None or not profile.is_set:
        return False
    radius = profile.home_radius_m
    return radius is not None and math.isfinite(radius) and radius > 0


def home_circle_frame(profile: Optional[HomeProfile], show: bool = True) -> pd.DataFrame:
    columns = ["latitude", "longitude", "radius_m", "fill_color", "line_color"]
    if not can_draw_home_circle(profile, show):
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(
        [
            {
                "latitude": profile.home_lat,
                "longitude": profile.home_lng,
                "radius_m": float(profile.home_radius_m),
                "fill_color": HOME_FILL,
                "line_color": HOME_LINE,
            }
        ],
        columns=columns,
    )


def _sort_key(point: IncidentPoint) -> float:
    occurred = point.occurred_at
    if occurred is None:
        return float("-inf")
    if occurred.tzinfo is None:
        occurred = occurred.replace(tzinfo=timezone.utc)
    return occurred.timestamp()


def sort_feed(points: Sequence[IncidentPoint]) -> List[IncidentPoint]:
    """Newest first; undated incidents last."""

    return sorted(points, key=_sort_key, reverse=True)
