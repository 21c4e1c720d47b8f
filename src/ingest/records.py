"""Convert raw backend JSON records into incident map models."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Mapping, Optional

from src.common.errors import InvalidCoordinate
from src.common.models import DatasetSource, HomeProfile, IncidentPoint, PoliceStationPoint

logger = logging.getLogger(__name__)


def parse_coordinate(value: Any, name: str) -> float:
    """Coerce a latitude/longitude to a finite float."""

    if value is None or isinstance(value, bool):
        raise InvalidCoordinate(f"{name} is missing")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinate(f"{name} is not numeric: {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidCoordinate(f"{name} is not finite: {value!r}")
    return number


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_incident(raw: Mapping[str, Any], source: DatasetSource = DatasetSource.LATEST) -> IncidentPoint:
    if raw.get("id") is None:
        raise ValueError("Incident record has no id.")
    category = raw.get("category")
    timestamp = raw.get("date")
    return IncidentPoint(
        id=raw["id"],
        latitude=parse_coordinate(raw.get("latitude"), "latitude"),
        longitude=parse_coordinate(raw.get("longitude"), "longitude"),
        category=str(category) if category is not None else None,
        timestamp=str(timestamp) if timestamp else None,
        source=source,
        pdq_id=_optional_int(raw.get("pdqId")),
    )


def clean_incidents(
    records: Iterable[Any],
    source: DatasetSource = DatasetSource.LATEST,
) -> List[IncidentPoint]:
    """Parse records, dropping any without usable coordinates."""

    points: List[IncidentPoint] = []
    dropped = 0
    for raw in records:
        if not isinstance(raw, Mapping):
            dropped += 1
            logger.debug("Dropping non-object incident record %r", raw)
            continue
        try:
            points.append(parse_incident(raw, source))
        except ValueError as exc:
            dropped += 1
            logger.debug("Dropping incident %r: %s", raw.get("id"), exc)
    if dropped:
        logger.info("Dropped %d %s incidents without usable coordinates or id", dropped, source.value)
    return points


def parse_station(raw: Mapping[str, Any]) -> PoliceStationPoint:
    name = raw.get("name")
    return PoliceStationPoint(
        id=int(raw["id"]),
        latitude=parse_coordinate(raw.get("latitude"), "latitude"),
        longitude=parse_coordinate(raw.get("longitude"), "longitude"),
        name=str(name) if name else None,
    )


def clean_stations(records: Iterable[Any]) -> List[PoliceStationPoint]:
    stations: List[PoliceStationPoint] = []
    for raw in records:
        if not isinstance(raw, Mapping):
            logger.debug("Dropping non-object PDQ record %r", raw)
            continue
        try:
            stations.append(parse_station(raw))
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Dropping PDQ %r: %s", raw.get("id"), exc)
    return stations


def parse_profile(payload: Any) -> Optional[HomeProfile]:
    """Read ``user.profile`` from a ``/api/me`` response."""

    if not isinstance(payload, Mapping):
        return None
    user = payload.get("user")
    if not isinstance(user, Mapping):
        return None
    profile = user.get("profile")
    if not isinstance(profile, Mapping):
        return None
    return HomeProfile(
        home_lat=_optional_float(profile.get("homeLat")),
        home_lng=_optional_float(profile.get("homeLng")),
        home_radius_m=_optional_float(profile.get("homeRadiusM")),
    )
