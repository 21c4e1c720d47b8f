"""Dataclasses shared between the ingestion, pipeline and dashboard layers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Union

UNKNOWN_CATEGORY = "Unknown"
DEFAULT_HOME_RADIUS_M = 400.0

IncidentId = Union[str, int]


class DatasetSource(str, Enum):
    LATEST = "latest"
    NEAR = "near"


class HomeStatus(str, Enum):
    UNKNOWN = "unknown"
    UNSET = "unset"
    SET = "set"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 incident timestamp, returning None when unusable."""

    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        # Some feeds send a date with a space-separated time component.
        try:
            return datetime.strptime(text.split(" ")[0], "%Y-%m-%d")
        except ValueError:
            return None


@dataclass(frozen=True)
class IncidentPoint:
    id: IncidentId
    latitude: float
    longitude: float
    category: Optional[str] = None
    timestamp: Optional[str] = None
    source: DatasetSource = DatasetSource.LATEST
    pdq_id: Optional[int] = None

    @property
    def category_label(self) -> str:
        return str(self.category) if self.category is not None else UNKNOWN_CATEGORY

    @property
    def occurred_at(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)


@dataclass(frozen=True)
class PoliceStationPoint:
    """A PDQ (poste de quartier). Drawn as-is, never displaced."""

    id: int
    latitude: float
    longitude: float
    name: Optional[str] = None


@dataclass(frozen=True)
class DisplacedPoint:
    """An incident with the position it is drawn at."""

    incident: IncidentPoint
    j_lat: float
    j_lng: float
    group_size: int

    @property
    def id(self) -> IncidentId:
        return self.incident.id

    @property
    def latitude(self) -> float:
        return self.incident.latitude

    @property
    def longitude(self) -> float:
        return self.incident.longitude

    @property
    def category_label(self) -> str:
        return self.incident.category_label

    @property
    def timestamp(self) -> Optional[str]:
        return self.incident.timestamp

    @property
    def occurred_at(self) -> Optional[datetime]:
        return self.incident.occurred_at


@dataclass(frozen=True)
class HomeProfile:
    home_lat: Optional[float] = None
    home_lng: Optional[float] = None
    home_radius_m: Optional[float] = None

    @property
    def is_set(self) -> bool:
        """Both coordinates present and finite."""

        return (
            self.home_lat is not None
            and self.home_lng is not None
            and math.isfinite(self.home_lat)
            and math.isfinite(self.home_lng)
        )

    @property
    def effective_radius_m(self) -> float:
        if self.home_radius_m is None:
            return DEFAULT_HOME_RADIUS_M
        return float(self.home_radius_m)


@dataclass(frozen=True)
class FilterState:
    """Year / month (0-11) / category inclusion sets."""

    years: FrozenSet[int] = field(default_factory=frozenset)
    months: FrozenSet[int] = field(default_factory=frozenset)
    categories: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def empty(cls) -> "FilterState":
        return cls()

    @classmethod
    def everything(cls, years: Iterable[int], categories: Iterable[str]) -> "FilterState":
        return cls(
            years=frozenset(years),
            months=frozenset(range(12)),
            categories=frozenset(categories),
        )
