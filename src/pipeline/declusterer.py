"""Spread co-located incidents on small deterministic rings."""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List

from src.common.geo import geo_key, meters_to_degrees, stable_unit
from src.common.models import DisplacedPoint, IncidentPoint

logger = logging.getLogger(__name__)


class Declusterer:
    """Groups incidents by rounded coordinate and displaces shared positions.

    Every member of a group sits on the same ring, radius
    ``min(max_radius_m, base_radius_m + group_size)``, at an angle derived
    from its id. Output positions depend only on the input points, never on
    their order or on previous runs.
    """

    def __init__(
        self,
        precision: int = 5,
        base_radius_m: float = 12.0,
        max_radius_m: float = 30.0,
    ) -> None:
        self.precision = precision
        self.base_radius_m = float(base_radius_m)
        self.max_radius_m = float(max_radius_m)

    def ring_radius_m(self, group_size: int) -> float:
        return min(self.max_radius_m, self.base_radius_m + group_size)

    def group(self, points: Iterable[IncidentPoint]) -> Dict[str, List[IncidentPoint]]:
        groups: Dict[str, List[IncidentPoint]] = {}
        for point in points:
            key = geo_key(point.latitude, point.longitude, self.precision)
            groups.setdefault(key, []).append(point)
        return groups

    def run(self, points: Iterable[IncidentPoint]) -> List[DisplacedPoint]:
        groups = self.group(points)
        out: List[DisplacedPoint] = []
        crowded = 0

        for members in groups.values():
            if len(members) == 1:
                point = members[0]
                out.append(DisplacedPoint(point, point.latitude, point.longitude, 1))
                continue

            crowded += 1
            size = len(members)
            radius_m = self.ring_radius_m(size)
            for point in members:
                angle = stable_unit(str(point.id)) * 2 * math.pi
                delta = meters_to_degrees(radius_m, point.latitude)
                out.append(
                    DisplacedPoint(
                        incident=point,
                        j_lat=point.latitude + math.sin(angle) * delta.lat_delta,
                        j_lng=point.longitude + math.cos(angle) * delta.lng_delta,
                        group_size=size,
                    )
                )

        logger.debug(
            "Declustered %d points into %d groups (%d overlapping)",
            len(out),
            len(groups),
            crowded,
        )
        return out


def decluster(points: Iterable[IncidentPoint]) -> List[DisplacedPoint]:
    return Declusterer().run(points)
