"""
Great-circle distance and geographic predicates.

Distances use the spherical law of cosines on a sphere of mean Earth
radius 6371 km. The acos argument is clamped to [-1, 1] both in Python and
in the generated SQL so coincident points yield 0 instead of NaN.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional, Tuple, TypeVar

from .clauses import CompiledClause, between

if TYPE_CHECKING:
    from .filters.models import BoundingBox

EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


def haversine_distance_km(a: GeoPoint, b: GeoPoint) -> float:
    if a.latitude == b.latitude and a.longitude == b.longitude:
        return 0.0
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)
    cos_angle = math.sin(lat1) * math.sin(lat2) + math.cos(lat1) * math.cos(lat2) * math.cos(dlon)
    cos_angle = max(-1.0, min(1.0, cos_angle))
    return EARTH_RADIUS_KM * math.acos(cos_angle)


def bounding_box_predicate(
    box: "BoundingBox",
    *,
    lat_column: str = "p.latitude",
    lon_column: str = "p.longitude",
) -> List[CompiledClause]:
    return [
        between(lat_column, box.min_lat, box.max_lat),
        between(lon_column, box.min_lon, box.max_lon),
    ]


def distance_expression(
    center: GeoPoint,
    *,
    lat_column: str = "p.latitude",
    lon_column: str = "p.longitude",
) -> CompiledClause:
    """
    SQL distance in km from ``center`` to the row position.

    The center latitude is bound twice: once for the cosine term and once
    for the sine term. Params are ``(centerLat, centerLon, centerLat)``.
    """
    sql = (
        f"({EARTH_RADIUS_KM:g} * ACOS(LEAST(1, GREATEST(-1, "
        f"COS(RADIANS(?)) * COS(RADIANS({lat_column})) * COS(RADIANS({lon_column} - ?)) + "
        f"SIN(RADIANS(?)) * SIN(RADIANS({lat_column}))"
        f"))))"
    )
    return CompiledClause(sql, (center.latitude, center.longitude, center.latitude))


def radius_predicate(
    center: GeoPoint,
    radius_km: float,
    *,
    lat_column: str = "p.latitude",
    lon_column: str = "p.longitude",
) -> CompiledClause:
    expr = distance_expression(center, lat_column=lat_column, lon_column=lon_column)
    return CompiledClause(f"{expr.sql} <= ?", expr.params + (radius_km,))


def nearest_within_radius(
    candidates: Iterable[T],
    center: GeoPoint,
    radius_km: float,
    limit: Optional[int] = None,
    *,
    point: Callable[[T], GeoPoint] = lambda c: c,  # type: ignore[assignment, return-value]
) -> List[Tuple[T, float]]:
    """
    Candidates within ``radius_km`` of ``center`` as ``(candidate, distance)``
    pairs, nearest first. Equal distances keep input order.
    """
    ranked: List[Tuple[T, float]] = []
    for c in candidates:
        d = haversine_distance_km(center, point(c))
        if d <= radius_km:
            ranked.append((c, d))
    ranked.sort(key=lambda pair: pair[1])
    if limit is not None:
        ranked = ranked[: max(limit, 0)]
    return ranked


def point_of(row: Any) -> GeoPoint:
    """GeoPoint from a warehouse row mapping with latitude/longitude keys."""
    return GeoPoint(float(row["latitude"]), float(row["longitude"]))


__all__ = [
    "EARTH_RADIUS_KM",
    "GeoPoint",
    "haversine_distance_km",
    "bounding_box_predicate",
    "distance_expression",
    "radius_predicate",
    "nearest_within_radius",
    "point_of",
]
