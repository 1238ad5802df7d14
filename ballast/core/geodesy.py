"""
Spherical geodesy primitives consumed by the layout engine.

The engine only depends on the ``GeodesyProvider`` protocol. ``SphericalGeodesy``
is the default implementation: great-circle math on a sphere of radius
6 378 137 m via ``pyproj.Geod`` (the same model web map geometry libraries
use) and planar lng/lat point-in-polygon via shapely.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import shapely
from pyproj import Geod

from .models import Point, Polygon

EARTH_RADIUS_M = 6_378_137.0


@runtime_checkable
class GeodesyProvider(Protocol):
    """Distance, heading, offset and containment on the earth's surface."""

    def distance_between(self, a: Point, b: Point) -> float:
        ...

    def heading_between(self, a: Point, b: Point) -> float:
        ...

    def offset(self, point: Point, distance_m: float, heading_deg: float) -> Point:
        ...

    def contains_location(self, point: Point, polygon: Polygon) -> bool:
        ...


class SphericalGeodesy:
    """
    GeodesyProvider backed by pyproj and shapely.

    Usage:
        geodesy = SphericalGeodesy()
        corner = geodesy.offset(Point(40.7128, -74.006), 12.0, 90.0)
        geodesy.heading_between(Point(40.7128, -74.006), corner)  # ~90.0
    """

    def __init__(self, radius_m: float = EARTH_RADIUS_M):
        self.radius_m = radius_m
        self._geod = Geod(a=radius_m, b=radius_m)

    def distance_between(self, a: Point, b: Point) -> float:
        """Great-circle distance in meters."""
        _, _, dist = self._geod.inv(a.lng, a.lat, b.lng, b.lat)
        return float(dist)

    def heading_between(self, a: Point, b: Point) -> float:
        """Initial bearing from a to b, degrees clockwise from north in [0, 360)."""
        az, _, _ = self._geod.inv(a.lng, a.lat, b.lng, b.lat)
        return float(az) % 360.0

    def offset(self, point: Point, distance_m: float, heading_deg: float) -> Point:
        """Point reached by travelling distance_m along heading_deg; negative walks backwards."""
        if distance_m < 0:
            distance_m = -distance_m
            heading_deg = heading_deg + 180.0
        lng, lat, _ = self._geod.fwd(point.lng, point.lat, heading_deg % 360.0, distance_m)
        return Point(float(lat), float(lng))

    def contains_location(self, point: Point, polygon: Polygon) -> bool:
        shape = polygon.shape
        if shape is None:
            return False
        return bool(shapely.contains_xy(shape, point.lng, point.lat))

    def area(self, polygon: Polygon) -> float:
        """Absolute surface area in square meters."""
        if len(polygon) < 3:
            return 0.0
        lngs = [p.lng for p in polygon]
        lats = [p.lat for p in polygon]
        area, _ = self._geod.polygon_area_perimeter(lngs, lats)
        return abs(float(area))
