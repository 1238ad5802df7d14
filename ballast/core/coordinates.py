"""
Coordinate frame utilities.

Handles conversion between:
- WGS84 lat/lng (degrees) - what outlines, arrays and payloads carry
- Local metric frame - east/north meters around an anchor point
  (equirectangular, longitude scaled by cos(latitude))
- Building-aligned frame - meters along the building heading and across it,
  used for grid placement and snapping
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .geodesy import EARTH_RADIUS_M
from .models import Point

METERS_PER_DEGREE = math.pi * EARTH_RADIUS_M / 180.0


class LocalFrame:
    """
    East/north meters relative to an anchor point.

    Accurate to well under a centimeter over roof-sized extents, which is
    all the setback and grid code needs.
    """

    def __init__(self, origin: Point):
        self.origin = origin
        self._cos_lat = math.cos(math.radians(origin.lat))

    def to_local(self, point: Point) -> tuple[float, float]:
        east = (point.lng - self.origin.lng) * METERS_PER_DEGREE * self._cos_lat
        north = (point.lat - self.origin.lat) * METERS_PER_DEGREE
        return (east, north)

    def to_point(self, east: float, north: float) -> Point:
        return Point(
            self.origin.lat + north / METERS_PER_DEGREE,
            self.origin.lng + east / (METERS_PER_DEGREE * self._cos_lat),
        )

    def to_local_many(self, points: Sequence[Point]) -> np.ndarray:
        """Vectorized ``to_local``; returns an (n, 2) array of (east, north)."""
        if not points:
            return np.zeros((0, 2))
        coords = np.array([(p.lng, p.lat) for p in points], dtype=float)
        east = (coords[:, 0] - self.origin.lng) * METERS_PER_DEGREE * self._cos_lat
        north = (coords[:, 1] - self.origin.lat) * METERS_PER_DEGREE
        return np.column_stack([east, north])


class AlignedFrame:
    """
    Local frame rotated to a building heading.

    ``x`` runs along the heading, ``y`` along heading - 90 degrees (to the
    left of the heading), so for an east-running heading x is east and y is
    north.
    """

    def __init__(self, origin: Point, heading_deg: float):
        self.local = LocalFrame(origin)
        self.heading_deg = heading_deg
        rad = math.radians(heading_deg)
        self._sin = math.sin(rad)
        self._cos = math.cos(rad)

    @property
    def origin(self) -> Point:
        return self.local.origin

    def to_aligned(self, point: Point) -> tuple[float, float]:
        east, north = self.local.to_local(point)
        return (
            east * self._sin + north * self._cos,
            -east * self._cos + north * self._sin,
        )

    def to_point(self, x: float, y: float) -> Point:
        east = x * self._sin - y * self._cos
        north = x * self._cos + y * self._sin
        return self.local.to_point(east, north)

    def to_aligned_many(self, points: Sequence[Point]) -> np.ndarray:
        """Vectorized ``to_aligned``; returns an (n, 2) array of (x, y)."""
        en = self.local.to_local_many(points)
        x = en[:, 0] * self._sin + en[:, 1] * self._cos
        y = -en[:, 0] * self._cos + en[:, 1] * self._sin
        return np.column_stack([x, y])
