"""
Setback polygon generation.

Two offset methods, picked per use:
- Inward (building edge): every vertex moves along its corner bisector by a
  mitered distance. Keeps vertex count and order.
- Outward (obstructions): every edge is pushed out perpendicular to itself
  and consecutive offset edges are intersected. Behaves better than the
  miter method on acute corners when growing.

Both work in local meters (equirectangular around the vertex or the
polygon's vertex mean) and convert back to degrees. Self-intersections
produced by near-colinear or tiny inputs are left as is.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.coordinates import LocalFrame
from ..core.geodesy import GeodesyProvider
from ..core.models import Point, Polygon
from ..utils.logging_config import get_logger
from ..utils.validation import ValidationError, validate_distance, validate_polygon

logger = get_logger(__name__)

Vec = Tuple[float, float]

# Below this length (meters) an edge counts as zero-length
EPSILON_M = 1e-9
# Parallel-line determinant threshold (square meters)
PARALLEL_EPSILON = 1e-10


@dataclass(frozen=True)
class Obstruction:
    """A rooftop obstruction and the clearance polygon grown around it."""
    polygon: Polygon
    height: float
    setback: Polygon
    setback_distance_m: float = 0.0
    obstruction_id: Optional[str] = None


def _unit(v: Vec) -> Tuple[Vec, float]:
    length = math.hypot(v[0], v[1])
    if length < EPSILON_M:
        return (0.0, 0.0), 0.0
    return (v[0] / length, v[1] / length), length


def _line_intersection(a1: Vec, a2: Vec, b1: Vec, b2: Vec) -> Vec:
    """Intersection of infinite lines a1-a2 and b1-b2; midpoint of a2/b1 when parallel."""
    x1, y1 = a1
    x2, y2 = a2
    x3, y3 = b1
    x4, y4 = b2

    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < PARALLEL_EPSILON:
        return ((a2[0] + b1[0]) / 2, (a2[1] + b1[1]) / 2)

    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    return (x1 + t * (x2 - x1), y1 + t * (y2 - y1))


class SetbackGenerator:
    """
    Build inward (building) and outward (obstruction) setback polygons.

    Usage:
        generator = SetbackGenerator()
        inner = generator.generate_inward_setback(outline.polygon, 0.9144)
        obstructions = generator.obstruction_setbacks([(vent, 1.2)], 0.6096)
    """

    def __init__(self, miter_limit: float = 20.0):
        """
        Args:
            miter_limit: Largest miter offset allowed, as a multiple of the
                setback distance. Clamps spikes at near-zero interior angles.
        """
        self.miter_limit = miter_limit
        self._min_half_sine = 1.0 / miter_limit

    # -------------------------------------------------------------------------
    # Inward (mitered bisector)
    # -------------------------------------------------------------------------

    def generate_inward_setback(self, polygon: Polygon, distance: float) -> Polygon:
        """
        Offset every vertex of a polygon inward by ``distance`` meters.

        Args:
            polygon: Building outline
            distance: Setback distance in meters

        Returns:
            Polygon with the same vertex count and order. The source itself for
            distance 0; empty for malformed input.
        """
        try:
            validate_polygon(polygon, field="building outline")
            distance = validate_distance(distance, field="setback distance")
        except ValidationError as exc:
            logger.warning("Inward setback skipped: %s", exc)
            return Polygon()

        if distance == 0:
            return polygon

        clockwise = polygon.is_clockwise
        n = len(polygon)
        result: List[Point] = []

        for i in range(n):
            prev = polygon[(i - 1) % n]
            curr = polygon[i]
            nxt = polygon[(i + 1) % n]

            frame = LocalFrame(curr)
            to_prev, prev_len = _unit(frame.to_local(prev))
            to_next, next_len = _unit(frame.to_local(nxt))

            if prev_len == 0.0 or next_len == 0.0:
                result.append(curr)
                continue

            cross = to_prev[0] * to_next[1] - to_prev[1] * to_next[0]
            convex = cross > 0 if clockwise else cross < 0

            bisector, bisector_len = _unit((to_prev[0] + to_next[0], to_prev[1] + to_next[1]))
            if bisector_len == 0.0:
                # Straight-through vertex: step along the inward edge normal
                if clockwise:
                    bisector = (to_next[1], -to_next[0])
                else:
                    bisector = (-to_next[1], to_next[0])
            elif not convex:
                bisector = (-bisector[0], -bisector[1])

            dot = to_prev[0] * to_next[0] + to_prev[1] * to_next[1]
            angle = math.acos(max(-1.0, min(1.0, dot)))
            half_sine = max(math.sin(angle / 2), self._min_half_sine)
            miter = distance / half_sine

            result.append(frame.to_point(bisector[0] * miter, bisector[1] * miter))

        return Polygon(tuple(result))

    # -------------------------------------------------------------------------
    # Outward (edge offset + intersect)
    # -------------------------------------------------------------------------

    def generate_outward_setback(self, polygon: Polygon, distance: float) -> Polygon:
        """
        Grow a polygon outward by ``distance`` meters, whatever its winding.

        Vertex ``i + 1`` of the source maps to the intersection of offset
        edges ``i`` and ``i + 1``, so the result is a rotation of the source
        order by one.

        Returns:
            Polygon with the same vertex count. The source itself for distance
            0; empty for malformed input.
        """
        try:
            validate_polygon(polygon, field="obstruction outline")
            distance = validate_distance(distance, field="obstruction setback")
        except ValidationError as exc:
            logger.warning("Outward setback skipped: %s", exc)
            return Polygon()

        if distance == 0:
            return polygon

        # Left normal grows clockwise rings, right normal grows counter-clockwise ones
        winding_multiplier = 1.0 if polygon.is_clockwise else -1.0

        n = len(polygon)
        anchor = Point(
            sum(p.lat for p in polygon) / n,
            sum(p.lng for p in polygon) / n,
        )
        frame = LocalFrame(anchor)
        xy = [frame.to_local(p) for p in polygon]

        edges = []
        degenerate = []
        for i in range(n):
            p1 = xy[i]
            p2 = xy[(i + 1) % n]
            dx = p2[0] - p1[0]
            dy = p2[1] - p1[1]
            length = math.hypot(dx, dy)
            if length < EPSILON_M:
                edges.append((p1, p2))
                degenerate.append(True)
                continue
            nx = winding_multiplier * -dy / length * distance
            ny = winding_multiplier * dx / length * distance
            edges.append(((p1[0] + nx, p1[1] + ny), (p2[0] + nx, p2[1] + ny)))
            degenerate.append(False)

        result: List[Point] = []
        for i in range(n):
            j = (i + 1) % n
            if degenerate[i] or degenerate[j]:
                result.append(polygon[j])
                continue
            a1, a2 = edges[i]
            b1, b2 = edges[j]
            x, y = _line_intersection(a1, a2, b1, b2)
            result.append(frame.to_point(x, y))

        return Polygon(tuple(result))

    # -------------------------------------------------------------------------
    # Obstructions
    # -------------------------------------------------------------------------

    def obstruction(
        self,
        polygon: Polygon,
        height: float,
        distance: float,
        obstruction_id: Optional[str] = None,
    ) -> Obstruction:
        """Build an Obstruction with its outward setback."""
        return Obstruction(
            polygon=polygon,
            height=height,
            setback=self.generate_outward_setback(polygon, distance),
            setback_distance_m=distance,
            obstruction_id=obstruction_id,
        )

    def obstruction_setbacks(
        self,
        obstructions: Iterable[Tuple[Polygon, float]],
        distance: float,
    ) -> List[Obstruction]:
        """
        Grow setbacks for a batch of ``(polygon, height)`` obstructions.

        Every obstruction uses the same clearance distance.
        """
        return [
            self.obstruction(polygon, height, distance, obstruction_id=str(index))
            for index, (polygon, height) in enumerate(obstructions, start=1)
        ]


def is_point_in_obstruction_setback(
    point: Point,
    obstructions: Sequence[Obstruction],
    geodesy: GeodesyProvider,
) -> bool:
    """True when the point falls inside any obstruction's clearance polygon."""
    for obstruction in obstructions:
        if len(obstruction.setback) < 3:
            continue
        if geodesy.contains_location(point, obstruction.setback):
            return True
    return False


def generate_inward_setback(polygon: Polygon, distance: float) -> Polygon:
    """Convenience function for a one-off inward setback."""
    return SetbackGenerator().generate_inward_setback(polygon, distance)


def generate_outward_setback(polygon: Polygon, distance: float) -> Polygon:
    """Convenience function for a one-off outward setback."""
    return SetbackGenerator().generate_outward_setback(polygon, distance)
