"""
Building outline analysis.

Derives the quantities the rest of the engine keys off a finalized outline:
- Longest edge and its heading (the building's primary axis)
- Winding order (from the polygon's cached signed area)
- Oriented bounding-box dimensions and roof area for the export payload
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..core.coordinates import LocalFrame
from ..core.geodesy import GeodesyProvider
from ..core.models import METERS_TO_FEET, SQ_METERS_TO_SQ_FEET, Point, Polygon
from ..utils.logging_config import get_logger
from ..utils.validation import ValidationError, validate_polygon

logger = get_logger(__name__)


@dataclass(frozen=True)
class LongestEdge:
    """Longest edge of an outline; index -1 when the outline is degenerate."""
    index: int
    heading: float
    length_m: float
    start: Optional[Point] = None
    end: Optional[Point] = None


@dataclass(frozen=True)
class BuildingDimensions:
    """Oriented bounding-box dimensions; width is always the shorter side."""
    width_m: float
    length_m: float
    area_m2: float  # Actual polygon area, not width * length
    rotation_angle: float

    @property
    def width_ft(self) -> float:
        return self.width_m * METERS_TO_FEET

    @property
    def length_ft(self) -> float:
        return self.length_m * METERS_TO_FEET

    @property
    def area_sq_ft(self) -> float:
        return self.area_m2 * SQ_METERS_TO_SQ_FEET


@dataclass(frozen=True)
class BuildingOutline:
    """
    A finalized building outline.

    Immutable: changing the outline means building a new one, which in turn
    invalidates every array placed against the old one.
    """
    polygon: Polygon
    heading: float
    longest_edge_index: int
    building_id: Optional[str] = None

    @classmethod
    def from_polygon(
        cls,
        polygon: Polygon,
        geodesy: GeodesyProvider,
        building_id: Optional[str] = None,
    ) -> "BuildingOutline":
        edge = find_longest_edge(polygon, geodesy)
        return cls(
            polygon=polygon,
            heading=edge.heading,
            longest_edge_index=edge.index,
            building_id=building_id,
        )

    @property
    def is_clockwise(self) -> bool:
        return self.polygon.is_clockwise

    @property
    def is_valid(self) -> bool:
        return self.longest_edge_index >= 0

    def alignment_angle(self, quarter_turn: bool = False) -> float:
        """Grid alignment heading; a quarter turn lays the grid across the primary axis."""
        if quarter_turn:
            return (self.heading + 90.0) % 360.0
        return self.heading


def find_longest_edge(polygon: Polygon, geodesy: GeodesyProvider) -> LongestEdge:
    """
    Find the longest edge of a polygon and its heading.

    Ties keep the first edge encountered.

    Returns:
        LongestEdge with heading normalized to [0, 360); index -1 and heading 0
        for fewer than three vertices.
    """
    try:
        validate_polygon(polygon, field="outline")
    except ValidationError as exc:
        logger.warning("Cannot find longest edge: %s", exc)
        return LongestEdge(index=-1, heading=0.0, length_m=0.0)

    n = len(polygon)
    best_index = -1
    best_length = 0.0
    for i in range(n):
        length = geodesy.distance_between(polygon[i], polygon[(i + 1) % n])
        if length > best_length:
            best_length = length
            best_index = i

    if best_index == -1:
        logger.warning("No non-zero edges found in outline of %d vertices", n)
        return LongestEdge(index=-1, heading=0.0, length_m=0.0)

    start = polygon[best_index]
    end = polygon[(best_index + 1) % n]
    heading = geodesy.heading_between(start, end) % 360.0

    logger.debug(
        "Longest edge %d: %.2f m at heading %.2f (clockwise=%s)",
        best_index, best_length, heading, polygon.is_clockwise,
    )
    return LongestEdge(
        index=best_index, heading=heading, length_m=best_length, start=start, end=end,
    )


def polygon_area_m2(polygon: Polygon, geodesy: GeodesyProvider) -> float:
    """Surface area, from the provider when it offers one, else the local planar shoelace."""
    if len(polygon) < 3:
        return 0.0
    area_fn = getattr(geodesy, "area", None)
    if callable(area_fn):
        return float(area_fn(polygon))

    frame = LocalFrame(polygon[0])
    xy = [frame.to_local(p) for p in polygon]
    total = 0.0
    for i in range(len(xy)):
        x1, y1 = xy[i]
        x2, y2 = xy[(i + 1) % len(xy)]
        total += x1 * y2 - x2 * y1
    return abs(total) / 2.0


def oriented_dimensions(outline: BuildingOutline, geodesy: GeodesyProvider) -> BuildingDimensions:
    """
    Oriented bounding box of an outline, aligned with its longest edge.

    Args:
        outline: Finalized building outline
        geodesy: Provider used for distances and headings

    Returns:
        BuildingDimensions; all zeros for a degenerate outline
    """
    polygon = outline.polygon
    if not outline.is_valid or len(polygon) < 3:
        logger.warning("Not enough vertices to calculate dimensions")
        return BuildingDimensions(0.0, 0.0, 0.0, 0.0)

    center = polygon.bounds.center
    heading = outline.heading

    xs = []
    ys = []
    for vertex in polygon:
        distance = geodesy.distance_between(center, vertex)
        if distance == 0:
            xs.append(0.0)
            ys.append(0.0)
            continue
        angle = math.radians(geodesy.heading_between(center, vertex) - heading)
        xs.append(distance * math.cos(angle))
        ys.append(distance * math.sin(angle))

    along = max(xs) - min(xs)
    across = max(ys) - min(ys)

    if along <= across:
        width, length, rotation = along, across, heading
    else:
        width, length, rotation = across, along, (heading + 90.0) % 360.0

    return BuildingDimensions(
        width_m=width,
        length_m=length,
        area_m2=polygon_area_m2(polygon, geodesy),
        rotation_angle=rotation,
    )
