"""
Value types for the layout engine.

Covers geodetic primitives (points, polygons, bounding boxes), the panel
specification, and the cell/footprint records shared by the grid builder,
the array manager and the reconciler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Iterator, Optional, Sequence

import shapely
from pydantic import BaseModel, ConfigDict, Field
from shapely.geometry import Polygon as ShapelyPolygon

FEET_TO_METERS = 0.3048
METERS_TO_FEET = 3.28084
SQ_METERS_TO_SQ_FEET = 10.7639


# =============================================================================
# ENUMS
# =============================================================================


class SystemMode(str, Enum):
    NORTH_SOUTH = "north-south"
    EAST_WEST = "east-west"


class CellState(str, Enum):
    """State of one grid cell or panel footprint."""

    AVAILABLE = "available"
    SELECTED = "selected"
    OBSTRUCTED = "obstructed"
    INTERSECTS = "intersects"
    NON_APPLICABLE = "non-applicable"


class ArrayState(str, Enum):
    CREATING = "creating"
    ACTIVE = "active"
    SELECTED = "selected"


class Direction(str, Enum):
    """Growth direction of an array relative to its origin cell."""

    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class SelectionMode(str, Enum):
    PANELS = "panels"
    OBSTRUCTIONS = "obstructions"


# =============================================================================
# GEODETIC PRIMITIVES
# =============================================================================


@dataclass(frozen=True)
class Point:
    """Geodetic coordinate in decimal degrees."""

    lat: float
    lng: float

    def to_lnglat(self) -> tuple[float, float]:
        return (self.lng, self.lat)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box in lat/lng."""

    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    @classmethod
    def around(cls, points: Sequence[Point]) -> Optional["BoundingBox"]:
        if not points:
            return None
        lats = [p.lat for p in points]
        lngs = [p.lng for p in points]
        return cls(min(lats), min(lngs), max(lats), max(lngs))

    @property
    def center(self) -> Point:
        return Point((self.min_lat + self.max_lat) / 2, (self.min_lng + self.max_lng) / 2)

    @property
    def southwest(self) -> Point:
        return Point(self.min_lat, self.min_lng)

    @property
    def northeast(self) -> Point:
        return Point(self.max_lat, self.max_lng)

    def intersects(self, other: "BoundingBox") -> bool:
        return not (
            other.min_lat > self.max_lat
            or other.max_lat < self.min_lat
            or other.min_lng > self.max_lng
            or other.max_lng < self.min_lng
        )

    def to_tuple(self) -> tuple[float, float, float, float]:
        """Return as (min_lat, min_lng, max_lat, max_lng)."""
        return (self.min_lat, self.min_lng, self.max_lat, self.max_lng)


@dataclass(frozen=True)
class Polygon:
    """
    Ordered ring of points, implicitly closed.

    Winding is derived once from the signed area and cached, so every
    consumer (setbacks, grid builder, export) reads the same answer.
    """

    points: tuple[Point, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "points", tuple(self.points))

    @classmethod
    def from_coords(cls, coords: Sequence[Sequence[float]]) -> "Polygon":
        """Build from ``[(lat, lng), ...]``; a repeated closing vertex is dropped."""
        points = [Point(float(c[0]), float(c[1])) for c in coords]
        if len(points) > 1 and points[0] == points[-1]:
            points = points[:-1]
        return cls(tuple(points))

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    def __getitem__(self, index: int) -> Point:
        return self.points[index]

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    @cached_property
    def signed_area(self) -> float:
        """Shoelace area in degree units (x = lng, y = lat); negative when clockwise."""
        n = len(self.points)
        total = 0.0
        for i in range(n):
            a = self.points[i]
            b = self.points[(i + 1) % n]
            total += a.lng * b.lat - b.lng * a.lat
        return total / 2.0

    @cached_property
    def is_clockwise(self) -> bool:
        return self.signed_area < 0

    @cached_property
    def bounds(self) -> Optional[BoundingBox]:
        return BoundingBox.around(self.points)

    @cached_property
    def shape(self) -> Optional[ShapelyPolygon]:
        """Prepared shapely polygon in (lng, lat) for containment tests."""
        if len(self.points) < 3:
            return None
        geom = ShapelyPolygon([p.to_lnglat() for p in self.points])
        shapely.prepare(geom)
        return geom

    def reversed(self) -> "Polygon":
        return Polygon(tuple(reversed(self.points)))

    def to_coords(self) -> list[list[float]]:
        return [[p.lat, p.lng] for p in self.points]


# =============================================================================
# PANEL SPECIFICATION
# =============================================================================


class PanelSpec(BaseModel):
    """
    Panel dimensions and spacing in meters.

    Width runs along the alignment heading, length perpendicular to it.
    East-west systems mount two panels back to back across a ridge gap.
    """

    width: float = Field(gt=0, description="Panel width (m)")
    length: float = Field(gt=0, description="Panel length (m)")
    spacing_ew: float = Field(default=0.0, ge=0, description="Gap between panels along the width (m)")
    spacing_ns: float = Field(default=0.0, ge=0, description="Gap between panels along the length (m)")
    mode: SystemMode = SystemMode.NORTH_SOUTH
    ridge_gap: float = Field(default=0.0, ge=0, description="East-west ridge gap (m)")
    valley_gap: float = Field(default=0.0, ge=0, description="East-west valley gap (m)")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_feet(
        cls,
        width: float,
        length: float,
        spacing_ew: float = 0.0,
        spacing_ns: float = 0.0,
        mode: SystemMode = SystemMode.NORTH_SOUTH,
        ridge_gap: float = 0.0,
        valley_gap: float = 0.0,
    ) -> "PanelSpec":
        """Build from form-style inputs in feet."""
        return cls(
            width=width * FEET_TO_METERS,
            length=length * FEET_TO_METERS,
            spacing_ew=spacing_ew * FEET_TO_METERS,
            spacing_ns=spacing_ns * FEET_TO_METERS,
            mode=mode,
            ridge_gap=ridge_gap * FEET_TO_METERS,
            valley_gap=valley_gap * FEET_TO_METERS,
        )

    @property
    def unit_width(self) -> float:
        return self.width + self.spacing_ew

    @property
    def unit_length(self) -> float:
        return self.length + self.spacing_ns

    @property
    def is_east_west(self) -> bool:
        return self.mode == SystemMode.EAST_WEST

    @property
    def pair_length(self) -> float:
        """Footprint length of an east/west pair, ridge gap included."""
        return 2 * self.length + self.ridge_gap

    @property
    def row_step(self) -> float:
        """Distance between consecutive grid rows for the configured mode."""
        if self.is_east_west:
            return self.pair_length + self.valley_gap
        return self.unit_length

    def landscape(self) -> "PanelSpec":
        """Same panel turned a quarter: width/length and their spacings swap."""
        return self.model_copy(update={
            "width": self.length,
            "length": self.width,
            "spacing_ew": self.spacing_ns,
            "spacing_ns": self.spacing_ew,
        })


# =============================================================================
# CELLS AND FOOTPRINTS
# =============================================================================


@dataclass(frozen=True)
class GridCell:
    """One cell of a canonical grid."""

    state: CellState = CellState.NON_APPLICABLE
    height: Optional[float] = None

    @classmethod
    def obstructed(cls, height: Optional[float]) -> "GridCell":
        return cls(CellState.OBSTRUCTED, height if height is not None else 0.0)

    def payload_value(self) -> bool | str:
        """Encode for the structural calculation service."""
        if self.state == CellState.SELECTED:
            return True
        if self.state == CellState.AVAILABLE:
            return False
        if self.state == CellState.OBSTRUCTED:
            return format_height(self.height)
        if self.state == CellState.INTERSECTS:
            return "intersects"
        return "non-value"


def format_height(height: Optional[float]) -> str:
    """Render an obstruction height as the numeric string the payload expects."""
    if height is None:
        return "0"
    return f"{height:g}"


@dataclass
class PanelFootprint:
    """Quadrilateral footprint of one placed panel."""

    corners: tuple[Point, Point, Point, Point]
    row: int
    col: int
    state: CellState = CellState.SELECTED
    obstruction_height: Optional[float] = None
    pair_index: Optional[int] = None
    facing: Optional[str] = None  # "east" / "west" in east-west mode
    array_id: Optional[int] = None
    offset: tuple[int, int] = field(default=(0, 0))  # (row, col) offset from array origin

    @property
    def centroid(self) -> Point:
        return Point(
            sum(c.lat for c in self.corners) / 4,
            sum(c.lng for c in self.corners) / 4,
        )

    @property
    def bounds(self) -> BoundingBox:
        return BoundingBox.around(self.corners)
