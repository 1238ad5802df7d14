"""
Independently placed panel arrays.

An array is a rectangular block of panels anchored at an origin point. It
grows and shrinks in four directions, turns in quarter steps relative to the
building heading, and regenerates its footprints after every edit. Arrays
never check each other for overlap; the reconciler resolves that at export.

Array offsets:
- ``row_offset`` runs along the array heading in steps of ``unit_width``
  (``-left`` .. ``right``)
- ``col_offset`` runs along heading + 90 in steps of ``unit_length``
  (``-up`` .. ``down``)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..core.geodesy import GeodesyProvider
from ..core.models import (
    ArrayState,
    CellState,
    Direction,
    PanelFootprint,
    PanelSpec,
    Point,
    Polygon,
)
from ..geometry.outline import BuildingOutline
from ..geometry.setback import Obstruction, is_point_in_obstruction_setback
from ..utils.logging_config import get_logger
from ..utils.validation import ValidationError, validate_obstruction_height

logger = get_logger(__name__)

Offset = Tuple[int, int]


@dataclass
class PanelArray:
    """Geometry and lifecycle of one array; interactive handles live elsewhere."""
    id: int
    origin: Point
    rotation: float = 0.0
    left: int = 0
    right: int = 0
    up: int = 0
    down: int = 0
    state: ArrayState = ArrayState.CREATING
    panels: List[PanelFootprint] = field(default_factory=list)
    # (row_offset, col_offset) -> obstruction height
    obstructed_offsets: Dict[Offset, float] = field(default_factory=dict)

    @property
    def rows(self) -> int:
        return self.left + 1 + self.right

    @property
    def cols(self) -> int:
        return self.up + 1 + self.down

    @property
    def panel_count(self) -> int:
        return len(self.panels)

    def extent(self, direction: Direction) -> int:
        return getattr(self, Direction(direction).value)

    def offsets(self) -> Iterator[Offset]:
        for row_offset in range(-self.left, self.right + 1):
            for col_offset in range(-self.up, self.down + 1):
                yield row_offset, col_offset

    def offset_of(self, row: int, col: int) -> Offset:
        """Origin-relative offset of a (row, col) index inside the block."""
        return row - self.left, col - self.up


class ArrayManager:
    """
    Own the arrays placed on one building outline.

    Usage:
        manager = ArrayManager(outline, setback, spec, SphericalGeodesy())
        array = manager.create(Point(40.7128, -74.006))
        manager.extend_row_right(array.id, 4)
        manager.activate(array.id)
        panels = manager.all_panels()

    Operations on an unknown array id log a warning and return None.
    """

    def __init__(
        self,
        outline: BuildingOutline,
        setback: Polygon,
        spec: PanelSpec,
        geodesy: GeodesyProvider,
        obstructions: Sequence[Obstruction] = (),
    ):
        self.outline = outline
        self.setback = setback
        self.spec = spec
        self.geodesy = geodesy
        self.obstructions: List[Obstruction] = list(obstructions)
        self.arrays: Dict[int, PanelArray] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self.arrays)

    def __iter__(self) -> Iterator[PanelArray]:
        return iter(self.arrays.values())

    def get(self, array_id: int) -> Optional[PanelArray]:
        array = self.arrays.get(array_id)
        if array is None:
            logger.warning("Unknown array", extra={"array_id": array_id})
        return array

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create(self, origin: Point) -> PanelArray:
        """Start a new single-panel array at ``origin``."""
        array = PanelArray(id=self._next_id, origin=origin)
        self._next_id += 1
        self.arrays[array.id] = array
        self._regenerate(array)
        logger.info(
            "Created array at (%.7f, %.7f)", origin.lat, origin.lng,
            extra={"array_id": array.id},
        )
        return array

    def activate(self, array_id: int) -> Optional[PanelArray]:
        """Finish creation (or deselect): the array becomes active."""
        array = self.get(array_id)
        if array is not None:
            array.state = ArrayState.ACTIVE
        return array

    def edit(self, array_id: int) -> Optional[PanelArray]:
        """Re-enter editing; every direction can be extended again."""
        return self.activate(array_id)

    def select(self, array_id: int) -> Optional[PanelArray]:
        """Select one array; any other selected array drops back to active."""
        array = self.get(array_id)
        if array is None:
            return None
        for other in self.arrays.values():
            if other.id != array_id and other.state == ArrayState.SELECTED:
                other.state = ArrayState.ACTIVE
        array.state = ArrayState.SELECTED
        return array

    def delete(self, array_id: int) -> bool:
        array = self.arrays.pop(array_id, None)
        if array is None:
            logger.warning("Cannot delete unknown array", extra={"array_id": array_id})
            return False
        logger.info("Deleted array with %d panels", array.panel_count, extra={"array_id": array_id})
        return True

    def clear(self) -> None:
        self.arrays.clear()

    def reset_building(self, outline: BuildingOutline, setback: Polygon) -> None:
        """Switch to a new outline; arrays placed on the old one are destroyed."""
        if self.arrays:
            logger.info(
                "Outline changed, discarding %d arrays", len(self.arrays),
                extra={"building_id": outline.building_id},
            )
        self.outline = outline
        self.setback = setback
        self.clear()

    def set_obstructions(self, obstructions: Sequence[Obstruction]) -> None:
        """Replace the obstruction set and regenerate every array against it."""
        self.obstructions = list(obstructions)
        for array in self.arrays.values():
            self._regenerate(array)

    # -------------------------------------------------------------------------
    # Geometry edits
    # -------------------------------------------------------------------------

    def set_extent(self, array_id: int, direction: Direction, value: int) -> Optional[PanelArray]:
        """Set one extent directly; clamped to zero."""
        array = self.get(array_id)
        if array is None:
            return None
        setattr(array, Direction(direction).value, max(0, int(value)))
        self._regenerate(array)
        return array

    def extend(self, array_id: int, direction: Direction, count: int = 1) -> Optional[PanelArray]:
        array = self.get(array_id)
        if array is None:
            return None
        return self.set_extent(array_id, direction, array.extent(direction) + count)

    def shrink(self, array_id: int, direction: Direction, count: int = 1) -> Optional[PanelArray]:
        array = self.get(array_id)
        if array is None:
            return None
        return self.set_extent(array_id, direction, array.extent(direction) - count)

    def extend_row_left(self, array_id: int, count: int = 1) -> Optional[PanelArray]:
        return self.extend(array_id, Direction.LEFT, count)

    def extend_row_right(self, array_id: int, count: int = 1) -> Optional[PanelArray]:
        return self.extend(array_id, Direction.RIGHT, count)

    def extend_col_up(self, array_id: int, count: int = 1) -> Optional[PanelArray]:
        return self.extend(array_id, Direction.UP, count)

    def extend_col_down(self, array_id: int, count: int = 1) -> Optional[PanelArray]:
        return self.extend(array_id, Direction.DOWN, count)

    def shrink_row_left(self, array_id: int, count: int = 1) -> Optional[PanelArray]:
        return self.shrink(array_id, Direction.LEFT, count)

    def shrink_row_right(self, array_id: int, count: int = 1) -> Optional[PanelArray]:
        return self.shrink(array_id, Direction.RIGHT, count)

    def shrink_col_up(self, array_id: int, count: int = 1) -> Optional[PanelArray]:
        return self.shrink(array_id, Direction.UP, count)

    def shrink_col_down(self, array_id: int, count: int = 1) -> Optional[PanelArray]:
        return self.shrink(array_id, Direction.DOWN, count)

    def rotate(self, array_id: int) -> Optional[PanelArray]:
        """
        Turn an array a quarter clockwise.

        All four extents reset to zero and obstruction markers are dropped:
        placements from the old orientation do not carry over, so the array
        is rebuilt from its origin panel.
        """
        array = self.get(array_id)
        if array is None:
            return None
        array.rotation = (array.rotation + 90.0) % 360.0
        array.left = array.right = array.up = array.down = 0
        array.obstructed_offsets.clear()
        self._regenerate(array)
        logger.debug("Rotated to %.0f degrees", array.rotation, extra={"array_id": array_id})
        return array

    def move(self, array_id: int, origin: Point) -> Optional[PanelArray]:
        """Drag an array to a new origin; extents, rotation and markers are kept."""
        array = self.get(array_id)
        if array is None:
            return None
        array.origin = origin
        self._regenerate(array)
        return array

    # -------------------------------------------------------------------------
    # Per-panel obstruction markers
    # -------------------------------------------------------------------------

    def mark_panel_obstructed(
        self,
        array_id: int,
        row: int,
        col: int,
        height: Optional[float] = None,
    ) -> Optional[PanelArray]:
        """
        Mark the panel at block index (row, col) as sitting on an obstruction.

        The marker is stored by origin offset, so it follows the panel
        through later extend, shrink and move edits.
        """
        array = self.get(array_id)
        if array is None:
            return None
        try:
            height = validate_obstruction_height(height)
        except ValidationError as exc:
            logger.warning("Obstruction mark ignored: %s", exc, extra={"array_id": array_id})
            return array
        array.obstructed_offsets[array.offset_of(row, col)] = height
        self._regenerate(array)
        return array

    def clear_panel_obstruction(self, array_id: int, row: int, col: int) -> Optional[PanelArray]:
        array = self.get(array_id)
        if array is None:
            return None
        array.obstructed_offsets.pop(array.offset_of(row, col), None)
        self._regenerate(array)
        return array

    # -------------------------------------------------------------------------
    # Footprints
    # -------------------------------------------------------------------------

    def array_heading(self, array: PanelArray) -> float:
        return (self.outline.heading + array.rotation) % 360.0

    def generate_panels(self, array: PanelArray) -> List[PanelFootprint]:
        """
        Build the footprints of every buildable panel in an array.

        A panel is kept only when all four corners are inside the setback, at
        least one is inside the outline and none is inside an obstruction
        setback.
        """
        if len(self.setback) < 3 or len(self.outline.polygon) < 3:
            logger.warning("No setback to place panels in", extra={"array_id": array.id})
            return []

        unit_width = self.spec.unit_width
        unit_length = self.spec.unit_length
        heading = self.array_heading(array)
        across = heading + 90.0
        offset = self.geodesy.offset

        panels: List[PanelFootprint] = []
        dropped = 0
        for row_offset, col_offset in array.offsets():
            start = offset(array.origin, row_offset * unit_width, heading)
            start = offset(start, col_offset * unit_length, across)
            along = offset(start, unit_width, heading)
            corners = (
                start,
                along,
                offset(along, unit_length, across),
                offset(start, unit_length, across),
            )

            if not self._is_buildable(corners):
                dropped += 1
                continue

            height = array.obstructed_offsets.get((row_offset, col_offset))
            panels.append(PanelFootprint(
                corners=corners,
                row=row_offset + array.left,
                col=col_offset + array.up,
                state=CellState.SELECTED if height is None else CellState.OBSTRUCTED,
                obstruction_height=height,
                array_id=array.id,
                offset=(row_offset, col_offset),
            ))

        if dropped:
            logger.debug(
                "%d of %d panels outside the buildable area", dropped, array.rows * array.cols,
                extra={"array_id": array.id},
            )
        return panels

    def _is_buildable(self, corners: Sequence[Point]) -> bool:
        contains = self.geodesy.contains_location
        if not all(contains(c, self.setback) for c in corners):
            return False
        if not any(contains(c, self.outline.polygon) for c in corners):
            return False
        return not any(
            is_point_in_obstruction_setback(c, self.obstructions, self.geodesy)
            for c in corners
        )

    def _regenerate(self, array: PanelArray) -> None:
        array.panels = self.generate_panels(array)

    def all_panels(self) -> List[PanelFootprint]:
        return [panel for array in self.arrays.values() for panel in array.panels]
