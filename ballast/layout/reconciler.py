"""
Array-to-grid reconciliation.

Merges every array placed on one building into a single rectangular grid
aligned with the building heading, ready for the structural export.

Frame: ``x`` runs along the building heading (columns, ``unit_width``),
``y`` along heading - 90 degrees (rows, ``unit_length``). The grid origin is
the lower-left corner of the footprints' extent in that frame, which for an
east-running building is the geographic southwest corner.

The grid is sized from the footprints' extent in that frame rather than the
lat/lng bounding box, so rotated buildings get a tight grid.

Panel centroids snap to the cell whose centre is nearest. When two panels
land in the same cell the later one wins; the number of such overwrites is
reported in the metadata.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from ..core.coordinates import AlignedFrame
from ..core.geodesy import GeodesyProvider
from ..core.models import (
    BoundingBox,
    CellState,
    GridCell,
    PanelFootprint,
    PanelSpec,
    Point,
    Polygon,
)
from ..geometry.outline import BuildingOutline
from ..utils.logging_config import get_logger
from .array_manager import PanelArray
from .grid import CanonicalGrid

logger = get_logger(__name__)

# Extra cells added to each axis to absorb snapping at the edges
GRID_PADDING = 2


@dataclass(frozen=True)
class ReconciliationMetadata:
    rows: int = 0
    cols: int = 0
    total_panels: int = 0  # available + selected + obstructed
    selected: int = 0
    obstructed: int = 0
    available: int = 0
    origin: Optional[Point] = None
    rotation: float = 0.0
    bounds: Optional[BoundingBox] = None
    collisions: int = 0
    skipped: int = 0


@dataclass
class ReconciliationResult:
    grid: CanonicalGrid
    metadata: ReconciliationMetadata

    def to_layout(self) -> List[List[bool | str]]:
        return self.grid.to_payload()


def _snap(offset: float, unit: float) -> int:
    """Index of the nearest cell centre; centres sit at (k + 0.5) * unit."""
    return math.floor(offset / unit)


class GridReconciler:
    """
    Reconcile arrays into the canonical building grid.

    Usage:
        reconciler = GridReconciler(spec, outline, setback, SphericalGeodesy())
        result = reconciler.reconcile(manager)
        print(result.metadata.selected, result.to_layout())
    """

    def __init__(
        self,
        spec: PanelSpec,
        outline: BuildingOutline,
        setback: Polygon,
        geodesy: GeodesyProvider,
    ):
        self.spec = spec
        self.outline = outline
        self.setback = setback
        self.geodesy = geodesy

    def reconcile(self, arrays: Iterable[PanelArray]) -> ReconciliationResult:
        """
        Build the canonical grid for a set of arrays.

        Args:
            arrays: Arrays with generated footprints (an ArrayManager works too)

        Returns:
            ReconciliationResult; a 0 x 0 grid when there are no panels
        """
        footprints = [panel for array in arrays for panel in array.panels]
        rotation = self.outline.heading
        if not footprints:
            logger.info("Nothing to reconcile", extra={"building_id": self.outline.building_id})
            return ReconciliationResult(
                grid=CanonicalGrid.empty(),
                metadata=ReconciliationMetadata(rotation=rotation),
            )
        return self._reconcile_footprints(footprints, rotation)

    def _reconcile_footprints(
        self,
        footprints: List[PanelFootprint],
        rotation: float,
    ) -> ReconciliationResult:
        unit_width = self.spec.unit_width
        unit_length = self.spec.unit_length

        vertices = [corner for panel in footprints for corner in panel.corners]
        bounds = BoundingBox.around(vertices)
        frame = AlignedFrame(bounds.southwest, rotation)

        xy = frame.to_aligned_many(vertices)
        x0, y0 = (float(v) for v in xy.min(axis=0))
        x1, y1 = (float(v) for v in xy.max(axis=0))

        cols = math.ceil((x1 - x0) / unit_width) + GRID_PADDING
        rows = math.ceil((y1 - y0) / unit_length) + GRID_PADDING
        grid = CanonicalGrid(rows, cols)

        written: Set[Tuple[int, int]] = set()
        collisions = 0
        skipped = 0
        for panel in footprints:
            x, y = frame.to_aligned(panel.centroid)
            cell = (_snap(y - y0, unit_length), _snap(x - x0, unit_width))
            if cell not in grid:
                skipped += 1
                logger.debug(
                    "Panel snapped outside the grid", extra={"array_id": panel.array_id, "cell": cell},
                )
                continue
            if cell in written:
                collisions += 1
                logger.debug(
                    "Panel overwrites an earlier one", extra={"array_id": panel.array_id, "cell": cell},
                )
            if panel.state == CellState.OBSTRUCTED:
                grid[cell] = GridCell.obstructed(panel.obstruction_height)
            else:
                grid[cell] = GridCell(CellState.SELECTED)
            written.add(cell)

        for row in range(rows):
            for col in range(cols):
                if (row, col) in written:
                    continue
                centre = frame.to_point(x0 + (col + 0.5) * unit_width, y0 + (row + 0.5) * unit_length)
                if self._is_available(centre):
                    grid[row, col] = GridCell(CellState.AVAILABLE)

        if collisions:
            logger.warning(
                "%d panels overwritten by later panels in the same cell", collisions,
                extra={"building_id": self.outline.building_id},
            )

        counts = grid.state_counts()
        selected = counts[CellState.SELECTED]
        obstructed = counts[CellState.OBSTRUCTED]
        available = counts[CellState.AVAILABLE]
        metadata = ReconciliationMetadata(
            rows=rows,
            cols=cols,
            total_panels=available + selected + obstructed,
            selected=selected,
            obstructed=obstructed,
            available=available,
            origin=frame.to_point(x0, y0),
            rotation=rotation,
            bounds=bounds,
            collisions=collisions,
            skipped=skipped,
        )
        logger.info(
            "Reconciled %d panels into %dx%d grid (%d selected, %d obstructed)",
            len(footprints), rows, cols, selected, obstructed,
            extra={"building_id": self.outline.building_id},
        )
        return ReconciliationResult(grid=grid, metadata=metadata)

    def _is_available(self, point: Point) -> bool:
        contains = self.geodesy.contains_location
        return contains(point, self.setback) and contains(point, self.outline.polygon)
