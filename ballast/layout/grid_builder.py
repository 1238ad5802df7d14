"""
Full-building panel grid.

Lays a rotated rectangular grid of panel footprints over the whole outline,
classifies each footprint against the setback and the outline, and exposes
the selection/obstruction edits the survey tools make on that grid.

North-south systems place one panel per grid unit. East-west systems place a
ridge-mounted pair per unit: an east-facing panel on row ``2j`` and a
west-facing panel on row ``2j + 1``, linked by a shared pair index. Every
state change goes through ``PanelLayout._apply`` which always writes the
whole pair, so the two panels can never disagree.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

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
    SelectionMode,
)
from ..geometry.outline import BuildingOutline
from ..utils.logging_config import get_logger
from ..utils.validation import ValidationError, validate_obstruction_height, validate_polygon
from .grid import CanonicalGrid

logger = get_logger(__name__)

EDITABLE_STATES = frozenset({CellState.AVAILABLE, CellState.SELECTED, CellState.OBSTRUCTED})


@dataclass
class PanelLayout:
    """Grid plus the parallel list of footprints it was built from."""
    grid: CanonicalGrid
    panels: List[PanelFootprint] = field(default_factory=list)
    across: int = 0
    east_west: bool = False
    default_obstruction_height: float = 10.0
    _index: Dict[Tuple[int, int], PanelFootprint] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._index = {(p.row, p.col): p for p in self.panels}

    @classmethod
    def empty(cls) -> "PanelLayout":
        return cls(grid=CanonicalGrid.empty())

    def panel_at(self, row: int, col: int) -> Optional[PanelFootprint]:
        return self._index.get((row, col))

    def partner(self, panel: PanelFootprint) -> Optional[PanelFootprint]:
        """Other half of an east-west pair."""
        if panel.pair_index is None:
            return None
        partner_row = panel.row + 1 if panel.row % 2 == 0 else panel.row - 1
        return self.panel_at(partner_row, panel.col)

    def _group(self, row: int, col: int) -> List[PanelFootprint]:
        """Panels that change state together with (row, col); empty when not editable."""
        panel = self.panel_at(row, col)
        if panel is None:
            return []
        group = [panel]
        if self.east_west:
            partner = self.partner(panel)
            if partner is None:
                return []
            group.append(partner)
        if any(self.grid[p.row, p.col].state not in EDITABLE_STATES for p in group):
            return []
        return group

    def _apply(self, group: List[PanelFootprint], cell: GridCell) -> None:
        for panel in group:
            panel.state = cell.state
            panel.obstruction_height = cell.height
            self.grid[panel.row, panel.col] = cell

    def toggle_selection(self, row: int, col: int) -> bool:
        """
        Flip a panel (and its pair partner) between available and selected.

        Returns:
            True if anything changed. Obstructed and non-selectable cells are left alone.
        """
        group = self._group(row, col)
        if not group:
            return False
        current = self.grid[row, col].state
        if current == CellState.SELECTED:
            self._apply(group, GridCell(CellState.AVAILABLE))
        elif current == CellState.AVAILABLE:
            self._apply(group, GridCell(CellState.SELECTED))
        else:
            return False
        return True

    def toggle_obstruction(self, row: int, col: int, height: Optional[float] = None) -> bool:
        """Mark a panel (and its pair partner) obstructed, or clear an existing mark."""
        group = self._group(row, col)
        if not group:
            return False
        if self.grid[row, col].state == CellState.OBSTRUCTED:
            self._apply(group, GridCell(CellState.AVAILABLE))
        else:
            if height is None:
                height = self.default_obstruction_height
            try:
                height = validate_obstruction_height(height)
            except ValidationError as exc:
                logger.warning("Obstruction mark ignored: %s", exc, extra={"cell": (row, col)})
                return False
            self._apply(group, GridCell.obstructed(height))
        return True

    def select_in_bounds(
        self,
        bounds: BoundingBox,
        mode: SelectionMode = SelectionMode.PANELS,
        height: Optional[float] = None,
    ) -> int:
        """
        Toggle every panel whose footprint box touches ``bounds``.

        A pair is toggled once even when both halves are inside the box.

        Returns:
            Number of panels or pairs toggled
        """
        seen_pairs = set()
        toggled = 0
        for panel in self.panels:
            if not bounds.intersects(panel.bounds):
                continue
            if panel.pair_index is not None:
                if panel.pair_index in seen_pairs:
                    continue
                seen_pairs.add(panel.pair_index)
            if mode == SelectionMode.OBSTRUCTIONS:
                changed = self.toggle_obstruction(panel.row, panel.col, height)
            else:
                changed = self.toggle_selection(panel.row, panel.col)
            toggled += int(changed)
        return toggled

    def count(self, state: CellState) -> int:
        return self.grid.count(state)

    def to_layout(self) -> List[List[bool | str]]:
        """Payload rows, skipping rows without any emitted panel."""
        return self.grid.to_payload(drop_empty_rows=True)


class PanelGridBuilder:
    """
    Cover a building with a rotated grid of classified panel footprints.

    Usage:
        builder = PanelGridBuilder(SphericalGeodesy())
        layout = builder.build(outline, setback, spec)
        layout.toggle_selection(12, 7)
        rows = layout.to_layout()
    """

    GRID_MARGIN_M = 50.0

    def __init__(
        self,
        geodesy: GeodesyProvider,
        margin_m: float = GRID_MARGIN_M,
        default_obstruction_height: float = 10.0,
    ):
        self.geodesy = geodesy
        self.margin_m = margin_m
        self.default_obstruction_height = default_obstruction_height

    def build(
        self,
        outline: BuildingOutline,
        setback: Polygon,
        spec: PanelSpec,
        alignment_angle: Optional[float] = None,
        clockwise: Optional[bool] = None,
        offset_m: Tuple[float, float] = (0.0, 0.0),
    ) -> PanelLayout:
        """
        Build the classified grid for one outline.

        Args:
            outline: Finalized building outline
            setback: Inward setback polygon of the outline
            spec: Panel specification; its mode picks single or paired units
            alignment_angle: Grid heading (defaults to the outline heading)
            clockwise: Winding flag; a clockwise outline runs the grid the
                other way along the heading (defaults to the outline's winding)
            offset_m: Grid shift in meters (along the heading, to its left)

        Returns:
            PanelLayout; empty for a malformed outline or setback
        """
        try:
            validate_polygon(outline.polygon, field="building outline")
            validate_polygon(setback, field="setback polygon")
        except ValidationError as exc:
            logger.warning("Panel grid skipped: %s", exc, extra={"building_id": outline.building_id})
            return PanelLayout.empty()

        if alignment_angle is None:
            alignment_angle = outline.heading
        if clockwise is None:
            clockwise = outline.is_clockwise

        bounds = outline.polygon.bounds
        center = bounds.center
        width_m = self.geodesy.distance_between(
            Point(center.lat, bounds.min_lng), Point(center.lat, bounds.max_lng)
        )
        height_m = self.geodesy.distance_between(
            Point(bounds.min_lat, center.lng), Point(bounds.max_lat, center.lng)
        )
        extent = max(width_m + self.margin_m, height_m + self.margin_m) * math.sqrt(2)

        unit_width = spec.unit_width
        step = spec.row_step
        across = math.ceil(extent / unit_width)
        down = math.ceil(extent / step)

        row_gap = spec.valley_gap if spec.is_east_west else spec.spacing_ns
        grid_width = across * unit_width - spec.spacing_ew
        grid_height = down * step - row_gap
        start_x = -grid_width / 2 + offset_m[0]
        start_y = -grid_height / 2 + offset_m[1]

        heading = (alignment_angle + 180.0) % 360.0 if clockwise else alignment_angle % 360.0
        frame = AlignedFrame(center, heading)

        rows = down * 2 if spec.is_east_west else down
        grid = CanonicalGrid(rows, across)
        panels: List[PanelFootprint] = []

        def classify(x0: float, y0: float, length: float, row: int, col: int, **extra) -> Optional[PanelFootprint]:
            corners = (
                frame.to_point(x0, y0),
                frame.to_point(x0 + spec.width, y0),
                frame.to_point(x0 + spec.width, y0 + length),
                frame.to_point(x0, y0 + length),
            )
            if all(self.geodesy.contains_location(c, setback) for c in corners):
                state = CellState.AVAILABLE
            elif any(self.geodesy.contains_location(c, outline.polygon) for c in corners):
                state = CellState.INTERSECTS
            else:
                return None
            panel = PanelFootprint(corners=corners, row=row, col=col, state=state, array_id=None, **extra)
            grid[row, col] = GridCell(state)
            panels.append(panel)
            return panel

        for i in range(across):
            x0 = start_x + i * unit_width
            for j in range(down):
                y0 = start_y + j * step
                if not spec.is_east_west:
                    classify(x0, y0, spec.length, j, i)
                    continue

                pair_index = j * across + i
                east = classify(x0, y0, spec.length, 2 * j, i, pair_index=pair_index, facing="east")
                west = classify(
                    x0, y0 + spec.length + spec.ridge_gap, spec.length, 2 * j + 1, i,
                    pair_index=pair_index, facing="west",
                )
                self._link_pair(grid, east, west)

        layout = PanelLayout(
            grid=grid,
            panels=panels,
            across=across,
            east_west=spec.is_east_west,
            default_obstruction_height=self.default_obstruction_height,
        )
        logger.info(
            "Panel grid %dx%d: %d available, %d intersecting",
            grid.rows, grid.cols,
            layout.count(CellState.AVAILABLE), layout.count(CellState.INTERSECTS),
            extra={"building_id": outline.building_id},
        )
        return layout

    @staticmethod
    def _link_pair(
        grid: CanonicalGrid,
        east: Optional[PanelFootprint],
        west: Optional[PanelFootprint],
    ) -> None:
        """A pair is selectable only when both halves are; otherwise neither is."""
        members = [p for p in (east, west) if p is not None]
        if len(members) == 2 and all(p.state == CellState.AVAILABLE for p in members):
            return
        for panel in members:
            if panel.state == CellState.AVAILABLE:
                panel.state = CellState.INTERSECTS
                grid[panel.row, panel.col] = GridCell(CellState.INTERSECTS)
