"""Tests for array-to-grid reconciliation."""

import pytest

from ballast.core.models import CellState, Polygon
from ballast.geometry.outline import BuildingOutline
from ballast.layout.array_manager import ArrayManager
from ballast.layout.reconciler import GridReconciler


@pytest.fixture
def manager(outline, setback, panel_spec, geodesy) -> ArrayManager:
    return ArrayManager(outline, setback, panel_spec, geodesy)


@pytest.fixture
def reconciler(panel_spec, outline, setback, geodesy) -> GridReconciler:
    return GridReconciler(panel_spec, outline, setback, geodesy)


@pytest.fixture
def three_by_two(manager, at):
    """3 x 2 array fully inside the setback."""
    array = manager.create(at(5, 10))
    manager.extend_row_right(array.id, 2)
    manager.extend_col_down(array.id, 1)
    manager.activate(array.id)
    return array


class TestEmpty:
    """Test reconciliation without panels."""

    def test_no_arrays(self, reconciler):
        """Test an empty input gives a 0 x 0 grid."""
        result = reconciler.reconcile([])
        assert result.metadata.rows == 0
        assert result.metadata.cols == 0
        assert result.metadata.total_panels == 0
        assert result.to_layout() == []

    def test_arrays_without_panels(self, reconciler, manager, at):
        """Test arrays whose panels were all dropped reconcile to nothing."""
        manager.create(at(0.5, 10))
        result = reconciler.reconcile(manager)
        assert result.grid.shape == (0, 0)


class TestSingleArray:
    """Test reconciliation of one array."""

    def test_three_by_two_selected(self, reconciler, manager, three_by_two):
        """Test a 3 x 2 array yields exactly six selected cells."""
        assert three_by_two.panel_count == 6
        result = reconciler.reconcile(manager)
        assert result.metadata.selected == 6
        assert result.grid.count(CellState.SELECTED) == 6
        assert result.metadata.collisions == 0
        assert result.metadata.skipped == 0

    def test_selected_cells_form_block(self, reconciler, manager, three_by_two):
        """Test the selected cells are a contiguous 2-row, 3-column block."""
        result = reconciler.reconcile(manager)
        cells = [cell for cell, value in result.grid if value.state == CellState.SELECTED]
        rows = sorted({r for r, _ in cells})
        cols = sorted({c for _, c in cells})
        assert len(rows) == 2 and rows[-1] - rows[0] == 1
        assert len(cols) == 3 and cols[-1] - cols[0] == 2

    def test_grid_size_has_padding(self, reconciler, manager, three_by_two):
        """Test rows and columns include the padding units."""
        result = reconciler.reconcile(manager)
        assert result.metadata.cols >= 5
        assert result.metadata.rows >= 4
        layout = result.to_layout()
        assert len(layout) == result.metadata.rows
        assert all(len(row) == result.metadata.cols for row in layout)

    def test_metadata(self, reconciler, manager, three_by_two, outline):
        """Test metadata carries rotation, bounds and totals."""
        meta = reconciler.reconcile(manager).metadata
        assert meta.rotation == outline.heading
        assert meta.bounds is not None
        assert meta.origin is not None
        assert meta.total_panels == meta.available + meta.selected + meta.obstructed

    def test_unwritten_cells_classified(self, reconciler, manager, three_by_two):
        """Test padding cells inside the setback become available."""
        result = reconciler.reconcile(manager)
        assert result.metadata.available > 0
        assert result.grid.count(CellState.INTERSECTS) == 0

    def test_obstructed_panel(self, reconciler, manager, three_by_two):
        """Test a marked panel exports its height."""
        manager.mark_panel_obstructed(three_by_two.id, 1, 0, 8.0)
        result = reconciler.reconcile(manager)
        assert result.metadata.selected == 5
        assert result.metadata.obstructed == 1
        flat = [cell for row in result.to_layout() for cell in row]
        assert flat.count("8") == 1
        assert flat.count(True) == 5


class TestMultipleArrays:
    """Test merging several arrays."""

    def test_two_arrays_share_grid(self, reconciler, manager, at):
        """Test separate arrays land in one grid."""
        first = manager.create(at(5, 10))
        manager.extend_row_right(first.id, 1)
        second = manager.create(at(20, 10))
        manager.extend_row_right(second.id, 2)
        result = reconciler.reconcile(manager)
        assert result.metadata.selected == 5
        assert result.metadata.collisions == 0

    def test_overlapping_arrays_last_write_wins(self, reconciler, manager, at):
        """Test two arrays on the same spot collide and the later one is kept."""
        first = manager.create(at(5, 10))
        second = manager.create(at(5, 10))
        manager.mark_panel_obstructed(second.id, 0, 0, 3.0)
        result = reconciler.reconcile(manager)
        assert result.metadata.collisions == 1
        assert result.metadata.selected == 0
        assert result.metadata.obstructed == 1
        assert first.panel_count == 1

    def test_order_decides_collision(self, reconciler, manager, at):
        """Test reversing the array order flips the surviving cell."""
        manager.create(at(5, 10))
        second = manager.create(at(5, 10))
        manager.mark_panel_obstructed(second.id, 0, 0, 3.0)
        result = reconciler.reconcile(list(manager)[::-1])
        assert result.metadata.selected == 1
        assert result.metadata.obstructed == 0


def _rotated_building(geodesy, origin, heading: float, clockwise: bool) -> Polygon:
    """40 m x 20 m rectangle whose long edge runs along ``heading``."""
    left = (heading - 90.0) % 360.0
    p0 = origin
    p1 = geodesy.offset(p0, 40.0, heading)
    p2 = geodesy.offset(p1, 20.0, left)
    p3 = geodesy.offset(p0, 20.0, left)
    polygon = Polygon((p0, p1, p2, p3))
    return polygon.reversed() if clockwise else polygon


class TestRotatedBuildings:
    """Test buildings whose long edge does not run east."""

    @pytest.mark.parametrize("clockwise", [False, True])
    @pytest.mark.parametrize("heading", [0.0, 33.0, 45.0, 123.0, 200.0, 300.0])
    def test_three_by_two_reconciles(self, heading, clockwise, geodesy, at, setback_generator, panel_spec):
        """Test a centred 3 x 2 array keeps all six panels in the rotated grid."""
        polygon = _rotated_building(geodesy, at(0, 0), heading, clockwise)
        outline = BuildingOutline.from_polygon(polygon, geodesy)
        setback = setback_generator.generate_inward_setback(polygon, 1.0)
        assert outline.is_clockwise == clockwise

        left = (heading - 90.0) % 360.0
        centre = geodesy.offset(geodesy.offset(at(0, 0), 20.0, heading), 10.0, left)
        manager = ArrayManager(outline, setback, panel_spec, geodesy)
        array = manager.create(centre)
        manager.extend_row_right(array.id, 2)
        manager.extend_col_down(array.id, 1)
        assert len(array.panels) == 6

        meta = GridReconciler(panel_spec, outline, setback, geodesy).reconcile(manager).metadata
        assert meta.selected == 6
        assert meta.collisions == 0
        assert meta.skipped == 0
        assert meta.rotation == outline.heading
