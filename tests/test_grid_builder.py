"""Tests for the full-building panel grid and its editing."""

import pytest

from ballast.core.models import BoundingBox, CellState, Polygon, SelectionMode
from ballast.geometry.outline import BuildingOutline
from ballast.layout.grid import CanonicalGrid
from ballast.layout.grid_builder import PanelGridBuilder, PanelLayout


@pytest.fixture
def builder(geodesy) -> PanelGridBuilder:
    return PanelGridBuilder(geodesy)


@pytest.fixture
def ns_layout(builder, outline, setback, panel_spec) -> PanelLayout:
    return builder.build(outline, setback, panel_spec)


@pytest.fixture
def ew_layout(builder, outline, setback, ew_spec) -> PanelLayout:
    return builder.build(outline, setback, ew_spec)


def _first(layout: PanelLayout, state: CellState):
    return next(p for p in layout.panels if p.state == state)


class TestCanonicalGrid:
    """Test the grid container."""

    def test_non_positive_size(self):
        """Test a grid with a zero dimension collapses to 0 x 0."""
        grid = CanonicalGrid(0, 5)
        assert grid.shape == (0, 0)
        assert grid.to_payload() == []

    def test_starts_non_applicable(self):
        """Test new cells are non-applicable."""
        grid = CanonicalGrid(2, 3)
        assert grid.count(CellState.NON_APPLICABLE) == 6
        assert (1, 2) in grid
        assert (2, 0) not in grid

    def test_drop_empty_rows(self):
        """Test rows without any panel are dropped on request."""
        from ballast.core.models import GridCell

        grid = CanonicalGrid(3, 2)
        grid[1, 0] = GridCell(CellState.SELECTED)
        assert len(grid.to_payload()) == 3
        assert grid.to_payload(drop_empty_rows=True) == [[True, "non-value"]]


class TestNorthSouthGrid:
    """Test north-south grid construction."""

    def test_has_available_panels(self, ns_layout):
        """Test the reference roof has room for panels."""
        assert ns_layout.count(CellState.AVAILABLE) > 100
        assert ns_layout.count(CellState.INTERSECTS) > 0

    def test_available_panels_inside_setback(self, ns_layout, setback, geodesy):
        """Test every corner of an available panel is inside the setback."""
        for panel in ns_layout.panels:
            if panel.state == CellState.AVAILABLE:
                assert all(geodesy.contains_location(c, setback) for c in panel.corners)

    def test_intersecting_panels_touch_building(self, ns_layout, building_polygon, geodesy):
        """Test every intersecting panel has a corner on the roof."""
        for panel in ns_layout.panels:
            if panel.state == CellState.INTERSECTS:
                assert any(geodesy.contains_location(c, building_polygon) for c in panel.corners)

    def test_grid_matches_panels(self, ns_layout):
        """Test the grid and the footprint list agree."""
        for panel in ns_layout.panels:
            assert ns_layout.grid[panel.row, panel.col].state == panel.state
        emitted = sum(1 for _, cell in ns_layout.grid if cell.state != CellState.NON_APPLICABLE)
        assert emitted == len(ns_layout.panels)

    def test_panel_dimensions(self, ns_layout, geodesy, panel_spec):
        """Test footprints are panel-sized, without the spacing."""
        panel = _first(ns_layout, CellState.AVAILABLE)
        c0, c1, c2, _ = panel.corners
        assert geodesy.distance_between(c0, c1) == pytest.approx(panel_spec.width, abs=0.01)
        assert geodesy.distance_between(c1, c2) == pytest.approx(panel_spec.length, abs=0.01)

    def test_layout_is_rectangular(self, ns_layout):
        """Test every exported row has the same length."""
        rows = ns_layout.to_layout()
        assert rows
        assert len({len(row) for row in rows}) == 1

    def test_no_pairs(self, ns_layout):
        """Test north-south panels carry no pair index."""
        assert all(p.pair_index is None for p in ns_layout.panels)

    def test_quarter_turn(self, builder, outline, setback, panel_spec):
        """Test a quarter-turned grid still finds panels."""
        turned = builder.build(outline, setback, panel_spec, alignment_angle=outline.alignment_angle(True))
        assert turned.count(CellState.AVAILABLE) > 100

    def test_clockwise_outline(self, builder, building_polygon, geodesy, setback_generator, panel_spec):
        """Test a clockwise outline gets a comparable grid."""
        reversed_polygon = building_polygon.reversed()
        outline = BuildingOutline.from_polygon(reversed_polygon, geodesy)
        setback = setback_generator.generate_inward_setback(reversed_polygon, 1.0)
        layout = builder.build(outline, setback, panel_spec)
        assert outline.is_clockwise
        assert layout.count(CellState.AVAILABLE) > 100

    def test_degenerate_setback(self, builder, outline, panel_spec):
        """Test an empty setback yields an empty layout."""
        layout = builder.build(outline, Polygon(), panel_spec)
        assert layout.grid.shape == (0, 0)
        assert layout.panels == []


class TestSelection:
    """Test selection and obstruction editing."""

    def test_toggle_selection(self, ns_layout):
        """Test an available panel toggles to selected and back."""
        panel = _first(ns_layout, CellState.AVAILABLE)
        assert ns_layout.toggle_selection(panel.row, panel.col)
        assert ns_layout.grid[panel.row, panel.col].state == CellState.SELECTED
        assert panel.state == CellState.SELECTED
        assert ns_layout.toggle_selection(panel.row, panel.col)
        assert panel.state == CellState.AVAILABLE

    def test_intersecting_not_selectable(self, ns_layout):
        """Test intersecting panels ignore selection."""
        panel = _first(ns_layout, CellState.INTERSECTS)
        assert not ns_layout.toggle_selection(panel.row, panel.col)
        assert panel.state == CellState.INTERSECTS

    def test_empty_cell_not_selectable(self, ns_layout):
        """Test a cell with no panel ignores selection."""
        assert ns_layout.grid[0, 0].state == CellState.NON_APPLICABLE
        assert not ns_layout.toggle_selection(0, 0)

    def test_toggle_obstruction(self, ns_layout):
        """Test obstruction marking and clearing."""
        panel = _first(ns_layout, CellState.AVAILABLE)
        ns_layout.toggle_obstruction(panel.row, panel.col, height=6)
        cell = ns_layout.grid[panel.row, panel.col]
        assert cell.state == CellState.OBSTRUCTED
        assert cell.payload_value() == "6"
        ns_layout.toggle_obstruction(panel.row, panel.col)
        assert ns_layout.grid[panel.row, panel.col].state == CellState.AVAILABLE

    def test_default_obstruction_height(self, ns_layout):
        """Test the default height is used when none is given."""
        panel = _first(ns_layout, CellState.AVAILABLE)
        ns_layout.toggle_obstruction(panel.row, panel.col)
        assert ns_layout.grid[panel.row, panel.col].height == 10.0

    def test_negative_obstruction_height_rejected(self, ns_layout):
        """Test a negative height leaves the panel untouched."""
        panel = _first(ns_layout, CellState.AVAILABLE)
        assert not ns_layout.toggle_obstruction(panel.row, panel.col, height=-4)
        assert ns_layout.grid[panel.row, panel.col].state == CellState.AVAILABLE
        assert panel.obstruction_height is None

    def test_obstructed_panel_ignores_selection(self, ns_layout):
        """Test selection leaves obstructed panels alone."""
        panel = _first(ns_layout, CellState.AVAILABLE)
        ns_layout.toggle_obstruction(panel.row, panel.col, height=3)
        assert not ns_layout.toggle_selection(panel.row, panel.col)
        assert panel.state == CellState.OBSTRUCTED

    def test_select_in_bounds(self, ns_layout, at):
        """Test box selection toggles only panels touching the box."""
        box = BoundingBox.around([at(10, 5), at(14, 9)])
        toggled = ns_layout.select_in_bounds(box)
        assert toggled > 0
        assert ns_layout.count(CellState.SELECTED) == toggled

    def test_select_in_bounds_obstructions(self, ns_layout, at):
        """Test box selection in obstruction mode."""
        box = BoundingBox.around([at(10, 5), at(14, 9)])
        toggled = ns_layout.select_in_bounds(box, SelectionMode.OBSTRUCTIONS, height=2)
        assert toggled > 0
        assert ns_layout.count(CellState.OBSTRUCTED) == toggled

    def test_layout_reflects_selection(self, ns_layout):
        """Test selected panels export as true."""
        panel = _first(ns_layout, CellState.AVAILABLE)
        ns_layout.toggle_selection(panel.row, panel.col)
        flat = [cell for row in ns_layout.to_layout() for cell in row]
        assert flat.count(True) == 1


class TestEastWestPairs:
    """Test ridge-mounted pairs never diverge."""

    def test_pairs_share_index(self, ew_layout):
        """Test both halves of a pair share the pair index."""
        for panel in ew_layout.panels:
            partner = ew_layout.partner(panel)
            if partner is not None:
                assert partner.pair_index == panel.pair_index
                assert {panel.facing, partner.facing} == {"east", "west"}

    def test_available_pairs_are_complete(self, ew_layout):
        """Test an available panel always has an available partner."""
        available = [p for p in ew_layout.panels if p.state == CellState.AVAILABLE]
        assert available
        for panel in available:
            partner = ew_layout.partner(panel)
            assert partner is not None
            assert partner.state == CellState.AVAILABLE

    def test_rows_alternate_facing(self, ew_layout):
        """Test east panels sit on even rows and west panels on odd rows."""
        for panel in ew_layout.panels:
            assert panel.facing == ("east" if panel.row % 2 == 0 else "west")

    def test_toggle_selects_partner(self, ew_layout):
        """Test selecting one half selects the other."""
        panel = _first(ew_layout, CellState.AVAILABLE)
        partner = ew_layout.partner(panel)
        ew_layout.toggle_selection(panel.row, panel.col)
        assert panel.state == partner.state == CellState.SELECTED
        ew_layout.toggle_selection(partner.row, partner.col)
        assert panel.state == partner.state == CellState.AVAILABLE

    def test_obstruction_applies_to_pair(self, ew_layout):
        """Test obstruction marking hits both halves with the same height."""
        panel = _first(ew_layout, CellState.AVAILABLE)
        partner = ew_layout.partner(panel)
        ew_layout.toggle_obstruction(partner.row, partner.col, height=7)
        assert ew_layout.grid[panel.row, panel.col] == ew_layout.grid[partner.row, partner.col]
        assert panel.obstruction_height == partner.obstruction_height == 7

    def test_box_selection_toggles_pair_once(self, ew_layout, at):
        """Test a box over both halves leaves the pair selected, not toggled twice."""
        box = BoundingBox.around([at(0, 0), at(40, 20)])
        ew_layout.select_in_bounds(box)
        available_before = [p for p in ew_layout.panels if p.state == CellState.AVAILABLE]
        assert available_before == []
        for panel in ew_layout.panels:
            partner = ew_layout.partner(panel)
            if partner is not None and panel.state in (CellState.SELECTED, CellState.AVAILABLE):
                assert partner.state == panel.state

    def test_pairs_never_diverge(self, ew_layout):
        """Test an arbitrary edit sequence keeps every pair consistent."""
        editable = [p for p in ew_layout.panels if p.state == CellState.AVAILABLE][:12]
        for i, panel in enumerate(editable):
            if i % 3 == 0:
                ew_layout.toggle_obstruction(panel.row, panel.col, height=i)
            else:
                ew_layout.toggle_selection(panel.row, panel.col)
        for panel in ew_layout.panels:
            partner = ew_layout.partner(panel)
            if partner is not None:
                assert ew_layout.grid[panel.row, panel.col] == ew_layout.grid[partner.row, partner.col]
