"""
Pytest configuration and fixtures for Ballast tests.

Provides reusable test fixtures for:
- Geodesy provider and a reference building in lower Manhattan
- Setbacks and obstructions
- Panel specifications for both system modes
- Site files for the CLI
"""

import json

import pytest
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from ballast.core.geodesy import SphericalGeodesy
from ballast.core.models import PanelSpec, Point, Polygon, SystemMode
from ballast.geometry.outline import BuildingOutline
from ballast.geometry.setback import SetbackGenerator


# Southwest corner of the reference building
ANCHOR = Point(40.7128, -74.006)

BUILDING_LENGTH_M = 40.0  # east-west
BUILDING_WIDTH_M = 20.0   # north-south
SETBACK_M = 1.0


def local_point(geodesy, east: float, north: float, anchor: Point = ANCHOR) -> Point:
    """Point ``east`` / ``north`` meters from the anchor."""
    return geodesy.offset(geodesy.offset(anchor, east, 90.0), north, 0.0)


def local_rect(geodesy, east: float, north: float, width: float, height: float) -> Polygon:
    """Counter-clockwise rectangle with its southwest corner at (east, north)."""
    sw = local_point(geodesy, east, north)
    se = geodesy.offset(sw, width, 90.0)
    ne = geodesy.offset(se, height, 0.0)
    nw = geodesy.offset(sw, height, 0.0)
    return Polygon((sw, se, ne, nw))


# =============================================================================
# GEOMETRY FIXTURES
# =============================================================================

@pytest.fixture
def geodesy() -> SphericalGeodesy:
    """Default spherical geodesy provider."""
    return SphericalGeodesy()


@pytest.fixture
def at(geodesy):
    """Factory for points in local meters from the building's southwest corner."""
    def _at(east: float, north: float) -> Point:
        return local_point(geodesy, east, north)
    return _at


@pytest.fixture
def rect(geodesy):
    """Factory for counter-clockwise rectangles in local meters."""
    def _rect(east: float, north: float, width: float, height: float) -> Polygon:
        return local_rect(geodesy, east, north, width, height)
    return _rect


@pytest.fixture
def building_polygon(geodesy) -> Polygon:
    """40 m x 20 m counter-clockwise rectangle, longest edge running east."""
    return local_rect(geodesy, 0.0, 0.0, BUILDING_LENGTH_M, BUILDING_WIDTH_M)


@pytest.fixture
def outline(building_polygon, geodesy) -> BuildingOutline:
    """Finalized outline of the reference building."""
    return BuildingOutline.from_polygon(building_polygon, geodesy, building_id="test-building")


@pytest.fixture
def setback_generator() -> SetbackGenerator:
    return SetbackGenerator()


@pytest.fixture
def setback(setback_generator, building_polygon) -> Polygon:
    """1 m inward setback of the reference building."""
    return setback_generator.generate_inward_setback(building_polygon, SETBACK_M)


# =============================================================================
# PANEL FIXTURES
# =============================================================================

@pytest.fixture
def panel_spec() -> PanelSpec:
    """1 m x 2 m north-south panel with 10 cm gaps."""
    return PanelSpec(width=1.0, length=2.0, spacing_ew=0.1, spacing_ns=0.1)


@pytest.fixture
def ew_spec() -> PanelSpec:
    """Same panel mounted in east-west ridge pairs."""
    return PanelSpec(
        width=1.0,
        length=2.0,
        spacing_ew=0.1,
        spacing_ns=0.1,
        mode=SystemMode.EAST_WEST,
        ridge_gap=0.2,
        valley_gap=0.3,
    )


# =============================================================================
# SITE FILE FIXTURES
# =============================================================================

@pytest.fixture
def site_data(building_polygon, geodesy) -> dict:
    """Site survey dict with one 3 x 2 array and one vent."""
    vent = local_rect(geodesy, 30.0, 12.0, 1.0, 1.0)
    origin = local_point(geodesy, 5.0, 10.0)
    return {
        "building_id": "test-building",
        "outline": building_polygon.to_coords(),
        "obstructions": [{"path": vent.to_coords(), "height": 4, "id": "vent"}],
        "arrays": [
            {"origin": [origin.lat, origin.lng], "right": 2, "down": 1},
        ],
    }


@pytest.fixture
def site_file(tmp_path, site_data) -> Path:
    """Site survey JSON file on disk."""
    path = tmp_path / "site.json"
    path.write_text(json.dumps(site_data), encoding="utf-8")
    return path
