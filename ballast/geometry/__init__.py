"""
Geometry Module - outline analysis and setback polygons.

Provides:
- Building outline heading (longest edge), winding and oriented dimensions
- Inward building setbacks (mitered bisector)
- Outward obstruction setbacks (edge offset and intersect)
"""

from .outline import (
    BuildingDimensions,
    BuildingOutline,
    LongestEdge,
    find_longest_edge,
    oriented_dimensions,
    polygon_area_m2,
)
from .setback import (
    Obstruction,
    SetbackGenerator,
    generate_inward_setback,
    generate_outward_setback,
    is_point_in_obstruction_setback,
)

__all__ = [
    'BuildingDimensions',
    'BuildingOutline',
    'LongestEdge',
    'find_longest_edge',
    'oriented_dimensions',
    'polygon_area_m2',
    'Obstruction',
    'SetbackGenerator',
    'generate_inward_setback',
    'generate_outward_setback',
    'is_point_in_obstruction_setback',
]
