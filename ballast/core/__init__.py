"""Core models and utilities."""

from .models import (
    ArrayState,
    BoundingBox,
    CellState,
    Direction,
    GridCell,
    PanelFootprint,
    PanelSpec,
    Point,
    Polygon,
    SelectionMode,
    SystemMode,
)
from .geodesy import GeodesyProvider, SphericalGeodesy
from .coordinates import AlignedFrame, LocalFrame
from .config import Settings, settings

__all__ = [
    "ArrayState",
    "BoundingBox",
    "CellState",
    "Direction",
    "GridCell",
    "PanelFootprint",
    "PanelSpec",
    "Point",
    "Polygon",
    "SelectionMode",
    "SystemMode",
    "GeodesyProvider",
    "SphericalGeodesy",
    "AlignedFrame",
    "LocalFrame",
    "Settings",
    "settings",
]
