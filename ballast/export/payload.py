"""
Structural service payload.

Builds the submission the structural calculation service consumes: the
reconciled (or hand-selected) layout rows plus building and panel
dimensions in feet. East-west systems are handed over turned a quarter:
the layout grid is rotated clockwise and the width/length pairs swap.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, Field
from rich.console import Console

from ..core.geodesy import GeodesyProvider
from ..core.models import METERS_TO_FEET, PanelSpec
from ..geometry.outline import BuildingOutline, oriented_dimensions
from ..utils.logging_config import get_logger

logger = get_logger(__name__)
console = Console()

Cell = Union[bool, str]

INCHES_PER_FOOT = 12.0


class LatLng(BaseModel):
    lat: float
    lng: float


class PolygonPayload(BaseModel):
    """Layout and dimensions for one building outline."""

    polygon_id: int = 0
    layout: List[List[Cell]] = Field(default_factory=list)
    building_width: float = 0.0
    building_length: float = 0.0
    building_area: float = 0.0
    building_rotation: float = 0.0
    is_landscape: bool = False
    panel_width: float
    panel_length: float
    lat: Optional[float] = None
    lng: Optional[float] = None
    vertices: List[LatLng] = Field(default_factory=list)
    is_clockwise: bool = False

    # East-west only
    ridge_gap: Optional[float] = None
    valley_gap: Optional[float] = None
    roof_clearance: Optional[str] = None


class LayoutSubmission(BaseModel):
    """Top-level submission; building fields mirror the first outline."""

    lat: Optional[float] = None
    lng: Optional[float] = None
    system_mode: str
    panel_layout: List[PolygonPayload] = Field(default_factory=list)
    panel_width: float
    panel_length: float
    building_width: Optional[float] = None
    building_length: Optional[float] = None
    building_area: Optional[float] = None
    building_rotation: float = 0.0


def rotate_layout_clockwise(layout: Sequence[Sequence[Cell]]) -> List[List[Cell]]:
    """Turn a rectangular layout a quarter clockwise."""
    if not layout or not layout[0]:
        return [list(row) for row in layout]
    rows = len(layout)
    return [
        [layout[rows - 1 - r][c] for r in range(rows)]
        for c in range(len(layout[0]))
    ]


def _feet(meters: float) -> float:
    return round(meters * METERS_TO_FEET, 2)


def build_payload(
    layout: Sequence[Sequence[Cell]],
    outline: BuildingOutline,
    spec: PanelSpec,
    geodesy: GeodesyProvider,
    polygon_id: int = 0,
    roof_clearance_in: float = 3.2,
    is_landscape: bool = False,
) -> PolygonPayload:
    """
    Assemble the payload for one outline.

    Args:
        layout: Payload rows from a reconciliation or a panel layout
        outline: Building outline the layout belongs to
        spec: Metric panel specification
        geodesy: Provider used for building dimensions
        polygon_id: Index of the outline in the submission
        roof_clearance_in: East-west roof clearance in inches
        is_landscape: Whether the panels were laid out turned a quarter

    Returns:
        PolygonPayload with dimensions in feet
    """
    dims = oriented_dimensions(outline, geodesy)
    building_width = round(dims.width_ft, 2)
    building_length = round(dims.length_ft, 2)
    panel_width = _feet(spec.width)
    panel_length = _feet(spec.length)
    rotation = outline.heading
    rows = [list(row) for row in layout]

    polygon = outline.polygon
    first = polygon[0] if len(polygon) else None

    payload = PolygonPayload(
        polygon_id=polygon_id,
        building_area=round(dims.area_sq_ft, 2),
        is_landscape=is_landscape,
        lat=first.lat if first else None,
        lng=first.lng if first else None,
        vertices=[LatLng(lat=p.lat, lng=p.lng) for p in polygon],
        is_clockwise=outline.is_clockwise,
        panel_width=panel_width,
        panel_length=panel_length,
    )

    if spec.is_east_west:
        rows = rotate_layout_clockwise(rows)
        building_width, building_length = building_length, building_width
        panel_width, panel_length = panel_length, panel_width
        rotation = (rotation + 90.0) % 360.0
        payload.ridge_gap = _feet(spec.ridge_gap)
        payload.valley_gap = _feet(spec.valley_gap)
        payload.roof_clearance = str(roof_clearance_in / INCHES_PER_FOOT)

    payload.layout = rows
    payload.building_width = building_width
    payload.building_length = building_length
    payload.building_rotation = rotation
    payload.panel_width = panel_width
    payload.panel_length = panel_length
    return payload


def build_submission(polygons: Sequence[PolygonPayload], spec: PanelSpec) -> LayoutSubmission:
    """Wrap per-outline payloads into one submission."""
    first = polygons[0] if polygons else None
    panel_width = _feet(spec.width)
    panel_length = _feet(spec.length)
    if spec.is_east_west:
        panel_width, panel_length = panel_length, panel_width
    return LayoutSubmission(
        lat=first.lat if first else None,
        lng=first.lng if first else None,
        system_mode=spec.mode.value,
        panel_layout=list(polygons),
        panel_width=panel_width,
        panel_length=panel_length,
        building_width=first.building_width if first else None,
        building_length=first.building_length if first else None,
        building_area=first.building_area if first else None,
        building_rotation=first.building_rotation if first else 0.0,
    )


class PayloadExporter:
    """
    Write submissions to JSON.

    Usage:
        exporter = PayloadExporter()
        exporter.export(submission, "output/layout.json")
    """

    def __init__(self, pretty: bool = True, quiet: bool = False):
        """
        Args:
            pretty: Whether to format JSON with indentation
            quiet: Skip the console confirmation line
        """
        self.pretty = pretty
        self.quiet = quiet

    def export(self, submission: LayoutSubmission, output_path: Path | str) -> Path:
        """
        Export a submission to JSON.

        Returns:
            Path to exported file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = submission.model_dump(mode="json")
        with open(output_path, "w", encoding="utf-8") as f:
            if self.pretty:
                json.dump(data, f, indent=2, ensure_ascii=False)
            else:
                json.dump(data, f, ensure_ascii=False)

        logger.info("Wrote layout payload to %s", output_path)
        if not self.quiet:
            console.print(f"[green]Exported layout JSON: {output_path}[/green]")
        return output_path


def load_submission(path: Path | str) -> LayoutSubmission:
    """Load a submission written by PayloadExporter."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return LayoutSubmission.model_validate(data)
