"""
Site JSON parser.

Parses a site survey file (building outline, obstructions, placed arrays and
optional panel overrides) into Pydantic models, and assembles the engine
objects the CLI works with.

Example file:

    {
      "building_id": "warehouse-7",
      "outline": [[40.7128, -74.006], [40.7128, -74.0055], [40.7131, -74.0055]],
      "obstructions": [{"path": [[...], [...], [...]], "height": 4}],
      "arrays": [{"origin": [40.7129, -74.0059], "right": 4, "down": 2}]
    }

Coordinates are ``[lat, lng]`` pairs; lengths are in feet like the survey form.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from ..core.config import Settings, settings as default_settings
from ..core.geodesy import GeodesyProvider, SphericalGeodesy
from ..core.models import FEET_TO_METERS, PanelSpec, Point, Polygon, SystemMode
from ..geometry.outline import BuildingOutline
from ..geometry.setback import Obstruction, SetbackGenerator
from ..layout.array_manager import ArrayManager
from ..utils.logging_config import get_logger
from ..utils.validation import validate_coordinates, validate_polygon

logger = get_logger(__name__)

Coordinate = Tuple[float, float]


def _check_path(coords: List[Coordinate], field_name: str) -> List[Coordinate]:
    validate_polygon(coords, field=field_name)
    for lat, lng in coords:
        validate_coordinates(lat, lng)
    return coords


class PanelOverrides(BaseModel):
    """Panel settings for this site; anything left out falls back to Settings."""

    width_ft: Optional[float] = Field(default=None, gt=0)
    length_ft: Optional[float] = Field(default=None, gt=0)
    spacing_ew_ft: Optional[float] = Field(default=None, ge=0)
    spacing_ns_ft: Optional[float] = Field(default=None, ge=0)
    mode: Optional[SystemMode] = None
    ridge_gap_ft: Optional[float] = Field(default=None, ge=0)
    valley_gap_ft: Optional[float] = Field(default=None, ge=0)
    landscape: bool = False


class ObstructionInput(BaseModel):
    path: List[Coordinate]
    height: float = Field(default=10.0, ge=0)
    id: Optional[str] = None

    @field_validator("path")
    @classmethod
    def check_path(cls, v: List[Coordinate]) -> List[Coordinate]:
        return _check_path(v, "obstruction path")


class PanelMark(BaseModel):
    """Obstruction marker on one panel of an array, by block index."""

    row: int = Field(ge=0)
    col: int = Field(ge=0)
    height: Optional[float] = Field(default=None, ge=0)


class ArrayInput(BaseModel):
    origin: Coordinate
    quarter_turns: int = Field(default=0, ge=0, le=3)
    left: int = Field(default=0, ge=0)
    right: int = Field(default=0, ge=0)
    up: int = Field(default=0, ge=0)
    down: int = Field(default=0, ge=0)
    obstructed: List[PanelMark] = Field(default_factory=list)

    @field_validator("origin")
    @classmethod
    def check_origin(cls, v: Coordinate) -> Coordinate:
        return validate_coordinates(*v)


class SiteInput(BaseModel):
    building_id: Optional[str] = None
    outline: List[Coordinate]
    setback_ft: Optional[float] = Field(default=None, ge=0)
    obstruction_setback_ft: Optional[float] = Field(default=None, ge=0)
    roof_clearance_in: Optional[float] = Field(default=None, ge=0)
    panel: PanelOverrides = Field(default_factory=PanelOverrides)
    obstructions: List[ObstructionInput] = Field(default_factory=list)
    arrays: List[ArrayInput] = Field(default_factory=list)

    @field_validator("outline")
    @classmethod
    def check_outline(cls, v: List[Coordinate]) -> List[Coordinate]:
        return _check_path(v, "building outline")


@dataclass
class Site:
    """Engine objects assembled from a SiteInput."""

    source: SiteInput
    outline: BuildingOutline
    setback: Polygon
    obstructions: List[Obstruction]
    spec: PanelSpec
    geodesy: GeodesyProvider
    roof_clearance_in: float
    settings: Settings = field(repr=False, default_factory=lambda: default_settings)

    def array_manager(self) -> ArrayManager:
        """ArrayManager with every array from the file placed and activated."""
        manager = ArrayManager(self.outline, self.setback, self.spec, self.geodesy, self.obstructions)
        for entry in self.source.arrays:
            array = manager.create(Point(*entry.origin))
            for _ in range(entry.quarter_turns):
                manager.rotate(array.id)
            manager.extend_row_left(array.id, entry.left)
            manager.extend_row_right(array.id, entry.right)
            manager.extend_col_up(array.id, entry.up)
            manager.extend_col_down(array.id, entry.down)
            for mark in entry.obstructed:
                height = mark.height if mark.height is not None else self.settings.default_obstruction_height
                manager.mark_panel_obstructed(array.id, mark.row, mark.col, height)
            manager.activate(array.id)
        return manager


class SiteParser:
    """
    Parser for site survey JSON files.

    Handles:
    - Loading and validating input JSON
    - Converting to Pydantic models
    - Building the outline, setbacks and panel spec for the engine
    """

    def __init__(self, settings: Optional[Settings] = None, geodesy: Optional[GeodesyProvider] = None):
        self.settings = settings or default_settings
        self.geodesy = geodesy or SphericalGeodesy()
        self.setbacks = SetbackGenerator(miter_limit=self.settings.miter_limit)

    def load_json(self, file_path: str | Path) -> dict[str, Any]:
        """Load raw JSON from file."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Site file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def parse(self, file_path: str | Path) -> SiteInput:
        """
        Parse a site JSON file into a validated Pydantic model.

        Raises:
            pydantic.ValidationError: If the file does not describe a usable site
        """
        return self.parse_from_dict(self.load_json(file_path))

    def parse_from_dict(self, data: dict[str, Any]) -> SiteInput:
        return SiteInput.model_validate(data)

    def panel_spec(self, site: SiteInput) -> PanelSpec:
        cfg = self.settings
        panel = site.panel

        def pick(value: Optional[float], fallback: float) -> float:
            return fallback if value is None else value

        spec = PanelSpec.from_feet(
            width=pick(panel.width_ft, cfg.panel_width_ft),
            length=pick(panel.length_ft, cfg.panel_length_ft),
            spacing_ew=pick(panel.spacing_ew_ft, cfg.spacing_ew_ft),
            spacing_ns=pick(panel.spacing_ns_ft, cfg.spacing_ns_ft),
            mode=panel.mode or cfg.system_mode,
            ridge_gap=pick(panel.ridge_gap_ft, cfg.ridge_gap_ft),
            valley_gap=pick(panel.valley_gap_ft, cfg.valley_gap_ft),
        )
        return spec.landscape() if panel.landscape else spec

    def build(self, site: SiteInput) -> Site:
        """Assemble outline, setbacks and panel spec for a parsed site."""
        cfg = self.settings
        polygon = Polygon.from_coords(site.outline)
        outline = BuildingOutline.from_polygon(polygon, self.geodesy, building_id=site.building_id)

        setback_ft = cfg.setback_distance_ft if site.setback_ft is None else site.setback_ft
        setback = self.setbacks.generate_inward_setback(polygon, setback_ft * FEET_TO_METERS)

        clearance_ft = (
            cfg.obstruction_setback_ft if site.obstruction_setback_ft is None else site.obstruction_setback_ft
        )
        obstructions = [
            self.setbacks.obstruction(
                Polygon.from_coords(item.path),
                item.height,
                clearance_ft * FEET_TO_METERS,
                obstruction_id=item.id or str(index),
            )
            for index, item in enumerate(site.obstructions, start=1)
        ]

        logger.info(
            "Loaded site: %d vertices, heading %.1f, %d obstructions, %d arrays",
            len(polygon), outline.heading, len(obstructions), len(site.arrays),
            extra={"building_id": site.building_id},
        )
        return Site(
            source=site,
            outline=outline,
            setback=setback,
            obstructions=obstructions,
            spec=self.panel_spec(site),
            geodesy=self.geodesy,
            roof_clearance_in=cfg.roof_clearance_in if site.roof_clearance_in is None else site.roof_clearance_in,
            settings=cfg,
        )

    def load(self, file_path: str | Path) -> Site:
        """Parse and build in one step."""
        return self.build(self.parse(file_path))
