"""
Configuration management for the Ballast layout engine.

Defaults mirror the site survey form: panel and setback dimensions are
entered in feet and converted to meters when the engine asks for them.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import FEET_TO_METERS, PanelSpec, SystemMode


class Settings(BaseSettings):
    """
    Application settings.

    Can be configured via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="BALLAST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Panel dimensions (feet)
    panel_width_ft: float = Field(default=3.28, gt=0, description="Panel width, east-west (ft)")
    panel_length_ft: float = Field(default=5.58, gt=0, description="Panel length, north-south (ft)")
    spacing_ew_ft: float = Field(default=0.16, ge=0, description="Gap between panels east-west (ft)")
    spacing_ns_ft: float = Field(default=0.16, ge=0, description="Gap between panels north-south (ft)")

    # Setbacks (feet)
    setback_distance_ft: float = Field(default=3.0, ge=0, description="Building edge setback (ft)")
    obstruction_setback_ft: float = Field(default=2.0, ge=0, description="Clearance around obstructions (ft)")

    # System type
    system_mode: SystemMode = Field(default=SystemMode.NORTH_SOUTH)
    ridge_gap_ft: float = Field(default=0.5, ge=0, description="East-west ridge gap (ft)")
    valley_gap_ft: float = Field(default=0.5, ge=0, description="East-west valley gap (ft)")
    roof_clearance_in: float = Field(default=3.2, ge=0, description="East-west roof clearance (in)")

    # Engine tuning
    default_obstruction_height: float = Field(default=10.0, ge=0)
    grid_margin_m: float = Field(default=50.0, ge=0, description="Margin added around the outline before gridding")
    miter_limit: float = Field(default=20.0, ge=1, description="Max miter offset as a multiple of the setback")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")

    @property
    def setback_distance_m(self) -> float:
        return self.setback_distance_ft * FEET_TO_METERS

    @property
    def obstruction_setback_m(self) -> float:
        return self.obstruction_setback_ft * FEET_TO_METERS

    def panel_spec(self) -> PanelSpec:
        """Metric panel specification for the configured system."""
        return PanelSpec.from_feet(
            width=self.panel_width_ft,
            length=self.panel_length_ft,
            spacing_ew=self.spacing_ew_ft,
            spacing_ns=self.spacing_ns_ft,
            mode=self.system_mode,
            ridge_gap=self.ridge_gap_ft,
            valley_gap=self.valley_gap_ft,
        )


# Global settings instance
settings = Settings()
