"""Site file ingestion."""

from .site_parser import (
    ArrayInput,
    ObstructionInput,
    PanelMark,
    PanelOverrides,
    Site,
    SiteInput,
    SiteParser,
)

__all__ = [
    "ArrayInput",
    "ObstructionInput",
    "PanelMark",
    "PanelOverrides",
    "Site",
    "SiteInput",
    "SiteParser",
]
