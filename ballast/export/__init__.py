"""Export modules for the structural calculation service."""

from .payload import (
    LatLng,
    LayoutSubmission,
    PayloadExporter,
    PolygonPayload,
    build_payload,
    build_submission,
    load_submission,
    rotate_layout_clockwise,
)

__all__ = [
    "LatLng",
    "LayoutSubmission",
    "PayloadExporter",
    "PolygonPayload",
    "build_payload",
    "build_submission",
    "load_submission",
    "rotate_layout_clockwise",
]
