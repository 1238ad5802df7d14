"""
Input validation utilities for Ballast.

Provides validation for coordinates, outlines and distances.

Core geometry operations never raise on malformed input; they call these
validators, catch ``ValidationError`` and degrade to an empty result with a
logged warning. The CLI and configuration layers let the error surface.

Usage:
    from ballast.utils.validation import validate_polygon, ValidationError

    try:
        validate_polygon(outline, field="outline")
    except ValidationError as exc:
        logger.warning("Skipping outline: %s", exc)
"""

import math
from typing import List, Optional, Sequence, Tuple

MIN_POLYGON_VERTICES = 3


class ValidationError(ValueError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str = "", suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field = field
        self.suggestions = suggestions or []


def validate_coordinates(latitude: float, longitude: float) -> Tuple[float, float]:
    """
    Validate geographic coordinates.

    Args:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees

    Returns:
        Tuple of (latitude, longitude)

    Raises:
        ValidationError: If coordinates are invalid
    """
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise ValidationError(
            f"Non-finite coordinates ({latitude}, {longitude})",
            field="coordinates",
        )

    if not (-90 <= latitude <= 90):
        raise ValidationError(
            f"Invalid latitude {latitude}: must be between -90 and 90",
            field="latitude",
        )

    if not (-180 <= longitude <= 180):
        raise ValidationError(
            f"Invalid longitude {longitude}: must be between -180 and 180",
            field="longitude",
            suggestions=["Check that coordinates are given as (lat, lng), not (lng, lat)"],
        )

    return latitude, longitude


def validate_polygon(points: Sequence, field: str = "polygon") -> Sequence:
    """
    Validate that a polygon has enough vertices to enclose an area.

    Accepts anything sized (a Polygon, a list of points or coordinate pairs).

    Raises:
        ValidationError: If fewer than three vertices are given
    """
    count = len(points) if points is not None else 0
    if count < MIN_POLYGON_VERTICES:
        raise ValidationError(
            f"{field} needs at least {MIN_POLYGON_VERTICES} vertices, got {count}",
            field=field,
            suggestions=["Close the outline with at least three distinct corners"],
        )
    return points


def validate_distance(value: float, field: str = "distance", allow_zero: bool = True) -> float:
    """
    Validate a setback or spacing distance in meters.

    Args:
        value: Distance to check
        field: Name used in the error message
        allow_zero: If False, zero is rejected as well

    Returns:
        The distance as float

    Raises:
        ValidationError: If the distance is negative, non-finite, or zero when not allowed
    """
    try:
        distance = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field)

    if not math.isfinite(distance):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field)

    if distance < 0 or (distance == 0 and not allow_zero):
        raise ValidationError(
            f"Invalid {field} {distance}: must be {'non-negative' if allow_zero else 'positive'}",
            field=field,
        )
    return distance


def validate_obstruction_height(height: Optional[float]) -> float:
    """Validate an obstruction height; missing heights are treated as 0."""
    if height is None:
        return 0.0
    return validate_distance(height, field="obstruction height")
