"""Utility modules."""

from .logging_config import (
    get_logger,
    setup_logging,
    ensure_logging,
    BallastFormatter,
    FileFormatter,
)
from .validation import (
    validate_coordinates,
    validate_polygon,
    validate_distance,
    validate_obstruction_height,
    ValidationError,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "ensure_logging",
    "BallastFormatter",
    "FileFormatter",
    # Validation
    "validate_coordinates",
    "validate_polygon",
    "validate_distance",
    "validate_obstruction_height",
    "ValidationError",
]
