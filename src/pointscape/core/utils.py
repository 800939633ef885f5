"""Utility functions and helpers."""

import logging
from enum import Enum


# Logging setup
def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with standardized configuration.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger


# Common CRS definitions
class CRS(str, Enum):
    """Common coordinate reference systems."""

    WGS84 = "EPSG:4326"  # Standard lat/lon
    WEB_MERCATOR = "EPSG:3857"  # Web mapping
    BRITISH_NATIONAL_GRID = "EPSG:27700"  # Great Britain (meters)
    UTM_ZONE_30N = "EPSG:32630"  # Great Britain UTM


# Data validation helpers
def validate_bounds(
    bounds: tuple[float, float, float, float],
) -> tuple[float, float, float, float]:
    """
    Validate and normalize spatial bounds.

    Args:
        bounds: (minx, miny, maxx, maxy)

    Returns:
        Validated bounds

    Raises:
        ValueError: If bounds are invalid
    """
    minx, miny, maxx, maxy = (float(v) for v in bounds)

    if minx >= maxx:
        raise ValueError(f"minx ({minx}) must be less than maxx ({maxx})")
    if miny >= maxy:
        raise ValueError(f"miny ({miny}) must be less than maxy ({maxy})")

    return (minx, miny, maxx, maxy)


def normalize_crs(crs: object | None) -> str | None:
    """
    Normalize a CRS-like value to an authority string.

    Accepts strings, integers (EPSG codes) and pyproj CRS objects.

    Args:
        crs: CRS definition or None for an abstract planar window

    Returns:
        Authority string such as "EPSG:27700", or None

    Raises:
        ValueError: If the CRS cannot be parsed
    """
    if crs is None:
        return None

    from pyproj import CRS as ProjCRS
    from pyproj.exceptions import CRSError

    try:
        parsed = ProjCRS.from_user_input(crs)
    except CRSError as exc:
        raise ValueError(f"Malformed CRS definition: {crs!r}") from exc

    authority = parsed.to_authority()
    if authority is None:
        return parsed.to_string()
    return f"{authority[0]}:{authority[1]}"


def ensure_same_crs(*crs_values: object | None) -> str | None:
    """
    Check that all given CRS tags describe the same reference system.

    Args:
        *crs_values: CRS tags attached to point and polygon sets

    Returns:
        The shared normalized CRS (None for abstract planar data)

    Raises:
        ValueError: If the tags disagree
    """
    normalized = {normalize_crs(value) for value in crs_values}
    if len(normalized) > 1:
        raise ValueError(
            "Spatial operation requires a single CRS, got: "
            + ", ".join(sorted(str(value) for value in normalized))
        )
    return normalized.pop() if normalized else None


# Progress tracking
class ProgressTracker:
    """Simple progress tracker for long-running operations."""

    def __init__(self, total: int, description: str = "") -> None:
        """
        Initialize progress tracker.

        Args:
            total: Total number of items
            description: Description of the operation
        """
        self.total = total
        self.description = description
        self.current = 0
        self.logger = get_logger(__name__)

    def update(self, n: int = 1) -> None:
        """Update progress by n items."""
        self.current += n
        if self.current % max(1, self.total // 10) == 0:
            pct = (self.current / self.total) * 100
            self.logger.info(f"{self.description}: {self.current}/{self.total} ({pct:.1f}%)")

    def finish(self) -> None:
        """Mark progress as complete."""
        self.logger.info(f"{self.description}: Complete ({self.total} items)")
