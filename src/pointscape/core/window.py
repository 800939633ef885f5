"""Study windows: the region a point pattern is observed in."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import shapely
from shapely import geometry
from shapely.geometry.base import BaseGeometry

from pointscape.core.utils import get_logger, validate_bounds

logger = get_logger(__name__)


@dataclass(frozen=True)
class StudyWindow:
    """
    Observation window of a point pattern.

    Attributes:
        polygon: Polygonal window in the point set's planar CRS
        crs: CRS tag shared with the point set (None for abstract windows)
    """

    polygon: BaseGeometry
    crs: str | None = None

    def __post_init__(self) -> None:
        if self.polygon.is_empty or self.polygon.area <= 0:
            raise ValueError("Study window must be a polygon with positive area")

    @classmethod
    def from_bounds(
        cls,
        bounds: tuple[float, float, float, float],
        crs: str | None = None,
    ) -> StudyWindow:
        """Rectangular window from (minx, miny, maxx, maxy)."""
        return cls(geometry.box(*validate_bounds(bounds)), crs)

    @classmethod
    def unit_square(cls) -> StudyWindow:
        """The [0, 1] x [0, 1] window used for synthetic patterns."""
        return cls.from_bounds((0.0, 0.0, 1.0, 1.0))

    @classmethod
    def from_geometries(cls, geoms: object, crs: str | None = None) -> StudyWindow:
        """Window covering the union of polygon geometries (e.g. a GeoSeries)."""
        union = shapely.union_all(np.asarray(geoms, dtype=object))
        logger.debug("Built study window from %s geometries", len(np.asarray(geoms)))
        return cls(union, crs)

    @property
    def area(self) -> float:
        return float(self.polygon.area)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        minx, miny, maxx, maxy = self.polygon.bounds
        return (float(minx), float(miny), float(maxx), float(maxy))

    @property
    def is_rectangle(self) -> bool:
        """Whether the window is an axis-aligned rectangle."""
        return bool(self.polygon.equals(geometry.box(*self.bounds)))

    def expanded(self, distance: float) -> StudyWindow:
        """Rectangular window around this one's bounds, grown by *distance*."""
        minx, miny, maxx, maxy = self.bounds
        return StudyWindow.from_bounds(
            (minx - distance, miny - distance, maxx + distance, maxy + distance), self.crs
        )

    def contains(self, coords: np.ndarray) -> np.ndarray:
        """Boolean mask of the points lying inside or on the window boundary."""
        coords = np.asarray(coords, dtype=float).reshape(-1, 2)
        return np.asarray(
            shapely.intersects_xy(self.polygon, coords[:, 0], coords[:, 1]), dtype=bool
        )

    def boundary_distance(self, coords: np.ndarray) -> np.ndarray:
        """Distance from each point to the window boundary."""
        coords = np.asarray(coords, dtype=float).reshape(-1, 2)
        points = shapely.points(coords)
        return np.asarray(shapely.distance(self.polygon.boundary, points), dtype=float)

    def translation_overlap(self, dx: np.ndarray, dy: np.ndarray) -> np.ndarray:
        """Area of W intersected with W shifted by (dx, dy).

        Only defined in closed form for rectangular windows.

        Raises:
            ValueError: If the window is not an axis-aligned rectangle
        """
        if not self.is_rectangle:
            raise ValueError("Translation edge correction requires a rectangular window")
        minx, miny, maxx, maxy = self.bounds
        width = np.clip((maxx - minx) - np.abs(dx), 0.0, None)
        height = np.clip((maxy - miny) - np.abs(dy), 0.0, None)
        return width * height
