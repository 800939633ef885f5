"""Point-in-polygon aggregation onto administrative units."""

from __future__ import annotations

import geopandas as gpd
import numpy as np
import shapely
from shapely import STRtree

from pointscape.core.point_frame import PointFrame
from pointscape.core.utils import ensure_same_crs, get_logger

logger = get_logger(__name__)


def assign_points_to_polygons(coords: np.ndarray, polygons: gpd.GeoDataFrame) -> np.ndarray:
    """
    Positional index of the polygon containing each point.

    The test is boundary inclusive. A point on an edge shared by several
    polygons goes to the one listed first, so each point is assigned at most
    once. Points outside every polygon get -1.

    Args:
        coords: (n, 2) planar coordinates
        polygons: Polygon layer in the same CRS

    Returns:
        Integer array of length n
    """
    coords = np.asarray(coords, dtype=float).reshape(-1, 2)
    assignment = np.full(len(coords), -1, dtype=np.int64)
    if len(coords) == 0 or len(polygons) == 0:
        return assignment

    tree = STRtree(np.asarray(polygons.geometry.values, dtype=object))
    point_idx, polygon_idx = tree.query(shapely.points(coords), predicate="intersects")

    unassigned = len(polygons)
    first_match = np.full(len(coords), unassigned, dtype=np.int64)
    np.minimum.at(first_match, point_idx, polygon_idx.astype(np.int64))
    assignment[first_match < unassigned] = first_match[first_match < unassigned]
    return assignment


def count_points_in_polygons(
    points: PointFrame,
    polygons: gpd.GeoDataFrame,
    count_col: str = "crime_count",
) -> gpd.GeoDataFrame:
    """
    Count the points falling in each polygon.

    Args:
        points: Point set in the polygons' CRS
        polygons: Polygon layer (one row per unit)
        count_col: Name of the derived count column

    Returns:
        Copy of *polygons* with a non-negative integer *count_col*

    Raises:
        ValueError: If the CRS tags differ or *count_col* already exists
    """
    ensure_same_crs(points.metadata.crs, polygons.crs)
    if count_col in polygons.columns:
        raise ValueError(f"Polygon layer already has a '{count_col}' column")

    coords = points.coordinates()
    assignment = assign_points_to_polygons(coords, polygons)
    matched = assignment[assignment >= 0]
    counts = np.bincount(matched, minlength=len(polygons)).astype(np.int64)

    logger.info(
        "Aggregated %s of %s points onto %s polygons", len(matched), len(coords), len(polygons)
    )

    counted = polygons.copy()
    counted[count_col] = counts
    return counted
