"""Snapshot cache of the merged, reprojected study data.

The snapshot is a single GeoPackage holding three layers: the clipped points
and both polygon layers. Once written it is loaded verbatim, so re-runs see
exactly the same inputs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import geopandas as gpd
import polars as pl

from pointscape.core.point_frame import PointFrame
from pointscape.core.schema import PointMetadata, PointSchema
from pointscape.core.utils import ensure_same_crs, get_logger, normalize_crs
from pointscape.core.window import StudyWindow

logger = get_logger(__name__)

POINTS_LAYER = "points"
FINE_LAYER = "fine"
COARSE_LAYER = "coarse"


@dataclass(frozen=True)
class StudyData:
    """Clipped crime points with the fine and coarse polygon layers, in one CRS."""

    points: PointFrame
    fine: gpd.GeoDataFrame
    coarse: gpd.GeoDataFrame

    def __post_init__(self) -> None:
        ensure_same_crs(self.points.metadata.crs, self.fine.crs, self.coarse.crs)

    @property
    def crs(self) -> str | None:
        return self.points.metadata.crs

    @property
    def window(self) -> StudyWindow:
        """Study window covering the coarse boundary."""
        return StudyWindow.from_geometries(self.coarse.geometry, crs=self.crs)


def points_to_geodataframe(points: PointFrame) -> gpd.GeoDataFrame:
    """Convert a planar PointFrame into a point GeoDataFrame."""
    df = points.lazy_frame.collect()
    x_col, y_col = points.schema.x_col, points.schema.y_col
    return gpd.GeoDataFrame(
        df.to_dict(as_series=False),
        geometry=gpd.points_from_xy(df[x_col].to_list(), df[y_col].to_list()),
        crs=points.metadata.crs,
    )


def write_snapshot(data: StudyData, path: Path) -> Path:
    """
    Persist *data* as a three-layer GeoPackage at *path*.

    The layers are written to a sibling file that replaces *path* only once
    all three succeeded, so a failed write never leaves a partial snapshot.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    partial = path.with_name(f"{path.stem}.partial{path.suffix}")
    if partial.exists():
        partial.unlink()

    try:
        points_to_geodataframe(data.points).to_file(partial, layer=POINTS_LAYER, driver="GPKG")
        data.fine.to_file(partial, layer=FINE_LAYER, driver="GPKG")
        data.coarse.to_file(partial, layer=COARSE_LAYER, driver="GPKG")
    except Exception:
        logger.error("Failed to write study data snapshot %s", path)
        partial.unlink(missing_ok=True)
        raise

    partial.replace(path)
    logger.info("Wrote study data snapshot to %s", path)
    return path


def read_snapshot(
    path: Path,
    schema: PointSchema,
    dataset_name: str = "study_points",
) -> StudyData:
    """Load a snapshot written by :func:`write_snapshot`."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot not found: {path}")

    points_gdf = gpd.read_file(path, layer=POINTS_LAYER)
    fine = gpd.read_file(path, layer=FINE_LAYER)
    coarse = gpd.read_file(path, layer=COARSE_LAYER)

    columns = [col for col in points_gdf.columns if col != points_gdf.geometry.name]
    df = pl.DataFrame({col: points_gdf[col].tolist() for col in columns})
    crs = normalize_crs(points_gdf.crs)
    window = StudyWindow.from_geometries(coarse.geometry, crs=crs)

    points = PointFrame(
        df.lazy(),
        schema,
        PointMetadata(dataset_name=dataset_name, crs=crs, bounds=window.bounds),
    )
    logger.info("Loaded study data snapshot from %s (%s points)", path, len(df))
    return StudyData(points=points, fine=fine, coarse=coarse)


def load_or_build(
    cache_path: Path,
    build: Callable[[], StudyData],
    schema: PointSchema,
    dataset_name: str = "study_points",
) -> StudyData:
    """
    Load the cached snapshot if present; otherwise build, persist and return it.

    Args:
        cache_path: Snapshot location
        build: Callable producing fresh study data from the raw inputs
        schema: Schema of the cached point layer
        dataset_name: Name recorded on the loaded point set

    Returns:
        StudyData, identical across runs once the snapshot exists
    """
    cache_path = Path(cache_path)
    if cache_path.exists():
        logger.info("Using cached study data at %s", cache_path)
        return read_snapshot(cache_path, schema, dataset_name=dataset_name)

    logger.info("No snapshot at %s; building study data from raw inputs", cache_path)
    data = build()
    write_snapshot(data, cache_path)
    return data
