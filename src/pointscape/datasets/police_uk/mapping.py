"""Data loading and mapping for the police.uk crime dataset."""

from pathlib import Path

import geopandas as gpd
import polars as pl
from pyogrio.errors import DataLayerError, DataSourceError

from pointscape.core.cache import StudyData, load_or_build
from pointscape.core.pipeline import Pipeline
from pointscape.core.point_frame import PointFrame
from pointscape.core.schema import DataConfig
from pointscape.core.steps.spatial import (
    ClipToWindowStep,
    DropMissingStep,
    RequireNonEmptyStep,
    TransformCRSStep,
)
from pointscape.core.utils import CRS, get_logger, normalize_crs
from pointscape.core.window import StudyWindow
from pointscape.datasets.police_uk.schema import (
    COLUMN_MAP,
    POLICE_UK_SCHEMA,
    REQUIRED_COLS,
    create_police_uk_metadata,
)

logger = get_logger(__name__)


def load_raw_crimes(csv_path: str | Path) -> pl.LazyFrame:
    """
    Lazily scan a police.uk street-crime CSV.

    Args:
        csv_path: Path to the CSV export

    Returns:
        LazyFrame with raw data

    Raises:
        FileNotFoundError: If the file does not exist
    """
    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"Crime CSV not found: {csv_path}")

    logger.info(f"Loading crime records from: {csv_path}")
    return pl.scan_csv(csv_path, infer_schema_length=10000)


def clean_crimes(lf: pl.LazyFrame) -> pl.LazyFrame:
    """
    Apply basic cleaning to raw crime records.

    Renames columns to snake case, casts coordinates to floats and drops
    coordinates outside the valid geographic range. Rows with missing
    coordinates are left for DropMissingStep so the drop is logged.

    Args:
        lf: Raw LazyFrame

    Returns:
        Cleaned LazyFrame
    """
    logger.info("Applying data cleaning to crime records")
    present = lf.collect_schema().names()
    lf = lf.rename({raw: clean for raw, clean in COLUMN_MAP.items() if raw in present})

    missing = [col for col in REQUIRED_COLS if col not in lf.collect_schema().names()]
    if missing:
        raise ValueError(f"Crime records lack required columns: {missing}")

    lf = lf.with_columns(
        [
            pl.col("longitude").cast(pl.Float64, strict=False),
            pl.col("latitude").cast(pl.Float64, strict=False),
        ]
    )

    # Out-of-range coordinates are nulled rather than filtered, so that
    # DropMissingStep accounts for them.
    valid = pl.col("latitude").is_between(-90, 90) & pl.col("longitude").is_between(-180, 180)
    return lf.with_columns(
        [
            pl.when(valid).then(pl.col("longitude")).otherwise(None).alias("longitude"),
            pl.when(valid).then(pl.col("latitude")).otherwise(None).alias("latitude"),
        ]
    )


def load_boundaries(path: str | Path, target_crs: str) -> gpd.GeoDataFrame:
    """
    Read a polygon boundary layer and reproject it.

    Args:
        path: Any vector format geopandas can read
        target_crs: CRS to reproject into

    Returns:
        GeoDataFrame in *target_crs*

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a readable vector layer, has no CRS or is empty
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Boundary file not found: {path}")

    try:
        boundaries = gpd.read_file(path)
    except (DataSourceError, DataLayerError) as e:
        raise ValueError(f"Cannot read boundary file {path}: {e}") from e
    if boundaries.crs is None:
        raise ValueError(f"Boundary file {path} has no CRS definition")
    if boundaries.empty:
        raise ValueError(f"Boundary file {path} contains no polygons")

    logger.info(
        "Loaded %s polygons from %s; reprojecting %s -> %s",
        len(boundaries),
        path,
        normalize_crs(boundaries.crs),
        target_crs,
    )
    return boundaries.to_crs(normalize_crs(target_crs))


def load_crime_points(csv_path: str | Path, dataset_name: str = "police_uk") -> PointFrame:
    """
    Load crime records as an unprojected PointFrame.

    Args:
        csv_path: Path to the CSV export
        dataset_name: Name recorded in metadata

    Returns:
        PointFrame with longitude/latitude columns
    """
    lf = clean_crimes(load_raw_crimes(csv_path))
    return PointFrame(lf, POLICE_UK_SCHEMA, create_police_uk_metadata(dataset_name=dataset_name))


def prepare_points(
    points: PointFrame,
    window: StudyWindow,
    target_crs: str,
) -> PointFrame:
    """Drop incomplete rows, project, clip to *window* and refuse empty results."""
    pipeline = Pipeline(
        [
            DropMissingStep(REQUIRED_COLS),
            TransformCRSStep(target_crs, source_crs=CRS.WGS84.value),
            ClipToWindowStep(window),
            RequireNonEmptyStep(context="clipping to the study boundary"),
        ]
    )
    return pipeline.run(points)


def build_study_data(config: DataConfig) -> StudyData:
    """
    Build study data from the raw inputs without touching the cache.

    Args:
        config: Input locations and target CRS

    Returns:
        StudyData with points clipped to the coarse boundary

    Raises:
        FileNotFoundError: If an input file is missing
        ValueError: If an input file is malformed or no points fall inside the boundary
    """
    target_crs = normalize_crs(config.target_crs)
    fine = load_boundaries(config.fine_boundaries, target_crs)
    if config.fine_id_col not in fine.columns:
        raise ValueError(
            f"Fine boundaries {config.fine_boundaries} lack identifier column "
            f"'{config.fine_id_col}'"
        )
    coarse = load_boundaries(config.coarse_boundaries, target_crs)
    window = StudyWindow.from_geometries(coarse.geometry, crs=target_crs)

    try:
        points = prepare_points(load_crime_points(config.crimes_csv), window, target_crs)
    except pl.exceptions.PolarsError as e:
        raise ValueError(f"Cannot read crime records from {config.crimes_csv}: {e}") from e
    return StudyData(points=points, fine=fine, coarse=coarse)


def load_police_uk(config: DataConfig) -> StudyData:
    """
    Load study data through the snapshot cache.

    Args:
        config: Input locations, cache path and target CRS

    Returns:
        StudyData, read verbatim from the snapshot when one exists
    """
    return load_or_build(
        config.cache_path,
        lambda: build_study_data(config),
        POLICE_UK_SCHEMA,
        dataset_name="police_uk",
    )
