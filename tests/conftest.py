"""Common test fixtures and utilities."""

import geopandas as gpd
import numpy as np
import polars as pl
import pytest
from shapely import geometry

from pointscape.core.point_frame import PointFrame
from pointscape.core.schema import DataConfig
from pointscape.core.window import StudyWindow

BNG = "EPSG:27700"

# A 2 km x 1 km study area in central London (British National Grid)
STUDY_BOUNDS = (529000.0, 181000.0, 531000.0, 182000.0)


@pytest.fixture
def sample_data_dir(tmp_path):
    """Create a temporary directory with sample data."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def unit_window() -> StudyWindow:
    return StudyWindow.unit_square()


@pytest.fixture
def study_window() -> StudyWindow:
    """Rectangular study window in British National Grid."""
    return StudyWindow.from_bounds(STUDY_BOUNDS, crs=BNG)


@pytest.fixture
def fine_polygons() -> gpd.GeoDataFrame:
    """Two 1 km x 1 km units side by side, sharing the edge x=530000."""
    minx, miny, maxx, maxy = STUDY_BOUNDS
    mid = (minx + maxx) / 2
    return gpd.GeoDataFrame(
        {"LSOA11CD": ["E01000001", "E01000002"]},
        geometry=[
            geometry.box(minx, miny, mid, maxy),
            geometry.box(mid, miny, maxx, maxy),
        ],
        crs=BNG,
    )


@pytest.fixture
def coarse_polygons() -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"name": ["Study borough"]},
        geometry=[geometry.box(*STUDY_BOUNDS)],
        crs=BNG,
    )


@pytest.fixture
def projected_points() -> PointFrame:
    """Five projected points: three in the west unit, one on the shared edge, one outside."""
    coords = np.array(
        [
            [529100.0, 181100.0],
            [529500.0, 181500.0],
            [529900.0, 181900.0],
            [530000.0, 181500.0],
            [540000.0, 181500.0],
        ]
    )
    return PointFrame.from_coordinates(coords, dataset_name="projected", crs=BNG)


@pytest.fixture
def sample_crimes() -> pl.DataFrame:
    """Create sample police.uk street-crime records (raw CSV headers)."""
    return pl.DataFrame(
        {
            "Crime ID": ["c1", "c2", "c3", "c4", "c5", "c6"],
            "Month": ["2023-06"] * 6,
            "Reported by": ["Metropolitan Police Service"] * 6,
            "Longitude": [-0.1400, -0.1350, -0.1300, None, -0.1330, 2.3522],
            "Latitude": [51.5200, 51.5220, 51.5250, 51.5230, 95.0, 48.8566],
            "LSOA code": ["E01000001"] * 6,
            "Crime type": [
                "Burglary",
                "Vehicle crime",
                "Burglary",
                "Robbery",
                "Shoplifting",
                "Other theft",
            ],
        }
    )


# police.uk inputs: boundaries drawn in WGS84 around the sample crimes,
# split into two units at longitude -0.1375
WEST_UNIT = geometry.box(-0.1500, 51.5100, -0.1375, 51.5300)
EAST_UNIT = geometry.box(-0.1375, 51.5100, -0.1200, 51.5300)
STUDY_AREA = geometry.box(-0.1500, 51.5100, -0.1200, 51.5300)


@pytest.fixture
def crimes_csv(sample_data_dir, sample_crimes: pl.DataFrame):
    path = sample_data_dir / "2023-06-metropolitan-street.csv"
    sample_crimes.write_csv(path)
    return path


@pytest.fixture
def fine_boundaries(sample_data_dir):
    path = sample_data_dir / "lsoa.gpkg"
    gpd.GeoDataFrame(
        {"LSOA11CD": ["E01000001", "E01000002"]},
        geometry=[WEST_UNIT, EAST_UNIT],
        crs="EPSG:4326",
    ).to_file(path, driver="GPKG")
    return path


@pytest.fixture
def coarse_boundaries(sample_data_dir):
    path = sample_data_dir / "borough.geojson"
    gpd.GeoDataFrame({"name": ["Camden"]}, geometry=[STUDY_AREA], crs="EPSG:4326").to_file(
        path, driver="GeoJSON"
    )
    return path


@pytest.fixture
def data_config(crimes_csv, fine_boundaries, coarse_boundaries, tmp_path) -> DataConfig:
    return DataConfig(
        crimes_csv=crimes_csv,
        fine_boundaries=fine_boundaries,
        coarse_boundaries=coarse_boundaries,
        cache_path=tmp_path / "cache" / "study_data.gpkg",
    )
