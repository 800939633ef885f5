"""Tests for PointFrame."""

import numpy as np
import polars as pl
import pytest

from pointscape.core.point_frame import PointFrame
from pointscape.core.schema import PointMetadata, PointSchema


@pytest.fixture
def sample_point_frame():
    """Create a sample geographic PointFrame for testing."""
    data = {
        "longitude": [-0.14, -0.13],
        "latitude": [51.52, 51.53],
        "x": [529000.0, 529700.0],
        "y": [182000.0, 183100.0],
        "crime_type": ["Burglary", "Robbery"],
    }

    schema = PointSchema(
        lon_col="longitude",
        lat_col="latitude",
        attribute_cols=["crime_type"],
    )
    metadata = PointMetadata(dataset_name="test", crs="EPSG:27700")
    return PointFrame(pl.LazyFrame(data), schema, metadata)


def test_point_frame_creation(sample_point_frame):
    """Test PointFrame creation."""
    assert sample_point_frame.schema.x_col == "x"
    assert sample_point_frame.metadata.dataset_name == "test"


def test_point_frame_collect(sample_point_frame):
    df = sample_point_frame.collect()
    assert len(df) == 2
    assert "crime_type" in df.columns


def test_point_frame_count(sample_point_frame):
    assert sample_point_frame.count() == 2
    assert len(sample_point_frame) == 2


def test_point_frame_filter(sample_point_frame):
    """Test filtering returns a new frame and leaves the input untouched."""
    filtered = sample_point_frame.filter(pl.col("crime_type") == "Burglary")
    assert filtered.count() == 1
    assert sample_point_frame.count() == 2


def test_point_frame_coordinates(sample_point_frame):
    coords = sample_point_frame.coordinates()
    assert coords.shape == (2, 2)
    np.testing.assert_allclose(coords[0], [529000.0, 182000.0])


def test_coordinates_require_planar_columns():
    """Unprojected frames cannot provide planar coordinates."""
    lf = pl.LazyFrame({"longitude": [-0.14], "latitude": [51.52]})
    schema = PointSchema(lon_col="longitude", lat_col="latitude")
    frame = PointFrame(lf, schema, PointMetadata(dataset_name="raw"))

    with pytest.raises(ValueError, match="TransformCRSStep"):
        frame.coordinates()


def test_from_coordinates():
    coords = np.array([[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]])
    frame = PointFrame.from_coordinates(coords, dataset_name="synthetic", bounds=(0, 0, 1, 1))

    assert frame.count() == 3
    assert frame.metadata.crs is None
    assert frame.metadata.bounds == (0, 0, 1, 1)
    np.testing.assert_allclose(frame.coordinates(), coords)


def test_from_coordinates_empty():
    frame = PointFrame.from_coordinates(np.empty((0, 2)), dataset_name="empty")
    assert frame.count() == 0
    assert frame.coordinates().shape == (0, 2)


def test_with_metadata_is_immutable(sample_point_frame):
    updated = sample_point_frame.with_metadata(crs="EPSG:3857")
    assert updated.metadata.crs == "EPSG:3857"
    assert sample_point_frame.metadata.crs == "EPSG:27700"


def test_with_custom(sample_point_frame):
    updated = sample_point_frame.with_custom("summary", {"n": 2})
    assert updated.metadata.custom["summary"] == {"n": 2}
    assert "summary" not in sample_point_frame.metadata.custom


def test_register_feature_syncs_provenance(sample_point_frame):
    updated = sample_point_frame.register_feature(
        "k_function",
        {"source_step": "KFunctionStep", "inputs": ["x", "y"], "tags": ["spatial"]},
    )

    assert "k_function" in updated.metadata.feature_catalog
    provenance = updated.metadata.feature_provenance["k_function"]
    assert provenance.produced_by == "KFunctionStep"
    assert provenance.inputs == ["x", "y"]
    assert updated.schema.feature_provenance["k_function"] == provenance
    assert "k_function" not in sample_point_frame.metadata.feature_provenance


def test_point_frame_repr(sample_point_frame):
    text = repr(sample_point_frame)
    assert "dataset=test" in text
    assert "crs=EPSG:27700" in text
