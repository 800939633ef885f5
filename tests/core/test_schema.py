"""Tests for schema and configuration definitions."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from pointscape.core.schema import (
    AnalysisConfig,
    DataConfig,
    FeatureProvenance,
    KDEConfig,
    KFunctionConfig,
    OutputConfig,
    PointMetadata,
    PointSchema,
    SyntheticConfig,
)


def test_point_schema_defaults() -> None:
    schema = PointSchema()
    assert (schema.x_col, schema.y_col) == ("x", "y")
    assert not schema.has_geographic


def test_point_schema_with_lonlat() -> None:
    schema = PointSchema(lon_col="longitude", lat_col="latitude", attribute_cols=["crime_type"])
    assert schema.has_geographic
    assert schema.attribute_cols == ["crime_type"]


def test_point_schema_requires_lonlat_pair() -> None:
    """Longitude without latitude is rejected."""
    with pytest.raises(ValueError, match="together"):
        PointSchema(lon_col="longitude")


def test_compatibility_issues() -> None:
    schema = PointSchema(feature_provenance={"x": FeatureProvenance(produced_by="Step")})

    assert schema.compatibility_issues(schema) == []

    renamed = PointSchema(x_col="easting", feature_provenance=schema.feature_provenance)
    issues = schema.compatibility_issues(renamed)
    assert any("coordinate column mismatch" in issue for issue in issues)

    dropped = PointSchema()
    issues = schema.compatibility_issues(dropped)
    assert issues == ["missing feature provenance entries: x"]


def test_point_metadata() -> None:
    metadata = PointMetadata(dataset_name="test", crs="EPSG:27700", bounds=(0, 0, 1, 1))
    assert metadata.crs == "EPSG:27700"
    assert metadata.custom == {}


class TestConfigModels:
    def test_synthetic_defaults(self) -> None:
        config = SyntheticConfig()
        assert config.n_points == 100
        assert config.cluster_size == 10

    @pytest.mark.parametrize(
        "kwargs",
        [{"n_points": 0}, {"cluster_size": -1}, {"cluster_radius": 0.0}],
    )
    def test_synthetic_rejects_non_positive(self, kwargs) -> None:
        with pytest.raises(ValidationError):
            SyntheticConfig(**kwargs)

    def test_kde_rejects_unknown_kernel(self) -> None:
        with pytest.raises(ValidationError):
            KDEConfig(kernel="triangular")

    def test_kde_rejects_zero_bandwidth(self) -> None:
        with pytest.raises(ValueError):
            KDEConfig(bandwidth=0)

    def test_k_function_edge_correction(self) -> None:
        assert KFunctionConfig().edge_correction == "border"
        with pytest.raises(ValidationError):
            KFunctionConfig(edge_correction="ripley")

    def test_output_defaults(self) -> None:
        config = OutputConfig()
        assert config.formats == ["png", "pdf"]
        assert config.dpi == 300

    def test_analysis_config_from_dict(self) -> None:
        config = AnalysisConfig(
            data={
                "crimes_csv": "crimes.csv",
                "fine_boundaries": "lsoa.gpkg",
                "coarse_boundaries": "borough.gpkg",
            },
            k_function={"edge_correction": "translation"},
        )

        assert isinstance(config.data, DataConfig)
        assert config.data.crimes_csv == Path("crimes.csv")
        assert config.data.target_crs == "EPSG:27700"
        assert config.k_function.edge_correction == "translation"
        assert config.seed == 42

    def test_analysis_config_rejects_unknown_keys(self) -> None:
        with pytest.raises(ValidationError):
            AnalysisConfig(
                data={
                    "crimes_csv": "crimes.csv",
                    "fine_boundaries": "lsoa.gpkg",
                    "coarse_boundaries": "borough.gpkg",
                },
                plotting={"dpi": 100},
            )
