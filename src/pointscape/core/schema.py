"""Schema definitions for point sets and analysis configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FeatureProvenance(BaseModel):
    """Record describing how a feature was produced during a pipeline run."""

    produced_by: str | None = None
    inputs: list[str] = Field(default_factory=list)
    tags: set[str] = Field(default_factory=set)
    description: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class PointSchema(BaseModel):
    """
    Describes the column structure of a point set.

    Attributes:
        x_col: Planar x coordinate column (projected CRS or abstract window)
        y_col: Planar y coordinate column
        lon_col: Geographic longitude column (optional)
        lat_col: Geographic latitude column (optional)
        attribute_cols: Attribute columns carried alongside each point
        feature_provenance: Provenance metadata keyed by feature name
    """

    x_col: str = "x"
    y_col: str = "y"
    lon_col: str | None = None
    lat_col: str | None = None
    attribute_cols: list[str] = Field(default_factory=list)
    feature_provenance: dict[str, FeatureProvenance] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_geographic_pair(self) -> PointSchema:
        """lon_col and lat_col must be given together."""
        if (self.lon_col is None) != (self.lat_col is None):
            raise ValueError("lon_col and lat_col must be provided together")
        return self

    @property
    def has_geographic(self) -> bool:
        """Whether the schema declares longitude/latitude columns."""
        return self.lon_col is not None and self.lat_col is not None

    def compatibility_issues(self, other: PointSchema) -> list[str]:
        """Return human-readable compatibility issues when transitioning to *other*."""

        issues: list[str] = []

        if (self.x_col, self.y_col) != (other.x_col, other.y_col):
            issues.append(
                "coordinate column mismatch: "
                f"{(self.x_col, self.y_col)!r} -> {(other.x_col, other.y_col)!r}"
            )

        missing_features = set(self.feature_provenance) - set(other.feature_provenance)
        if missing_features:
            issues.append(
                "missing feature provenance entries: " + ", ".join(sorted(missing_features))
            )

        return issues


class PointMetadata(BaseModel):
    """
    Metadata about a point set.

    Attributes:
        dataset_name: Name of the dataset
        crs: Coordinate reference system of the planar columns; None for an
            abstract window such as the unit square
        bounds: Planar bounds (minx, miny, maxx, maxy) of the study window
        custom: Additional custom metadata (e.g. derived statistics)
    """

    dataset_name: str
    crs: str | None = None
    bounds: tuple[float, float, float, float] | None = None
    custom: dict[str, Any] = Field(default_factory=dict)
    feature_catalog: dict[str, Any] = Field(default_factory=dict)
    feature_provenance: dict[str, FeatureProvenance] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)


# -----------------------------------------------------------------------------
# Analysis configuration
# -----------------------------------------------------------------------------


class DataConfig(BaseModel):
    """
    Input locations for the crime analysis.

    Attributes:
        crimes_csv: CSV of crime records with longitude/latitude columns
        fine_boundaries: Fine administrative units (e.g. LSOAs)
        coarse_boundaries: Coarse study boundary used for clipping
        cache_path: Snapshot of the merged, reprojected dataset
        target_crs: Common projected CRS for every layer
        fine_id_col: Identifier column of the fine units
    """

    model_config = ConfigDict(extra="forbid")

    crimes_csv: Path
    fine_boundaries: Path
    coarse_boundaries: Path
    cache_path: Path = Path("data/cache/study_data.gpkg")
    target_crs: str = "EPSG:27700"
    fine_id_col: str = "LSOA11CD"


class SyntheticConfig(BaseModel):
    """Parameters of the synthetic comparison patterns."""

    model_config = ConfigDict(extra="forbid")

    n_points: int = Field(default=100, gt=0, description="Target number of points")
    cluster_size: int = Field(default=10, gt=0, description="Points per cluster")
    cluster_radius: float = Field(default=0.05, gt=0, description="Cluster disc radius")
    buffer_factor: float = Field(
        default=1.0, ge=0, description="Window expansion for parents, in cluster radii"
    )
    exact_counts: bool = Field(
        default=False, description="Sample exactly n_points for the random pattern"
    )


class KDEConfig(BaseModel):
    """Configuration for kernel density estimation."""

    model_config = ConfigDict(extra="forbid")

    bandwidth: float = Field(default=500.0, gt=0, description="KDE bandwidth in CRS units")
    kernel: Literal["gaussian", "epanechnikov", "uniform"] = Field(
        default="gaussian", description="Kernel function type"
    )
    resolution: int = Field(default=256, ge=2, description="Grid cells along each axis")


class KFunctionConfig(BaseModel):
    """Configuration for Ripley's K-function."""

    model_config = ConfigDict(extra="forbid")

    max_distance: float = Field(default=1000.0, gt=0, description="Largest radius")
    n_radii: int = Field(default=50, ge=2, description="Number of evaluated radii")
    edge_correction: Literal["none", "border", "translation"] = Field(
        default="border", description="Edge correction method"
    )
    max_points: int | None = Field(
        default=5000, gt=1, description="Subsample size cap for the O(n^2) estimator"
    )


class OutputConfig(BaseModel):
    """Where and how figures and exports are written."""

    model_config = ConfigDict(extra="forbid")

    out_dir: Path = Path("output")
    dpi: int = Field(default=300, gt=0)
    formats: list[Literal["png", "pdf", "svg"]] = Field(default_factory=lambda: ["png", "pdf"])
    shapefile_name: str = "crime_counts.shp"
    count_col: str = "crime_count"


class AnalysisConfig(BaseModel):
    """
    Complete configuration of one analysis run.

    Attributes:
        data: Input and cache locations
        synthetic: Synthetic pattern parameters
        density: Kernel density parameters
        k_function: Ripley's K parameters
        output: Figure and export settings
        seed: Seed for every random draw of the run
    """

    model_config = ConfigDict(extra="forbid")

    data: DataConfig
    synthetic: SyntheticConfig = Field(default_factory=SyntheticConfig)
    density: KDEConfig = Field(default_factory=KDEConfig)
    k_function: KFunctionConfig = Field(default_factory=KFunctionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    seed: int | None = 42
