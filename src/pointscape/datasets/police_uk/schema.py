"""Schema definition for the police.uk street-level crime dataset."""

from collections.abc import Mapping
from typing import Any

from pointscape.core.schema import PointMetadata, PointSchema

# Raw column names of the police.uk "street" CSV export, mapped to snake case
COLUMN_MAP = {
    "Crime ID": "crime_id",
    "Month": "month",
    "Reported by": "reported_by",
    "Falls within": "falls_within",
    "Longitude": "longitude",
    "Latitude": "latitude",
    "Location": "location",
    "LSOA code": "lsoa_code",
    "LSOA name": "lsoa_name",
    "Crime type": "crime_type",
    "Last outcome category": "last_outcome_category",
    "Context": "context",
}

REQUIRED_COLS = ["longitude", "latitude"]

POLICE_UK_SCHEMA = PointSchema(
    x_col="x",
    y_col="y",
    lon_col="longitude",
    lat_col="latitude",
    attribute_cols=[
        "crime_id",
        "month",
        "crime_type",
        "lsoa_code",
    ],
)


def create_police_uk_metadata(
    *,
    dataset_name: str = "police_uk",
    crs: str | None = None,
    bounds: tuple[float, float, float, float] | None = None,
    custom: Mapping[str, Any] | None = None,
) -> PointMetadata:
    """Create typed metadata for a police.uk extract.

    Raw extracts carry no planar coordinates yet, so ``crs`` stays None until
    the points are projected.
    """
    return PointMetadata(
        dataset_name=dataset_name,
        crs=crs,
        bounds=bounds,
        custom=dict(custom or {}),
    )
