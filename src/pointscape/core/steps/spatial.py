"""Spatial preparation steps for point sets.

Each step:
- Inherits from Step base class
- Registers outputs via FeatureProvenance
- Returns a new PointFrame, leaving its input untouched
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
import polars as pl
from pyproj import Transformer

from pointscape.core.pipeline import Step
from pointscape.core.schema import FeatureProvenance
from pointscape.core.utils import ensure_same_crs, get_logger, normalize_crs

if TYPE_CHECKING:
    from pointscape.core.point_frame import PointFrame
    from pointscape.core.window import StudyWindow

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Spatial Steps
# -----------------------------------------------------------------------------


def reproject_coordinates(
    coords: np.ndarray,
    source_crs: str,
    target_crs: str,
) -> np.ndarray:
    """
    Reproject an (n, 2) array of x/y (lon/lat) coordinates.

    Args:
        coords: Coordinates in *source_crs*, x first
        source_crs: CRS of the input coordinates
        target_crs: CRS to project into

    Returns:
        Array of shape (n, 2) in *target_crs*
    """
    coords = np.asarray(coords, dtype=float).reshape(-1, 2)
    transformer = Transformer.from_crs(
        normalize_crs(source_crs),
        normalize_crs(target_crs),
        always_xy=True,
    )
    xs, ys = transformer.transform(coords[:, 0], coords[:, 1])
    return np.column_stack([np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)])


class DropMissingStep(Step):
    """Drop points with missing required fields.

    Inputs:
        - required_cols (defaults to lon/lat, or x/y when unprojected columns are absent)

    Outputs:
        - Filtered frame; the number of dropped rows is logged
    """

    def __init__(self, required_cols: Sequence[str] | None = None) -> None:
        self.required_cols = list(required_cols) if required_cols else []

    def run(self, point_frame: PointFrame) -> PointFrame:
        """Execute missing-field filter."""
        schema = point_frame.schema
        required = self.required_cols
        if not required:
            if schema.has_geographic:
                required = [schema.lon_col, schema.lat_col]  # type: ignore[list-item]
            else:
                required = [schema.x_col, schema.y_col]

        before = point_frame.count()
        result = point_frame.filter(
            pl.all_horizontal([pl.col(col).is_not_null() for col in required])
        )
        after = result.count()

        logger.info(
            "Dropped %s of %s points with missing %s", before - after, before, ", ".join(required)
        )
        return result


class TransformCRSStep(Step):
    """Project geographic coordinates into a planar CRS.

    Inputs:
        - lon_col, lat_col from PointSchema (in the source CRS)

    Outputs:
        - x_col, y_col columns in the target CRS
        - Updated CRS in metadata
    """

    def __init__(self, target_crs: str, source_crs: str = "EPSG:4326") -> None:
        self.target_crs = normalize_crs(target_crs)
        self.source_crs = normalize_crs(source_crs)

    def run(self, point_frame: PointFrame) -> PointFrame:
        """Execute CRS transformation."""
        schema = point_frame.schema

        if not schema.has_geographic:
            raise ValueError("PointFrame must have lon/lat columns for CRS transformation")

        lon_col = schema.lon_col
        lat_col = schema.lat_col
        logger.info(f"Transforming CRS from {self.source_crs} to {self.target_crs}")

        df = point_frame.lazy_frame.collect()
        coords = df.select([lon_col, lat_col]).to_numpy().astype(float).reshape(-1, 2)
        projected = reproject_coordinates(coords, self.source_crs, self.target_crs)

        if len(projected) and not np.all(np.isfinite(projected)):
            raise ValueError(
                f"Reprojection to {self.target_crs} produced non-finite coordinates; "
                "check that the source CRS matches the lon/lat columns"
            )

        df = df.with_columns(
            [
                pl.Series(schema.x_col, projected[:, 0], dtype=pl.Float64),
                pl.Series(schema.y_col, projected[:, 1], dtype=pl.Float64),
            ]
        )

        provenance = FeatureProvenance(
            produced_by="TransformCRSStep",
            inputs=[lon_col, lat_col],  # type: ignore[list-item]
            tags={"spatial"},
            description=f"CRS transformation to {self.target_crs}",
        )

        result = point_frame.with_lazy_frame(df.lazy()).with_metadata(crs=self.target_crs)
        result = result.register_feature(
            schema.x_col,
            {"source_step": "TransformCRSStep", "inputs": [lon_col]},
            provenance=provenance,
        )
        return result.register_feature(
            schema.y_col,
            {"source_step": "TransformCRSStep", "inputs": [lat_col]},
            provenance=provenance,
        )


class ClipToWindowStep(Step):
    """Keep only the points inside a study window (boundary inclusive).

    Inputs:
        - x_col, y_col in the window's CRS

    Outputs:
        - Filtered frame; metadata bounds set to the window bounds
    """

    def __init__(self, window: StudyWindow) -> None:
        self.window = window

    def run(self, point_frame: PointFrame) -> PointFrame:
        """Execute clipping."""
        ensure_same_crs(point_frame.metadata.crs, self.window.crs)

        df = point_frame.lazy_frame.collect()
        coords = df.select([point_frame.schema.x_col, point_frame.schema.y_col]).to_numpy()
        inside = self.window.contains(coords)
        clipped = df.filter(pl.Series(inside))

        logger.info(
            "Clipped %s of %s points outside the study window", len(df) - len(clipped), len(df)
        )
        return point_frame.with_lazy_frame(clipped.lazy()).with_metadata(
            bounds=self.window.bounds
        )


class DeduplicateStep(Step):
    """Remove coincident points so the set is a simple point pattern.

    The first occurrence of each location is kept.
    """

    def run(self, point_frame: PointFrame) -> PointFrame:
        """Execute deduplication."""
        x_col, y_col = point_frame.schema.x_col, point_frame.schema.y_col
        df = point_frame.lazy_frame.collect()
        unique = df.unique(subset=[x_col, y_col], keep="first", maintain_order=True)

        if len(unique) != len(df):
            logger.info("Removed %s duplicate point locations", len(df) - len(unique))
        return point_frame.with_lazy_frame(unique.lazy())


class RequireNonEmptyStep(Step):
    """Fail when filtering left no points, instead of passing an empty set on."""

    def __init__(self, context: str = "filtering") -> None:
        self.context = context

    def run(self, point_frame: PointFrame) -> PointFrame:
        """Execute the emptiness check."""
        if point_frame.count() == 0:
            raise ValueError(
                f"No points remain in '{point_frame.metadata.dataset_name}' after {self.context}"
            )
        return point_frame
