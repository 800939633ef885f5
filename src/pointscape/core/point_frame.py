"""PointFrame: Central abstraction for point-pattern data."""

from typing import Any

import numpy as np
import polars as pl

from pointscape.core.schema import FeatureProvenance, PointMetadata, PointSchema
from pointscape.core.utils import get_logger

logger = get_logger(__name__)


class PointFrame:
    """
    Central abstraction for point-pattern data.

    Wraps a Polars LazyFrame with schema and metadata. Every operation returns
    a new PointFrame; the wrapped data is never mutated in place.

    Attributes:
        lazy_frame: The underlying Polars LazyFrame
        schema: The point schema describing column structure
        metadata: Metadata about the dataset (CRS, bounds, derived results)
    """

    def __init__(
        self,
        lazy_frame: pl.LazyFrame,
        schema: PointSchema,
        metadata: PointMetadata,
    ) -> None:
        """
        Initialize a PointFrame.

        Args:
            lazy_frame: Polars LazyFrame containing the point data
            schema: Schema describing the point structure
            metadata: Metadata about the dataset
        """
        self.lazy_frame = lazy_frame

        # Keep schema and metadata provenance in sync.
        combined_provenance = dict(metadata.feature_provenance)
        combined_provenance.update(schema.feature_provenance)

        if combined_provenance != metadata.feature_provenance:
            metadata = metadata.model_copy(update={"feature_provenance": combined_provenance})
        if combined_provenance != schema.feature_provenance:
            schema = schema.model_copy(update={"feature_provenance": combined_provenance})

        self.schema = schema
        self.metadata = metadata
        logger.debug(
            f"Created PointFrame for dataset '{metadata.dataset_name}' with crs={metadata.crs}"
        )

    @classmethod
    def from_coordinates(
        cls,
        coords: np.ndarray,
        *,
        dataset_name: str,
        crs: str | None = None,
        bounds: tuple[float, float, float, float] | None = None,
        schema: PointSchema | None = None,
    ) -> "PointFrame":
        """
        Build a PointFrame from an (n, 2) array of planar coordinates.

        Args:
            coords: Array of shape (n, 2) holding x and y
            dataset_name: Name recorded in metadata
            crs: CRS tag of the coordinates (None for an abstract window)
            bounds: Study window bounds
            schema: Optional schema; defaults to x/y columns only

        Returns:
            New PointFrame
        """
        coords = np.asarray(coords, dtype=float).reshape(-1, 2)
        schema = schema or PointSchema()
        lf = pl.LazyFrame(
            {schema.x_col: coords[:, 0], schema.y_col: coords[:, 1]},
            schema={schema.x_col: pl.Float64, schema.y_col: pl.Float64},
        )
        metadata = PointMetadata(dataset_name=dataset_name, crs=crs, bounds=bounds)
        return cls(lf, schema, metadata)

    def with_lazy_frame(self, lazy_frame: pl.LazyFrame) -> "PointFrame":
        """
        Create a new PointFrame with a different LazyFrame.

        Args:
            lazy_frame: New LazyFrame to wrap

        Returns:
            New PointFrame with updated LazyFrame
        """
        return self._spawn(lazy_frame=lazy_frame)

    def with_metadata(self, **updates: Any) -> "PointFrame":
        """
        Create a new PointFrame with updated metadata.

        Args:
            **updates: Metadata fields to update

        Returns:
            New PointFrame with updated metadata
        """
        new_metadata = self.metadata.model_copy(update=updates)
        return self._spawn(metadata=new_metadata)

    def with_custom(self, key: str, value: Any) -> "PointFrame":
        """Return a new PointFrame with ``metadata.custom[key]`` set."""

        custom = dict(self.metadata.custom)
        custom[key] = value
        return self.with_metadata(custom=custom)

    def _spawn(
        self,
        *,
        lazy_frame: pl.LazyFrame | None = None,
        schema: PointSchema | None = None,
        metadata: PointMetadata | None = None,
    ) -> "PointFrame":
        """Internal helper to create new PointFrame instances preserving invariants."""

        return PointFrame(
            lazy_frame if lazy_frame is not None else self.lazy_frame,
            schema or self.schema,
            metadata or self.metadata,
        )

    def register_feature(
        self,
        name: str,
        info: dict[str, Any],
        *,
        provenance: FeatureProvenance | None = None,
    ) -> "PointFrame":
        """Return a new PointFrame with feature catalog updated.

        Args:
            name: Feature identifier to register.
            info: Arbitrary metadata describing the feature.
            provenance: Optional provenance record; inferred from *info* when omitted.

        Returns:
            PointFrame whose metadata includes the registered feature.
        """
        catalog = dict(self.metadata.feature_catalog)
        catalog[name] = info

        if provenance is None:
            provenance = FeatureProvenance(
                produced_by=info.get("source_step"),
                inputs=list(info.get("inputs", [])),
                tags=set(info.get("tags", [])),
                description=info.get("description"),
                metadata={
                    k: v
                    for k, v in info.items()
                    if k not in {"source_step", "inputs", "tags", "description"}
                },
            )

        metadata_provenance = dict(self.metadata.feature_provenance)
        metadata_provenance[name] = provenance

        schema_provenance = dict(self.schema.feature_provenance)
        schema_provenance[name] = provenance

        logger.debug(
            "Registering feature '%s' on dataset '%s'", name, self.metadata.dataset_name
        )

        return self._spawn(
            schema=self.schema.model_copy(update={"feature_provenance": schema_provenance}),
            metadata=self.metadata.model_copy(
                update={
                    "feature_catalog": catalog,
                    "feature_provenance": metadata_provenance,
                }
            ),
        )

    def collect(self) -> pl.DataFrame:
        """Materialize the lazy frame into a DataFrame."""

        logger.debug("Collecting PointFrame for dataset '%s'", self.metadata.dataset_name)
        df = self.lazy_frame.collect()
        logger.info("Collected %s rows, %s columns", len(df), len(df.columns))
        return df

    def coordinates(self) -> np.ndarray:
        """Return planar coordinates as an (n, 2) float array.

        Raises:
            ValueError: If the planar columns are missing (e.g. before projection)
        """
        x_col, y_col = self.schema.x_col, self.schema.y_col
        columns = self.lazy_frame.collect_schema().names()
        missing = [col for col in (x_col, y_col) if col not in columns]
        if missing:
            raise ValueError(
                f"PointFrame '{self.metadata.dataset_name}' has no planar columns {missing}; "
                "project it with TransformCRSStep first"
            )
        df = self.lazy_frame.select([x_col, y_col]).collect()
        return df.to_numpy().astype(float).reshape(-1, 2)

    def filter(self, *predicates: pl.Expr) -> "PointFrame":
        """Return a new PointFrame filtered by the predicates."""

        return self.with_lazy_frame(self.lazy_frame.filter(*predicates))

    def with_columns(self, *exprs: pl.Expr, **named_exprs: pl.Expr) -> "PointFrame":
        """Return a new PointFrame with additional or transformed columns."""

        return self.with_lazy_frame(self.lazy_frame.with_columns(*exprs, **named_exprs))

    def count(self) -> int:
        """Return the number of points."""

        df = self.lazy_frame.select(pl.len().alias("_count"))
        result = df.collect()
        rows = result.rows()
        return int(rows[0][0]) if rows else 0

    def __repr__(self) -> str:
        """String representation of the PointFrame."""

        return (
            "PointFrame(\n"
            f"  dataset={self.metadata.dataset_name},\n"
            f"  coords=({self.schema.x_col}, {self.schema.y_col}),\n"
            f"  crs={self.metadata.crs}\n"
            ")"
        )

    def __len__(self) -> int:
        """Return the number of points."""

        return self.count()
