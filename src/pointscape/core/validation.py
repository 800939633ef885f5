"""Validation checks for prepared point sets and derived layers.

This module provides validation checks for:
- Non-empty point sets
- CRS consistency between layers
- Simple point patterns (no coincident points)
- Aggregation count invariants
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from pointscape.core.point_process import has_duplicate_points
from pointscape.core.utils import ensure_same_crs, get_logger

if TYPE_CHECKING:
    import geopandas as gpd

    from pointscape.core.point_frame import PointFrame

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """Result of a validation check."""

    is_valid: bool
    check_name: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    severity: str = "error"  # error, warning, info


@dataclass
class ValidationReport:
    """Collection of validation results."""

    results: list[ValidationResult] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Check if all validations passed (no errors)."""
        return all(r.is_valid or r.severity != "error" for r in self.results)

    @property
    def errors(self) -> list[ValidationResult]:
        """Get all error-level failures."""
        return [r for r in self.results if not r.is_valid and r.severity == "error"]

    @property
    def warnings(self) -> list[ValidationResult]:
        """Get all warning-level issues."""
        return [r for r in self.results if not r.is_valid and r.severity == "warning"]

    def add(self, result: ValidationResult) -> None:
        """Add a validation result."""
        self.results.append(result)

    def summary(self) -> str:
        """Generate a summary string."""
        n_passed = sum(1 for r in self.results if r.is_valid)

        lines = [
            f"Validation Summary: {n_passed}/{len(self.results)} passed",
            f"  Errors: {len(self.errors)}",
            f"  Warnings: {len(self.warnings)}",
        ]

        if self.errors:
            lines.append("\nErrors:")
            for e in self.errors:
                lines.append(f"  - {e.check_name}: {e.message}")

        if self.warnings:
            lines.append("\nWarnings:")
            for w in self.warnings:
                lines.append(f"  - {w.check_name}: {w.message}")

        return "\n".join(lines)


def validate_non_empty(point_frame: PointFrame) -> ValidationResult:
    """Validate that a point set holds at least one point."""
    n_points = point_frame.count()
    is_valid = n_points > 0
    return ValidationResult(
        is_valid=is_valid,
        check_name="non_empty",
        message=(
            f"Point set has {n_points} points"
            if is_valid
            else f"Point set '{point_frame.metadata.dataset_name}' is empty"
        ),
        details={"n_points": n_points},
        severity="error" if not is_valid else "info",
    )


def validate_crs_consistency(
    point_frame: PointFrame,
    *layers: gpd.GeoDataFrame,
) -> ValidationResult:
    """Validate that points and polygon layers share one CRS."""
    crs_values = [point_frame.metadata.crs, *(layer.crs for layer in layers)]
    try:
        shared = ensure_same_crs(*crs_values)
    except ValueError as exc:
        return ValidationResult(
            is_valid=False,
            check_name="crs_consistency",
            message=str(exc),
            details={"crs": [str(value) for value in crs_values]},
        )
    return ValidationResult(
        is_valid=True,
        check_name="crs_consistency",
        message=f"All layers use {shared}",
        details={"crs": shared},
        severity="info",
    )


def validate_simple_pattern(point_frame: PointFrame) -> ValidationResult:
    """Validate that no two points coincide.

    Coincident points are reported as a warning: they are legal in the raw
    data but must be removed before second-order statistics.
    """
    coords = point_frame.coordinates()
    n_unique = len(np.unique(coords, axis=0)) if len(coords) > 1 else len(coords)
    is_valid = not has_duplicate_points(coords)
    return ValidationResult(
        is_valid=is_valid,
        check_name="simple_pattern",
        message=(
            "No coincident points"
            if is_valid
            else f"{len(coords) - n_unique} points share a location with an earlier point"
        ),
        details={"n_points": len(coords), "n_unique": n_unique},
        severity="warning" if not is_valid else "info",
    )


def validate_aggregation(
    point_frame: PointFrame,
    counted: gpd.GeoDataFrame,
    count_col: str = "crime_count",
) -> ValidationResult:
    """Validate per-polygon counts: non-negative and summing to at most the point count."""
    if count_col not in counted.columns:
        return ValidationResult(
            is_valid=False,
            check_name="aggregation_counts",
            message=f"Column '{count_col}' not found",
        )

    counts = np.asarray(counted[count_col], dtype=np.int64)
    n_points = point_frame.count()
    total = int(counts.sum())
    n_negative = int((counts < 0).sum())
    is_valid = n_negative == 0 and total <= n_points

    return ValidationResult(
        is_valid=is_valid,
        check_name="aggregation_counts",
        message=(
            f"{total} of {n_points} points attributed to polygons"
            if is_valid
            else f"Invalid counts: total={total}, points={n_points}, negative={n_negative}"
        ),
        details={"total": total, "n_points": n_points, "n_negative": n_negative},
        severity="error" if not is_valid else "info",
    )
