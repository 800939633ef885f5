"""Second-order point-process statistics.

Ripley's K-function:
    K(r) = (1 / λ) E[number of further points within distance r of a typical point]

with λ = n / |W| estimated from the pattern. Under complete spatial
randomness K(r) = π r². Supported edge corrections:
- none: raw neighbour counts (biased low near the window edge)
- border: only points at least r from the boundary act as centres
- translation: each pair weighted by |W| / |W ∩ (W + x_j - x_i)| (rectangles)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

import numpy as np
import polars as pl
from scipy.spatial.distance import pdist, squareform

from pointscape.core.pipeline import Step
from pointscape.core.point_frame import PointFrame
from pointscape.core.schema import FeatureProvenance
from pointscape.core.utils import ProgressTracker, ensure_same_crs, get_logger
from pointscape.core.window import StudyWindow

logger = get_logger(__name__)

EdgeCorrection = Literal["none", "border", "translation"]


@dataclass(frozen=True)
class KFunctionResult:
    """Estimated K-function curve.

    Attributes:
        radii: Distances at which K was evaluated
        k: K(r) estimates (NaN where the border correction had no centres)
        edge_correction: Correction used
        n_points: Number of points entering the estimator
        intensity: Estimated intensity n / |W|
    """

    radii: np.ndarray
    k: np.ndarray
    edge_correction: str
    n_points: int
    intensity: float

    def csr(self) -> np.ndarray:
        """Theoretical K under complete spatial randomness, π r²."""
        return np.pi * self.radii**2

    @property
    def monotone(self) -> bool:
        """Whether the estimate is guaranteed non-decreasing in r.

        The border correction changes its set of centres with r, so its curve
        can dip between radii.
        """
        return self.edge_correction != "border"

    def l_function(self) -> np.ndarray:
        """Variance-stabilised L(r) = sqrt(K(r) / π)."""
        return np.sqrt(np.clip(self.k, 0.0, None) / np.pi)

    def h_function(self) -> np.ndarray:
        """H(r) = L(r) - r; positive values indicate clustering."""
        return self.l_function() - self.radii

    def to_frame(self) -> pl.DataFrame:
        return pl.DataFrame(
            {
                "r": self.radii,
                "k": self.k,
                "k_csr": self.csr(),
                "l": self.l_function(),
                "h": self.h_function(),
            }
        )


def has_duplicate_points(coords: np.ndarray) -> bool:
    """Whether two or more points share the same location."""
    coords = np.asarray(coords, dtype=float).reshape(-1, 2)
    if len(coords) < 2:
        return False
    return len(np.unique(coords, axis=0)) != len(coords)


def deduplicate_points(coords: np.ndarray) -> np.ndarray:
    """Drop repeated locations, keeping the first occurrence in input order."""
    coords = np.asarray(coords, dtype=float).reshape(-1, 2)
    if len(coords) < 2:
        return coords
    _, first = np.unique(coords, axis=0, return_index=True)
    return coords[np.sort(first)]


def _validate_radii(radii: Sequence[float] | np.ndarray) -> np.ndarray:
    radii = np.asarray(radii, dtype=float).ravel()
    if len(radii) == 0:
        raise ValueError("At least one radius is required")
    if np.any(~np.isfinite(radii)) or np.any(radii < 0):
        raise ValueError("Radii must be finite and non-negative")
    if np.any(np.diff(radii) < 0):
        raise ValueError("Radii must be sorted in increasing order")
    return radii


def _cumulative_pair_sum(
    distances: np.ndarray, weights: np.ndarray, radii: np.ndarray
) -> np.ndarray:
    """Sum of *weights* over unordered pairs with distance <= r, for each r."""
    order = np.argsort(distances, kind="stable")
    sorted_distances = distances[order]
    cumulative = np.concatenate([[0.0], np.cumsum(weights[order])])
    idx = np.searchsorted(sorted_distances, radii, side="right")
    return cumulative[idx]


def ripley_k(
    coords: np.ndarray,
    window: StudyWindow,
    radii: Sequence[float] | np.ndarray,
    edge_correction: EdgeCorrection = "border",
    max_points: int | None = None,
    seed: int | None = None,
) -> KFunctionResult:
    """
    Estimate Ripley's K-function of a simple point pattern.

    Args:
        coords: (n, 2) planar coordinates, all inside *window*
        window: Observation window
        radii: Increasing, non-negative distances
        edge_correction: "none", "border" or "translation"
        max_points: Subsample to at most this many points (O(n²) memory)
        seed: Seed for the subsample

    Returns:
        KFunctionResult

    Raises:
        ValueError: On duplicate points, fewer than two points, invalid radii
            or an unsupported correction
    """
    coords = np.asarray(coords, dtype=float).reshape(-1, 2)
    radii = _validate_radii(radii)

    if len(coords) < 2:
        raise ValueError(f"Ripley's K needs at least two points, got {len(coords)}")
    if has_duplicate_points(coords):
        raise ValueError("Point pattern contains coincident points; deduplicate it first")

    if max_points is not None and len(coords) > max_points:
        logger.warning("Subsampling %s of %s points for Ripley's K", max_points, len(coords))
        rng = np.random.default_rng(seed)
        coords = coords[np.sort(rng.choice(len(coords), size=max_points, replace=False))]

    n = len(coords)
    area = window.area
    intensity = n / area
    logger.info(
        "Computing Ripley's K for %s points at %s radii (edge_correction=%s)",
        n,
        len(radii),
        edge_correction,
    )

    if edge_correction == "none":
        distances = pdist(coords)
        pairs = 2.0 * _cumulative_pair_sum(distances, np.ones_like(distances), radii)
        k = pairs / (n * intensity)

    elif edge_correction == "translation":
        distances = pdist(coords)
        dx = pdist(coords[:, :1], metric="cityblock")
        dy = pdist(coords[:, 1:], metric="cityblock")
        overlap = window.translation_overlap(dx, dy)
        weights = np.divide(1.0, overlap, out=np.zeros_like(overlap), where=overlap > 0)
        k = 2.0 * _cumulative_pair_sum(distances, weights, radii) / intensity**2

    elif edge_correction == "border":
        distances = squareform(pdist(coords))
        np.fill_diagonal(distances, np.inf)
        boundary = window.boundary_distance(coords)
        k = np.full(len(radii), np.nan)
        progress = ProgressTracker(len(radii), description="Border-corrected K")
        for i, r in enumerate(radii):
            centres = boundary >= r
            n_centres = int(centres.sum())
            if n_centres > 0:
                neighbours = np.count_nonzero(distances[centres] <= r)
                k[i] = neighbours / (n_centres * intensity)
            progress.update()
        progress.finish()

    else:
        raise ValueError(f"Unsupported edge correction: {edge_correction!r}")

    return KFunctionResult(
        radii=radii,
        k=np.asarray(k, dtype=float),
        edge_correction=edge_correction,
        n_points=n,
        intensity=intensity,
    )


class KFunctionStep(Step):
    """Compute Ripley's K-function for a point set.

    K(r) = (|W| / n²) * Σᵢ Σⱼ I(dᵢⱼ ≤ r) * wᵢⱼ

    Inputs:
        - x_col, y_col from PointSchema

    Outputs:
        - KFunctionResult stored in ``metadata.custom["k_function"]``
        - ``k_function`` entry in the feature catalog
    """

    def __init__(
        self,
        window: StudyWindow,
        max_distance: float,
        n_radii: int = 50,
        edge_correction: EdgeCorrection = "border",
        max_points: int | None = None,
        seed: int | None = None,
    ) -> None:
        self.window = window
        self.max_distance = max_distance
        self.n_radii = n_radii
        self.edge_correction = edge_correction
        self.max_points = max_points
        self.seed = seed

    def run(self, point_frame: PointFrame) -> PointFrame:
        """Execute K-function computation."""
        ensure_same_crs(point_frame.metadata.crs, self.window.crs)

        radii = np.linspace(0.0, self.max_distance, self.n_radii)
        result = ripley_k(
            point_frame.coordinates(),
            self.window,
            radii,
            edge_correction=self.edge_correction,
            max_points=self.max_points,
            seed=self.seed,
        )

        provenance = FeatureProvenance(
            produced_by="KFunctionStep",
            inputs=[point_frame.schema.x_col, point_frame.schema.y_col],
            tags={"spatial", "point_process"},
            description="Ripley's K-function",
            metadata={
                "max_distance": self.max_distance,
                "n_radii": self.n_radii,
                "edge_correction": self.edge_correction,
            },
        )

        return point_frame.with_custom("k_function", result).register_feature(
            "k_function",
            {"source_step": "KFunctionStep"},
            provenance=provenance,
        )
