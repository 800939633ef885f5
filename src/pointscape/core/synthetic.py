"""Synthetic point processes used as reference patterns.

Three processes are provided for visual comparison with observed data:
- Homogeneous Poisson (complete spatial randomness)
- Regular lattice (dispersed / uniform)
- Neyman-Scott Poisson-cluster process (clustered)
"""

from __future__ import annotations

import math

import numpy as np
from pydantic import BaseModel, Field

from pointscape.core.point_frame import PointFrame
from pointscape.core.schema import SyntheticConfig
from pointscape.core.utils import get_logger
from pointscape.core.window import StudyWindow

logger = get_logger(__name__)


class PatternConfig(BaseModel):
    """Parameters shared by every synthetic pattern."""

    n_points: int = Field(..., gt=0, description="Target number of points")
    seed: int | None = Field(default=None, description="Random seed")


class ClusterConfig(BaseModel):
    """Parameters of the Poisson-cluster process."""

    cluster_size: int = Field(..., gt=0, description="Offspring per parent")
    radius: float = Field(..., gt=0, description="Radius of the offspring disc")
    buffer_factor: float = Field(
        default=1.0, ge=0, description="Parent window expansion in multiples of radius"
    )


def _sample_uniform(rng: np.random.Generator, window: StudyWindow, n: int) -> np.ndarray:
    """Sample *n* points uniformly in *window* by rejection from its bounding box."""
    minx, miny, maxx, maxy = window.bounds
    if window.is_rectangle:
        return np.column_stack([rng.uniform(minx, maxx, n), rng.uniform(miny, maxy, n)])

    accepted = np.empty((0, 2))
    while len(accepted) < n:
        batch = np.column_stack(
            [rng.uniform(minx, maxx, 2 * n), rng.uniform(miny, maxy, 2 * n)]
        )
        accepted = np.vstack([accepted, batch[window.contains(batch)]])
    return accepted[:n]


def random_pattern(
    n_points: int,
    window: StudyWindow | None = None,
    seed: int | None = None,
    exact: bool = False,
) -> PointFrame:
    """
    Homogeneous Poisson process with intensity ``n_points / area``.

    The realised count is Poisson distributed around *n_points*; pass
    ``exact=True`` to condition on exactly *n_points* (binomial process).

    Args:
        n_points: Expected number of points
        window: Study window (unit square by default)
        seed: Random seed
        exact: Sample exactly *n_points*

    Returns:
        PointFrame of the realisation
    """
    config = PatternConfig(n_points=n_points, seed=seed)
    window = window or StudyWindow.unit_square()
    rng = np.random.default_rng(config.seed)

    count = config.n_points if exact else int(rng.poisson(config.n_points))
    coords = _sample_uniform(rng, window, count)

    logger.info("Simulated Poisson pattern with %s points (target %s)", count, n_points)
    return PointFrame.from_coordinates(
        coords, dataset_name="random", crs=window.crs, bounds=window.bounds
    )


def uniform_pattern(n_points: int, window: StudyWindow | None = None) -> PointFrame:
    """
    Regular lattice of ``floor(sqrt(n_points))**2`` points.

    Points sit at the cell centres of a k x k lattice spanning the window's
    bounding box, so every point lies strictly inside it. When *n_points* is
    not a perfect square the remainder is dropped.

    Args:
        n_points: Target number of points
        window: Study window (unit square by default)

    Returns:
        PointFrame of the lattice
    """
    config = PatternConfig(n_points=n_points)
    window = window or StudyWindow.unit_square()
    k = math.isqrt(config.n_points)
    if k * k != config.n_points:
        logger.warning(
            "Uniform pattern truncated to %s points (%s requested is not a perfect square)",
            k * k,
            config.n_points,
        )

    minx, miny, maxx, maxy = window.bounds
    xs = minx + (np.arange(k) + 0.5) * (maxx - minx) / k
    ys = miny + (np.arange(k) + 0.5) * (maxy - miny) / k
    coords = np.array([(x, y) for y in ys for x in xs], dtype=float).reshape(-1, 2)

    if not window.is_rectangle:
        coords = coords[window.contains(coords)]

    return PointFrame.from_coordinates(
        coords, dataset_name="uniform", crs=window.crs, bounds=window.bounds
    )


def clustered_pattern(
    n_points: int,
    cluster_size: int,
    radius: float,
    window: StudyWindow | None = None,
    seed: int | None = None,
    buffer_factor: float = 1.0,
) -> PointFrame:
    """
    Neyman-Scott Poisson-cluster process.

    Parents follow a Poisson process of intensity ``n_points / cluster_size``
    on the window grown by ``radius * buffer_factor``, so clusters centred just
    outside the window still contribute offspring. Each parent receives
    exactly *cluster_size* offspring uniformly in a disc of *radius*; offspring
    outside the window are discarded.

    Args:
        n_points: Expected number of points
        cluster_size: Offspring per parent
        radius: Offspring disc radius
        window: Study window (unit square by default)
        seed: Random seed
        buffer_factor: Parent window expansion in multiples of *radius*

    Returns:
        PointFrame of the realisation
    """
    config = PatternConfig(n_points=n_points, seed=seed)
    cluster = ClusterConfig(cluster_size=cluster_size, radius=radius, buffer_factor=buffer_factor)
    window = window or StudyWindow.unit_square()
    rng = np.random.default_rng(config.seed)

    parent_window = window.expanded(cluster.radius * cluster.buffer_factor)
    kappa = config.n_points / cluster.cluster_size
    n_parents = int(rng.poisson(kappa * parent_window.area / window.area))
    parents = _sample_uniform(rng, parent_window, n_parents)

    n_offspring = n_parents * cluster.cluster_size
    distances = cluster.radius * np.sqrt(rng.uniform(0.0, 1.0, n_offspring))
    angles = rng.uniform(0.0, 2.0 * np.pi, n_offspring)
    centres = np.repeat(parents, cluster.cluster_size, axis=0).reshape(-1, 2)
    offspring = centres + np.column_stack([distances * np.cos(angles), distances * np.sin(angles)])
    offspring = offspring[window.contains(offspring)]

    logger.info(
        "Simulated cluster pattern: %s parents, %s points inside window (target %s)",
        n_parents,
        len(offspring),
        n_points,
    )
    return PointFrame.from_coordinates(
        offspring, dataset_name="clustered", crs=window.crs, bounds=window.bounds
    )


def simulate_comparison_patterns(
    config: SyntheticConfig,
    seed: int | None = None,
    window: StudyWindow | None = None,
) -> dict[str, PointFrame]:
    """Simulate the random, uniform and clustered patterns side by side."""
    window = window or StudyWindow.unit_square()
    rng = np.random.default_rng(seed)
    random_seed, cluster_seed = (int(s) for s in rng.integers(0, 2**32 - 1, size=2))

    return {
        "random": random_pattern(
            config.n_points, window, seed=random_seed, exact=config.exact_counts
        ),
        "uniform": uniform_pattern(config.n_points, window),
        "clustered": clustered_pattern(
            config.n_points,
            config.cluster_size,
            config.cluster_radius,
            window,
            seed=cluster_seed,
            buffer_factor=config.buffer_factor,
        ),
    }
