"""Kernel density surfaces over a regular grid."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from sklearn.neighbors import KernelDensity

from pointscape.core.point_frame import PointFrame
from pointscape.core.schema import KDEConfig
from pointscape.core.utils import ensure_same_crs, get_logger, validate_bounds
from pointscape.core.window import StudyWindow

logger = get_logger(__name__)

_SKLEARN_KERNELS = {
    "gaussian": "gaussian",
    "epanechnikov": "epanechnikov",
    "uniform": "tophat",
}


@dataclass(frozen=True)
class DensitySurface:
    """Intensity grid produced by kernel density estimation.

    Attributes:
        values: Array of shape (ny, nx), points per unit area at cell centres
        xs: Cell-centre x coordinates (length nx)
        ys: Cell-centre y coordinates (length ny)
        extent: (minx, miny, maxx, maxy) covered by the grid
        bandwidth: Kernel bandwidth in CRS units
        kernel: Kernel name
        mask: Optional (ny, nx) boolean array, True where the cell centre lies
            inside the study window
    """

    values: np.ndarray
    xs: np.ndarray
    ys: np.ndarray
    extent: tuple[float, float, float, float]
    bandwidth: float
    kernel: str = "gaussian"
    mask: np.ndarray | None = None

    def __post_init__(self) -> None:
        for array in (self.values, self.xs, self.ys, self.mask):
            if array is not None:
                array.setflags(write=False)

    @property
    def shape(self) -> tuple[int, int]:
        return (int(self.values.shape[0]), int(self.values.shape[1]))

    @property
    def cell_area(self) -> float:
        minx, miny, maxx, maxy = self.extent
        ny, nx = self.shape
        return ((maxx - minx) / nx) * ((maxy - miny) / ny)

    def total(self, masked: bool = False) -> float:
        """Numerical integral of the surface (expected point count)."""
        values = self.masked() if masked else self.values
        return float(np.nansum(values) * self.cell_area)

    def masked(self) -> np.ndarray:
        """Values with cells outside the study window set to NaN."""
        if self.mask is None:
            return np.array(self.values, copy=True)
        return np.where(self.mask, self.values, np.nan)


def grid_axes(
    extent: tuple[float, float, float, float], resolution: int
) -> tuple[np.ndarray, np.ndarray]:
    """Cell-centre coordinates of a resolution x resolution grid over *extent*."""
    minx, miny, maxx, maxy = validate_bounds(extent)
    xs = minx + (np.arange(resolution) + 0.5) * (maxx - minx) / resolution
    ys = miny + (np.arange(resolution) + 0.5) * (maxy - miny) / resolution
    return xs, ys


def kernel_density(
    points: PointFrame,
    bandwidth: float,
    extent: tuple[float, float, float, float] | None = None,
    resolution: int = 256,
    kernel: str = "gaussian",
    window: StudyWindow | None = None,
) -> DensitySurface:
    """
    Estimate a kernel intensity surface from a point set.

    The normalised kernel density is scaled by the number of points, so the
    surface integrates to the point count over an extent large enough to
    hold every kernel's mass.

    Args:
        points: Point set in a planar CRS
        bandwidth: Kernel bandwidth in CRS units (sigma for the Gaussian kernel)
        extent: Grid extent; defaults to the window bounds, then the point bounds
        resolution: Number of cells along each axis
        kernel: "gaussian", "epanechnikov" or "uniform"
        window: Optional study window used to mask the surface

    Returns:
        DensitySurface

    Raises:
        ValueError: On an empty point set or invalid parameters
    """
    config = KDEConfig(bandwidth=bandwidth, kernel=kernel, resolution=resolution)
    coords = points.coordinates()
    if len(coords) == 0:
        raise ValueError(
            f"Cannot estimate density of empty point set '{points.metadata.dataset_name}'"
        )

    if window is not None:
        ensure_same_crs(points.metadata.crs, window.crs)
    if extent is None:
        if window is not None:
            extent = window.bounds
        else:
            extent = (
                float(coords[:, 0].min()),
                float(coords[:, 1].min()),
                float(coords[:, 0].max()),
                float(coords[:, 1].max()),
            )

    xs, ys = grid_axes(extent, config.resolution)
    grid_x, grid_y = np.meshgrid(xs, ys)
    cells = np.column_stack([grid_x.ravel(), grid_y.ravel()])

    logger.info(
        "Computing %s KDE of %s points on a %sx%s grid (bandwidth=%s)",
        config.kernel,
        len(coords),
        config.resolution,
        config.resolution,
        config.bandwidth,
    )
    estimator = KernelDensity(bandwidth=config.bandwidth, kernel=_SKLEARN_KERNELS[config.kernel])
    estimator.fit(coords)
    density = np.exp(estimator.score_samples(cells)) * len(coords)
    values = density.reshape(grid_x.shape)

    mask = None
    if window is not None:
        mask = window.contains(cells).reshape(grid_x.shape)

    return DensitySurface(
        values=values,
        xs=xs,
        ys=ys,
        extent=validate_bounds(extent),
        bandwidth=config.bandwidth,
        kernel=config.kernel,
        mask=mask,
    )
