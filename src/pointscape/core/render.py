"""Figure rendering and GIS export."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path

import geopandas as gpd
import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from pointscape.core.density import DensitySurface  # noqa: E402
from pointscape.core.point_frame import PointFrame  # noqa: E402
from pointscape.core.point_process import KFunctionResult  # noqa: E402
from pointscape.core.utils import get_logger  # noqa: E402
from pointscape.core.window import StudyWindow  # noqa: E402

logger = get_logger(__name__)

DEFAULT_FORMATS = ("png", "pdf")
SHAPEFILE_FIELD_LIMIT = 10


@contextmanager
def figure(
    path_stem: Path,
    formats: Sequence[str] = DEFAULT_FORMATS,
    dpi: int = 300,
    **subplot_kwargs,
) -> Iterator[tuple[Figure, object]]:
    """
    Create a figure, save it in every format on success, and always close it.

    Args:
        path_stem: Output path without suffix
        formats: File suffixes to write (e.g. "png", "pdf")
        dpi: Resolution of raster outputs
        **subplot_kwargs: Passed to ``plt.subplots``

    Yields:
        (figure, axes)
    """
    path_stem = Path(path_stem)
    path_stem.parent.mkdir(parents=True, exist_ok=True)
    fig, axes = plt.subplots(**subplot_kwargs)
    try:
        yield fig, axes
        for fmt in formats:
            target = path_stem.with_suffix(f".{fmt}")
            fig.savefig(target, dpi=dpi, bbox_inches="tight")
            logger.info("Saved figure %s", target)
    finally:
        plt.close(fig)


def _figure_paths(path_stem: Path, formats: Sequence[str]) -> list[Path]:
    return [Path(path_stem).with_suffix(f".{fmt}") for fmt in formats]


def _draw_window(ax, window: StudyWindow) -> None:
    gpd.GeoSeries([window.polygon]).boundary.plot(ax=ax, color="black", linewidth=0.8)


def plot_pattern_comparison(
    patterns: Mapping[str, PointFrame],
    out_dir: Path,
    window: StudyWindow | None = None,
    formats: Sequence[str] = DEFAULT_FORMATS,
    dpi: int = 300,
) -> list[Path]:
    """Scatter the synthetic patterns side by side."""
    window = window or StudyWindow.unit_square()
    stem = Path(out_dir) / "pattern_comparison"

    n_panels = len(patterns)
    figsize = (5 * n_panels, 5)
    with figure(stem, formats, dpi, nrows=1, ncols=n_panels, figsize=figsize) as (_, axes):
        axes_list = list(axes) if n_panels > 1 else [axes]
        for ax, (name, frame) in zip(axes_list, patterns.items()):
            coords = frame.coordinates()
            ax.scatter(coords[:, 0], coords[:, 1], s=6, color="black")
            _draw_window(ax, window)
            minx, miny, maxx, maxy = window.bounds
            ax.set_xlim(minx, maxx)
            ax.set_ylim(miny, maxy)
            ax.set_aspect("equal")
            ax.set_title(f"{name.capitalize()} (n={len(coords)})")
            ax.set_xticks([])
            ax.set_yticks([])

    return _figure_paths(stem, formats)


def plot_crime_overview(
    points: PointFrame,
    polygons: gpd.GeoDataFrame,
    surface: DensitySurface,
    out_dir: Path,
    count_col: str = "crime_count",
    formats: Sequence[str] = DEFAULT_FORMATS,
    dpi: int = 300,
) -> list[Path]:
    """Three panels: raw points, choropleth of counts, kernel density."""
    stem = Path(out_dir) / "crime_overview"
    coords = points.coordinates()

    with figure(stem, formats, dpi, nrows=1, ncols=3, figsize=(18, 6)) as (_, axes):
        ax_points, ax_choropleth, ax_density = axes

        polygons.boundary.plot(ax=ax_points, color="grey", linewidth=0.3)
        ax_points.scatter(coords[:, 0], coords[:, 1], s=1, color="darkred", alpha=0.4)
        ax_points.set_title(f"Incidents (n={len(coords)})")

        polygons.plot(
            column=count_col,
            ax=ax_choropleth,
            cmap="YlOrRd",
            legend=True,
            edgecolor="grey",
            linewidth=0.2,
        )
        ax_choropleth.set_title("Incidents per unit")

        image = ax_density.imshow(
            surface.masked(),
            extent=(surface.extent[0], surface.extent[2], surface.extent[1], surface.extent[3]),
            origin="lower",
            cmap="inferno",
        )
        polygons.boundary.plot(ax=ax_density, color="white", linewidth=0.2)
        ax_density.set_title(f"Kernel density (bandwidth={surface.bandwidth:g})")
        plt.colorbar(image, ax=ax_density, fraction=0.046, pad=0.04)

        for ax in axes:
            ax.set_aspect("equal")
            ax.set_axis_off()

    return _figure_paths(stem, formats)


def plot_k_function(
    result: KFunctionResult,
    out_dir: Path,
    name: str = "k_function",
    formats: Sequence[str] = DEFAULT_FORMATS,
    dpi: int = 300,
) -> list[Path]:
    """Plot K(r) against the CSR expectation π r²."""
    stem = Path(out_dir) / name

    with figure(stem, formats, dpi, figsize=(6, 5)) as (_, ax):
        ax.plot(result.radii, result.k, color="black", linewidth=2, label="Observed K(r)")
        ax.plot(result.radii, result.csr(), color="red", linestyle="--", label="CSR: πr²")
        ax.set_xlabel("Distance r")
        ax.set_ylabel("K(r)")
        title = f"Ripley's K ({result.edge_correction} correction, n={result.n_points})"
        if not result.monotone:
            title += "\nnot guaranteed monotone in r"
        ax.set_title(title)
        ax.legend()

    return _figure_paths(stem, formats)


def shapefile_field_names(
    columns: Sequence[str], geometry_col: str = "geometry"
) -> dict[str, str]:
    """Map column names to unique names within the Shapefile 10-character limit."""
    renamed: dict[str, str] = {}
    used: set[str] = set()
    for col in columns:
        if col == geometry_col:
            continue
        candidate = col[:SHAPEFILE_FIELD_LIMIT]
        suffix = 1
        while candidate in used:
            tail = str(suffix)
            candidate = col[: SHAPEFILE_FIELD_LIMIT - len(tail)] + tail
            suffix += 1
        used.add(candidate)
        if candidate != col:
            renamed[col] = candidate
    return renamed


def export_polygons(
    polygons: gpd.GeoDataFrame,
    path: Path,
    columns: Sequence[str] | None = None,
) -> Path:
    """
    Write a polygon layer as an ESRI Shapefile for desktop GIS tools.

    Field names longer than the format allows are truncated deterministically.

    Args:
        polygons: Layer including derived attributes
        path: Target ``.shp`` path
        columns: Attribute columns to keep; all of them when omitted

    Returns:
        The written path

    Raises:
        ValueError: If a requested column is missing
    """
    path = Path(path)
    if columns is not None:
        missing = [col for col in columns if col not in polygons.columns]
        if missing:
            raise ValueError(f"Cannot export missing columns: {missing}")
        polygons = polygons[[*columns, polygons.geometry.name]]
    path.parent.mkdir(parents=True, exist_ok=True)
    renamed = shapefile_field_names(
        [str(col) for col in polygons.columns], geometry_col=polygons.geometry.name
    )
    if renamed:
        logger.info("Shortened Shapefile field names: %s", renamed)

    polygons.rename(columns=renamed).to_file(path, driver="ESRI Shapefile")
    logger.info("Exported %s polygons to %s", len(polygons), path)
    return path
