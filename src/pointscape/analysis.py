"""End-to-end crime point-pattern analysis.

Stages, each consuming the previous stage's output:
1. Synthetic random / uniform / clustered patterns for comparison
2. Crime points and boundary layers, through the snapshot cache
3. Counts per fine polygon
4. Kernel density surface over the study window
5. Ripley's K, figures and the Shapefile export
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import geopandas as gpd
import numpy as np
import yaml  # type: ignore[import-untyped]

from pointscape.core.aggregation import count_points_in_polygons
from pointscape.core.cache import StudyData
from pointscape.core.density import DensitySurface, kernel_density
from pointscape.core.pipeline import Pipeline
from pointscape.core.point_frame import PointFrame
from pointscape.core.point_process import KFunctionResult, KFunctionStep
from pointscape.core.render import (
    export_polygons,
    plot_crime_overview,
    plot_k_function,
    plot_pattern_comparison,
)
from pointscape.core.schema import AnalysisConfig, SyntheticConfig
from pointscape.core.steps.spatial import DeduplicateStep
from pointscape.core.synthetic import simulate_comparison_patterns
from pointscape.core.utils import get_logger
from pointscape.core.validation import (
    ValidationReport,
    validate_aggregation,
    validate_crs_consistency,
    validate_non_empty,
    validate_simple_pattern,
)
from pointscape.datasets.police_uk import load_police_uk

logger = get_logger(__name__)


def load_config(path: str | Path) -> AnalysisConfig:
    """
    Read an analysis configuration from YAML.

    Args:
        path: YAML file with ``data``, ``synthetic``, ``density``,
            ``k_function``, ``output`` and ``seed`` sections

    Returns:
        Validated AnalysisConfig

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the content does not match the configuration schema
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        config_dict = yaml.safe_load(f)

    if not isinstance(config_dict, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    return AnalysisConfig(**config_dict)


@dataclass
class AnalysisResult:
    """Everything produced by one analysis run."""

    patterns: dict[str, PointFrame]
    data: StudyData
    points: PointFrame
    counted: gpd.GeoDataFrame
    surface: DensitySurface
    k_function: KFunctionResult
    report: ValidationReport
    outputs: list[Path] = field(default_factory=list)


def clustering_verdict(result: KFunctionResult) -> str:
    """Compare K with the CSR expectation over the radii where K is defined."""
    defined = np.isfinite(result.k)
    if not defined.any():
        logger.warning(
            "No finite K estimate (%s correction); max_distance %g is too large for the window",
            result.edge_correction,
            result.radii[-1],
        )
        return "undetermined"

    excess = result.k[defined] - result.csr()[defined]
    return "clustered" if excess.mean() > 0 else "not clustered"


def run_synthetic(
    config: SyntheticConfig,
    out_dir: Path,
    seed: int | None = None,
    formats: list[str] | None = None,
    dpi: int = 300,
) -> tuple[dict[str, PointFrame], list[Path]]:
    """Simulate the three comparison patterns and plot them side by side."""
    patterns = simulate_comparison_patterns(config, seed=seed)
    for name, frame in patterns.items():
        logger.info("Synthetic %s pattern: %s points", name, frame.count())

    paths = plot_pattern_comparison(
        patterns,
        out_dir,
        formats=formats or ["png", "pdf"],
        dpi=dpi,
    )
    return patterns, paths


def run_analysis(config: AnalysisConfig) -> AnalysisResult:
    """
    Run the complete analysis described by *config*.

    Args:
        config: Validated analysis configuration

    Returns:
        AnalysisResult with intermediate products and written file paths

    Raises:
        FileNotFoundError: If an input file is missing
        ValueError: On CRS problems, empty results or failed validation
    """
    output = config.output
    out_dir = Path(output.out_dir)
    outputs: list[Path] = []

    # 1. Synthetic comparison
    patterns, paths = run_synthetic(
        config.synthetic, out_dir, seed=config.seed, formats=output.formats, dpi=output.dpi
    )
    outputs.extend(paths)

    # 2. Study data
    data = load_police_uk(config.data)
    window = data.window
    logger.info(
        "Study data: %s points, %s fine units, CRS %s",
        data.points.count(),
        len(data.fine),
        data.crs,
    )

    report = ValidationReport()
    report.add(validate_non_empty(data.points))
    report.add(validate_crs_consistency(data.points, data.fine, data.coarse))
    report.add(validate_simple_pattern(data.points))

    # 3. Aggregation
    counted = count_points_in_polygons(data.points, data.fine, count_col=output.count_col)
    report.add(validate_aggregation(data.points, counted, count_col=output.count_col))

    logger.info(report.summary())
    if not report.is_valid:
        raise ValueError(f"Study data failed validation:\n{report.summary()}")

    # 4. Density
    surface = kernel_density(
        data.points,
        bandwidth=config.density.bandwidth,
        resolution=config.density.resolution,
        kernel=config.density.kernel,
        window=window,
    )
    logger.info(
        "Density surface %s; integral inside window %.1f",
        surface.shape,
        surface.total(masked=True),
    )

    # 5. Ripley's K on the simple pattern
    k_config = config.k_function
    points = Pipeline(
        [
            DeduplicateStep(),
            KFunctionStep(
                window,
                max_distance=k_config.max_distance,
                n_radii=k_config.n_radii,
                edge_correction=k_config.edge_correction,
                max_points=k_config.max_points,
                seed=config.seed,
            ),
        ]
    ).run(data.points)
    k_result: KFunctionResult = points.metadata.custom["k_function"]
    logger.info(
        "Ripley's K at r=%g: %.4g (CSR %.4g); pattern is %s",
        k_result.radii[-1],
        k_result.k[-1],
        k_result.csr()[-1],
        clustering_verdict(k_result),
    )
    if not k_result.monotone:
        logger.info(
            "%s-corrected K is not guaranteed to be non-decreasing in r",
            k_result.edge_correction,
        )

    # 6. Figures and export
    outputs.extend(
        plot_crime_overview(
            points,
            counted,
            surface,
            out_dir,
            count_col=output.count_col,
            formats=output.formats,
            dpi=output.dpi,
        )
    )
    outputs.extend(plot_k_function(k_result, out_dir, formats=output.formats, dpi=output.dpi))
    outputs.append(
        export_polygons(
            counted,
            out_dir / output.shapefile_name,
            columns=[config.data.fine_id_col, output.count_col],
        )
    )

    logger.info("Analysis complete: wrote %s files to %s", len(outputs), out_dir)
    return AnalysisResult(
        patterns=patterns,
        data=data,
        points=points,
        counted=counted,
        surface=surface,
        k_function=k_result,
        report=report,
        outputs=outputs,
    )
