"""End-to-end tests for the analysis run and its configuration loader."""

from __future__ import annotations

import geopandas as gpd
import numpy as np
import pytest
import yaml  # type: ignore[import-untyped]

from pointscape.analysis import clustering_verdict, load_config, run_analysis, run_synthetic
from pointscape.core.point_process import KFunctionResult
from pointscape.core.schema import AnalysisConfig, DataConfig, SyntheticConfig


@pytest.fixture
def analysis_config(data_config: DataConfig, tmp_path) -> AnalysisConfig:
    return AnalysisConfig(
        data=data_config,
        density={"bandwidth": 250.0, "resolution": 32},
        k_function={"max_distance": 500.0, "n_radii": 11, "edge_correction": "none"},
        output={"out_dir": tmp_path / "output", "formats": ["png"], "dpi": 50},
        seed=7,
    )


class TestLoadConfig:
    def test_loads_yaml(self, data_config: DataConfig, tmp_path) -> None:
        path = tmp_path / "analysis.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "data": {
                        "crimes_csv": str(data_config.crimes_csv),
                        "fine_boundaries": str(data_config.fine_boundaries),
                        "coarse_boundaries": str(data_config.coarse_boundaries),
                    },
                    "density": {"bandwidth": 300.0},
                    "seed": 1,
                }
            )
        )

        config = load_config(path)

        assert config.density.bandwidth == 300.0
        assert config.data.crimes_csv == data_config.crimes_csv
        assert config.seed == 1

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_rejects_non_mapping(self, tmp_path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_rejects_invalid_values(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(
            "data:\n  crimes_csv: a.csv\n  fine_boundaries: b.gpkg\n"
            "  coarse_boundaries: c.gpkg\ndensity:\n  bandwidth: -5\n"
        )
        with pytest.raises(ValueError):
            load_config(path)


def test_run_synthetic(tmp_path) -> None:
    patterns, paths = run_synthetic(SyntheticConfig(n_points=25), tmp_path, seed=3, dpi=50)

    assert set(patterns) == {"random", "uniform", "clustered"}
    assert patterns["uniform"].count() == 25
    assert all(p.exists() for p in paths)


class TestRunAnalysis:
    def test_writes_all_outputs(self, analysis_config: AnalysisConfig) -> None:
        result = run_analysis(analysis_config)

        names = sorted(p.name for p in result.outputs)
        assert names == [
            "crime_counts.shp",
            "crime_overview.png",
            "k_function.png",
            "pattern_comparison.png",
        ]
        assert all(p.exists() for p in result.outputs)

    def test_results(self, analysis_config: AnalysisConfig) -> None:
        result = run_analysis(analysis_config)

        assert result.points.count() == 3
        assert result.counted["crime_count"].tolist() == [1, 2]
        assert result.report.is_valid
        assert len(result.k_function.radii) == 11
        assert result.surface.mask is not None
        assert result.points.metadata.custom["k_function"] is result.k_function

    def test_second_run_uses_cache(self, analysis_config: AnalysisConfig) -> None:
        run_analysis(analysis_config)
        analysis_config.data.crimes_csv.unlink()

        result = run_analysis(analysis_config)
        assert result.points.count() == 3

    def test_missing_input(self, analysis_config: AnalysisConfig) -> None:
        analysis_config.data.fine_boundaries.unlink()
        with pytest.raises(FileNotFoundError):
            run_analysis(analysis_config)

    def test_exports_identifier_and_count_only(self, analysis_config: AnalysisConfig) -> None:
        run_analysis(analysis_config)

        exported = gpd.read_file(analysis_config.output.out_dir / "crime_counts.shp")
        assert [col for col in exported.columns if col != "geometry"] == [
            "LSOA11CD",
            "crime_coun",
        ]
        assert exported["crime_coun"].tolist() == [1, 2]


class TestClusteringVerdict:
    @staticmethod
    def _result(k: np.ndarray, edge_correction: str = "border") -> KFunctionResult:
        return KFunctionResult(
            radii=np.array([0.1, 0.2]),
            k=k,
            edge_correction=edge_correction,
            n_points=10,
            intensity=10.0,
        )

    def test_clustered(self) -> None:
        assert clustering_verdict(self._result(np.array([0.1, 0.5]))) == "clustered"

    def test_not_clustered(self) -> None:
        assert clustering_verdict(self._result(np.array([0.01, 0.05]))) == "not clustered"

    def test_ignores_undefined_radii(self) -> None:
        assert clustering_verdict(self._result(np.array([0.1, np.nan]))) == "clustered"

    def test_all_undefined(self, caplog) -> None:
        verdict = clustering_verdict(self._result(np.array([np.nan, np.nan])))

        assert verdict == "undetermined"
        assert "No finite K estimate" in caplog.text
