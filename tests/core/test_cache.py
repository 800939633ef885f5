"""Tests for the study data snapshot cache."""

from __future__ import annotations

import geopandas as gpd
import numpy as np
import pytest

from pointscape.core.cache import StudyData, load_or_build, read_snapshot, write_snapshot
from pointscape.core.point_frame import PointFrame
from pointscape.core.schema import PointSchema


@pytest.fixture
def study_data(
    projected_points: PointFrame,
    fine_polygons: gpd.GeoDataFrame,
    coarse_polygons: gpd.GeoDataFrame,
) -> StudyData:
    return StudyData(points=projected_points, fine=fine_polygons, coarse=coarse_polygons)


def test_study_data_requires_single_crs(
    projected_points: PointFrame, fine_polygons: gpd.GeoDataFrame
) -> None:
    with pytest.raises(ValueError, match="single CRS"):
        StudyData(
            points=projected_points,
            fine=fine_polygons,
            coarse=fine_polygons.to_crs("EPSG:4326"),
        )


def test_study_data_window(study_data: StudyData) -> None:
    window = study_data.window
    assert window.crs == "EPSG:27700"
    assert window.area == pytest.approx(2_000_000.0)


def test_snapshot_round_trip(study_data: StudyData, tmp_path) -> None:
    path = write_snapshot(study_data, tmp_path / "cache" / "study.gpkg")
    loaded = read_snapshot(path, PointSchema())

    assert loaded.crs == "EPSG:27700"
    np.testing.assert_allclose(loaded.points.coordinates(), study_data.points.coordinates())
    assert loaded.fine["LSOA11CD"].tolist() == ["E01000001", "E01000002"]
    assert len(loaded.coarse) == 1


def test_read_missing_snapshot(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        read_snapshot(tmp_path / "missing.gpkg", PointSchema())


class TestLoadOrBuild:
    def test_builds_once_then_loads(self, study_data: StudyData, tmp_path) -> None:
        calls = []

        def build() -> StudyData:
            calls.append(1)
            return study_data

        cache_path = tmp_path / "study.gpkg"
        first = load_or_build(cache_path, build, PointSchema())
        second = load_or_build(cache_path, build, PointSchema())

        assert len(calls) == 1
        assert cache_path.exists()
        assert first is study_data
        np.testing.assert_allclose(second.points.coordinates(), first.points.coordinates())

    def test_existing_snapshot_is_used_verbatim(self, study_data: StudyData, tmp_path) -> None:
        cache_path = write_snapshot(study_data, tmp_path / "study.gpkg")

        def build() -> StudyData:
            raise AssertionError("builder must not run when a snapshot exists")

        loaded = load_or_build(cache_path, build, PointSchema(), dataset_name="cached")
        assert loaded.points.metadata.dataset_name == "cached"
        assert loaded.points.count() == study_data.points.count()

    def test_failed_write_leaves_no_snapshot(
        self, study_data: StudyData, tmp_path, monkeypatch
    ) -> None:
        calls = []

        def build() -> StudyData:
            calls.append(1)
            return study_data

        original_to_file = gpd.GeoDataFrame.to_file

        def to_file_failing_on_fine(self, filename, *args, layer=None, **kwargs):
            if layer == "fine":
                raise OSError("disk full")
            return original_to_file(self, filename, *args, layer=layer, **kwargs)

        cache_path = tmp_path / "study.gpkg"
        monkeypatch.setattr(gpd.GeoDataFrame, "to_file", to_file_failing_on_fine)
        with pytest.raises(OSError, match="disk full"):
            load_or_build(cache_path, build, PointSchema())

        assert not cache_path.exists()
        assert list(tmp_path.iterdir()) == []

        monkeypatch.undo()
        rebuilt = load_or_build(cache_path, build, PointSchema())

        assert len(calls) == 2
        assert rebuilt is study_data
        assert cache_path.exists()
        assert read_snapshot(cache_path, PointSchema()).points.count() == 5
