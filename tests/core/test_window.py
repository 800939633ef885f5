"""Tests for study windows."""

import geopandas as gpd
import numpy as np
import pytest
from shapely import geometry

from pointscape.core.window import StudyWindow


class TestStudyWindow:
    def test_unit_square(self, unit_window: StudyWindow) -> None:
        assert unit_window.area == pytest.approx(1.0)
        assert unit_window.bounds == (0.0, 0.0, 1.0, 1.0)
        assert unit_window.is_rectangle
        assert unit_window.crs is None

    def test_rejects_degenerate_bounds(self) -> None:
        with pytest.raises(ValueError):
            StudyWindow.from_bounds((0.0, 0.0, 0.0, 1.0))

    def test_rejects_empty_polygon(self) -> None:
        with pytest.raises(ValueError, match="positive area"):
            StudyWindow(geometry.Polygon())

    def test_contains_is_boundary_inclusive(self, unit_window: StudyWindow) -> None:
        coords = np.array([[0.5, 0.5], [0.0, 0.5], [1.0, 1.0], [1.5, 0.5]])
        assert unit_window.contains(coords).tolist() == [True, True, True, False]

    def test_boundary_distance(self, unit_window: StudyWindow) -> None:
        distances = unit_window.boundary_distance(np.array([[0.5, 0.5], [0.1, 0.6]]))
        np.testing.assert_allclose(distances, [0.5, 0.1])

    def test_expanded(self, unit_window: StudyWindow) -> None:
        grown = unit_window.expanded(0.1)
        assert grown.bounds == pytest.approx((-0.1, -0.1, 1.1, 1.1))
        assert grown.area == pytest.approx(1.44)

    def test_translation_overlap(self) -> None:
        window = StudyWindow.from_bounds((0.0, 0.0, 2.0, 1.0))
        overlap = window.translation_overlap(np.array([0.0, 0.5, 3.0]), np.array([0.0, -0.5, 0.0]))
        np.testing.assert_allclose(overlap, [2.0, 0.75, 0.0])

    def test_translation_overlap_needs_rectangle(self) -> None:
        triangle = StudyWindow(geometry.Polygon([(0, 0), (1, 0), (0, 1)]))
        assert not triangle.is_rectangle
        with pytest.raises(ValueError, match="rectangular"):
            triangle.translation_overlap(np.array([0.1]), np.array([0.1]))

    def test_from_geometries_unions_polygons(self) -> None:
        series = gpd.GeoSeries([geometry.box(0, 0, 1, 1), geometry.box(1, 0, 2, 1)])
        window = StudyWindow.from_geometries(series, crs="EPSG:27700")

        assert window.area == pytest.approx(2.0)
        assert window.bounds == (0.0, 0.0, 2.0, 1.0)
        assert window.crs == "EPSG:27700"
