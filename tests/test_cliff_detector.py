"""Tests for chuk_mcp_cliffs.core.cliff_detector."""

import math

import numpy as np
import pytest

from chuk_mcp_cliffs.core.cliff_detector import (
    cliff_mask_to_geojson,
    detect_cliffs,
    get_cliff_params,
    is_cliff,
)
from chuk_mcp_cliffs.core.slope import LngLatBounds


class TestCliffParams:
    def test_defaults(self):
        params = get_cliff_params()
        assert params.height_diff == 3.0
        assert params.horizontal_dist == 20.0
        assert params.gradient == pytest.approx(15.0)
        assert params.min_angle == pytest.approx(math.degrees(math.atan(0.15)))

    def test_custom(self):
        params = get_cliff_params(10, 10)
        assert params.min_angle == pytest.approx(45.0)
        assert params.gradient == pytest.approx(100.0)

    def test_zero_distance_rejected(self):
        with pytest.raises(ValueError, match="horizontal_dist"):
            get_cliff_params(3, 0)

    def test_is_cliff_threshold(self):
        assert is_cliff(8.5)
        assert not is_cliff(8.4)
        assert is_cliff(30, min_angle=30)


class TestDetectCliffs:
    def test_flat_terrain_has_no_cliffs(self):
        mask = detect_cliffs(np.full((10, 10), 250.0), resolution_m=20)
        assert mask.shape == (10, 10)
        assert not mask.any()

    def test_step_flags_both_sides(self):
        elevation = np.zeros((5, 6))
        elevation[:, 3:] = 10.0

        mask = detect_cliffs(elevation, resolution_m=20)

        assert mask[:, 2].all()
        assert mask[:, 3].all()
        assert not mask[:, [0, 1, 4, 5]].any()

    def test_gentle_step_not_flagged(self):
        elevation = np.zeros((5, 6))
        elevation[:, 3:] = 2.0
        assert not detect_cliffs(elevation, resolution_m=20).any()

    def test_search_radius_in_pixels(self):
        # 10 m pixels: a 3 m rise two pixels away is still within 20 m
        elevation = np.zeros((1, 7))
        elevation[0, 5:] = 3.0
        mask = detect_cliffs(elevation, resolution_m=10)
        assert mask[0].tolist() == [False, False, False, True, True, True, True]

    def test_nan_pixels_never_cliffs(self):
        elevation = np.array([[0.0, np.nan, 0.0]])
        mask = detect_cliffs(elevation, resolution_m=20)
        assert not mask.any()

    def test_nan_neighbour_ignored(self):
        elevation = np.array([[0.0, np.nan], [0.0, 100.0]])
        mask = detect_cliffs(elevation, resolution_m=20)
        assert not mask[0, 1]
        assert mask[1, 0]
        assert mask[1, 1]

    def test_nested_lists_with_none(self):
        mask = detect_cliffs([[0.0, None], [0.0, 0.0]], resolution_m=20)
        assert mask.shape == (2, 2)
        assert not mask.any()

    def test_custom_params(self):
        elevation = np.zeros((3, 4))
        elevation[:, 2:] = 10.0
        strict = get_cliff_params(height_diff=20, horizontal_dist=20)
        assert not detect_cliffs(elevation, resolution_m=20, params=strict).any()

    def test_invalid_resolution(self):
        with pytest.raises(ValueError, match="resolution_m"):
            detect_cliffs(np.zeros((2, 2)), resolution_m=0)

    def test_empty_input(self):
        mask = detect_cliffs(np.zeros((0, 0)), resolution_m=30)
        assert mask.size == 0


class TestCliffMaskToGeojson:
    def test_point_positions(self):
        mask = np.array([[True, False], [False, True]])
        fc = cliff_mask_to_geojson(mask, LngLatBounds(10.0, 46.0, 11.0, 47.0))

        assert fc["type"] == "FeatureCollection"
        coords = [f["geometry"]["coordinates"] for f in fc["features"]]
        assert coords == [[10.0, 47.0], [10.5, 46.5]]
        assert all(f["properties"] == {"isCliff": True} for f in fc["features"])

    def test_empty_mask(self):
        fc = cliff_mask_to_geojson(np.zeros((3, 3), dtype=bool), LngLatBounds(0, 0, 1, 1))
        assert fc["features"] == []

    def test_limit_stops_after_first_pixels(self):
        mask = np.ones((2000, 2000), dtype=bool)
        fc = cliff_mask_to_geojson(mask, LngLatBounds(10.0, 46.0, 11.0, 47.0), limit=50)

        assert len(fc["features"]) == 50
        assert fc["features"][0]["geometry"]["coordinates"] == [10.0, 47.0]
        assert fc["features"][49]["geometry"]["coordinates"] == pytest.approx([10.0245, 47.0])

    def test_limit_larger_than_mask(self):
        mask = np.array([[True, False], [False, True]])
        fc = cliff_mask_to_geojson(mask, LngLatBounds(0, 0, 1, 1), limit=10)
        assert len(fc["features"]) == 2
