"""Tests for chuk_mcp_cliffs.core.slope."""

import math

import pytest

from chuk_mcp_cliffs.constants import EARTH_RADIUS_M
from chuk_mcp_cliffs.core.slope import (
    ElevationGrid,
    LngLatBounds,
    SlopeCell,
    calculate_slope_angle,
    calculate_slope_grid,
    cell_size_for_bounds,
    create_slope_geojson,
    diagonal_distance_error,
    empty_feature_collection,
    get_slope_color,
    grid_size_for_zoom,
    haversine_distance,
    is_missing,
    parse_rgba,
    round_half_up,
    sample_elevation_grid,
)

# 100 m along a great circle, in degrees
STEP_100M = math.degrees(100 / EARTH_RADIUS_M)


class TestSlopeAngle:
    def test_flat(self):
        assert calculate_slope_angle(0, 100) == 0.0

    def test_forty_five(self):
        assert calculate_slope_angle(100, 100) == pytest.approx(45.0)

    def test_sign_of_rise_ignored(self):
        assert calculate_slope_angle(-30, 100) == calculate_slope_angle(30, 100)

    def test_zero_distance_with_rise_is_vertical(self):
        assert calculate_slope_angle(5, 0) == 90.0

    def test_zero_distance_without_rise_is_flat(self):
        assert calculate_slope_angle(0, 0) == 0.0

    def test_cliff_criterion(self):
        assert calculate_slope_angle(3, 20) == pytest.approx(8.5308, abs=1e-3)


class TestHaversine:
    def test_same_point(self):
        assert haversine_distance(46.5, 10.5, 46.5, 10.5) == 0.0

    def test_symmetric(self):
        a = haversine_distance(46.5, 10.5, 47.1, 11.3)
        b = haversine_distance(47.1, 11.3, 46.5, 10.5)
        assert a == pytest.approx(b)

    def test_one_degree_of_latitude(self):
        assert haversine_distance(0, 0, 1, 0) == pytest.approx(111194.93, rel=1e-6)

    def test_longitude_shrinks_with_latitude(self):
        at_equator = haversine_distance(0, 0, 0, 1)
        at_sixty = haversine_distance(60, 0, 60, 1)
        assert at_sixty == pytest.approx(at_equator / 2, rel=1e-3)

    def test_diagonal_error_small_for_small_cells(self):
        err = diagonal_distance_error(46.5, 10.5, 46.5 + STEP_100M, 10.5 + STEP_100M)
        assert abs(err) < 0.01


class TestMissing:
    def test_none(self):
        assert is_missing(None)

    def test_nan(self):
        assert is_missing(float("nan"))

    def test_zero_is_data(self):
        assert not is_missing(0.0)


class TestBounds:
    def test_from_bbox(self):
        b = LngLatBounds.from_bbox([7, 46, 7.5, 46.25])
        assert b.width == 0.5
        assert b.height == 0.25
        assert b.to_bbox() == [7.0, 46.0, 7.5, 46.25]

    def test_from_bbox_wrong_length(self):
        with pytest.raises(ValueError, match="Invalid bounding box"):
            LngLatBounds.from_bbox([1, 2, 3])


class TestSampleElevationGrid:
    def test_lattice_shape_and_edges(self, make_terrain):
        terrain = make_terrain(lambda lng, lat: lng + lat)
        bounds = LngLatBounds(7.0, 46.0, 7.4, 46.4)
        grid = sample_elevation_grid(terrain, bounds, grid_size=4)

        assert len(grid.lngs) == 5
        assert len(grid.lats) == 5
        assert len(grid.elevations) == 5
        assert all(len(row) == 5 for row in grid.elevations)
        assert grid.lngs[0] == 7.0
        assert grid.lngs[-1] == pytest.approx(7.4)
        assert grid.lats[-1] == pytest.approx(46.4)
        assert terrain.queries == 25

    def test_row_major_by_latitude(self, make_terrain):
        terrain = make_terrain(lambda lng, lat: lat * 1000)
        grid = sample_elevation_grid(terrain, LngLatBounds(0, 0, 1, 1), grid_size=2)
        assert grid.elevations[0][0] == 0.0
        assert grid.elevations[2][0] == 1000.0
        assert grid.elevations[0][2] == 0.0

    def test_missing_queries_kept_as_none(self, make_terrain):
        terrain = make_terrain(lambda lng, lat: None if lng > 0.5 else 10.0)
        grid = sample_elevation_grid(terrain, LngLatBounds(0, 0, 1, 1), grid_size=2)
        assert grid.elevations[0] == [10.0, 10.0, None]
        assert grid.valid_count == 6

    def test_nan_becomes_none(self, make_terrain):
        terrain = make_terrain(lambda lng, lat: float("nan"))
        grid = sample_elevation_grid(terrain, LngLatBounds(0, 0, 1, 1), grid_size=1)
        assert grid.elevations == [[None, None], [None, None]]
        assert grid.valid_count == 0

    def test_grid_size_zero_rejected(self, make_terrain):
        with pytest.raises(ValueError, match="grid_size"):
            sample_elevation_grid(make_terrain(lambda *_: 0.0), LngLatBounds(0, 0, 1, 1), 0)


class TestSlopeGrid:
    def test_flat_grid_has_zero_slopes(self):
        elevations = [[250.0] * 4 for _ in range(4)]
        lngs = [0.0, 0.01, 0.02, 0.03]
        lats = [46.0, 46.01, 46.02, 46.03]
        cells = calculate_slope_grid(elevations, lngs, lats)
        assert len(cells) == 9
        assert all(c.slope == 0.0 for c in cells)

    def test_diagonal_rise(self):
        elevations = [[0.0, 0.0], [0.0, 100.0]]
        lngs = [0.0, STEP_100M]
        lats = [0.0, STEP_100M]

        cells = calculate_slope_grid(elevations, lngs, lats)

        assert len(cells) == 1
        cell = cells[0]
        # atan(100 / (100 * sqrt 2))
        assert cell.slope == pytest.approx(35.26, abs=0.01)
        assert cell.elevation == 0.0
        assert cell.lng == pytest.approx(STEP_100M / 2)
        assert cell.lat == pytest.approx(STEP_100M / 2)

    def test_steepest_neighbour_wins(self):
        elevations = [[0.0, 10.0], [100.0, 0.0]]
        cells = calculate_slope_grid(elevations, [0.0, STEP_100M], [0.0, STEP_100M])
        assert cells[0].slope == pytest.approx(45.0, abs=0.01)

    def test_missing_neighbour_left_out(self):
        elevations = [[0.0, None], [0.0, 0.0]]
        cells = calculate_slope_grid(elevations, [0.0, STEP_100M], [0.0, STEP_100M])
        assert len(cells) == 1
        assert cells[0].slope == 0.0

    def test_all_neighbours_missing_gives_zero(self):
        elevations = [[50.0, None], [None, None]]
        cells = calculate_slope_grid(elevations, [0.0, STEP_100M], [0.0, STEP_100M])
        assert len(cells) == 1
        assert cells[0].slope == 0.0

    def test_missing_base_skips_cell(self):
        elevations = [[None, 0.0], [0.0, 0.0]]
        cells = calculate_slope_grid(elevations, [0.0, STEP_100M], [0.0, STEP_100M])
        assert cells == []

    def test_exact_diagonal_close_to_approximation(self):
        elevations = [[0.0, 0.0], [0.0, 100.0]]
        lngs = [10.0, 10.0 + STEP_100M]
        lats = [46.0, 46.0 + STEP_100M]
        approx = calculate_slope_grid(elevations, lngs, lats)[0].slope
        exact = calculate_slope_grid(elevations, lngs, lats, exact_diagonal=True)[0].slope
        assert exact == pytest.approx(approx, abs=0.01)

    def test_empty_input(self):
        assert calculate_slope_grid([], [], []) == []


class TestGridSizeForZoom:
    @pytest.mark.parametrize(
        "zoom,expected",
        [(10, 25), (11.9, 25), (12, 40), (13.99, 40), (14, 60), (18, 60)],
    )
    def test_thresholds(self, zoom, expected):
        assert grid_size_for_zoom(zoom) == expected

    def test_cell_size_is_larger_side(self):
        bounds = LngLatBounds(0, 0, 1.0, 0.5)
        assert cell_size_for_bounds(bounds, 10) == pytest.approx(0.1)


class TestSlopeColor:
    def test_below_threshold_transparent(self):
        assert get_slope_color(4.9, 5) == "transparent"

    def test_at_threshold_is_yellow(self):
        assert get_slope_color(5, 5) == "rgba(255, 255, 0, 0.3)"

    def test_midpoint_is_orange(self):
        color = get_slope_color(25, 5)
        r, g, b, _ = parse_rgba(color)
        assert (r, g, b) == (255, 103, 0)
        assert float(color.rsplit(",", 1)[1].rstrip(")")) == pytest.approx(0.65)

    def test_saturates_at_dark_red(self):
        color = get_slope_color(90, 5)
        r, g, b, _ = parse_rgba(color)
        assert (r, g, b) == (200, 0, 0)
        assert float(color.rsplit(",", 1)[1].rstrip(")")) == pytest.approx(0.9)

    def test_alpha_never_decreases(self):
        alphas = []
        slope = 15.0
        while slope <= 90:
            color = get_slope_color(slope, 15)
            alphas.append(float(color.rsplit(",", 1)[1].rstrip(")")))
            slope += 0.5
        assert alphas == sorted(alphas)

    def test_red_channel_never_increases(self):
        reds = [parse_rgba(get_slope_color(s, 5))[0] for s in range(5, 91)]
        assert reds == sorted(reds, reverse=True)


class TestParseRgba:
    def test_transparent(self):
        assert parse_rgba("transparent") == (0, 0, 0, 0)

    def test_alpha_scaled_to_byte(self):
        assert parse_rgba("rgba(10, 20, 0, 0.5)") == (10, 20, 0, 128)

    def test_rejects_other_formats(self):
        with pytest.raises(ValueError):
            parse_rgba("#ff0000")

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(-2.5) == -2
        assert round_half_up(103.48) == 103


class TestSlopeGeojson:
    def _cells(self):
        return [
            SlopeCell(lng=7.0, lat=46.0, slope=3.0, elevation=100.0),
            SlopeCell(lng=7.1, lat=46.0, slope=20.0, elevation=150.0),
            SlopeCell(lng=7.2, lat=46.0, slope=60.0, elevation=900.0),
        ]

    def test_filters_below_min_slope(self):
        fc = create_slope_geojson(self._cells(), 0.1, min_slope=5)
        assert fc["type"] == "FeatureCollection"
        assert len(fc["features"]) == 2

    def test_min_slope_above_everything_is_empty(self):
        fc = create_slope_geojson(self._cells(), 0.1, min_slope=100)
        assert fc == empty_feature_collection()

    def test_square_ring_is_closed(self):
        fc = create_slope_geojson(self._cells(), 0.1, min_slope=5)
        ring = fc["features"][0]["geometry"]["coordinates"][0]
        assert len(ring) == 5
        assert ring[0] == ring[-1]
        assert ring[1][0] - ring[0][0] == pytest.approx(0.1)
        assert ring[2][1] - ring[1][1] == pytest.approx(0.1)
        assert ring[0] == [pytest.approx(7.05), pytest.approx(45.95)]

    def test_properties(self):
        fc = create_slope_geojson(self._cells(), 0.1, min_slope=5)
        props = fc["features"][1]["properties"]
        assert props["slope"] == 60.0
        assert props["elevation"] == 900.0
        assert props["color"] == get_slope_color(60.0, 5)

    def test_elevation_grid_valid_count(self):
        grid = ElevationGrid(
            elevations=[[1.0, None], [float("nan"), 2.0]], lngs=[0, 1], lats=[0, 1]
        )
        assert grid.valid_count == 2
