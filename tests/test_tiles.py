"""Tests for chuk_mcp_cliffs.core.tiles."""

import pytest

from chuk_mcp_cliffs.constants import COPERNICUS_BUCKET_URL, PROXY_ROUTE_PREFIX
from chuk_mcp_cliffs.core.tiles import (
    CogSource,
    get_cog_protocol_url,
    get_copernicus_tile_url,
    get_proxy_path,
    get_tile_path,
    get_tiles_for_bounds,
    make_tile,
    parse_cog_url,
    tile_name,
)


class TestTileName:
    def test_north_east(self):
        assert tile_name(51.2, 7.9) == "Copernicus_DSM_COG_10_N51_00_E007_00_DEM"

    def test_south_west(self):
        assert tile_name(-5.0, -12.3) == "Copernicus_DSM_COG_10_S05_00_W013_00_DEM"

    def test_negative_fraction_floors_away_from_zero(self):
        assert tile_name(-0.1, -0.1) == "Copernicus_DSM_COG_10_S01_00_W001_00_DEM"

    def test_equator_and_meridian_are_north_east(self):
        assert tile_name(0.0, 0.0) == "Copernicus_DSM_COG_10_N00_00_E000_00_DEM"

    def test_three_digit_longitude(self):
        assert tile_name(46.5, 10.5) == "Copernicus_DSM_COG_10_N46_00_E010_00_DEM"
        assert tile_name(-33.9, 151.2) == "Copernicus_DSM_COG_10_S34_00_E151_00_DEM"

    @pytest.mark.parametrize(
        "lat,lon",
        [(46.0, 10.0), (46.25, 10.75), (46.999, 10.001), (46.5, 10.99999)],
    )
    def test_same_tile_after_flooring(self, lat, lon):
        assert tile_name(lat, lon) == tile_name(46, 10)

    def test_out_of_range_is_well_formed(self):
        assert tile_name(95, 200) == "Copernicus_DSM_COG_10_N95_00_E200_00_DEM"


class TestTileUrls:
    def test_tile_path(self):
        name = "Copernicus_DSM_COG_10_N46_00_E010_00_DEM"
        assert get_tile_path(46.5, 10.5) == f"{name}/{name}.tif"

    def test_https_url(self):
        url = get_copernicus_tile_url(46.5, 10.5)
        assert url.startswith(COPERNICUS_BUCKET_URL + "/")
        assert url.endswith("N46_00_E010_00_DEM.tif")

    def test_proxy_path(self):
        path = get_proxy_path(46.5, 10.5)
        assert path.startswith(PROXY_ROUTE_PREFIX + "/Copernicus_DSM_COG_10_N46_00_E010_00_DEM/")

    def test_cog_protocol_url(self):
        url = get_cog_protocol_url(46.5, 10.5, "http://localhost:8004/")
        assert url.startswith("cog://http://localhost:8004/api/cog/")
        assert url.endswith(".tif#dem")

    def test_make_tile(self):
        tile = make_tile(46, 10)
        assert tile.lat == 46
        assert tile.lon == 10
        assert tile.name == tile_name(46, 10)
        assert tile.url == get_copernicus_tile_url(46, 10)


class TestParseCogUrl:
    def test_dem_fragment(self):
        assert parse_cog_url("cog://https://x/y.tif#dem") == CogSource("https://x/y.tif", True)

    def test_no_fragment(self):
        assert parse_cog_url("cog://https://x/y.tif") == CogSource("https://x/y.tif", False)

    def test_other_fragment(self):
        source = parse_cog_url("cog://https://x/y.tif#rgb")
        assert source.dem is False

    def test_round_trip_with_protocol_url(self):
        url = get_cog_protocol_url(46.5, 10.5, "http://localhost:8004")
        source = parse_cog_url(url)
        assert source.url == "http://localhost:8004" + get_proxy_path(46.5, 10.5)
        assert source.dem is True

    def test_rejects_other_scheme(self):
        with pytest.raises(ValueError, match="Not a cog"):
            parse_cog_url("https://x/y.tif")


class TestTilesForBounds:
    def test_two_by_two_degrees(self):
        tiles = get_tiles_for_bounds(0, 0, 2, 2)
        assert len(tiles) == 4
        assert [(t.lat, t.lon) for t in tiles] == [(0, 0), (0, 1), (1, 0), (1, 1)]

    def test_inside_one_tile(self):
        tiles = get_tiles_for_bounds(10.45, 46.45, 10.55, 46.55)
        assert len(tiles) == 1
        assert tiles[0].name == tile_name(46.5, 10.5)

    def test_straddles_meridian(self):
        tiles = get_tiles_for_bounds(-0.5, 51.2, 0.5, 51.8)
        assert [t.lon for t in tiles] == [-1, 0]

    def test_degenerate_box_is_empty(self):
        assert get_tiles_for_bounds(7.0, 46.0, 7.0, 46.0) == []
