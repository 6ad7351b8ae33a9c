"""
Copernicus DEM GLO-30 tile naming.

Tiles are 1° x 1°, named after the integer south-west corner:
    Copernicus_DSM_COG_10_N46_00_E010_00_DEM/Copernicus_DSM_COG_10_N46_00_E010_00_DEM.tif

No network access and no validation of plausible Earth bounds: out-of-range
coordinates produce a well-formed name for a tile that does not exist.
"""

import math
from dataclasses import dataclass

from ..constants import (
    COG_DEM_FRAGMENT,
    COG_PROTOCOL,
    COPERNICUS_BUCKET_URL,
    COPERNICUS_TILE_PREFIX,
    PROXY_ROUTE_PREFIX,
    TILE_SIZE_DEGREES,
    ErrorMessages,
)


@dataclass(frozen=True)
class CopernicusTile:
    """One 1° x 1° Copernicus DEM tile."""

    lat: int
    lon: int
    name: str
    url: str


@dataclass(frozen=True)
class CogSource:
    """A raster addressed through the ``cog://`` scheme."""

    url: str
    dem: bool


def tile_name(lat: float, lon: float) -> str:
    """Return the canonical tile identifier containing (lat, lon)."""
    tile_lat = math.floor(lat)
    tile_lon = math.floor(lon)

    ns = "N" if tile_lat >= 0 else "S"
    ew = "E" if tile_lon >= 0 else "W"

    return f"{COPERNICUS_TILE_PREFIX}_{ns}{abs(tile_lat):02d}_00_{ew}{abs(tile_lon):03d}_00_DEM"


def get_tile_path(lat: float, lon: float) -> str:
    """Object key of the tile inside the bucket."""
    name = tile_name(lat, lon)
    return f"{name}/{name}.tif"


def get_copernicus_tile_url(lat: float, lon: float) -> str:
    """Full HTTPS URL of the COG tile containing (lat, lon)."""
    return f"{COPERNICUS_BUCKET_URL}/{get_tile_path(lat, lon)}"


def get_proxy_path(lat: float, lon: float) -> str:
    """Path of the tile behind the byte-range proxy."""
    return f"{PROXY_ROUTE_PREFIX}/{get_tile_path(lat, lon)}"


def get_cog_protocol_url(lat: float, lon: float, origin: str) -> str:
    """
    Build the ``cog://`` URL a map engine uses to load the tile as terrain.

    The tile is read through the proxy at ``origin`` so range requests are
    not blocked by CORS. The ``#dem`` fragment marks a single-band elevation
    raster.

    Args:
        lat: Latitude (floored to the tile boundary)
        lon: Longitude (floored to the tile boundary)
        origin: Proxy origin, e.g. ``http://localhost:8004``

    Returns:
        URL of the form ``cog://<origin>/api/cog/<name>/<name>.tif#dem``
    """
    return f"{COG_PROTOCOL}://{origin.rstrip('/')}{get_proxy_path(lat, lon)}#{COG_DEM_FRAGMENT}"


def parse_cog_url(url: str) -> CogSource:
    """Split a ``cog://<url>[#dem]`` URL into the raster URL and its DEM flag."""
    prefix = f"{COG_PROTOCOL}://"
    if not url.startswith(prefix):
        raise ValueError(ErrorMessages.INVALID_COG_URL.format(url))

    target, _, fragment = url[len(prefix) :].partition("#")
    return CogSource(url=target, dem=fragment == COG_DEM_FRAGMENT)


def make_tile(lat: int, lon: int) -> CopernicusTile:
    return CopernicusTile(
        lat=lat,
        lon=lon,
        name=tile_name(lat, lon),
        url=get_copernicus_tile_url(lat, lon),
    )


def get_tiles_for_bounds(
    west: float, south: float, east: float, north: float
) -> list[CopernicusTile]:
    """All tiles intersecting a bounding box, south-to-north then west-to-east."""
    tiles = []

    lat = math.floor(south)
    while lat < math.ceil(north):
        lon = math.floor(west)
        while lon < math.ceil(east):
            tiles.append(make_tile(lat, lon))
            lon += TILE_SIZE_DEGREES
        lat += TILE_SIZE_DEGREES

    return tiles
