"""
Raster I/O operations for Copernicus COG tiles.

Every function here blocks; the manager runs them through asyncio.to_thread().
Handles COG reading, tile merging, point sampling, cliff-tinted hillshade
and slope overlay rendering.
"""

import io
import logging
import math
from typing import Any

import numpy as np
from numpy.typing import NDArray
from PIL import Image
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    CLIFF_HILLSHADE_LIGHTS,
    DEFAULT_ALTITUDE,
    DEFAULT_MIN_SLOPE,
    METERS_PER_DEGREE,
    RETRY_ATTEMPTS,
    RETRY_WAIT_MAX,
    RETRY_WAIT_MIN,
)
from .slope import LngLatBounds, SlopeCell, get_slope_color, parse_rgba
from .tiles import parse_cog_url

logger = logging.getLogger(__name__)

# Type aliases
FloatArray = NDArray[np.floating[Any]]
Transform = Any  # rasterio.Affine

# Shadow colours of the two cliff hillshade layers
_CLIFF_SHADOW_RGB = [(221, 34, 0), (204, 0, 0)]


# ---------------------------------------------------------------------------
# Retry decorator for network I/O
# ---------------------------------------------------------------------------

_retry_network = retry(
    stop=stop_after_attempt(RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
    retry=retry_if_exception_type((ConnectionError, TimeoutError, OSError)),
    reraise=True,
)


# ---------------------------------------------------------------------------
# Terrain wrapper
# ---------------------------------------------------------------------------


class RasterTerrain:
    """An EPSG:4326 elevation raster answering point elevation queries."""

    def __init__(self, elevation: FloatArray, transform: Transform) -> None:
        self.elevation = elevation
        self.transform = transform

    @property
    def shape(self) -> list[int]:
        return list(self.elevation.shape)

    @property
    def nbytes(self) -> int:
        return int(self.elevation.nbytes)

    @property
    def bounds(self) -> LngLatBounds:
        height, width = self.elevation.shape
        west, north = self.transform * (0, 0)
        east, south = self.transform * (width, height)
        return LngLatBounds(
            west=min(west, east),
            south=min(south, north),
            east=max(west, east),
            north=max(south, north),
        )

    @property
    def resolution_m(self) -> float:
        """Mean ground size of one pixel at the raster's centre latitude."""
        bounds = self.bounds
        mid_lat = (bounds.south + bounds.north) / 2.0
        size_x = abs(self.transform.a) * METERS_PER_DEGREE * math.cos(math.radians(mid_lat))
        size_y = abs(self.transform.e) * METERS_PER_DEGREE
        return (size_x + size_y) / 2.0

    def query_terrain_elevation(self, lng: float, lat: float) -> float | None:
        return sample_elevation(self.elevation, self.transform, lng, lat)


# ---------------------------------------------------------------------------
# DEM tile reading
# ---------------------------------------------------------------------------


@_retry_network
def read_dem_tile(
    url: str,
    bbox: list[float] | None = None,
) -> tuple[FloatArray, Transform]:
    """
    Read a single DEM tile from a COG URL.

    Copernicus tiles are stored in EPSG:4326, so the bbox is applied directly
    as a read window.

    Args:
        url: COG URL (HTTPS)
        bbox: Optional [west, south, east, north] to crop

    Returns:
        Tuple of (elevation_array, transform)
    """
    import rasterio
    from rasterio.windows import from_bounds

    with rasterio.open(url) as src:
        if bbox is not None:
            window = from_bounds(*bbox, transform=src.transform)
            data = src.read(1, window=window).astype(np.float32)
            transform = src.window_transform(window)
        else:
            data = src.read(1).astype(np.float32)
            transform = src.transform

        nodata = src.nodata

    if nodata is not None:
        data[data == nodata] = np.nan

    return data, transform


def read_and_merge_tiles(
    urls: list[str],
    bbox: list[float] | None = None,
) -> tuple[FloatArray, Transform]:
    """
    Read and merge the tiles covering a bbox.

    Args:
        urls: COG URLs to read
        bbox: Optional crop bbox [west, south, east, north]

    Returns:
        Tuple of (merged_elevation, transform)
    """
    import rasterio
    from rasterio.merge import merge

    if len(urls) == 1:
        return read_dem_tile(urls[0], bbox)

    datasets = []
    try:
        for url in urls:
            datasets.append(rasterio.open(url))

        merged, merged_transform = merge(datasets, bounds=tuple(bbox) if bbox else None)
        elevation = merged[0].astype(np.float32)

        nodata = datasets[0].nodata
        if nodata is not None:
            elevation[elevation == nodata] = np.nan

    finally:
        for ds in datasets:
            ds.close()

    return elevation, merged_transform


def open_cog(url: str) -> RasterTerrain:
    """Handler for the ``cog://`` scheme: load the addressed DEM as terrain."""
    source = parse_cog_url(url)
    logger.info(f"Loading COG terrain: {source.url}")
    elevation, transform = read_dem_tile(source.url)
    return RasterTerrain(elevation, transform)


# ---------------------------------------------------------------------------
# Point sampling
# ---------------------------------------------------------------------------


def sample_elevation(
    elevation: FloatArray,
    transform: Transform,
    lon: float,
    lat: float,
) -> float | None:
    """
    Bilinear elevation at a point, or None outside the raster or over voids.

    Pixel values sit at pixel centres; points in the outer half pixel are
    clamped to the edge row or column.
    """
    col_f, row_f = ~transform * (lon, lat)
    row_f -= 0.5
    col_f -= 0.5

    h, w = elevation.shape
    if not (-0.5 <= row_f <= h - 0.5 and -0.5 <= col_f <= w - 0.5):
        return None

    row_f = min(max(row_f, 0.0), h - 1.0)
    col_f = min(max(col_f, 0.0), w - 1.0)

    value = _bilinear_sample(elevation, row_f, col_f)
    return None if math.isnan(value) else value


def _bilinear_sample(array: FloatArray, row_f: float, col_f: float) -> float:
    """Bilinear interpolation at fractional pixel coordinates."""
    h, w = array.shape
    r0, c0 = int(math.floor(row_f)), int(math.floor(col_f))
    r1, c1 = min(r0 + 1, h - 1), min(c0 + 1, w - 1)

    dr = row_f - r0
    dc = col_f - c0

    v00 = array[r0, c0]
    v01 = array[r0, c1]
    v10 = array[r1, c0]
    v11 = array[r1, c1]

    if any(np.isnan(v) for v in [v00, v01, v10, v11]):
        return float("nan")

    val = v00 * (1 - dr) * (1 - dc) + v01 * (1 - dr) * dc + v10 * dr * (1 - dc) + v11 * dr * dc
    return float(val)


# ---------------------------------------------------------------------------
# Hillshade
# ---------------------------------------------------------------------------


def _cell_size_m(elevation: FloatArray, transform: Transform) -> tuple[float, float]:
    """Ground size of a pixel (x, y) in metres at the raster's centre latitude."""
    height = elevation.shape[0]
    _, top = transform * (0, 0)
    _, bottom = transform * (0, height)
    mid_lat = (top + bottom) / 2.0
    size_x = abs(transform[0]) * METERS_PER_DEGREE * math.cos(math.radians(mid_lat))
    size_y = abs(transform[4]) * METERS_PER_DEGREE
    return size_x, size_y


def compute_hillshade(
    elevation: FloatArray,
    transform: Transform,
    azimuth: float = 315.0,
    altitude: float = DEFAULT_ALTITUDE,
    z_factor: float = 1.0,
) -> FloatArray:
    """
    Compute hillshade (shaded relief) from elevation data.

    Uses Horn's method (1981) for slope and aspect calculation.

    Args:
        elevation: 2D elevation array
        transform: Affine transform in degrees
        azimuth: Light azimuth in degrees from north
        altitude: Light altitude in degrees above horizon
        z_factor: Vertical exaggeration factor

    Returns:
        Hillshade array (0-255 range as float)
    """
    cellsize_x, cellsize_y = _cell_size_m(elevation, transform)

    padded = np.pad(elevation, 1, mode="edge")
    padded = np.nan_to_num(padded, nan=0.0)

    # Horn's method: 3x3 gradient
    dz_dx = (
        (padded[:-2, 2:] + 2 * padded[1:-1, 2:] + padded[2:, 2:])
        - (padded[:-2, :-2] + 2 * padded[1:-1, :-2] + padded[2:, :-2])
    ) / (8.0 * cellsize_x)

    dz_dy = (
        (padded[:-2, :-2] + 2 * padded[:-2, 1:-1] + padded[:-2, 2:])
        - (padded[2:, :-2] + 2 * padded[2:, 1:-1] + padded[2:, 2:])
    ) / (8.0 * cellsize_y)

    dz_dx *= z_factor
    dz_dy *= z_factor

    az_rad = math.radians(360.0 - azimuth + 90.0)
    alt_rad = math.radians(altitude)

    slope = np.arctan(np.sqrt(dz_dx**2 + dz_dy**2))
    aspect = np.arctan2(-dz_dy, dz_dx)

    hillshade = 255.0 * (
        math.sin(alt_rad) * np.cos(slope)
        + math.cos(alt_rad) * np.sin(slope) * np.cos(az_rad - aspect)
    )

    return np.clip(hillshade, 0, 255)


def cliff_hillshade_png(elevation: FloatArray, transform: Transform) -> bytes:
    """
    Render the low-zoom cliff highlight as an RGBA PNG.

    Two hillshades lit from opposite directions (315° and 135°) are computed;
    wherever either is in shadow the pixel is tinted red with opacity
    following shadow depth. Flat, evenly lit ground stays transparent.
    """
    h, w = elevation.shape
    rgba = np.zeros((h, w, 4), dtype=np.uint8)
    strongest = np.zeros((h, w), dtype=np.float64)

    for light, shadow_rgb in zip(CLIFF_HILLSHADE_LIGHTS, _CLIFF_SHADOW_RGB):
        hs = compute_hillshade(
            elevation, transform, azimuth=light["azimuth"], z_factor=light["z_factor"]
        )
        # Shadow depth relative to flat ground under the same light
        flat = 255.0 * math.sin(math.radians(DEFAULT_ALTITUDE))
        shadow = np.clip((flat - hs) / flat, 0.0, 1.0)

        stronger = shadow > strongest
        rgba[stronger, 0] = shadow_rgb[0]
        rgba[stronger, 1] = shadow_rgb[1]
        rgba[stronger, 2] = shadow_rgb[2]
        strongest = np.where(stronger, shadow, strongest)

    rgba[..., 3] = (strongest * 255).astype(np.uint8)
    rgba[np.isnan(elevation)] = 0

    img = Image.fromarray(rgba)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Slope overlay
# ---------------------------------------------------------------------------


def slope_cells_to_png(
    cells: list[SlopeCell],
    bounds: LngLatBounds,
    grid_size: int,
    min_slope: float = DEFAULT_MIN_SLOPE,
) -> bytes:
    """Render slope cells as a ``grid_size`` x ``grid_size`` RGBA PNG, north up."""
    rgba = np.zeros((grid_size, grid_size, 4), dtype=np.uint8)
    cell_w = bounds.width / grid_size
    cell_h = bounds.height / grid_size

    for cell in cells:
        col = min(grid_size - 1, max(0, int((cell.lng - bounds.west) / cell_w)))
        row = min(grid_size - 1, max(0, int((cell.lat - bounds.south) / cell_h)))
        rgba[grid_size - 1 - row, col] = parse_rgba(get_slope_color(cell.slope, min_slope))

    img = Image.fromarray(rgba)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
