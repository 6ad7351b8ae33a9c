"""
Cliff Manager — central orchestrator for terrain steepness operations.

Resolves Copernicus tiles, caches loaded terrain, runs the slope and cliff
pipelines and stores GeoJSON / PNG results in the artifact store.
All public async methods wrap synchronous rasterio I/O via asyncio.to_thread().
"""

import asyncio
import json
import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..constants import (
    CLIFF_HILLSHADE_LIGHTS,
    DEFAULT_CLIFF_HEIGHT_DIFF_M,
    DEFAULT_CLIFF_HORIZONTAL_DIST_M,
    DEFAULT_GRID_SIZE,
    DEFAULT_MIN_SLOPE,
    LOCATION_HALF_SIZE_DEG,
    MAX_ANALYSIS_AREA_DEG2,
    MAX_CLIFF_FEATURES,
    MAX_GRID_SIZE,
    SAMPLE_LOCATIONS,
    TERRAIN_CACHE_MAX_BYTES,
    TERRAIN_CACHE_MAX_ITEM,
    ErrorMessages,
)
from .slope import (
    LngLatBounds,
    SlopeCell,
    calculate_slope_grid,
    cell_size_for_bounds,
    create_slope_geojson,
    sample_elevation_grid,
)
from .tiles import get_proxy_path, get_tiles_for_bounds, make_tile

logger = logging.getLogger(__name__)

# Half-width (degrees) of the window read around a single point
POINT_WINDOW_DEG = 0.002


@dataclass
class SlopeGridResult:
    """Result of a slope computation over caller-supplied samples."""

    cells: list[SlopeCell]
    geojson: dict
    rows: int
    cols: int
    steep_cells: int
    max_slope: float


@dataclass
class SlopeAnalysisResult:
    """Result of a slope analysis over a bounding box."""

    artifact_ref: str
    preview_ref: str | None
    grid_size: int
    cell_size_deg: float
    total_cells: int
    steep_cells: int
    max_slope: float
    mean_slope: float
    sampled_points: int
    tiles: list[str]


@dataclass
class PointResult:
    """Result of a single-point elevation query."""

    elevation_m: float | None
    tile: str


@dataclass
class CliffResult:
    """Result of cliff detection over a bounding box."""

    artifact_ref: str
    shape: list[int]
    resolution_m: float
    cliff_pixels: int
    total_pixels: int
    min_angle: float
    gradient: float
    feature_count: int
    truncated: bool


@dataclass
class HillshadeResult:
    """Result of a cliff hillshade rendering."""

    artifact_ref: str
    shape: list[int]
    resolution_m: float
    azimuths: list[float]


class CliffManager:
    """Central manager for terrain steepness operations."""

    def __init__(self) -> None:
        # Terrain LRU cache: bbox key -> RasterTerrain
        self._terrain_cache: dict[str, Any] = {}
        self._terrain_cache_sizes: dict[str, int] = {}
        self._terrain_cache_total: int = 0

    # ------------------------------------------------------------------
    # Discovery (sync, no I/O)
    # ------------------------------------------------------------------

    def list_locations(self) -> list[dict]:
        """List the sample locations with the tile each one falls in."""
        return [
            {
                "id": loc_id,
                "name": loc["name"],
                "lat": loc["lat"],
                "lon": loc["lon"],
                "zoom": loc["zoom"],
                "tile": make_tile(math.floor(loc["lat"]), math.floor(loc["lon"])).name,
            }
            for loc_id, loc in SAMPLE_LOCATIONS.items()
        ]

    def location_bbox(
        self, location: str, half_size: float = LOCATION_HALF_SIZE_DEG
    ) -> list[float]:
        """Square bbox centred on a sample location."""
        if location not in SAMPLE_LOCATIONS:
            raise ValueError(
                ErrorMessages.UNKNOWN_LOCATION.format(location, ", ".join(SAMPLE_LOCATIONS))
            )
        loc = SAMPLE_LOCATIONS[location]
        return [
            loc["lon"] - half_size,
            loc["lat"] - half_size,
            loc["lon"] + half_size,
            loc["lat"] + half_size,
        ]

    def describe_tile(self, lat: float, lon: float) -> dict:
        """Tile name, URL and proxy path of the tile containing a point."""
        tile = make_tile(math.floor(lat), math.floor(lon))
        return {
            "name": tile.name,
            "lat": tile.lat,
            "lon": tile.lon,
            "url": tile.url,
            "proxy_path": get_proxy_path(lat, lon),
            "bbox": [tile.lon, tile.lat, tile.lon + 1, tile.lat + 1],
        }

    def tiles_for_bbox(self, bbox: list[float]) -> list[dict]:
        self._validate_bbox(bbox, max_area=None)
        return [
            {"name": t.name, "lat": t.lat, "lon": t.lon, "url": t.url}
            for t in get_tiles_for_bounds(*bbox)
        ]

    def slope_grid(
        self,
        elevations: list[list[float | None]],
        lngs: list[float],
        lats: list[float],
        min_slope: float = DEFAULT_MIN_SLOPE,
        exact_diagonal: bool = False,
    ) -> SlopeGridResult:
        """Run the slope pipeline on samples supplied by the caller."""
        rows = len(elevations)
        cols = len(elevations[0]) if rows else 0
        if rows != len(lats) or any(len(row) != len(lngs) for row in elevations):
            raise ValueError(
                ErrorMessages.INVALID_GRID_SHAPE.format(len(lats), len(lngs), rows, cols)
            )

        cells = calculate_slope_grid(elevations, lngs, lats, exact_diagonal=exact_diagonal)

        if len(lngs) > 1 and len(lats) > 1:
            cell_size = max(abs(lngs[1] - lngs[0]), abs(lats[1] - lats[0]))
        else:
            cell_size = 0.0
        geojson = create_slope_geojson(cells, cell_size, min_slope)

        return SlopeGridResult(
            cells=cells,
            geojson=geojson,
            rows=rows,
            cols=cols,
            steep_cells=len(geojson["features"]),
            max_slope=max((c.slope for c in cells), default=0.0),
        )

    # ------------------------------------------------------------------
    # Terrain queries (async)
    # ------------------------------------------------------------------

    async def fetch_point(self, lon: float, lat: float) -> PointResult:
        """Get elevation at a single point."""
        from . import raster_io

        tile = make_tile(math.floor(lat), math.floor(lon))
        window = [
            max(lon - POINT_WINDOW_DEG, tile.lon),
            max(lat - POINT_WINDOW_DEG, tile.lat),
            min(lon + POINT_WINDOW_DEG, tile.lon + 1),
            min(lat + POINT_WINDOW_DEG, tile.lat + 1),
        ]

        elevation, transform = await asyncio.to_thread(raster_io.read_dem_tile, tile.url, window)
        value = await asyncio.to_thread(raster_io.sample_elevation, elevation, transform, lon, lat)

        return PointResult(elevation_m=value, tile=tile.name)

    async def analyze_slopes(
        self,
        bbox: list[float],
        grid_size: int = DEFAULT_GRID_SIZE,
        min_slope: float = DEFAULT_MIN_SLOPE,
        exact_diagonal: bool = False,
    ) -> SlopeAnalysisResult:
        """Sample a slope grid over a bounding box and store it as GeoJSON."""
        from . import raster_io

        self._validate_bbox(bbox)
        if not 1 <= grid_size <= MAX_GRID_SIZE:
            raise ValueError(ErrorMessages.INVALID_GRID_SIZE.format(MAX_GRID_SIZE, grid_size))

        bounds = LngLatBounds.from_bbox(bbox)
        terrain = await self._load_terrain(bbox)

        grid = await asyncio.to_thread(sample_elevation_grid, terrain, bounds, grid_size)
        cells = await asyncio.to_thread(
            calculate_slope_grid, grid.elevations, grid.lngs, grid.lats, exact_diagonal
        )
        cell_size = cell_size_for_bounds(bounds, grid_size)
        geojson = create_slope_geojson(cells, cell_size, min_slope)

        slopes = [c.slope for c in cells]
        max_slope = max(slopes, default=0.0)
        mean_slope = sum(slopes) / len(slopes) if slopes else 0.0
        tiles = [t.name for t in get_tiles_for_bounds(*bbox)]

        preview_ref = None
        try:
            png = await asyncio.to_thread(
                raster_io.slope_cells_to_png, cells, bounds, grid_size, min_slope
            )
            preview_ref = await self._store_artifact(
                png,
                {"type": "slope_preview", "bbox": bbox, "format": "png"},
                suffix="_slope.png",
            )
        except Exception as e:
            logger.warning(f"Failed to generate slope preview: {e}")

        artifact_ref = await self._store_artifact(
            json.dumps(geojson).encode(),
            {
                "schema_version": "1.0",
                "type": "slope_overlay",
                "bbox": bbox,
                "grid_size": grid_size,
                "min_slope": min_slope,
                "exact_diagonal": exact_diagonal,
                "steep_cells": len(geojson["features"]),
                "max_slope": max_slope,
                "tiles": tiles,
            },
            suffix=".geojson",
        )

        return SlopeAnalysisResult(
            artifact_ref=artifact_ref,
            preview_ref=preview_ref,
            grid_size=grid_size,
            cell_size_deg=cell_size,
            total_cells=len(cells),
            steep_cells=len(geojson["features"]),
            max_slope=max_slope,
            mean_slope=mean_slope,
            sampled_points=grid.valid_count,
            tiles=tiles,
        )

    async def detect_cliffs(
        self,
        bbox: list[float],
        height_diff: float = DEFAULT_CLIFF_HEIGHT_DIFF_M,
        horizontal_dist: float = DEFAULT_CLIFF_HORIZONTAL_DIST_M,
        max_features: int = MAX_CLIFF_FEATURES,
    ) -> CliffResult:
        """Flag cliff pixels at full raster resolution and store them as points."""
        from . import cliff_detector

        self._validate_bbox(bbox)
        params = cliff_detector.get_cliff_params(height_diff, horizontal_dist)
        terrain = await self._load_terrain(bbox)

        mask = await asyncio.to_thread(
            cliff_detector.detect_cliffs, terrain.elevation, terrain.resolution_m, params
        )
        cliff_pixels = int(np.count_nonzero(mask))
        truncated = cliff_pixels > max_features
        if truncated:
            logger.info(f"Truncating {cliff_pixels} cliff points to {max_features}")
        geojson = cliff_detector.cliff_mask_to_geojson(mask, terrain.bounds, limit=max_features)

        artifact_ref = await self._store_artifact(
            json.dumps(geojson).encode(),
            {
                "schema_version": "1.0",
                "type": "cliff_points",
                "bbox": bbox,
                "height_diff": height_diff,
                "horizontal_dist": horizontal_dist,
                "min_angle": params.min_angle,
                "cliff_pixels": cliff_pixels,
                "truncated": truncated,
            },
            suffix=".geojson",
        )

        return CliffResult(
            artifact_ref=artifact_ref,
            shape=terrain.shape,
            resolution_m=terrain.resolution_m,
            cliff_pixels=cliff_pixels,
            total_pixels=int(mask.size),
            min_angle=params.min_angle,
            gradient=params.gradient,
            feature_count=len(geojson["features"]),
            truncated=truncated,
        )

    async def render_hillshade(self, bbox: list[float]) -> HillshadeResult:
        """Render the red two-light cliff hillshade for a bounding box as PNG."""
        from . import raster_io

        self._validate_bbox(bbox)
        terrain = await self._load_terrain(bbox)

        png = await asyncio.to_thread(
            raster_io.cliff_hillshade_png, terrain.elevation, terrain.transform
        )
        azimuths = [light["azimuth"] for light in CLIFF_HILLSHADE_LIGHTS]

        artifact_ref = await self._store_artifact(
            png,
            {
                "schema_version": "1.0",
                "type": "cliff_hillshade",
                "bbox": bbox,
                "azimuths": azimuths,
                "shape": terrain.shape,
            },
            suffix="_cliffs.png",
        )

        return HillshadeResult(
            artifact_ref=artifact_ref,
            shape=terrain.shape,
            resolution_m=terrain.resolution_m,
            azimuths=azimuths,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _validate_bbox(
        self, bbox: list[float], max_area: float | None = MAX_ANALYSIS_AREA_DEG2
    ) -> None:
        """Validate bounding box and, when loading terrain, the size of the area."""
        if len(bbox) != 4:
            raise ValueError(ErrorMessages.INVALID_BBOX)
        west, south, east, north = bbox
        if west >= east:
            raise ValueError(ErrorMessages.INVALID_BBOX_VALUES.format(west, east))
        if south >= north:
            raise ValueError(ErrorMessages.INVALID_BBOX_LAT.format(south, north))
        area = (east - west) * (north - south)
        if max_area is not None and area > max_area:
            raise ValueError(ErrorMessages.AREA_TOO_LARGE.format(area, max_area))

    async def _load_terrain(self, bbox: list[float]) -> Any:
        """Read (or reuse) the merged Copernicus raster covering a bbox."""
        from . import raster_io

        key = ",".join(f"{v:.6f}" for v in bbox)
        cached = self._get_cached_terrain(key)
        if cached is not None:
            return cached

        urls = [t.url for t in get_tiles_for_bounds(*bbox)]
        logger.info(f"Loading {len(urls)} tile(s) for {bbox}")

        elevation, transform = await asyncio.to_thread(raster_io.read_and_merge_tiles, urls, bbox)
        if elevation.size == 0 or np.isnan(elevation).all():
            raise ValueError(ErrorMessages.NO_TERRAIN.format(bbox))

        terrain = raster_io.RasterTerrain(elevation, transform)

        self._cache_terrain(key, terrain)
        return terrain

    def _get_store(self) -> Any:
        """Get the artifact store instance."""
        from chuk_mcp_server import get_artifact_store

        store = get_artifact_store()
        if store is None:
            raise RuntimeError(ErrorMessages.NO_ARTIFACT_STORE)
        return store

    async def _store_artifact(
        self,
        data: bytes,
        metadata: dict,
        suffix: str = ".geojson",
    ) -> str:
        """Store GeoJSON or PNG output in the artifact store."""
        try:
            store = self._get_store()
            ref = f"cliffs/{uuid.uuid4().hex[:12]}{suffix}"
            mime = "image/png" if suffix.endswith(".png") else "application/geo+json"

            await store.store(
                ref,
                data,
                mime_type=mime,
                metadata=metadata,
                summary=f"Cliff data ({metadata.get('type', 'unknown')})",
            )
            return ref
        except Exception as e:
            logger.error(f"Failed to store artifact: {e}")
            raise

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def _cache_terrain(self, key: str, terrain: Any) -> None:
        """Cache terrain with LRU eviction by array size."""
        size = terrain.nbytes
        if size > TERRAIN_CACHE_MAX_ITEM:
            return

        while self._terrain_cache_total + size > TERRAIN_CACHE_MAX_BYTES and self._terrain_cache:
            oldest_key = next(iter(self._terrain_cache))
            evicted_size = self._terrain_cache_sizes.pop(oldest_key, 0)
            del self._terrain_cache[oldest_key]
            self._terrain_cache_total -= evicted_size

        self._terrain_cache[key] = terrain
        self._terrain_cache_sizes[key] = size
        self._terrain_cache_total += size

    def _get_cached_terrain(self, key: str) -> Any | None:
        """Get cached terrain, moving it to the end of the LRU."""
        if key not in self._terrain_cache:
            return None
        terrain = self._terrain_cache.pop(key)
        size = self._terrain_cache_sizes.pop(key)
        self._terrain_cache[key] = terrain
        self._terrain_cache_sizes[key] = size
        return terrain
