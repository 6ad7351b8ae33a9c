"""
Analysis tools — slope grids, point elevation, cliff detection and cliff hillshade.

Slope grids follow the map view's pipeline (regular lat/lon grid, Haversine
distances, maximum of right/up/diagonal slopes). Cliff detection and the
hillshade work on the full-resolution Copernicus raster.
"""

import logging

from ...constants import (
    DEFAULT_CLIFF_HEIGHT_DIFF_M,
    DEFAULT_CLIFF_HORIZONTAL_DIST_M,
    DEFAULT_GRID_SIZE,
    DEFAULT_MIN_SLOPE,
    MAX_CLIFF_FEATURES,
    ErrorMessages,
    SuccessMessages,
)
from ...models.responses import (
    CliffDetectionResponse,
    ErrorResponse,
    HillshadeResponse,
    PointElevationResponse,
    SlopeAnalysisResponse,
    SlopeGridResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def _resolve_bbox(manager, bbox: list[float] | None, location: str | None) -> list[float]:
    if bbox is not None:
        return bbox
    if location is not None:
        return manager.location_bbox(location)
    raise ValueError(ErrorMessages.BBOX_OR_LOCATION)


def register_analysis_tools(mcp, manager):
    """Register analysis tools with the MCP server."""

    @mcp.tool()
    async def cliff_slope_grid(
        elevations: list[list[float | None]],
        lngs: list[float],
        lats: list[float],
        min_slope: float = DEFAULT_MIN_SLOPE,
        exact_diagonal: bool = False,
        output_mode: str = "json",
    ) -> str:
        """Compute cell slopes and the steep-cell GeoJSON from supplied elevation samples.

        elevations[j][i] is the sample at (lngs[i], lats[j]); null means no data.
        Each cell takes the steepest of its right, up and diagonal neighbours.

        Args:
            elevations: Row-major elevation samples in metres (null for no data)
            lngs: Longitudes of the sample columns
            lats: Latitudes of the sample rows
            min_slope: Cells below this angle (degrees) are left out
            exact_diagonal: Use the great-circle diagonal instead of the
                Pythagorean combination of the edge distances
            output_mode: "json" or "text"

        Returns:
            Polygon FeatureCollection with slope, elevation and color per cell
        """
        try:
            result = manager.slope_grid(
                elevations, lngs, lats, min_slope=min_slope, exact_diagonal=exact_diagonal
            )
            response = SlopeGridResponse(
                rows=result.rows,
                cols=result.cols,
                cell_count=len(result.cells),
                steep_cells=result.steep_cells,
                max_slope=result.max_slope,
                min_slope=min_slope,
                geojson=result.geojson,
                message=SuccessMessages.SLOPE_GRID.format(
                    len(result.cells), result.steep_cells, min_slope
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_slope_grid failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def cliff_analyze_area(
        bbox: list[float] | None = None,
        location: str | None = None,
        grid_size: int = DEFAULT_GRID_SIZE,
        min_slope: float = DEFAULT_MIN_SLOPE,
        exact_diagonal: bool = False,
        output_mode: str = "json",
    ) -> str:
        """Sample Copernicus elevation over an area and build the slope overlay.

        Args:
            bbox: Bounding box [west, south, east, north] in EPSG:4326 (max 1 deg²)
            location: Sample location ID used when bbox is omitted (0.1° box)
            grid_size: Cells along each axis (1-200)
            min_slope: Highlight threshold in degrees
            exact_diagonal: Use the great-circle diagonal distance
            output_mode: "json" or "text"

        Returns:
            Slope statistics and the GeoJSON overlay artifact
        """
        try:
            area = _resolve_bbox(manager, bbox, location)
            result = await manager.analyze_slopes(
                bbox=area,
                grid_size=grid_size,
                min_slope=min_slope,
                exact_diagonal=exact_diagonal,
            )

            response = SlopeAnalysisResponse(
                bbox=area,
                artifact_ref=result.artifact_ref,
                preview_ref=result.preview_ref,
                grid_size=result.grid_size,
                cell_size_deg=result.cell_size_deg,
                total_cells=result.total_cells,
                steep_cells=result.steep_cells,
                max_slope=result.max_slope,
                mean_slope=result.mean_slope,
                min_slope=min_slope,
                sampled_points=result.sampled_points,
                tiles=result.tiles,
                message=SuccessMessages.ANALYZE_COMPLETE.format(
                    result.steep_cells,
                    result.total_cells,
                    result.grid_size,
                    result.grid_size,
                    result.max_slope,
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_analyze_area failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def cliff_point_elevation(lon: float, lat: float, output_mode: str = "json") -> str:
        """Get the Copernicus GLO-30 elevation at a point (bilinear).

        Args:
            lon: Longitude
            lat: Latitude
            output_mode: "json" or "text"

        Returns:
            Elevation in metres, or null where the tile has no data
        """
        try:
            result = await manager.fetch_point(lon=lon, lat=lat)

            if result.elevation_m is None:
                message = SuccessMessages.POINT_NO_DATA
            else:
                message = SuccessMessages.POINT_ELEVATION.format(result.elevation_m)

            response = PointElevationResponse(
                lon=lon,
                lat=lat,
                tile=result.tile,
                elevation_m=result.elevation_m,
                message=message,
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_point_elevation failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def cliff_detect(
        bbox: list[float] | None = None,
        location: str | None = None,
        height_diff: float = DEFAULT_CLIFF_HEIGHT_DIFF_M,
        horizontal_dist: float = DEFAULT_CLIFF_HORIZONTAL_DIST_M,
        max_features: int = MAX_CLIFF_FEATURES,
        output_mode: str = "json",
    ) -> str:
        """Detect cliff pixels: a rise of height_diff metres within horizontal_dist metres.

        The default 3 m over 20 m corresponds to a 15% gradient (about 8.5°).

        Args:
            bbox: Bounding box [west, south, east, north] in EPSG:4326 (max 1 deg²)
            location: Sample location ID used when bbox is omitted
            height_diff: Minimum rise in metres
            horizontal_dist: Horizontal search distance in metres
            max_features: Cap on stored cliff points
            output_mode: "json" or "text"

        Returns:
            Cliff statistics and the point GeoJSON artifact
        """
        try:
            area = _resolve_bbox(manager, bbox, location)
            result = await manager.detect_cliffs(
                bbox=area,
                height_diff=height_diff,
                horizontal_dist=horizontal_dist,
                max_features=max_features,
            )

            pct = 100.0 * result.cliff_pixels / result.total_pixels if result.total_pixels else 0.0

            response = CliffDetectionResponse(
                bbox=area,
                artifact_ref=result.artifact_ref,
                shape=result.shape,
                resolution_m=result.resolution_m,
                height_diff=height_diff,
                horizontal_dist=horizontal_dist,
                min_angle=result.min_angle,
                gradient=result.gradient,
                cliff_pixels=result.cliff_pixels,
                total_pixels=result.total_pixels,
                cliff_percentage=round(pct, 2),
                feature_count=result.feature_count,
                truncated=result.truncated,
                message=SuccessMessages.CLIFFS_COMPLETE.format(
                    result.cliff_pixels, result.total_pixels, result.min_angle
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_detect failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def cliff_hillshade(
        bbox: list[float] | None = None,
        location: str | None = None,
        output_mode: str = "json",
    ) -> str:
        """Render the red cliff hillshade (lights from 315° and 135°) as a PNG.

        This is the low-zoom highlight of the map view: shadowed steep faces
        are tinted red, flat ground stays transparent.

        Args:
            bbox: Bounding box [west, south, east, north] in EPSG:4326 (max 1 deg²)
            location: Sample location ID used when bbox is omitted
            output_mode: "json" or "text"

        Returns:
            PNG artifact reference
        """
        try:
            area = _resolve_bbox(manager, bbox, location)
            result = await manager.render_hillshade(bbox=area)

            response = HillshadeResponse(
                bbox=area,
                artifact_ref=result.artifact_ref,
                shape=result.shape,
                resolution_m=result.resolution_m,
                azimuths=result.azimuths,
                message=SuccessMessages.HILLSHADE_COMPLETE.format(
                    f"{result.shape[0]}x{result.shape[1]}"
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_hillshade failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
