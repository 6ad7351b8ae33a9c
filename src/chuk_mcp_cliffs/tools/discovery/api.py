"""
Discovery tools — sample locations and server information.

These tools require no network I/O and return information about
the server configuration and the built-in sample locations.
"""

import logging
import os

from ...constants import (
    ANALYSIS_TOOLS,
    DEFAULT_CLIFF_MIN_ANGLE,
    DEFAULT_LOCATION,
    MAX_GRID_SIZE,
    OUTPUT_MODES,
    PROXY_ROUTE_PREFIX,
    SAMPLE_LOCATIONS,
    SLOPE_ZOOM_THRESHOLD,
    EnvVar,
    ServerConfig,
    StorageProvider,
    SuccessMessages,
)
from ...models.responses import (
    CapabilitiesResponse,
    ErrorResponse,
    LocationInfo,
    LocationsResponse,
    StatusResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def register_discovery_tools(mcp, manager):
    """Register discovery tools with the MCP server."""

    @mcp.tool()
    async def cliff_list_locations(output_mode: str = "json") -> str:
        """List the built-in sample locations (mountain ranges) with their Copernicus tile.

        Use a location's lat/lon to build a bounding box for slope or cliff analysis.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Sample locations with suggested zoom and tile name
        """
        try:
            locations = [LocationInfo(**loc) for loc in manager.list_locations()]
            response = LocationsResponse(
                locations=locations,
                default=DEFAULT_LOCATION,
                message=SuccessMessages.LOCATIONS_LIST.format(len(locations)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_list_locations failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def cliff_status(output_mode: str = "json") -> str:
        """Get server status including version, storage configuration and terrain cache size.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Server status information
        """
        try:
            provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)

            store_available = False
            try:
                manager._get_store()
                store_available = True
            except Exception:
                pass

            cache_mb = manager._terrain_cache_total / (1024 * 1024)

            response = StatusResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                storage_provider=provider,
                artifact_store_available=store_available,
                cache_size_mb=round(cache_mb, 1),
                proxy_route=PROXY_ROUTE_PREFIX,
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_status failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def cliff_capabilities(output_mode: str = "json") -> str:
        """Get full server capabilities including analysis tools, thresholds and output modes.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Complete server capabilities
        """
        try:
            response = CapabilitiesResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                locations=list(SAMPLE_LOCATIONS),
                analysis_tools=ANALYSIS_TOOLS,
                output_modes=OUTPUT_MODES,
                slope_zoom_threshold=SLOPE_ZOOM_THRESHOLD,
                max_grid_size=MAX_GRID_SIZE,
                cliff_min_angle=DEFAULT_CLIFF_MIN_ANGLE,
                tool_count=10,
                llm_guidance=(
                    "Use cliff_list_locations for example areas. "
                    "Use cliff_tile_info or cliff_tiles_for_bbox to resolve Copernicus tiles. "
                    "Use cliff_slope_grid to compute slopes from your own elevation samples. "
                    "Use cliff_analyze_area for a slope overlay over a bbox (max 1 deg²). "
                    "Use cliff_detect for full-resolution cliff points and "
                    "cliff_hillshade for the red two-light cliff shading. "
                    "Elevation data is Copernicus GLO-30 (30m)."
                ),
                message=f"{ServerConfig.NAME} v{ServerConfig.VERSION} capabilities",
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_capabilities failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
