"""
Tile tools — Copernicus tile naming and coverage.

Pure naming; no tile is fetched.
"""

import logging

from ...constants import DEFAULT_PROXY_ORIGIN, SuccessMessages
from ...core.tiles import get_cog_protocol_url
from ...models.responses import (
    ErrorResponse,
    TileInfoResponse,
    TilesResponse,
    TileSummary,
    format_response,
)

logger = logging.getLogger(__name__)


def register_tile_tools(mcp, manager):
    """Register tile tools with the MCP server."""

    @mcp.tool()
    async def cliff_tile_info(
        lat: float,
        lon: float,
        proxy_origin: str = DEFAULT_PROXY_ORIGIN,
        output_mode: str = "json",
    ) -> str:
        """Resolve the Copernicus GLO-30 tile containing a point.

        Coordinates are floored to the tile's south-west corner. Out-of-range
        coordinates still give a well-formed name; such tiles do not exist.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees
            proxy_origin: Origin of the byte-range proxy used in the cog:// URL
            output_mode: "json" or "text"

        Returns:
            Tile name, HTTPS URL, proxy path and cog:// terrain URL
        """
        try:
            data = manager.describe_tile(lat, lon)
            response = TileInfoResponse(
                **data,
                cog_url=get_cog_protocol_url(lat, lon, proxy_origin),
                message=SuccessMessages.TILE_INFO.format(data["name"], lat, lon),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_tile_info failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def cliff_tiles_for_bbox(bbox: list[float], output_mode: str = "json") -> str:
        """List the Copernicus tiles intersecting a bounding box.

        Args:
            bbox: Bounding box [west, south, east, north] in EPSG:4326
            output_mode: "json" or "text"

        Returns:
            Covering tiles ordered south to north, west to east
        """
        try:
            tiles = [TileSummary(**t) for t in manager.tiles_for_bbox(bbox)]
            response = TilesResponse(
                bbox=bbox,
                tile_count=len(tiles),
                tiles=tiles,
                message=SuccessMessages.TILES_LIST.format(len(tiles)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"cliff_tiles_for_bbox failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
