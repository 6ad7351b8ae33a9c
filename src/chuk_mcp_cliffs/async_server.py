#!/usr/bin/env python3
"""
Async Cliffs MCP Server using chuk-mcp-server

Copernicus DEM tile naming, slope grids, cliff detection and cliff
hillshade. Results (GeoJSON overlays, PNG renderings) are stored in
chuk-artifacts for downstream use.

Storage is managed through chuk-mcp-server's built-in artifact store context.
"""

import logging

from chuk_mcp_server import ChukMCPServer

from .constants import ServerConfig
from .core.cliff_manager import CliffManager
from .tools.analysis import register_analysis_tools
from .tools.discovery import register_discovery_tools
from .tools.tiles import register_tile_tools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the MCP server instance
mcp = ChukMCPServer(ServerConfig.NAME)

# Create cliff manager instance
manager = CliffManager()

# Register all tool modules
register_discovery_tools(mcp, manager)
register_tile_tools(mcp, manager)
register_analysis_tools(mcp, manager)

# Run the server
if __name__ == "__main__":
    logger.info("Starting Cliffs MCP Server...")
    logger.info("Storage: Using chuk-mcp-server artifact store context")
    mcp.run(stdio=True)
