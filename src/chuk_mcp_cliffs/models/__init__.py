"""Response models for chuk-mcp-cliffs."""

from .responses import (
    CapabilitiesResponse,
    CliffDetectionResponse,
    ErrorResponse,
    HillshadeResponse,
    LocationInfo,
    LocationsResponse,
    PointElevationResponse,
    SlopeAnalysisResponse,
    SlopeGridResponse,
    StatusResponse,
    TileInfoResponse,
    TilesResponse,
    TileSummary,
    format_response,
)

__all__ = [
    "ErrorResponse",
    "LocationInfo",
    "LocationsResponse",
    "StatusResponse",
    "CapabilitiesResponse",
    "TileInfoResponse",
    "TileSummary",
    "TilesResponse",
    "SlopeGridResponse",
    "SlopeAnalysisResponse",
    "PointElevationResponse",
    "CliffDetectionResponse",
    "HillshadeResponse",
    "format_response",
]
