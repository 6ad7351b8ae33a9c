"""
Response models for chuk-mcp-cliffs tools.

All tool responses are Pydantic models for type safety and consistent API.
"""

from pydantic import BaseModel, ConfigDict, Field


def format_response(model: BaseModel, output_mode: str = "json") -> str:
    """Format a response model as JSON or human-readable text.

    Args:
        model: Pydantic response model instance
        output_mode: "json" (default) or "text"

    Returns:
        Formatted string
    """
    if output_mode == "text" and hasattr(model, "to_text"):
        return str(model.to_text())
    return str(model.model_dump_json())


class ErrorResponse(BaseModel):
    """Error response model for tool failures."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(..., description="Error message describing what went wrong")

    def to_text(self) -> str:
        return f"Error: {self.error}"


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class LocationInfo(BaseModel):
    """A named sample location."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Location identifier (e.g., alps)")
    name: str = Field(..., description="Human-readable name")
    lat: float = Field(..., description="Latitude")
    lon: float = Field(..., description="Longitude")
    zoom: int = Field(..., description="Suggested map zoom")
    tile: str = Field(..., description="Copernicus tile containing the location")

    def to_text(self) -> str:
        return f"{self.id}: {self.name} ({self.lat}, {self.lon}) zoom {self.zoom} -> {self.tile}"


class LocationsResponse(BaseModel):
    """Response model for listing sample locations."""

    model_config = ConfigDict(extra="forbid")

    locations: list[LocationInfo] = Field(..., description="Sample locations")
    default: str = Field(..., description="Default location identifier")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message, f"Default: {self.default}", ""]
        for loc in self.locations:
            lines.append(f"  {loc.to_text()}")
        return "\n".join(lines)


class StatusResponse(BaseModel):
    """Response model for server status queries."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(default="chuk-mcp-cliffs", description="Server name")
    version: str = Field(default="0.1.0", description="Server version")
    storage_provider: str = Field(..., description="Active storage provider (memory/filesystem/s3)")
    artifact_store_available: bool = Field(
        default=False, description="Whether artifact store is available"
    )
    cache_size_mb: float = Field(default=0.0, description="Current terrain cache size in megabytes")
    proxy_route: str = Field(..., description="Route prefix of the byte-range COG proxy")

    def to_text(self) -> str:
        store_status = "available" if self.artifact_store_available else "not available"
        lines = [
            f"{self.server} v{self.version}",
            f"Storage: {self.storage_provider}",
            f"Artifact store: {store_status}",
            f"Cache: {self.cache_size_mb:.1f} MB",
            f"Proxy route: {self.proxy_route}",
        ]
        return "\n".join(lines)


class CapabilitiesResponse(BaseModel):
    """Response model for server capabilities listing."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")
    locations: list[str] = Field(..., description="Sample location identifiers")
    analysis_tools: list[str] = Field(..., description="Available analysis tool types")
    output_modes: list[str] = Field(..., description="Supported output modes")
    slope_zoom_threshold: int = Field(
        ..., description="Zoom at which slope polygons replace hillshade"
    )
    max_grid_size: int = Field(..., description="Largest slope grid accepted")
    cliff_min_angle: float = Field(..., description="Default cliff angle in degrees")
    tool_count: int = Field(..., description="Number of available tools", ge=0)
    llm_guidance: str = Field(..., description="LLM-friendly usage guidance for the server")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Tools: {self.tool_count}",
            f"Locations: {', '.join(self.locations)}",
            f"Analysis tools: {', '.join(self.analysis_tools)}",
            f"Output modes: {', '.join(self.output_modes)}",
            f"Slope mode from zoom {self.slope_zoom_threshold}, grid up to {self.max_grid_size}",
            f"Cliff angle: {self.cliff_min_angle:.1f}°",
            f"Guidance: {self.llm_guidance}",
        ]
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Tiles
# ---------------------------------------------------------------------------


class TileInfoResponse(BaseModel):
    """Response model for the tile containing a point."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Canonical Copernicus tile name")
    lat: int = Field(..., description="Tile south edge (integer degrees)")
    lon: int = Field(..., description="Tile west edge (integer degrees)")
    url: str = Field(..., description="HTTPS URL of the COG tile")
    proxy_path: str = Field(..., description="Path of the tile behind the byte-range proxy")
    cog_url: str = Field(..., description="cog:// URL for loading the tile as map terrain")
    bbox: list[float] = Field(..., description="Tile bounds [west, south, east, north]")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            self.name,
            f"URL: {self.url}",
            f"Proxy: {self.proxy_path}",
            f"Terrain: {self.cog_url}",
        ]
        return "\n".join(lines)


class TileSummary(BaseModel):
    """One tile in a bounding box listing."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Canonical Copernicus tile name")
    lat: int = Field(..., description="Tile south edge")
    lon: int = Field(..., description="Tile west edge")
    url: str = Field(..., description="HTTPS URL of the COG tile")


class TilesResponse(BaseModel):
    """Response model for the tiles covering a bounding box."""

    model_config = ConfigDict(extra="forbid")

    bbox: list[float] = Field(..., description="Bounding box [west, south, east, north]")
    tile_count: int = Field(..., description="Number of tiles", ge=0)
    tiles: list[TileSummary] = Field(..., description="Covering tiles, south to north")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message]
        for t in self.tiles:
            lines.append(f"  {t.name}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Slope and cliffs
# ---------------------------------------------------------------------------


class SlopeGridResponse(BaseModel):
    """Response model for a slope computation over supplied samples."""

    model_config = ConfigDict(extra="forbid")

    rows: int = Field(..., description="Number of sample rows")
    cols: int = Field(..., description="Number of sample columns")
    cell_count: int = Field(..., description="Cells with a base sample")
    steep_cells: int = Field(..., description="Cells at or above min_slope")
    max_slope: float = Field(..., description="Steepest cell in degrees")
    min_slope: float = Field(..., description="Highlight threshold in degrees")
    geojson: dict = Field(..., description="Polygon FeatureCollection of steep cells")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            self.message,
            f"Grid: {self.rows}x{self.cols} samples",
            f"Max slope: {self.max_slope:.1f}°",
        ]
        for feature in self.geojson.get("features", [])[:10]:
            props = feature["properties"]
            lines.append(f"  {props['slope']:.1f}° at {props['elevation']:.0f}m ({props['color']})")
        return "\n".join(lines)


class SlopeAnalysisResponse(BaseModel):
    """Response model for slope analysis over a bounding box."""

    model_config = ConfigDict(extra="forbid")

    bbox: list[float] = Field(..., description="Bounding box [west, south, east, north]")
    artifact_ref: str = Field(..., description="Artifact reference of the GeoJSON overlay")
    preview_ref: str | None = Field(None, description="PNG preview artifact reference")
    grid_size: int = Field(..., description="Cells along each axis")
    cell_size_deg: float = Field(..., description="Polygon side in degrees")
    total_cells: int = Field(..., description="Cells with a base sample")
    steep_cells: int = Field(..., description="Cells at or above min_slope")
    max_slope: float = Field(..., description="Steepest cell in degrees")
    mean_slope: float = Field(..., description="Mean cell slope in degrees")
    min_slope: float = Field(..., description="Highlight threshold in degrees")
    sampled_points: int = Field(..., description="Grid samples with elevation data")
    tiles: list[str] = Field(..., description="Copernicus tiles read")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            self.message,
            f"Artifact: {self.artifact_ref}",
            f"Cell size: {self.cell_size_deg:.5f}°",
            f"Slope: mean {self.mean_slope:.1f}°, max {self.max_slope:.1f}°",
            f"Samples with data: {self.sampled_points}",
            f"Tiles: {', '.join(self.tiles)}",
        ]
        if self.preview_ref:
            lines.append(f"Preview: {self.preview_ref}")
        return "\n".join(lines)


class PointElevationResponse(BaseModel):
    """Response model for single-point elevation query."""

    model_config = ConfigDict(extra="forbid")

    lon: float = Field(..., description="Longitude of the query point")
    lat: float = Field(..., description="Latitude of the query point")
    tile: str = Field(..., description="Copernicus tile read")
    elevation_m: float | None = Field(None, description="Elevation in metres, null for no data")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        if self.elevation_m is None:
            value = "no data"
        else:
            value = f"{self.elevation_m:.1f}m"
        return f"Elevation at ({self.lon:.6f}, {self.lat:.6f}): {value}\nTile: {self.tile}"


class CliffDetectionResponse(BaseModel):
    """Response model for cliff detection."""

    model_config = ConfigDict(extra="forbid")

    bbox: list[float] = Field(..., description="Bounding box [west, south, east, north]")
    artifact_ref: str = Field(..., description="Artifact reference of the cliff point GeoJSON")
    shape: list[int] = Field(..., description="Raster shape [height, width]")
    resolution_m: float = Field(..., description="Raster pixel size in metres")
    height_diff: float = Field(..., description="Cliff rise in metres")
    horizontal_dist: float = Field(..., description="Cliff run in metres")
    min_angle: float = Field(..., description="Cliff angle in degrees")
    gradient: float = Field(..., description="Cliff gradient in percent")
    cliff_pixels: int = Field(..., description="Pixels flagged as cliff")
    total_pixels: int = Field(..., description="Pixels examined")
    cliff_percentage: float = Field(..., description="Share of pixels flagged, in percent")
    feature_count: int = Field(..., description="Point features stored")
    truncated: bool = Field(..., description="Whether stored features were capped")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            self.message,
            f"Artifact: {self.artifact_ref}",
            f"Raster: {self.shape[0]}x{self.shape[1]} at {self.resolution_m:.1f}m",
            f"Criterion: {self.height_diff}m over {self.horizontal_dist}m "
            f"({self.gradient:.1f}%, {self.min_angle:.1f}°)",
            f"Cliff coverage: {self.cliff_percentage:.2f}%",
        ]
        if self.truncated:
            lines.append(f"Stored first {self.feature_count} points")
        return "\n".join(lines)


class HillshadeResponse(BaseModel):
    """Response model for the red cliff hillshade."""

    model_config = ConfigDict(extra="forbid")

    bbox: list[float] = Field(..., description="Bounding box [west, south, east, north]")
    artifact_ref: str = Field(..., description="Artifact reference of the PNG")
    shape: list[int] = Field(..., description="Image shape [height, width]")
    resolution_m: float = Field(..., description="Pixel size in metres")
    azimuths: list[float] = Field(..., description="Light directions in degrees")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lights = ", ".join(f"{a:.0f}°" for a in self.azimuths)
        lines = [
            self.message,
            f"Artifact: {self.artifact_ref}",
            f"Lights: {lights}",
            f"Resolution: {self.resolution_m:.1f}m",
        ]
        return "\n".join(lines)
