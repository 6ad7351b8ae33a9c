"""
Constants for chuk-mcp-cliffs.

All magic strings, layer identifiers, tile naming values and defaults live here.
"""


class ServerConfig:
    NAME = "chuk-mcp-cliffs"
    VERSION = "0.1.0"
    DESCRIPTION = "Copernicus DEM Terrain Viewer, Cliff Highlighting & COG Proxy MCP Server"


class StorageProvider:
    MEMORY = "memory"
    S3 = "s3"
    FILESYSTEM = "filesystem"


class SessionProvider:
    MEMORY = "memory"
    REDIS = "redis"


class EnvVar:
    ARTIFACTS_PROVIDER = "CHUK_ARTIFACTS_PROVIDER"
    BUCKET_NAME = "BUCKET_NAME"
    REDIS_URL = "REDIS_URL"
    ARTIFACTS_PATH = "CHUK_ARTIFACTS_PATH"
    AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
    AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
    AWS_ENDPOINT_URL_S3 = "AWS_ENDPOINT_URL_S3"
    MCP_STDIO = "MCP_STDIO"


# ---------------------------------------------------------------------------
# Copernicus GLO-30 tiles
# ---------------------------------------------------------------------------

COPERNICUS_BUCKET_URL = "https://copernicus-dem-30m.s3.amazonaws.com"
COPERNICUS_TILE_PREFIX = "Copernicus_DSM_COG_10"
TILE_SIZE_DEGREES = 1

COG_PROTOCOL = "cog"
COG_DEM_FRAGMENT = "dem"

# Proxy
PROXY_ROUTE_PREFIX = "/api/cog"
DEFAULT_PROXY_HOST = "localhost"
DEFAULT_PROXY_PORT = 8004
DEFAULT_MCP_PORT = 8003
DEFAULT_PROXY_ORIGIN = f"http://{DEFAULT_PROXY_HOST}:{DEFAULT_PROXY_PORT}"
PROXY_TIMEOUT_S = 30.0

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "Range",
    "Access-Control-Expose-Headers": "Content-Range, Content-Length, Accept-Ranges",
}

# Upstream response headers relayed to the client
FORWARDED_HEADERS = ("Content-Type", "Content-Length", "Content-Range", "Accept-Ranges")

SAMPLE_LOCATIONS: dict[str, dict] = {
    "alps": {"lat": 46.5, "lon": 10.5, "zoom": 9, "name": "Alps"},
    "pyrenees": {"lat": 42.5, "lon": 1.0, "zoom": 9, "name": "Pyrenees"},
    "carpathians": {"lat": 45.5, "lon": 25.0, "zoom": 9, "name": "Carpathians"},
    "scotland": {"lat": 57.0, "lon": -4.0, "zoom": 8, "name": "Scottish Highlands"},
    "norway": {"lat": 61.0, "lon": 7.0, "zoom": 8, "name": "Norway"},
    "germany": {"lat": 51.0, "lon": 7.0, "zoom": 8, "name": "Germany"},
}
DEFAULT_LOCATION = "alps"

# ---------------------------------------------------------------------------
# Slope pipeline
# ---------------------------------------------------------------------------

EARTH_RADIUS_M = 6_371_000.0
DEFAULT_GRID_SIZE = 50
MAX_GRID_SIZE = 200
DEFAULT_MIN_SLOPE = 5.0
COLOR_RAMP_SPAN_DEG = 40.0
TRANSPARENT = "transparent"

# Zoom-dependent rendering strategy
SLOPE_ZOOM_THRESHOLD = 10
# (minimum zoom, grid size), checked in order
GRID_SIZE_BY_ZOOM = [(14, 60), (12, 40)]
BASE_GRID_SIZE = 25

SLOPE_DEBOUNCE_S = 0.3
INITIAL_UPDATE_DELAY_S = 0.3
IDLE_UPDATE_DELAY_S = 0.5

# Min-slope slider
DEFAULT_VIEW_MIN_SLOPE = 15
MIN_SLOPE_LOWER = 5
MIN_SLOPE_UPPER = 45
MIN_SLOPE_STEP = 5

# ---------------------------------------------------------------------------
# Cliff detection
# ---------------------------------------------------------------------------

DEFAULT_CLIFF_HEIGHT_DIFF_M = 3.0
DEFAULT_CLIFF_HORIZONTAL_DIST_M = 20.0
DEFAULT_CLIFF_MIN_ANGLE = 8.5
MAX_CLIFF_FEATURES = 5000

METERS_PER_DEGREE = 111320.0

# ---------------------------------------------------------------------------
# Map style
# ---------------------------------------------------------------------------


class SourceId:
    BASEMAP = "raster-tiles"
    TERRAIN = "terrain-dem"
    SLOPE = "slope-data"


class LayerId:
    BASEMAP = "simple-tiles"
    HILLSHADE = "hillshade"
    CLIFF_HILLSHADE = "cliff-hillshade"
    CLIFF_HILLSHADE_2 = "cliff-hillshade-2"
    SLOPE_FILL = "slope-fill"
    SLOPE_OUTLINE = "slope-outline"


CLIFF_HILLSHADE_LAYERS = [LayerId.CLIFF_HILLSHADE, LayerId.CLIFF_HILLSHADE_2]
SLOPE_LAYERS = [LayerId.SLOPE_FILL, LayerId.SLOPE_OUTLINE]

BASEMAP_TILES_URL = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"
BASEMAP_ATTRIBUTION = (
    '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
)
TERRAIN_TILES_URL = "https://s3.amazonaws.com/elevation-tiles-prod/terrarium/{z}/{x}/{y}.png"
TERRAIN_ENCODING = "terrarium"
TERRAIN_MAXZOOM = 15
TERRAIN_EXAGGERATION = 1.5
TILE_SIZE_PX = 256

INITIAL_CAMERA: dict = {"center": [12.5, 55.5], "zoom": 6.0, "pitch": 45.0, "bearing": 0.0}

FLY_TO_PRESETS: dict[str, dict] = {
    "coastal_cliffs": {"center": [-9.5, 38.78], "zoom": 14.0, "pitch": 60.0, "bearing": 45.0},
    "alps": {"center": [10.5, 46.5], "zoom": 12.0, "pitch": 60.0, "bearing": -20.0},
}

# Hillshade illumination for the two opposing cliff layers
CLIFF_HILLSHADE_LIGHTS = [
    {"azimuth": 315.0, "z_factor": 1.0},
    {"azimuth": 135.0, "z_factor": 0.7},
]
DEFAULT_ALTITUDE = 45.0

# Cache & retry
TERRAIN_CACHE_MAX_BYTES = 200 * 1024 * 1024
TERRAIN_CACHE_MAX_ITEM = 50 * 1024 * 1024
RETRY_ATTEMPTS = 3
RETRY_WAIT_MIN = 1
RETRY_WAIT_MAX = 10

# Largest area (square degrees) a single analysis may load
MAX_ANALYSIS_AREA_DEG2 = 1.0
# Half side of the analysis box around a sample location
LOCATION_HALF_SIZE_DEG = 0.05

OUTPUT_MODES = ["json", "text"]
ANALYSIS_TOOLS = ["slope_grid", "analyze_area", "point_elevation", "detect", "hillshade"]


class ErrorMessages:
    INVALID_BBOX = "Invalid bounding box: must be [west, south, east, north]"
    BBOX_OR_LOCATION = "Provide either bbox or location"
    INVALID_BBOX_VALUES = "Invalid bounding box values: west ({}) must be < east ({})"
    INVALID_BBOX_LAT = "Invalid bounding box values: south ({}) must be < north ({})"
    AREA_TOO_LARGE = "Requested area ({:.2f} deg²) exceeds limit of {:.2f} deg²"
    INVALID_GRID_SIZE = "grid_size must be between 1 and {}, got {}"
    GRID_SIZE_TOO_SMALL = "grid_size must be >= 1, got {}"
    INVALID_GRID_SHAPE = "Elevation grid must be {} rows of {} values, got {}x{}"
    INVALID_MIN_SLOPE = "Minimum slope must be between {} and {} in steps of {}, got {}"
    INVALID_HORIZONTAL_DIST = "horizontal_dist must be > 0, got {}"
    INVALID_RESOLUTION = "resolution_m must be > 0, got {}"
    UNKNOWN_LOCATION = "Unknown location '{}'. Available: {}"
    UNKNOWN_PRESET = "Unknown fly-to preset '{}'. Available: {}"
    INVALID_COG_URL = "Not a cog:// URL: '{}'"
    NO_ARTIFACT_STORE = (
        "No artifact store available. Configure CHUK_ARTIFACTS_PROVIDER "
        "environment variable (memory, filesystem, or s3)."
    )
    NO_TERRAIN = "No terrain data could be loaded for {}"
    MAP_NOT_MOUNTED = "Map view is not mounted"
    MAP_INIT_FAILED = "Failed to initialize map"
    TERRAIN_LOAD_FAILED = "Failed to load terrain: {}"
    PROXY_FETCH_FAILED = "Failed to fetch COG file"
    PROXY_HEAD_FAILED = "Failed"
    PROXY_UPSTREAM = "S3 error: {}"


class SuccessMessages:
    LOCATIONS_LIST = "{} sample locations available"
    TILE_INFO = "Tile {} covers ({}, {})"
    TILES_LIST = "{} tiles cover the requested area"
    SLOPE_GRID = "Slope computed for {} cells, {} at or above {:.0f}°"
    ANALYZE_COMPLETE = "Slope analysis: {} steep cells of {} (grid {}x{}, max {:.1f}°)"
    POINT_ELEVATION = "Elevation at point: {:.1f}m"
    POINT_NO_DATA = "No elevation data at point"
    CLIFFS_COMPLETE = "Cliff detection: {} cliff pixels of {} (min angle {:.1f}°)"
    HILLSHADE_COMPLETE = "Cliff hillshade rendered ({} shape)"
