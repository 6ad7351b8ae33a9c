"""
Slope pipeline: grid sampling, slope angles, colour ramp and GeoJSON overlay.

Elevation samples are ``float | None``; ``None`` is the "no data" variant and
is excluded from slope computation rather than treated as an error.
All functions are pure and synchronous.
"""

import math
import re
from dataclasses import dataclass
from typing import Protocol

from ..constants import (
    BASE_GRID_SIZE,
    COLOR_RAMP_SPAN_DEG,
    DEFAULT_GRID_SIZE,
    DEFAULT_MIN_SLOPE,
    EARTH_RADIUS_M,
    GRID_SIZE_BY_ZOOM,
    TRANSPARENT,
    ErrorMessages,
)

Elevation = float | None


class TerrainQuery(Protocol):
    """Anything that can answer a point elevation query."""

    def query_terrain_elevation(self, lng: float, lat: float) -> float | None: ...


@dataclass(frozen=True)
class LngLatBounds:
    """Geographic bounding box in degrees."""

    west: float
    south: float
    east: float
    north: float

    @classmethod
    def from_bbox(cls, bbox: list[float]) -> "LngLatBounds":
        if len(bbox) != 4:
            raise ValueError(ErrorMessages.INVALID_BBOX)
        west, south, east, north = bbox
        return cls(float(west), float(south), float(east), float(north))

    def to_bbox(self) -> list[float]:
        return [self.west, self.south, self.east, self.north]

    @property
    def width(self) -> float:
        return self.east - self.west

    @property
    def height(self) -> float:
        return self.north - self.south


@dataclass
class SlopeCell:
    """Steepness of one grid cell."""

    lng: float
    lat: float
    slope: float  # degrees
    elevation: float


@dataclass
class ElevationGrid:
    """Elevation samples on a regular lat/lon lattice.

    ``elevations[j][i]`` is the sample at ``(lngs[i], lats[j])``.
    """

    elevations: list[list[Elevation]]
    lngs: list[float]
    lats: list[float]

    @property
    def valid_count(self) -> int:
        return sum(1 for row in self.elevations for v in row if not is_missing(v))


def is_missing(value: Elevation) -> bool:
    """True for the no-data variant (``None``, or NaN coming from a raster)."""
    return value is None or math.isnan(value)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


def calculate_slope_angle(elev_diff: float, distance: float) -> float:
    """
    Slope angle in degrees from an elevation difference and a ground distance.

    A zero distance is the ``atan(inf)`` limit: 90° for any non-zero rise,
    0° when there is no rise either.
    """
    if distance == 0:
        return 90.0 if elev_diff != 0 else 0.0
    return math.degrees(math.atan(abs(elev_diff) / distance))


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in metres."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def diagonal_distance_error(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Error of the Pythagorean cell diagonal against the great-circle diagonal.

    The slope grid combines the horizontal and vertical edge lengths of a cell
    as ``sqrt(dx² + dy²)``. This returns that value minus the direct
    Haversine distance between the two diagonal corners, in metres.
    """
    dist_right = haversine_distance(lat1, lng1, lat1, lng2)
    dist_up = haversine_distance(lat1, lng1, lat2, lng1)
    approx = math.hypot(dist_right, dist_up)
    return approx - haversine_distance(lat1, lng1, lat2, lng2)


# ---------------------------------------------------------------------------
# Grid sampling and slope
# ---------------------------------------------------------------------------


def sample_elevation_grid(
    terrain: TerrainQuery,
    bounds: LngLatBounds,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> ElevationGrid:
    """
    Sample terrain elevation on a regular grid.

    Grid lines are evenly spaced in degrees across the bounds, giving
    ``(grid_size + 1) x (grid_size + 1)`` samples. Queries that return
    ``None`` (outside loaded terrain) are kept as ``None``; nothing is retried.

    Args:
        terrain: Object exposing ``query_terrain_elevation(lng, lat)``
        bounds: Area to sample
        grid_size: Number of cells along each axis

    Returns:
        ElevationGrid with elevations and the coordinate arrays used
    """
    if grid_size < 1:
        raise ValueError(ErrorMessages.GRID_SIZE_TOO_SMALL.format(grid_size))

    lng_step = bounds.width / grid_size
    lat_step = bounds.height / grid_size

    lngs = [bounds.west + i * lng_step for i in range(grid_size + 1)]
    lats = [bounds.south + j * lat_step for j in range(grid_size + 1)]

    elevations: list[list[Elevation]] = []
    for lat in lats:
        row = []
        for lng in lngs:
            elev = terrain.query_terrain_elevation(lng, lat)
            row.append(None if is_missing(elev) else float(elev))
        elevations.append(row)

    return ElevationGrid(elevations=elevations, lngs=lngs, lats=lats)


def calculate_slope_grid(
    elevations: list[list[Elevation]],
    lngs: list[float],
    lats: list[float],
    exact_diagonal: bool = False,
) -> list[SlopeCell]:
    """
    Compute the slope of every grid cell.

    Each cell takes the maximum slope from its base sample toward the right,
    up and diagonal neighbours. Missing neighbours are left out of the
    maximum; a cell with no usable neighbour has slope 0. Cells whose base
    sample is missing are skipped.

    Args:
        elevations: Row-major samples, ``elevations[j][i]`` at ``(lngs[i], lats[j])``
        lngs: Longitudes of the grid columns
        lats: Latitudes of the grid rows
        exact_diagonal: Use the great-circle diagonal instead of
            ``sqrt(dist_right² + dist_up²)``

    Returns:
        Slope cells in row-major order
    """
    cells: list[SlopeCell] = []
    rows = len(elevations)
    cols = len(elevations[0]) if rows else 0

    for j in range(rows - 1):
        for i in range(cols - 1):
            elev = elevations[j][i]
            if is_missing(elev):
                continue

            elev_right = elevations[j][i + 1]
            elev_up = elevations[j + 1][i]
            elev_diag = elevations[j + 1][i + 1]

            dist_right = haversine_distance(lats[j], lngs[i], lats[j], lngs[i + 1])
            dist_up = haversine_distance(lats[j], lngs[i], lats[j + 1], lngs[i])

            slopes = []
            if not is_missing(elev_right):
                slopes.append(calculate_slope_angle(elev_right - elev, dist_right))
            if not is_missing(elev_up):
                slopes.append(calculate_slope_angle(elev_up - elev, dist_up))
            if not is_missing(elev_diag):
                if exact_diagonal:
                    dist_diag = haversine_distance(lats[j], lngs[i], lats[j + 1], lngs[i + 1])
                else:
                    dist_diag = math.sqrt(dist_right**2 + dist_up**2)
                slopes.append(calculate_slope_angle(elev_diag - elev, dist_diag))

            cells.append(
                SlopeCell(
                    lng=(lngs[i] + lngs[i + 1]) / 2,
                    lat=(lats[j] + lats[j + 1]) / 2,
                    slope=max(slopes) if slopes else 0.0,
                    elevation=elev,
                )
            )

    return cells


def grid_size_for_zoom(zoom: float) -> int:
    """Grid resolution used by the slope overlay at a given zoom."""
    for min_zoom, size in GRID_SIZE_BY_ZOOM:
        if zoom >= min_zoom:
            return size
    return BASE_GRID_SIZE


def cell_size_for_bounds(bounds: LngLatBounds, grid_size: int) -> float:
    """Side of the square overlay polygon, in degrees."""
    return max(bounds.width / grid_size, bounds.height / grid_size)


# ---------------------------------------------------------------------------
# Colour ramp
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_slope_color(slope_degrees: float, min_slope: float = DEFAULT_MIN_SLOPE) -> str:
    """
    Map a slope to an RGBA colour string.

    Below ``min_slope`` the cell is transparent. Above it the slope is
    normalised over 40° and run through yellow -> orange -> red -> dark red,
    with opacity increasing alongside steepness.
    """
    if slope_degrees < min_slope:
        return TRANSPARENT

    normalized = min(1.0, max(0.0, (slope_degrees - min_slope) / COLOR_RAMP_SPAN_DEG))

    if normalized < 0.33:
        t = normalized / 0.33
        r = 255
        g = round_half_up(255 - t * 100)
        alpha = 0.3 + normalized * 0.4
    elif normalized < 0.66:
        t = (normalized - 0.33) / 0.33
        r = 255
        g = round_half_up(155 - t * 100)
        alpha = 0.5 + normalized * 0.3
    else:
        t = (normalized - 0.66) / 0.34
        r = round_half_up(255 - t * 55)
        g = round_half_up(55 - t * 55)
        alpha = 0.7 + normalized * 0.2

    return f"rgba({r}, {g}, 0, {alpha})"


_RGBA_RE = re.compile(r"rgba\(\s*(\d+),\s*(\d+),\s*(\d+),\s*([0-9.eE+-]+)\s*\)")


def parse_rgba(color: str) -> tuple[int, int, int, int]:
    """Convert a ramp colour to an 8-bit RGBA tuple (``transparent`` -> all zero)."""
    if color == TRANSPARENT:
        return (0, 0, 0, 0)
    match = _RGBA_RE.fullmatch(color)
    if match is None:
        raise ValueError(f"Unrecognised colour: {color}")
    r, g, b, a = match.groups()
    return (int(r), int(g), int(b), round_half_up(float(a) * 255))


# ---------------------------------------------------------------------------
# GeoJSON
# ---------------------------------------------------------------------------


def empty_feature_collection() -> dict:
    return {"type": "FeatureCollection", "features": []}


def create_slope_geojson(
    cells: list[SlopeCell],
    cell_size: float,
    min_slope: float = DEFAULT_MIN_SLOPE,
) -> dict:
    """
    Build a polygon FeatureCollection of the cells at or above ``min_slope``.

    Each feature is an axis-aligned square of side ``cell_size`` degrees
    centred on the cell. Adjacent cells stay separate polygons.
    """
    features = []
    half = cell_size / 2

    for cell in cells:
        if cell.slope < min_slope:
            continue

        ring = [
            [cell.lng - half, cell.lat - half],
            [cell.lng + half, cell.lat - half],
            [cell.lng + half, cell.lat + half],
            [cell.lng - half, cell.lat + half],
            [cell.lng - half, cell.lat - half],
        ]
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Polygon", "coordinates": [ring]},
                "properties": {
                    "slope": cell.slope,
                    "elevation": cell.elevation,
                    "color": get_slope_color(cell.slope, min_slope),
                },
            }
        )

    return {"type": "FeatureCollection", "features": features}
