"""
Cliff detection over elevation rasters.

A pixel is a cliff when some valid neighbour within the horizontal search
distance rises or falls at least as steeply as the cliff criterion
(by default 3 m over 20 m, about 8.5°).
"""

import math
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..constants import (
    DEFAULT_CLIFF_HEIGHT_DIFF_M,
    DEFAULT_CLIFF_HORIZONTAL_DIST_M,
    DEFAULT_CLIFF_MIN_ANGLE,
    ErrorMessages,
)
from .slope import LngLatBounds, calculate_slope_angle

BoolArray = NDArray[np.bool_]


@dataclass(frozen=True)
class CliffParams:
    """Cliff criterion: a rise of ``height_diff`` over ``horizontal_dist`` metres."""

    height_diff: float
    horizontal_dist: float
    min_angle: float  # degrees
    gradient: float  # percent


def is_cliff(slope_angle: float, min_angle: float = DEFAULT_CLIFF_MIN_ANGLE) -> bool:
    """Whether a slope angle is steep enough to count as a cliff."""
    return slope_angle >= min_angle


def get_cliff_params(
    height_diff: float = DEFAULT_CLIFF_HEIGHT_DIFF_M,
    horizontal_dist: float = DEFAULT_CLIFF_HORIZONTAL_DIST_M,
) -> CliffParams:
    """Derive the minimum angle and percent gradient for a cliff criterion."""
    if horizontal_dist <= 0:
        raise ValueError(ErrorMessages.INVALID_HORIZONTAL_DIST.format(horizontal_dist))

    return CliffParams(
        height_diff=height_diff,
        horizontal_dist=horizontal_dist,
        min_angle=calculate_slope_angle(height_diff, horizontal_dist),
        gradient=(height_diff / horizontal_dist) * 100,
    )


def _as_float_array(elevation: Any) -> NDArray[np.float64]:
    """Accept a NumPy array or nested lists with ``None`` for no data."""
    if isinstance(elevation, np.ndarray):
        return elevation.astype(np.float64)
    return np.array(
        [[np.nan if v is None else v for v in row] for row in elevation],
        dtype=np.float64,
    )


def detect_cliffs(
    elevation: Any,
    resolution_m: float,
    params: CliffParams | None = None,
) -> BoolArray:
    """
    Flag cliff pixels in an elevation raster.

    Args:
        elevation: 2D array (NaN or None for no data)
        resolution_m: Ground size of one pixel in metres
        params: Cliff criterion (default 3 m over 20 m)

    Returns:
        Boolean mask with the shape of ``elevation``
    """
    if resolution_m <= 0:
        raise ValueError(ErrorMessages.INVALID_RESOLUTION.format(resolution_m))
    if params is None:
        params = get_cliff_params()

    data = _as_float_array(elevation)
    if data.ndim != 2 or data.size == 0:
        return np.zeros(data.shape if data.ndim == 2 else (0, 0), dtype=bool)

    height, width = data.shape
    pixel_distance = math.ceil(params.horizontal_dist / resolution_m)
    # Tolerate last-bit differences between numpy and math trig
    threshold = params.min_angle - 1e-9

    pad = pixel_distance
    padded = np.pad(data, pad, mode="constant", constant_values=np.nan)
    valid = ~np.isnan(data)
    mask = np.zeros((height, width), dtype=bool)

    for dy in range(-pixel_distance, pixel_distance + 1):
        for dx in range(-pixel_distance, pixel_distance + 1):
            if dx == 0 and dy == 0:
                continue

            distance = math.sqrt(dx * dx + dy * dy) * resolution_m
            if distance > params.horizontal_dist:
                continue

            neighbour = padded[pad + dy : pad + dy + height, pad + dx : pad + dx + width]
            with np.errstate(invalid="ignore"):
                rise = np.abs(data - neighbour)
                steep = np.degrees(np.arctan(rise / distance)) >= threshold
            mask |= steep & valid & ~np.isnan(neighbour)

    return mask


def cliff_mask_to_geojson(mask: Any, bounds: LngLatBounds, limit: int | None = None) -> dict:
    """
    Convert a cliff mask to a point FeatureCollection.

    Row 0 of the mask is the northern edge of ``bounds``. With ``limit``, only
    the first ``limit`` cliff pixels in row-major order become features.
    """
    mask = np.asarray(mask, dtype=bool)
    height = mask.shape[0] if mask.ndim == 2 else 0
    width = mask.shape[1] if height else 0

    features = []
    for y, x in np.argwhere(mask)[:limit]:
        lon = bounds.west + (x / width) * bounds.width
        lat = bounds.north - (y / height) * bounds.height
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [float(lon), float(lat)]},
                "properties": {"isCliff": True},
            }
        )

    return {"type": "FeatureCollection", "features": features}
