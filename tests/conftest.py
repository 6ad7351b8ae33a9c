"""Shared test fixtures for chuk-mcp-cliffs."""

import numpy as np
import pytest
from unittest.mock import AsyncMock, MagicMock


class FunctionTerrain:
    """Terrain answering elevation queries from a plain function of (lng, lat)."""

    def __init__(self, fn):
        self.fn = fn
        self.queries = 0

    def query_terrain_elevation(self, lng, lat):
        self.queries += 1
        return self.fn(lng, lat)


@pytest.fixture
def sample_elevation():
    """100x100 elevation array with values 100-500m."""
    np.random.seed(42)
    return np.random.uniform(100, 500, (100, 100)).astype(np.float32)


@pytest.fixture
def sample_elevation_with_voids(sample_elevation):
    """Elevation array with NaN voids."""
    arr = sample_elevation.copy()
    arr[10:15, 10:15] = np.nan
    return arr


@pytest.fixture
def sample_transform():
    """Affine transform for a 0.1-degree window at N46 E007 (0.001° pixels)."""
    from rasterio.transform import Affine

    return Affine(0.001, 0.0, 7.0, 0.0, -0.001, 46.1)


@pytest.fixture
def ramp_elevation():
    """100x100 north-facing ramp: 30 m drop per row (0.001° ≈ 111 m), about 15°."""
    rows = np.arange(100, dtype=np.float32).reshape(100, 1)
    return np.repeat(3000.0 - rows * 30.0, 100, axis=1).astype(np.float32)


@pytest.fixture
def make_terrain():
    """Factory for terrain backed by a function of (lng, lat)."""
    return FunctionTerrain


@pytest.fixture
def flat_terrain():
    return FunctionTerrain(lambda lng, lat: 500.0)


@pytest.fixture
def steep_terrain():
    """Plane rising northward at half a metre per metre (about 26.6°)."""
    return FunctionTerrain(lambda lng, lat: (lat - 46.0) * 111320.0 * 0.5)


@pytest.fixture
def mock_artifact_store():
    """Mock artifact store."""
    store = AsyncMock()
    store.store = AsyncMock(return_value=None)
    store.retrieve = AsyncMock(return_value=b"fake-geojson-bytes")
    return store


@pytest.fixture
def mock_manager(mock_artifact_store):
    """CliffManager with mocked store."""
    from chuk_mcp_cliffs.core.cliff_manager import CliffManager

    manager = CliffManager()
    manager._get_store = MagicMock(return_value=mock_artifact_store)
    return manager


@pytest.fixture
def mock_mcp():
    """Mock ChukMCPServer."""
    mcp = MagicMock()
    mcp.tool = MagicMock(return_value=lambda fn: fn)
    return mcp
