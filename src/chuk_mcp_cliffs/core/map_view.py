"""
Terrain map view.

Owns one map engine from ``mount()`` to ``unmount()`` together with the
``cog://`` protocol registration, and switches between two ways of
highlighting steep ground:

* below zoom 10, two oppositely lit red hillshade layers;
* at zoom 10 and above, the sampled slope grid rendered as GeoJSON polygons,
  recomputed 300 ms after the last pan or zoom.

Everything runs on the asyncio event loop of the caller.
"""

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..constants import (
    BASEMAP_ATTRIBUTION,
    BASEMAP_TILES_URL,
    CLIFF_HILLSHADE_LAYERS,
    CLIFF_HILLSHADE_LIGHTS,
    COG_PROTOCOL,
    DEFAULT_VIEW_MIN_SLOPE,
    FLY_TO_PRESETS,
    IDLE_UPDATE_DELAY_S,
    INITIAL_CAMERA,
    INITIAL_UPDATE_DELAY_S,
    MIN_SLOPE_LOWER,
    MIN_SLOPE_STEP,
    MIN_SLOPE_UPPER,
    SLOPE_DEBOUNCE_S,
    SLOPE_LAYERS,
    SLOPE_ZOOM_THRESHOLD,
    TERRAIN_ENCODING,
    TERRAIN_EXAGGERATION,
    TERRAIN_MAXZOOM,
    TERRAIN_TILES_URL,
    TILE_SIZE_PX,
    ErrorMessages,
    LayerId,
    SourceId,
)
from .map_engine import MapEngine, ProtocolRegistry
from .raster_io import open_cog
from .slope import (
    calculate_slope_grid,
    cell_size_for_bounds,
    create_slope_geojson,
    empty_feature_collection,
    grid_size_for_zoom,
    round_half_up,
    sample_elevation_grid,
)

logger = logging.getLogger(__name__)

_CLIFF_HILLSHADE_COLORS = [
    {"shadow": "#dd2200", "highlight": "rgba(255, 200, 100, 0.1)", "accent": "#ff3300"},
    {"shadow": "#cc0000", "highlight": "rgba(255, 255, 255, 0)", "accent": "#ff4400"},
]


# ---------------------------------------------------------------------------
# Style
# ---------------------------------------------------------------------------


def base_style() -> dict:
    """Initial style: the OpenStreetMap raster basemap only."""
    return {
        "version": 8,
        "sources": {
            SourceId.BASEMAP: {
                "type": "raster",
                "tiles": [BASEMAP_TILES_URL],
                "tileSize": TILE_SIZE_PX,
                "attribution": BASEMAP_ATTRIBUTION,
            }
        },
        "layers": [
            {
                "id": LayerId.BASEMAP,
                "type": "raster",
                "source": SourceId.BASEMAP,
                "minzoom": 0,
                "maxzoom": 22,
            }
        ],
    }


def terrain_source(terrain_url: str | None = None) -> dict:
    """
    Raster DEM source for hillshading and 3D terrain.

    Terrarium tiles by default; a ``cog://<url>#dem`` URL loads a single
    Copernicus tile through the registered protocol instead.
    """
    if terrain_url is not None:
        return {"type": "raster-dem", "url": terrain_url, "tileSize": TILE_SIZE_PX}
    return {
        "type": "raster-dem",
        "tiles": [TERRAIN_TILES_URL],
        "encoding": TERRAIN_ENCODING,
        "tileSize": TILE_SIZE_PX,
        "maxzoom": TERRAIN_MAXZOOM,
    }


def hillshade_layer(
    layer_id: str,
    shadow: str,
    highlight: str,
    accent: str,
    direction: float,
    exaggeration: float,
) -> dict:
    return {
        "id": layer_id,
        "type": "hillshade",
        "source": SourceId.TERRAIN,
        "paint": {
            "hillshade-shadow-color": shadow,
            "hillshade-highlight-color": highlight,
            "hillshade-accent-color": accent,
            "hillshade-illumination-direction": direction,
            "hillshade-exaggeration": exaggeration,
        },
    }


def cliff_hillshade_layers() -> list[dict]:
    """The two red-shadowed hillshades lit from 315° and 135°."""
    return [
        hillshade_layer(
            layer_id,
            colors["shadow"],
            colors["highlight"],
            colors["accent"],
            light["azimuth"],
            light["z_factor"],
        )
        for layer_id, light, colors in zip(
            CLIFF_HILLSHADE_LAYERS, CLIFF_HILLSHADE_LIGHTS, _CLIFF_HILLSHADE_COLORS
        )
    ]


def slope_layers() -> list[dict]:
    return [
        {
            "id": LayerId.SLOPE_FILL,
            "type": "fill",
            "source": SourceId.SLOPE,
            "paint": {"fill-color": ["get", "color"], "fill-opacity": 0.7},
        },
        {
            "id": LayerId.SLOPE_OUTLINE,
            "type": "line",
            "source": SourceId.SLOPE,
            "paint": {"line-color": ["get", "color"], "line-width": 1, "line-opacity": 0.5},
        },
    ]


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


class Debouncer:
    """
    Run a callback once activity has been quiet for ``delay`` seconds.

    Each ``schedule`` cancels the pending call before arming a new one, so a
    burst of triggers results in a single call with the last arguments.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._callback: Callable[..., Any] | None = None
        self._args: tuple = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[..., Any], *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._callback = callback
        self._args = args
        self._handle = loop.call_later(self.delay, self._run)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._callback = None
        self._args = ()

    def flush(self) -> None:
        """Run the pending call now, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._run()

    def _run(self) -> None:
        callback, args = self._callback, self._args
        self._handle = None
        self._callback = None
        self._args = ()
        if callback is not None:
            callback(*args)


# ---------------------------------------------------------------------------
# View
# ---------------------------------------------------------------------------


@dataclass
class ViewState:
    """Everything the overlay controls display."""

    is_loading: bool = True
    error: str | None = None
    show_cliffs: bool = True
    show_tutorial: bool = True
    show_info_modal: bool = False
    min_slope_angle: int = DEFAULT_VIEW_MIN_SLOPE
    elevation: int | None = None
    coordinates: dict[str, float] | None = None
    is_calculating: bool = False
    current_zoom: float = INITIAL_CAMERA["zoom"]
    last_feature_count: int = 0


class TerrainMapView:
    """
    Map view with zoom-dependent cliff highlighting.

    Args:
        engine_factory: Builds the map engine from camera and style options
        protocols: Registry the ``cog`` handler is added to while mounted
        cog_handler: Loader for ``cog://`` URLs
        terrain_url: Optional ``cog://`` terrain URL (Terrarium tiles otherwise)
        debounce_s: Quiet period before a slope recomputation
    """

    def __init__(
        self,
        engine_factory: Callable[..., MapEngine],
        protocols: ProtocolRegistry,
        cog_handler: Callable[[str], Any] = open_cog,
        terrain_url: str | None = None,
        debounce_s: float = SLOPE_DEBOUNCE_S,
        initial_delay_s: float = INITIAL_UPDATE_DELAY_S,
        idle_delay_s: float = IDLE_UPDATE_DELAY_S,
    ) -> None:
        self.engine_factory = engine_factory
        self.protocols = protocols
        self.cog_handler = cog_handler
        self.terrain_url = terrain_url
        self.initial_delay_s = initial_delay_s
        self.idle_delay_s = idle_delay_s

        self.state = ViewState()
        self._engine: MapEngine | None = None
        self._debouncer = Debouncer(debounce_s)
        self._initial_update: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def engine(self) -> MapEngine:
        if self._engine is None:
            raise RuntimeError(ErrorMessages.MAP_NOT_MOUNTED)
        return self._engine

    @property
    def mounted(self) -> bool:
        return self._engine is not None

    def mount(self) -> None:
        """Create the engine and start listening. Must run inside an event loop."""
        if self._engine is not None:
            return

        self.protocols.add_protocol(COG_PROTOCOL, self.cog_handler)

        try:
            engine = self.engine_factory(
                style=base_style(), protocols=self.protocols, **INITIAL_CAMERA
            )
            engine.add_control("navigation", "top-right")
            engine.add_control("scale", "bottom-left")
        except Exception as e:
            logger.error(f"Error initializing map: {e}")
            self.state.error = ErrorMessages.MAP_INIT_FAILED
            self.state.is_loading = False
            return

        engine.on("load", self._on_load)
        engine.on("error", self._on_error)
        engine.on("zoom", self._on_zoom)
        engine.on("mousemove", self.on_pointer_move)
        engine.on("mouseout", self.on_pointer_out)
        engine.on("moveend", self.update_slope_visualization)
        engine.on("zoomend", self.update_slope_visualization)
        self._engine = engine

        if engine.loaded():
            self._schedule_initial_update(self.initial_delay_s)
        else:
            engine.once("idle", lambda *_: self._schedule_initial_update(self.idle_delay_s))

    def unmount(self) -> None:
        self._debouncer.cancel()
        self.state.is_calculating = False
        if self._initial_update is not None:
            self._initial_update.cancel()
            self._initial_update = None

        if self._engine is not None:
            self._engine.remove()
            self._engine = None

        self.protocols.remove_protocol(COG_PROTOCOL)

    def _schedule_initial_update(self, delay: float) -> None:
        loop = asyncio.get_running_loop()
        self._initial_update = loop.call_later(delay, self._run_initial_update)

    def _run_initial_update(self) -> None:
        self._initial_update = None
        self.update_slope_visualization()

    def _on_load(self, *_: Any) -> None:
        self.state.is_loading = False
        try:
            self._add_terrain_layers(self.engine)
            logger.info("Terrain and slope visualization enabled")
        except Exception as e:
            logger.error(f"Error adding terrain: {e}")
            self.state.error = ErrorMessages.TERRAIN_LOAD_FAILED.format(e)

    def _add_terrain_layers(self, engine: MapEngine) -> None:
        engine.add_source(SourceId.TERRAIN, terrain_source(self.terrain_url))
        engine.add_layer(
            hillshade_layer(LayerId.HILLSHADE, "#473B24", "#FFFFFF", "#333333", 315, 0.5)
        )
        for layer in cliff_hillshade_layers():
            engine.add_layer(layer)

        engine.set_terrain({"source": SourceId.TERRAIN, "exaggeration": TERRAIN_EXAGGERATION})

        engine.add_source(SourceId.SLOPE, {"type": "geojson", "data": empty_feature_collection()})
        for layer in slope_layers():
            engine.add_layer(layer)

    def _on_error(self, error: Any = None) -> None:
        logger.error(f"Map error: {error}")

    def _on_zoom(self, *_: Any) -> None:
        self.state.current_zoom = self.engine.get_zoom()

    # ------------------------------------------------------------------
    # Highlighting strategy
    # ------------------------------------------------------------------

    def _set_visibility(self, layer_ids: list[str], visible: bool) -> None:
        engine = self.engine
        for layer_id in layer_ids:
            if engine.get_layer(layer_id) is not None:
                engine.set_layout_property(layer_id, "visibility", "visible" if visible else "none")

    def update_layer_visibility(self, zoom: float) -> None:
        """Show hillshade below the zoom threshold, slope polygons at or above it."""
        if not self.state.show_cliffs:
            return
        use_slope = zoom >= SLOPE_ZOOM_THRESHOLD
        self._set_visibility(CLIFF_HILLSHADE_LAYERS, not use_slope)
        self._set_visibility(SLOPE_LAYERS, use_slope)

    def update_slope_visualization(self, *_: Any) -> None:
        """React to a viewport change: pick the strategy and debounce the slope pass."""
        if self._engine is None or not self.state.show_cliffs:
            return

        engine = self._engine
        zoom = engine.get_zoom()
        self.state.current_zoom = zoom
        self.update_layer_visibility(zoom)

        if zoom < SLOPE_ZOOM_THRESHOLD:
            if engine.get_source(SourceId.SLOPE) is not None:
                engine.set_source_data(SourceId.SLOPE, empty_feature_collection())
            return

        self.state.is_calculating = True
        self._debouncer.schedule(self._compute_slopes, zoom)

    def _compute_slopes(self, zoom: float) -> None:
        engine = self._engine
        if engine is None:
            self.state.is_calculating = False
            return

        try:
            bounds = engine.get_bounds()
            grid_size = grid_size_for_zoom(zoom)

            grid = sample_elevation_grid(engine, bounds, grid_size)
            cells = calculate_slope_grid(grid.elevations, grid.lngs, grid.lats)
            cell_size = cell_size_for_bounds(bounds, grid_size)
            geojson = create_slope_geojson(cells, cell_size, self.state.min_slope_angle)

            if engine.get_source(SourceId.SLOPE) is not None:
                engine.set_source_data(SourceId.SLOPE, geojson)

            self.state.last_feature_count = len(geojson["features"])
            logger.info(f"Slope calculated: {len(geojson['features'])} steep cells found")
        except Exception as e:
            logger.error(f"Error calculating slope: {e}")
        finally:
            self.state.is_calculating = False

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def set_show_cliffs(self, show: bool) -> None:
        self.state.show_cliffs = show
        if self._engine is None:
            return

        if show:
            self.update_layer_visibility(self._engine.get_zoom())
            self.update_slope_visualization()
        else:
            self._set_visibility(CLIFF_HILLSHADE_LAYERS + SLOPE_LAYERS, False)

    def set_min_slope_angle(self, value: int, commit: bool = True) -> None:
        """Move the slider; the overlay is recomputed when the change is committed."""
        if (
            not MIN_SLOPE_LOWER <= value <= MIN_SLOPE_UPPER
            or (value - MIN_SLOPE_LOWER) % MIN_SLOPE_STEP != 0
        ):
            raise ValueError(
                ErrorMessages.INVALID_MIN_SLOPE.format(
                    MIN_SLOPE_LOWER, MIN_SLOPE_UPPER, MIN_SLOPE_STEP, value
                )
            )
        self.state.min_slope_angle = int(value)
        if commit:
            self.update_slope_visualization()

    def fly_to(self, preset: str) -> None:
        if preset not in FLY_TO_PRESETS:
            raise ValueError(ErrorMessages.UNKNOWN_PRESET.format(preset, list(FLY_TO_PRESETS)))
        if self._engine is not None:
            self._engine.fly_to(**FLY_TO_PRESETS[preset])

    def on_pointer_move(self, lng: float, lat: float) -> None:
        if self._engine is None:
            return
        elev = self._engine.query_terrain_elevation(lng, lat)
        if elev is None or math.isnan(elev):
            return
        self.state.elevation = round_half_up(elev)
        self.state.coordinates = {"lat": lat, "lng": lng}

    def on_pointer_out(self, *_: Any) -> None:
        self.state.elevation = None
        self.state.coordinates = None

    def dismiss_tutorial(self) -> None:
        self.state.show_tutorial = False

    def open_info(self) -> None:
        self.state.show_info_modal = True

    def close_info(self) -> None:
        self.state.show_info_modal = False

    def dismiss_error(self) -> None:
        self.state.error = None

    # ------------------------------------------------------------------
    # Readouts
    # ------------------------------------------------------------------

    @property
    def mode_label(self) -> str:
        zoom = round_half_up(self.state.current_zoom)
        if self.state.current_zoom < SLOPE_ZOOM_THRESHOLD:
            return (
                f"Hillshade mode (zoom {zoom}) - zoom to {SLOPE_ZOOM_THRESHOLD}+ for precise slope"
            )
        return f"Slope mode (zoom {zoom}) - calculating actual angles"

    @property
    def elevation_label(self) -> str:
        return f"{self.state.elevation}m" if self.state.elevation is not None else "-"

    @property
    def coordinates_label(self) -> str | None:
        coords = self.state.coordinates
        if coords is None:
            return None
        return f"{coords['lat']:.4f}°, {coords['lng']:.4f}°"
