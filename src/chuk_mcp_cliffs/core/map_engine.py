"""
Map engine seam for the terrain view.

``MapEngine`` is the subset of a MapLibre-style map API the view relies on.
``HeadlessMapEngine`` implements it in-process: it keeps the style state
(sources, layers, layout properties, terrain), a Web Mercator camera and an
event bus, and answers elevation queries from raster terrain loaded through
the registered URL protocols.
"""

import logging
import math
from collections.abc import Callable
from typing import Any, Protocol

from ..constants import COG_PROTOCOL
from .slope import LngLatBounds, TerrainQuery

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]

# MapLibre renders 512px world tiles
WORLD_TILE_SIZE = 512
MAX_MERCATOR_LAT = 85.051129


class MapEngine(Protocol):
    """Map engine operations used by ``TerrainMapView``."""

    def on(self, event: str, handler: Handler) -> None: ...

    def off(self, event: str, handler: Handler) -> None: ...

    def once(self, event: str, handler: Handler) -> None: ...

    def loaded(self) -> bool: ...

    def get_zoom(self) -> float: ...

    def get_bounds(self) -> LngLatBounds: ...

    def fly_to(self, **camera: Any) -> None: ...

    def add_control(self, control: Any, position: str = "top-right") -> None: ...

    def add_source(self, source_id: str, spec: dict) -> None: ...

    def get_source(self, source_id: str) -> dict | None: ...

    def set_source_data(self, source_id: str, data: dict) -> None: ...

    def add_layer(self, spec: dict) -> None: ...

    def get_layer(self, layer_id: str) -> dict | None: ...

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None: ...

    def set_terrain(self, spec: dict | None) -> None: ...

    def query_terrain_elevation(self, lng: float, lat: float) -> float | None: ...

    def remove(self) -> None: ...


class ProtocolRegistry:
    """URL scheme handlers (``cog://`` and friends) shared with map engines."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def add_protocol(self, name: str, handler: Handler) -> None:
        self._handlers[name] = handler

    def remove_protocol(self, name: str) -> None:
        self._handlers.pop(name, None)

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    def resolve(self, url: str) -> Any:
        """Load ``url`` with the handler registered for its scheme."""
        scheme, sep, _ = url.partition("://")
        if not sep or scheme not in self._handlers:
            raise ValueError(f"No protocol handler registered for '{url}'")
        return self._handlers[scheme](url)


def lng_to_world_x(lng: float, world: float) -> float:
    return (lng + 180.0) / 360.0 * world


def lat_to_world_y(lat: float, world: float) -> float:
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, lat))
    lat_rad = math.radians(lat)
    return (1.0 - math.log(math.tan(math.pi / 4 + lat_rad / 2)) / math.pi) / 2.0 * world


def world_x_to_lng(x: float, world: float) -> float:
    return x / world * 360.0 - 180.0


def world_y_to_lat(y: float, world: float) -> float:
    return math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * y / world))))


class HeadlessMapEngine:
    """
    In-process map engine.

    Nothing is drawn; style and camera state are kept so that visibility,
    source data and bounds can be inspected. Terrain elevation comes from the
    ``raster-dem`` source named in ``set_terrain``: sources whose ``url`` uses
    a registered protocol (e.g. ``cog://...#dem``) are loaded through it, and
    tile-template sources fall back to the ``terrain`` passed in.
    """

    def __init__(
        self,
        center: list[float],
        zoom: float,
        pitch: float = 0.0,
        bearing: float = 0.0,
        width: int = 1024,
        height: int = 768,
        protocols: ProtocolRegistry | None = None,
        terrain: TerrainQuery | None = None,
        style: dict | None = None,
    ) -> None:
        self.center = [float(center[0]), float(center[1])]
        self.zoom = float(zoom)
        self.pitch = float(pitch)
        self.bearing = float(bearing)
        self.width = width
        self.height = height
        self.protocols = protocols
        self.fallback_terrain = terrain

        self.sources: dict[str, dict] = {}
        self.layers: dict[str, dict] = {}
        self.terrain: dict | None = None
        self.removed = False

        self._loaded = False
        self._handlers: dict[str, list[Handler]] = {}
        self._terrain_sources: dict[str, TerrainQuery] = {}

        if style is not None:
            for source_id, spec in style.get("sources", {}).items():
                self.add_source(source_id, spec)
            for layer in style.get("layers", []):
                self.add_layer(layer)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, handler: Handler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def once(self, event: str, handler: Handler) -> None:
        def wrapper(*args: Any) -> None:
            self.off(event, wrapper)
            handler(*args)

        self.on(event, wrapper)

    def fire(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, [])):
            handler(*args)

    def load(self) -> None:
        """Finish loading: fire ``load`` then ``idle``."""
        self._loaded = True
        self.fire("load")
        self.fire("idle")

    def loaded(self) -> bool:
        return self._loaded

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    def get_zoom(self) -> float:
        return self.zoom

    def get_center(self) -> list[float]:
        return list(self.center)

    def get_bounds(self) -> LngLatBounds:
        """Viewport bounds for a top-down Web Mercator view."""
        world = WORLD_TILE_SIZE * 2**self.zoom
        cx = lng_to_world_x(self.center[0], world)
        cy = lat_to_world_y(self.center[1], world)

        return LngLatBounds(
            west=world_x_to_lng(cx - self.width / 2, world),
            south=world_y_to_lat(cy + self.height / 2, world),
            east=world_x_to_lng(cx + self.width / 2, world),
            north=world_y_to_lat(cy - self.height / 2, world),
        )

    def jump_to(self, **camera: Any) -> None:
        zoom_changed = "zoom" in camera and float(camera["zoom"]) != self.zoom
        if "center" in camera:
            self.center = [float(camera["center"][0]), float(camera["center"][1])]
        if "zoom" in camera:
            self.zoom = float(camera["zoom"])
        if "pitch" in camera:
            self.pitch = float(camera["pitch"])
        if "bearing" in camera:
            self.bearing = float(camera["bearing"])

        if zoom_changed:
            self.fire("zoom")
        self.fire("moveend")
        if zoom_changed:
            self.fire("zoomend")

    def fly_to(self, **camera: Any) -> None:
        # No animation headless; arrive immediately
        self.jump_to(**camera)

    # ------------------------------------------------------------------
    # Style
    # ------------------------------------------------------------------

    def add_source(self, source_id: str, spec: dict) -> None:
        if source_id in self.sources:
            raise ValueError(f"Source '{source_id}' already exists")
        self.sources[source_id] = dict(spec)

        url = spec.get("url")
        if spec.get("type") == "raster-dem" and url and self.protocols is not None:
            self._terrain_sources[source_id] = self.protocols.resolve(url)

    def get_source(self, source_id: str) -> dict | None:
        return self.sources.get(source_id)

    def set_source_data(self, source_id: str, data: dict) -> None:
        if source_id not in self.sources:
            raise ValueError(f"Source '{source_id}' does not exist")
        self.sources[source_id]["data"] = data

    def add_layer(self, spec: dict) -> None:
        layer_id = spec["id"]
        if layer_id in self.layers:
            raise ValueError(f"Layer '{layer_id}' already exists")
        if spec.get("source") and spec["source"] not in self.sources:
            raise ValueError(f"Layer '{layer_id}' references unknown source '{spec['source']}'")
        layer = dict(spec)
        layer["layout"] = dict(spec.get("layout", {}))
        self.layers[layer_id] = layer

    def get_layer(self, layer_id: str) -> dict | None:
        return self.layers.get(layer_id)

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None:
        if layer_id not in self.layers:
            raise ValueError(f"Layer '{layer_id}' does not exist")
        self.layers[layer_id]["layout"][name] = value

    def get_layout_property(self, layer_id: str, name: str) -> Any:
        layer = self.layers.get(layer_id)
        return layer["layout"].get(name) if layer else None

    def is_visible(self, layer_id: str) -> bool:
        return self.get_layout_property(layer_id, "visibility") != "none"

    def set_terrain(self, spec: dict | None) -> None:
        if spec is not None and spec.get("source") not in self.sources:
            raise ValueError(f"Terrain source '{spec.get('source')}' does not exist")
        self.terrain = spec

    def add_control(self, control: Any, position: str = "top-right") -> None:
        logger.debug(f"Control {control!r} added at {position}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query_terrain_elevation(self, lng: float, lat: float) -> float | None:
        if self.terrain is None:
            return None
        provider = self._terrain_sources.get(self.terrain["source"], self.fallback_terrain)
        if provider is None:
            return None
        return provider.query_terrain_elevation(lng, lat)

    def remove(self) -> None:
        self._handlers.clear()
        self.sources.clear()
        self.layers.clear()
        self._terrain_sources.clear()
        self.terrain = None
        self.removed = True


def make_cog_registry(handler: Handler) -> ProtocolRegistry:
    """A registry with ``handler`` serving the ``cog://`` scheme."""
    registry = ProtocolRegistry()
    registry.add_protocol(COG_PROTOCOL, handler)
    return registry
