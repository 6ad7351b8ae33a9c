#!/usr/bin/env python3
"""
Map View Demo -- chuk-mcp-cliffs

Drives the terrain map view on the headless engine with a synthetic
mountain, so it runs without network access. Shows the switch from the
red hillshade layers to slope polygons at zoom 10, the debounced
recomputation and the min-slope slider.

Usage:
    python examples/map_view_demo.py
"""

import asyncio
import math

from chuk_mcp_cliffs.core.map_engine import HeadlessMapEngine, ProtocolRegistry
from chuk_mcp_cliffs.core.map_view import TerrainMapView

PEAK = (10.5, 46.5)


class Mountain:
    """A 3000 m cone with a sheer north face."""

    def query_terrain_elevation(self, lng: float, lat: float) -> float:
        dx = (lng - PEAK[0]) * 111320 * math.cos(math.radians(lat))
        dy = (lat - PEAK[1]) * 111320
        height = max(0.0, 3000.0 - math.hypot(dx, dy) * 0.4)
        if dy > 0:
            height -= min(dy, 400.0) * 2.0
        return 500.0 + height


def engine_factory(**options) -> HeadlessMapEngine:
    return HeadlessMapEngine(terrain=Mountain(), **options)


def describe(view: TerrainMapView) -> None:
    engine = view.engine
    visible = [layer for layer in engine.layers if engine.is_visible(layer)]
    print(f"  {view.mode_label}")
    print(f"  visible layers: {', '.join(visible)}")
    print(f"  steep cells: {view.state.last_feature_count}")


async def main() -> None:
    view = TerrainMapView(engine_factory, ProtocolRegistry())
    view.mount()
    view.engine.load()
    await asyncio.sleep(1.0)

    print("=" * 60)
    print("Terrain map view")
    print("=" * 60)

    print("\nInitial camera:")
    describe(view)

    print("\nZoom 12 over the peak:")
    view.engine.jump_to(center=list(PEAK), zoom=12)
    await asyncio.sleep(0.5)
    describe(view)

    print("\nA burst of pans settles into a single recomputation:")
    for step in range(5):
        view.engine.jump_to(center=[PEAK[0] + step * 0.001, PEAK[1]])
    await asyncio.sleep(0.5)
    describe(view)

    print("\nSlider to 35°:")
    view.set_min_slope_angle(35)
    await asyncio.sleep(0.5)
    describe(view)

    view.on_pointer_move(PEAK[0], PEAK[1] + 0.002)
    print(f"\nPointer: {view.elevation_label} at {view.coordinates_label}")

    view.unmount()


if __name__ == "__main__":
    asyncio.run(main())
