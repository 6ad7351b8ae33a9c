#!/usr/bin/env python3
"""
Capabilities Demo -- chuk-mcp-cliffs

Quick-start script that needs no network access. Lists the sample
locations, resolves Copernicus tiles, runs the slope pipeline on a
synthetic elevation grid and shows the dual output mode (JSON vs text).

Usage:
    python examples/capabilities_demo.py
"""

import asyncio
import math

from tool_runner import ToolRunner

# A 9x9 grid over a 0.01° square near Lauterbrunnen with a wall in the middle
WEST, SOUTH, SIZE = 7.90, 46.59, 0.01
ROWS = COLS = 9


def synthetic_elevations() -> tuple[list[list[float]], list[float], list[float]]:
    lngs = [WEST + SIZE * i / (COLS - 1) for i in range(COLS)]
    lats = [SOUTH + SIZE * j / (ROWS - 1) for j in range(ROWS)]
    elevations = []
    for lat in lats:
        row = []
        for lng in lngs:
            # Gentle valley floor rising into a 300 m wall along the centre line
            wall = 300.0 / (1 + math.exp(-(lng - (WEST + SIZE / 2)) * 4000))
            row.append(800.0 + (lat - SOUTH) * 2000 + wall)
        elevations.append(row)
    return elevations, lngs, lats


async def main() -> None:
    runner = ToolRunner()

    print("=" * 60)
    print("chuk-mcp-cliffs -- Server Capabilities")
    print("=" * 60)

    print(f"\nRegistered tools ({len(runner.tool_names)}):")
    for name in sorted(runner.tool_names):
        print(f"  - {name}")

    locations = await runner.run("cliff_list_locations")
    print(f"\nSample locations ({len(locations['locations'])}), default {locations['default']}:")
    for loc in locations["locations"]:
        print(f"  {loc['id']:12s} {loc['name']:20s} zoom {loc['zoom']:2d}  {loc['tile']}")

    caps = await runner.run("cliff_capabilities")
    print("\nCapabilities:")
    print(f"  Analysis tools: {', '.join(caps['analysis_tools'])}")
    print(f"  Slope polygons from zoom {caps['slope_zoom_threshold']}")
    print(f"  Cliff angle: {caps['cliff_min_angle']}°")

    # ---------------------------------------------------------------
    # Tile naming
    # ---------------------------------------------------------------
    print("\n" + "-" * 60)
    print("Tile naming")
    print("-" * 60)

    tile = await runner.run("cliff_tile_info", lat=46.5, lon=10.5)
    print(f"\n  {tile['name']}")
    print(f"  URL:     {tile['url']}")
    print(f"  Proxy:   {tile['proxy_path']}")
    print(f"  Terrain: {tile['cog_url']}")

    print("\ncliff_tiles_for_bbox (output_mode='text'):")
    print(await runner.run_text("cliff_tiles_for_bbox", bbox=[-1.5, 42.2, 1.5, 43.0]))

    # ---------------------------------------------------------------
    # Slope pipeline on synthetic samples
    # ---------------------------------------------------------------
    print("\n" + "-" * 60)
    print("Slope grid on synthetic samples")
    print("-" * 60)

    elevations, lngs, lats = synthetic_elevations()
    for min_slope in (5, 30):
        result = await runner.run(
            "cliff_slope_grid", elevations=elevations, lngs=lngs, lats=lats, min_slope=min_slope
        )
        print(f"\n  min_slope {min_slope}°: {result['message']}")
        print(f"  steepest cell: {result['max_slope']:.1f}°")

    print("\ncliff_slope_grid (output_mode='text'):")
    print(
        await runner.run_text(
            "cliff_slope_grid", elevations=elevations, lngs=lngs, lats=lats, min_slope=30
        )
    )

    # Missing samples are simply skipped
    elevations[4][4] = None
    holed = await runner.run("cliff_slope_grid", elevations=elevations, lngs=lngs, lats=lats)
    print(f"\n  With one void: {holed['cell_count']} cells (of {(ROWS - 1) * (COLS - 1)})")


if __name__ == "__main__":
    asyncio.run(main())
