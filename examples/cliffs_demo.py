#!/usr/bin/env python3
"""
Cliff Analysis -- chuk-mcp-cliffs Demo

Runs the raster-backed pipeline over the Lauterbrunnen valley walls:
    cliff_point_elevation -> cliff_analyze_area -> cliff_detect ->
    cliff_hillshade

The slope GeoJSON, cliff points and the red hillshade PNG are read back
from the artifact store and written to examples/output/.

Usage:
    python examples/cliffs_demo.py

Requirements:
    Network access to the Copernicus DEM S3 bucket
"""

import asyncio
import json
from pathlib import Path

from tool_runner import ToolRunner

BBOX = [7.88, 46.56, 7.94, 46.62]  # Lauterbrunnen, CH
POINT = (7.9092, 46.5935)  # Staubbach falls
OUTPUT_DIR = Path(__file__).parent / "output"


async def main() -> None:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    runner = ToolRunner()

    print("=" * 60)
    print("Lauterbrunnen -- Cliff Analysis")
    print("=" * 60)

    print("\nStep 1: Point elevation")
    point = await runner.run("cliff_point_elevation", lon=POINT[0], lat=POINT[1])
    if "error" in point:
        print(f"  Error: {point['error']}")
        return
    print(f"  {point['message']} ({point['tile']})")

    print("\nStep 2: Slope overlay")
    slopes = await runner.run("cliff_analyze_area", bbox=BBOX, grid_size=60, min_slope=15)
    print(f"  {slopes['message']}")
    print(f"  Mean slope {slopes['mean_slope']:.1f}°, cell {slopes['cell_size_deg']:.5f}°")
    geojson = await runner.retrieve(slopes["artifact_ref"])
    (OUTPUT_DIR / "lauterbrunnen_slope.geojson").write_bytes(geojson)
    if slopes["preview_ref"]:
        preview = await runner.retrieve(slopes["preview_ref"])
        (OUTPUT_DIR / "lauterbrunnen_slope.png").write_bytes(preview)

    print("\nStep 3: Cliff detection (3 m over 20 m)")
    cliffs = await runner.run("cliff_detect", bbox=BBOX, max_features=2000)
    print(f"  {cliffs['message']}")
    print(f"  Coverage {cliffs['cliff_percentage']:.2f}% at {cliffs['resolution_m']:.1f} m/px")
    points = json.loads(await runner.retrieve(cliffs["artifact_ref"]))
    print(f"  Stored {len(points['features'])} points (truncated: {cliffs['truncated']})")
    (OUTPUT_DIR / "lauterbrunnen_cliffs.geojson").write_text(json.dumps(points))

    print("\nStep 4: Red cliff hillshade")
    shade = await runner.run("cliff_hillshade", bbox=BBOX)
    print(f"  {shade['message']}")
    png = await runner.retrieve(shade["artifact_ref"])
    out = OUTPUT_DIR / "lauterbrunnen_cliffs.png"
    out.write_bytes(png)

    print(f"\nOutputs written to {OUTPUT_DIR}")


if __name__ == "__main__":
    asyncio.run(main())
