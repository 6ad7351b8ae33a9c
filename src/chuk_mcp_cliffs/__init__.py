"""
chuk-mcp-cliffs: Copernicus DEM Terrain Viewer, Cliff Highlighting & COG Proxy

Derives Copernicus GLO-30 tile names, proxies byte-range COG reads for
browsers, samples terrain on a grid to compute slopes, flags cliffs, and
renders the results as GeoJSON overlays and red-tinted hillshade stored in
chuk-artifacts. A headless map view reproduces the zoom-dependent
highlighting of the interactive viewer.
"""
