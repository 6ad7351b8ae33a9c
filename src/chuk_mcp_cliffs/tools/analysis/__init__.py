"""Analysis tools: slope grids, point elevation, cliffs, hillshade."""

from .api import register_analysis_tools

__all__ = ["register_analysis_tools"]
