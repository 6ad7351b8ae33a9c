"""Tile tools: Copernicus tile naming and coverage."""

from .api import register_tile_tools

__all__ = ["register_tile_tools"]
