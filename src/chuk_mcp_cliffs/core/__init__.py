"""Core terrain, slope, cliff and map view logic."""
