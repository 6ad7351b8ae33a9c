"""Byte-range COG proxy."""

from .app import create_app, create_upstream_client

__all__ = ["create_app", "create_upstream_client"]
