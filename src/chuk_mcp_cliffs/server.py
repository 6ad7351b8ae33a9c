#!/usr/bin/env python3
"""
Cliffs MCP Server - Entry Point

This module provides the async MCP server for Copernicus terrain steepness
analysis and the byte-range COG proxy used by map clients.
Supports stdio (for Claude Desktop), HTTP (for API access) and proxy modes.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .constants import (
    DEFAULT_MCP_PORT,
    DEFAULT_PROXY_HOST,
    DEFAULT_PROXY_PORT,
    EnvVar,
    SessionProvider,
    StorageProvider,
)

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)


def _store_settings() -> dict[str, Any] | None:
    """
    Build ArtifactStore keyword arguments from the environment.

    Returns None when the configured provider cannot be used.
    """
    provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)
    redis_url = os.environ.get(EnvVar.REDIS_URL)
    settings: dict[str, Any] = {
        "storage_provider": provider,
        "session_provider": SessionProvider.REDIS if redis_url else SessionProvider.MEMORY,
    }

    if provider == StorageProvider.S3:
        bucket = os.environ.get(EnvVar.BUCKET_NAME)
        required = (EnvVar.BUCKET_NAME, EnvVar.AWS_ACCESS_KEY_ID, EnvVar.AWS_SECRET_ACCESS_KEY)
        missing = [name for name in required if not os.environ.get(name)]
        if missing:
            logger.warning(f"S3 artifact storage disabled, missing: {', '.join(missing)}")
            return None
        endpoint = os.environ.get(EnvVar.AWS_ENDPOINT_URL_S3) or "default"
        logger.info(f"S3 artifact storage: bucket {bucket}, endpoint {endpoint}")
        settings["bucket"] = bucket

    elif provider == StorageProvider.FILESYSTEM:
        artifacts_path = os.environ.get(EnvVar.ARTIFACTS_PATH)
        if not artifacts_path:
            logger.warning(f"{EnvVar.ARTIFACTS_PATH} not set, storing artifacts in memory")
            settings["storage_provider"] = StorageProvider.MEMORY
        else:
            Path(artifacts_path).mkdir(parents=True, exist_ok=True)
            logger.info(f"Filesystem artifact storage at {artifacts_path}")
            settings["bucket"] = artifacts_path

    return settings


def _init_artifact_store() -> bool:
    """
    Create the global artifact store used for GeoJSON and PNG results.

    Returns:
        True if the store was installed, False otherwise
    """
    settings = _store_settings()
    if settings is None:
        return False

    try:
        from chuk_artifacts import ArtifactStore
        from chuk_mcp_server import set_global_artifact_store

        set_global_artifact_store(ArtifactStore(**settings))
    except Exception as e:
        logger.error(f"Failed to initialize artifact store: {e}")
        return False

    logger.info(
        f"Artifact store ready ({settings['storage_provider']}, "
        f"sessions: {settings['session_provider']})"
    )
    return True


def run_proxy(host: str = DEFAULT_PROXY_HOST, port: int = DEFAULT_PROXY_PORT) -> None:
    """Serve the byte-range COG proxy with uvicorn."""
    import uvicorn

    from .proxy import create_app

    print(f"COG proxy starting on {host}:{port}", file=sys.stderr)
    uvicorn.run(create_app(), host=host, port=port)


# Import mcp instance and all registered tools from async server
from .async_server import mcp  # noqa: F401, E402


def main() -> None:
    """Main entry point for the MCP server and the COG proxy."""
    import argparse

    parser = argparse.ArgumentParser(description="Cliffs MCP Server")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["stdio", "http", "proxy"],
        default=None,
        help="Transport mode (stdio for Claude Desktop, http for API, proxy for the COG proxy)",
    )
    parser.add_argument(
        "--host", default="localhost", help="Host for HTTP and proxy modes (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"Port (default: {DEFAULT_MCP_PORT} for HTTP, {DEFAULT_PROXY_PORT} for proxy)",
    )

    args = parser.parse_args()

    if args.mode == "proxy":
        run_proxy(args.host, args.port or DEFAULT_PROXY_PORT)
        return

    # Initialize artifact store at startup, not at import time
    _init_artifact_store()
    port = args.port or DEFAULT_MCP_PORT

    if args.mode == "stdio":
        print("Cliffs MCP Server starting in STDIO mode", file=sys.stderr)
        mcp.run(stdio=True)
    elif args.mode == "http":
        print(f"Cliffs MCP Server starting in HTTP mode on {args.host}:{port}", file=sys.stderr)
        mcp.run(host=args.host, port=port, stdio=False)
    else:
        if os.environ.get(EnvVar.MCP_STDIO) or (not sys.stdin.isatty()):
            print("Cliffs MCP Server starting in STDIO mode (auto-detected)", file=sys.stderr)
            mcp.run(stdio=True)
        else:
            print(
                f"Cliffs MCP Server starting in HTTP mode on {args.host}:{port}",
                file=sys.stderr,
            )
            mcp.run(host=args.host, port=port, stdio=False)


if __name__ == "__main__":
    main()
