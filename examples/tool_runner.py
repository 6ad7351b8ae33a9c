"""
Shared helper for running chuk-mcp-cliffs MCP tools directly from Python.

Registers every tool on a minimal stand-in for the MCP server and sets up
an in-memory artifact store, so demo scripts can call tools as plain
async functions.

Usage:
    from tool_runner import ToolRunner

    async def main():
        runner = ToolRunner()
        result = await runner.run("cliff_list_locations")
        print(result)
"""

from __future__ import annotations

import json
import os
from typing import Any

from chuk_mcp_cliffs.core.cliff_manager import CliffManager
from chuk_mcp_cliffs.tools.analysis import register_analysis_tools
from chuk_mcp_cliffs.tools.discovery import register_discovery_tools
from chuk_mcp_cliffs.tools.tiles import register_tile_tools


class _MiniMCP:
    """Captures tools registered via @mcp.tool()."""

    def __init__(self) -> None:
        self._tools: dict[str, Any] = {}

    def tool(self) -> Any:
        def decorator(fn: Any) -> Any:
            self._tools[fn.__name__] = fn
            return fn

        return decorator

    def get_tool(self, name: str) -> Any:
        return self._tools[name]


def _init_artifact_store() -> None:
    os.environ.setdefault("CHUK_ARTIFACTS_PROVIDER", "memory")

    from chuk_artifacts import ArtifactStore
    from chuk_mcp_server import set_global_artifact_store

    store = ArtifactStore(storage_provider="memory", session_provider="memory")
    set_global_artifact_store(store)


class ToolRunner:
    """
    Run chuk-mcp-cliffs tools by name.

    run() returns parsed JSON, run_text() the human-readable rendering.
    """

    def __init__(self) -> None:
        _init_artifact_store()
        self._mcp = _MiniMCP()
        self.manager = CliffManager()
        register_discovery_tools(self._mcp, self.manager)
        register_tile_tools(self._mcp, self.manager)
        register_analysis_tools(self._mcp, self.manager)

    @property
    def tool_names(self) -> list[str]:
        return list(self._mcp._tools)

    async def run(self, tool_name: str, **kwargs: Any) -> dict[str, Any]:
        """Call a tool and return parsed JSON."""
        raw = await self._mcp.get_tool(tool_name)(**kwargs)
        return json.loads(raw)

    async def run_text(self, tool_name: str, **kwargs: Any) -> str:
        return await self._mcp.get_tool(tool_name)(output_mode="text", **kwargs)

    async def retrieve(self, artifact_ref: str) -> bytes:
        """Read a stored artifact back from the store."""
        return await self.manager._get_store().retrieve(artifact_ref)
