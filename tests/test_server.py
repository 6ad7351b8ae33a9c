"""Tests for server.py and async_server.py."""

import os
import sys
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def clean_server_import():
    """Drop cached server modules so each test re-imports with fresh patches."""
    prefixes = ("chuk_mcp_cliffs.server", "chuk_mcp_cliffs.async_server")
    saved = {k: sys.modules.pop(k) for k in list(sys.modules) if k.startswith(prefixes)}
    yield
    for k in list(sys.modules):
        if k.startswith(prefixes):
            sys.modules.pop(k, None)
    sys.modules.update(saved)


@pytest.fixture
def patched_store():
    """Patch the artifact store classes used by _init_artifact_store."""
    store_cls = MagicMock(name="ArtifactStore")
    set_global = MagicMock(name="set_global_artifact_store")
    with (
        patch("chuk_artifacts.ArtifactStore", store_cls),
        patch("chuk_mcp_server.set_global_artifact_store", set_global),
    ):
        yield store_cls, set_global


def _run_main(argv, env=None, isatty=True):
    """Import server, swap in a mock mcp and run main() with ``argv``."""
    from chuk_mcp_cliffs import server

    mock_mcp = MagicMock(name="mcp")
    server.mcp = mock_mcp

    with (
        patch.dict(os.environ, env or {}, clear=True),
        patch("sys.argv", ["server", *argv]),
        patch("sys.stdin") as stdin,
        patch.object(server, "run_proxy") as run_proxy,
    ):
        stdin.isatty.return_value = isatty
        server.main()

    return mock_mcp, run_proxy


# =====================================================================
# _init_artifact_store
# =====================================================================


class TestInitArtifactStore:
    def test_default_memory(self, clean_server_import, patched_store):
        store_cls, set_global = patched_store
        with patch.dict(os.environ, {}, clear=True):
            from chuk_mcp_cliffs.server import _init_artifact_store

            assert _init_artifact_store() is True

        store_cls.assert_called_once_with(storage_provider="memory", session_provider="memory")
        set_global.assert_called_once_with(store_cls.return_value)

    def test_s3_with_credentials(self, clean_server_import, patched_store):
        store_cls, _ = patched_store
        env = {
            "CHUK_ARTIFACTS_PROVIDER": "s3",
            "BUCKET_NAME": "cliff-bucket",
            "AWS_ACCESS_KEY_ID": "AKID",
            "AWS_SECRET_ACCESS_KEY": "SECRET",
            "REDIS_URL": "redis://localhost:6379",
        }
        with patch.dict(os.environ, env, clear=True):
            from chuk_mcp_cliffs.server import _init_artifact_store

            assert _init_artifact_store() is True

        store_cls.assert_called_once_with(
            storage_provider="s3", session_provider="redis", bucket="cliff-bucket"
        )

    def test_s3_missing_credentials(self, clean_server_import, patched_store):
        store_cls, _ = patched_store
        env = {"CHUK_ARTIFACTS_PROVIDER": "s3", "BUCKET_NAME": "cliff-bucket"}
        with patch.dict(os.environ, env, clear=True):
            from chuk_mcp_cliffs.server import _init_artifact_store

            assert _init_artifact_store() is False

        store_cls.assert_not_called()

    def test_filesystem_creates_directory(self, clean_server_import, patched_store, tmp_path):
        store_cls, _ = patched_store
        path = tmp_path / "artifacts" / "nested"
        env = {"CHUK_ARTIFACTS_PROVIDER": "filesystem", "CHUK_ARTIFACTS_PATH": str(path)}
        with patch.dict(os.environ, env, clear=True):
            from chuk_mcp_cliffs.server import _init_artifact_store

            assert _init_artifact_store() is True

        assert path.is_dir()
        store_cls.assert_called_once_with(
            storage_provider="filesystem", session_provider="memory", bucket=str(path)
        )

    def test_filesystem_without_path_falls_back(self, clean_server_import, patched_store):
        store_cls, _ = patched_store
        with patch.dict(os.environ, {"CHUK_ARTIFACTS_PROVIDER": "filesystem"}, clear=True):
            from chuk_mcp_cliffs.server import _init_artifact_store

            assert _init_artifact_store() is True

        assert store_cls.call_args.kwargs["storage_provider"] == "memory"

    def test_constructor_error(self, clean_server_import, patched_store):
        store_cls, set_global = patched_store
        store_cls.side_effect = RuntimeError("connection refused")
        with patch.dict(os.environ, {}, clear=True):
            from chuk_mcp_cliffs.server import _init_artifact_store

            assert _init_artifact_store() is False

        set_global.assert_not_called()


# =====================================================================
# main()
# =====================================================================


class TestMain:
    def test_stdio(self, clean_server_import, patched_store):
        mcp, run_proxy = _run_main(["stdio"])
        mcp.run.assert_called_once_with(stdio=True)
        run_proxy.assert_not_called()

    def test_http_custom(self, clean_server_import, patched_store):
        mcp, _ = _run_main(["http", "--host", "0.0.0.0", "--port", "9000"])
        mcp.run.assert_called_once_with(host="0.0.0.0", port=9000, stdio=False)

    def test_http_defaults(self, clean_server_import, patched_store):
        mcp, _ = _run_main(["http"])
        mcp.run.assert_called_once_with(host="localhost", port=8003, stdio=False)

    def test_auto_detect_env(self, clean_server_import, patched_store):
        mcp, _ = _run_main([], env={"MCP_STDIO": "1"})
        mcp.run.assert_called_once_with(stdio=True)

    def test_auto_detect_piped_stdin(self, clean_server_import, patched_store):
        mcp, _ = _run_main([], isatty=False)
        mcp.run.assert_called_once_with(stdio=True)

    def test_auto_detect_tty(self, clean_server_import, patched_store):
        mcp, _ = _run_main([], isatty=True)
        mcp.run.assert_called_once_with(host="localhost", port=8003, stdio=False)

    def test_artifact_store_initialised(self, clean_server_import, patched_store):
        store_cls, _ = patched_store
        _run_main(["stdio"])
        store_cls.assert_called_once()


class TestMainProxy:
    def test_proxy_default_port(self, clean_server_import, patched_store):
        mcp, run_proxy = _run_main(["proxy"])
        run_proxy.assert_called_once_with("localhost", 8004)
        mcp.run.assert_not_called()

    def test_proxy_custom(self, clean_server_import, patched_store):
        _, run_proxy = _run_main(["proxy", "--host", "0.0.0.0", "--port", "9100"])
        run_proxy.assert_called_once_with("0.0.0.0", 9100)

    def test_proxy_skips_artifact_store(self, clean_server_import, patched_store):
        store_cls, _ = patched_store
        _run_main(["proxy"])
        store_cls.assert_not_called()

    def test_run_proxy_serves_app(self, clean_server_import):
        from chuk_mcp_cliffs import server

        with patch("uvicorn.run") as uvicorn_run:
            server.run_proxy("127.0.0.1", 8123)

        app = uvicorn_run.call_args.args[0]
        assert any(getattr(r, "path", "") == "/api/cog/{path:path}" for r in app.routes)
        assert uvicorn_run.call_args.kwargs == {"host": "127.0.0.1", "port": 8123}


# =====================================================================
# async_server.py
# =====================================================================


class TestAsyncServer:
    def test_mcp_instance(self):
        from chuk_mcp_server import ChukMCPServer

        from chuk_mcp_cliffs.async_server import mcp

        assert isinstance(mcp, ChukMCPServer)
        assert mcp.server_info.name == "chuk-mcp-cliffs"

    def test_manager_instance(self):
        from chuk_mcp_cliffs.async_server import manager
        from chuk_mcp_cliffs.core.cliff_manager import CliffManager

        assert isinstance(manager, CliffManager)

    def test_server_reexports_mcp(self):
        from chuk_mcp_cliffs.async_server import mcp as async_mcp
        from chuk_mcp_cliffs.server import mcp as server_mcp

        assert server_mcp is async_mcp

    def test_ten_tools(self, mock_manager):
        from chuk_mcp_cliffs.tools.analysis import register_analysis_tools
        from chuk_mcp_cliffs.tools.discovery import register_discovery_tools
        from chuk_mcp_cliffs.tools.tiles import register_tile_tools

        tools = {}
        mcp = MagicMock()

        def capture_tool(**kwargs):
            def decorator(fn):
                tools[fn.__name__] = fn
                return fn

            return decorator

        mcp.tool = capture_tool
        for register in (register_discovery_tools, register_tile_tools, register_analysis_tools):
            register(mcp, mock_manager)

        assert len(tools) == 10
        assert all(name.startswith("cliff_") for name in tools)
