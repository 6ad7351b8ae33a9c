"""
Byte-range proxy for Copernicus COG tiles.

Browsers cannot range-read the Copernicus bucket directly because of CORS.
``/api/cog/<key>`` forwards the request to the bucket, relays the ``Range``
header and the range-related response headers, and adds permissive CORS
headers to every response. Nothing is cached and nothing is retried.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.background import BackgroundTask

from ..constants import (
    CORS_HEADERS,
    COPERNICUS_BUCKET_URL,
    FORWARDED_HEADERS,
    PROXY_ROUTE_PREFIX,
    PROXY_TIMEOUT_S,
    ErrorMessages,
    ServerConfig,
)

logger = logging.getLogger(__name__)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=CORS_HEADERS)


def _relay_headers(upstream: httpx.Response, names: tuple[str, ...] = FORWARDED_HEADERS) -> dict:
    headers = dict(CORS_HEADERS)
    for name in names:
        value = upstream.headers.get(name)
        if value:
            headers[name] = value
    return headers


def create_upstream_client(**kwargs) -> httpx.AsyncClient:
    """HTTP client for the bucket. S3 may answer with a redirect to the serving region."""
    return httpx.AsyncClient(follow_redirects=True, timeout=PROXY_TIMEOUT_S, **kwargs)


def create_app(
    client: httpx.AsyncClient | None = None,
    upstream: str = COPERNICUS_BUCKET_URL,
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        client: Upstream HTTP client; one is created for the app's lifetime if omitted
        upstream: Bucket origin the request path is appended to

    Returns:
        FastAPI application serving GET, HEAD and OPTIONS under ``/api/cog``
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.client is None
        if owned:
            app.state.client = create_upstream_client()
        try:
            yield
        finally:
            if owned:
                await app.state.client.aclose()
                app.state.client = None

    app = FastAPI(title=f"{ServerConfig.NAME} COG proxy", lifespan=lifespan)
    app.state.client = client
    app.state.upstream = upstream.rstrip("/")

    def upstream_url(path: str) -> str:
        return f"{app.state.upstream}/{path}"

    @app.head(f"{PROXY_ROUTE_PREFIX}/{{path:path}}")
    async def head_cog(path: str, request: Request) -> Response:
        try:
            client: httpx.AsyncClient = request.app.state.client
            response = await client.head(upstream_url(path))
        except Exception as e:
            logger.error(f"COG HEAD proxy error: {e}")
            return _error(ErrorMessages.PROXY_HEAD_FAILED, 500)

        return Response(
            status_code=response.status_code,
            headers=_relay_headers(response, ("Content-Type", "Content-Length", "Accept-Ranges")),
        )

    @app.get(f"{PROXY_ROUTE_PREFIX}/{{path:path}}")
    async def get_cog(path: str, request: Request) -> Response:
        url = upstream_url(path)
        logger.info(f"COG proxy request: {url}")

        headers = {}
        range_header = request.headers.get("range")
        if range_header:
            headers["Range"] = range_header

        try:
            client: httpx.AsyncClient = request.app.state.client
            upstream_request = client.build_request("GET", url, headers=headers)
            response = await client.send(upstream_request, stream=True)
        except Exception as e:
            logger.error(f"COG proxy error: {e}")
            return _error(ErrorMessages.PROXY_FETCH_FAILED, 500)

        if not response.is_success:
            logger.error(f"S3 fetch error: {response.status_code} {response.reason_phrase}")
            await response.aclose()
            status = response.status_code
            return _error(ErrorMessages.PROXY_UPSTREAM.format(status), status)

        return StreamingResponse(
            response.aiter_raw(),
            status_code=response.status_code,
            headers=_relay_headers(response),
            background=BackgroundTask(response.aclose),
        )

    @app.options(f"{PROXY_ROUTE_PREFIX}/{{path:path}}")
    async def options_cog(path: str) -> Response:
        return Response(status_code=204, headers=CORS_HEADERS)

    return app
