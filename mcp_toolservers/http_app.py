"""
FastAPI app serving one or more tool servers over streamable HTTP.

- Bearer token auth middleware (MCP_SERVER_TOKEN, mandatory in production)
- One MCP endpoint per server under /mcp/<server-name>/
- Healthcheck under /health
- Discovery under /mcp/discovery
- Prometheus metrics under /metrics
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.middleware.base import BaseHTTPMiddleware

from .config import ServerSettings
from .env_utils import is_production_env
from .observability import render_prometheus
from .server import ToolServer
from .transport import build_mcp_server

logger = logging.getLogger("mcp_toolservers.http_app")

PUBLIC_PATHS = ("/health", "/metrics", "/mcp/discovery")


class BearerTokenAuthMiddleware(BaseHTTPMiddleware):
    """Bearer token authentication for the /mcp endpoints."""

    def __init__(
        self,
        app: ASGIApp,
        expected_token: str | None = None,
        production: bool = False,
    ):
        super().__init__(app)
        self.expected_token = (expected_token or "").strip()
        self.production = production

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in PUBLIC_PATHS or not path.startswith("/mcp"):
            return await call_next(request)

        if self.production and not self.expected_token:
            logger.error("[Auth] MCP_SERVER_TOKEN not set in production")
            return JSONResponse(
                {"error": "server_error", "message": "MCP_SERVER_TOKEN not configured"},
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        if self.expected_token:
            auth_header = request.headers.get("authorization", "")
            if not auth_header.startswith("Bearer "):
                logger.warning(f"[Auth] Missing or invalid Authorization header for {request.method} {path}")
                return JSONResponse(
                    {"error": "unauthorized", "message": "Missing or invalid Authorization header"},
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    headers={"WWW-Authenticate": "Bearer"},
                )
            token = auth_header[len("Bearer "):]
            if not hmac.compare_digest(token, self.expected_token):
                logger.warning(f"[Auth] Invalid token for {request.method} {path}")
                return JSONResponse(
                    {"error": "unauthorized", "message": "Invalid token"},
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    headers={"WWW-Authenticate": "Bearer"},
                )

        return await call_next(request)


def compute_tools_hash(tool_names: Sequence[str]) -> str:
    """SHA-256 over the sorted tool names joined with newlines."""
    content = "\n".join(sorted(tool_names))
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _mcp_endpoint(manager: StreamableHTTPSessionManager, server_name: str):
    async def handle(scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await manager.handle_request(scope, receive, send)
        except RuntimeError:
            # Session manager task group not running (app lifespan not entered)
            logger.error(f"[Mount] Session manager for {server_name} not running")
            resp = JSONResponse(
                {"error": "MCP session manager not initialized", "server": server_name},
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
            await resp(scope, receive, send)

    return handle


def create_app(
    servers: Sequence[ToolServer],
    settings: Optional[ServerSettings] = None,
) -> FastAPI:
    """Build the HTTP app; the servers are closed when the app shuts down."""
    settings = settings or ServerSettings()
    by_name: Dict[str, ToolServer] = {s.name: s for s in servers}
    managers: Dict[str, StreamableHTTPSessionManager] = {
        name: StreamableHTTPSessionManager(
            app=build_mcp_server(tool_server),
            json_response=False,
            stateless=True,
        )
        for name, tool_server in by_name.items()
    }

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for manager in managers.values():
                await stack.enter_async_context(manager.run())
            logger.info(f"[Startup] Serving {', '.join(by_name) or 'no servers'}")
            try:
                yield
            finally:
                for tool_server in by_name.values():
                    await tool_server.close()

    app = FastAPI(
        title="MCP Tool Servers",
        description="MCP tool servers for GitHub, Brave Search, Fetch, Filesystem, Vercel and Whimsical",
        version="0.2.0",
        lifespan=lifespan,
    )
    app.state.tool_servers = by_name

    app.add_middleware(
        BearerTokenAuthMiddleware,
        expected_token=settings.get_env("MCP_SERVER_TOKEN"),
        production=is_production_env(settings.env),
    )

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True, "status": "healthy", "servers": sorted(by_name)}

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus-compatible metrics endpoint."""
        content = render_prometheus(
            (name, tool_server.metrics.snapshot()) for name, tool_server in sorted(by_name.items())
        )
        return Response(content=content, media_type="text/plain; version=0.0.4")

    @app.get("/mcp/discovery")
    async def discovery() -> dict[str, Any]:
        """Lists the tools of every mounted server."""
        all_names: List[str] = []
        entries = []
        for name, tool_server in sorted(by_name.items()):
            tool_names = tool_server.catalog.names()
            all_names.extend(f"{name}.{tool}" for tool in tool_names)
            entries.append(
                {
                    "name": name,
                    "version": tool_server.version,
                    "endpoint": f"/mcp/{name}/",
                    "tools": [{"name": tool} for tool in tool_names],
                    "tool_count": len(tool_names),
                    "tools_hash": compute_tools_hash(tool_names),
                }
            )

        tools_hash = compute_tools_hash(all_names)
        response: dict[str, Any] = {
            "version": "1.0",
            "transport": "streamable-http",
            "servers": entries,
            "tool_count": len(all_names),
            "tools_hash": tools_hash,
        }

        pinned_hash = settings.get_env("PINNED_TOOLS_HASH")
        if pinned_hash:
            response["pinned_hash"] = pinned_hash
            response["hash_mismatch"] = tools_hash != pinned_hash
            if response["hash_mismatch"]:
                logger.warning(
                    f"Tools hash mismatch: expected {pinned_hash}, got {tools_hash}. "
                    f"Tool set may have changed unexpectedly."
                )
        return response

    for name, manager in managers.items():
        app.mount(f"/mcp/{name}", _mcp_endpoint(manager, name))
        logger.info(f"[Mount] {name} mounted under /mcp/{name}/")

    return app
