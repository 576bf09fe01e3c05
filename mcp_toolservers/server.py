"""
ToolServer - base class every concrete server derives from.

A server owns one catalog, one handler registry, one dispatcher and (for
servers that talk to a REST API) one UpstreamClient. Tools are registered in
`register_tools()` during construction; afterwards catalog and registry are
sealed and only read.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .catalog import CapabilityCatalog, ToolDescriptor
from .config import ServerSettings
from .dispatcher import Dispatcher, InvocationRequest
from .envelope import ResponseEnvelope
from .errors import UnauthorizedError
from .http_client import UpstreamClient
from .observability import InMemoryMetrics
from .registry import HandlerRegistry, ToolHandler
from .validation import SchemaValidator


class ToolServer:
    name = "tool-server"
    version = "0.1.0"
    # Label used in upstream error messages ("GitHub API error (404): ...")
    service = ""
    base_url = ""

    def __init__(
        self,
        settings: Optional[ServerSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or ServerSettings()
        self.logger = logging.getLogger(f"mcp_toolservers.servers.{self.name}")
        self.catalog = CapabilityCatalog()
        self.registry = HandlerRegistry()
        self.metrics = InMemoryMetrics()
        self.http: Optional[UpstreamClient] = self.create_http_client(transport)
        self._closed = False

        self.register_tools()
        self.catalog.seal()
        self.registry.seal()

        self.dispatcher = Dispatcher(
            self.catalog,
            self.registry,
            validator=SchemaValidator(),
            metrics=self.metrics,
            logger=logging.getLogger("mcp_toolservers.dispatcher"),
            server_name=self.name,
            service=self.service,
        )

    # -- construction hooks ---------------------------------------------

    def default_headers(self) -> Dict[str, str]:
        return {"User-Agent": f"mcp-toolservers-{self.name}/{self.version}"}

    def create_http_client(self, transport: Optional[httpx.AsyncBaseTransport]) -> Optional[UpstreamClient]:
        if not self.base_url:
            return None
        return UpstreamClient(
            self.base_url,
            service=self.service or self.name,
            headers=self.default_headers(),
            timeout=self.settings.http_timeout,
            connect_timeout=self.settings.connect_timeout,
            transport=transport,
        )

    def register_tools(self) -> None:
        raise NotImplementedError

    def add_tool(
        self,
        name: str,
        description: str,
        input_schema: Mapping[str, Any],
        handler: ToolHandler,
    ) -> ToolDescriptor:
        descriptor = ToolDescriptor.create(name, description, input_schema)
        self.catalog.add(descriptor)
        self.registry.register(name, handler)
        return descriptor

    # -- protocol surface -------------------------------------------------

    @property
    def unknown_tool_policy(self) -> str:
        return self.settings.unknown_tool_policy

    def list_tools(self) -> List[ToolDescriptor]:
        return self.catalog.list_tools()

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ResponseEnvelope:
        return await self.dispatcher.dispatch(InvocationRequest.create(name, arguments))

    # -- helpers for handlers ---------------------------------------------

    @property
    def client(self) -> UpstreamClient:
        if self.http is None:
            raise RuntimeError(f"Server {self.name} has no upstream HTTP client")
        return self.http

    def require_credential(self, value: str, env_name: str) -> str:
        if not value:
            raise UnauthorizedError(f"{env_name} is not configured for {self.name}")
        return value

    # -- lifecycle ---------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.http is not None:
            await self.http.aclose()
        self.logger.info("Server closed", extra={"server": self.name})

    async def __aenter__(self) -> "ToolServer":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
