"""
Binds a ToolServer to the MCP SDK's low-level Server.

The SDK owns framing (JSON-RPC over stdio or streamable HTTP); this module only
maps ListTools / CallTool onto the catalog and the dispatcher.
"""
from __future__ import annotations

import logging

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from .errors import MethodNotFoundError
from .server import ToolServer

logger = logging.getLogger("mcp_toolservers.transport")


def build_mcp_server(tool_server: ToolServer) -> Server:
    server: Server = Server(tool_server.name, version=tool_server.version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tool_server.catalog.to_mcp_tools()

    async def call_tool(req: types.CallToolRequest) -> types.ServerResult:
        envelope = await tool_server.call_tool(req.params.name, req.params.arguments or {})
        if (
            isinstance(envelope.error, MethodNotFoundError)
            and tool_server.unknown_tool_policy == "fault"
        ):
            raise McpError(
                types.ErrorData(code=types.METHOD_NOT_FOUND, message=envelope.error.message)
            )
        return types.ServerResult(envelope.to_mcp_result())

    # Registered directly so the envelope (including isError) reaches the
    # client unchanged instead of going through the SDK's output conversion.
    server.request_handlers[types.CallToolRequest] = call_tool
    return server


async def run_stdio(tool_server: ToolServer) -> None:
    server = build_mcp_server(tool_server)
    logger.info(
        f"{tool_server.name} MCP server running on stdio ({len(tool_server.catalog)} tools)",
        extra={"server": tool_server.name},
    )
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await tool_server.close()
