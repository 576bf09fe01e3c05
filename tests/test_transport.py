from __future__ import annotations

import json

import pytest
from mcp import types
from mcp.shared.exceptions import McpError

from mcp_toolservers.servers.brave_search import BraveSearchServer
from mcp_toolservers.servers.github import GitHubServer
from mcp_toolservers.transport import build_mcp_server

from conftest import RecordingTransport, json_response


def _call_request(name, arguments=None):
    return types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )


@pytest.mark.asyncio
async def test_list_tools_matches_catalog(make_settings):
    tool_server = BraveSearchServer(make_settings())
    server = build_mcp_server(tool_server)
    handler = server.request_handlers[types.ListToolsRequest]

    first = await handler(types.ListToolsRequest(method="tools/list"))
    second = await handler(types.ListToolsRequest(method="tools/list"))

    tools = first.root.tools
    assert [t.name for t in tools] == ["search", "get_suggestions"]
    assert tools[0].inputSchema == tool_server.catalog.get("search").input_schema
    assert first.model_dump_json() == second.model_dump_json()


@pytest.mark.asyncio
async def test_call_tool_success(make_settings):
    transport = RecordingTransport(lambda request: json_response(200, {"id": 42, "title": "Bug"}))
    tool_server = GitHubServer(make_settings(), transport=transport)
    server = build_mcp_server(tool_server)

    result = await server.request_handlers[types.CallToolRequest](
        _call_request("get_issue", {"owner": "acme", "repo": "widgets", "issue_number": 42})
    )

    call_result = result.root
    assert call_result.isError is False
    assert json.loads(call_result.content[0].text) == {"id": 42, "title": "Bug"}
    await tool_server.close()


@pytest.mark.asyncio
async def test_unknown_tool_envelope_policy(make_settings):
    server = build_mcp_server(BraveSearchServer(make_settings()))
    result = await server.request_handlers[types.CallToolRequest](_call_request("unknown_tool", {}))
    assert result.root.isError is True
    assert "Unknown tool: unknown_tool" in result.root.content[0].text


@pytest.mark.asyncio
async def test_unknown_tool_fault_policy(make_settings):
    server = build_mcp_server(BraveSearchServer(make_settings(unknown_tool_policy="fault")))
    with pytest.raises(McpError) as exc:
        await server.request_handlers[types.CallToolRequest](_call_request("unknown_tool"))
    assert exc.value.error.code == types.METHOD_NOT_FOUND
    assert exc.value.error.message == "Unknown tool: unknown_tool"


@pytest.mark.asyncio
async def test_fault_policy_keeps_other_errors_in_envelope(make_settings):
    server = build_mcp_server(BraveSearchServer(make_settings(unknown_tool_policy="fault")))
    result = await server.request_handlers[types.CallToolRequest](_call_request("search", {}))
    assert result.root.isError is True
    assert "Query is required" in result.root.content[0].text
