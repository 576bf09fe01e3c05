"""Brave Search, Vercel and Whimsical servers against a stubbed upstream."""
from __future__ import annotations

import json
import sys

import pytest

from mcp_toolservers.errors import ConfigurationError, InvalidParamsError, UnauthorizedError, UpstreamError
from mcp_toolservers.servers import SERVER_FACTORIES, create_server
from mcp_toolservers.servers.brave_search import BraveSearchServer
from mcp_toolservers.servers.vercel import VercelServer
from mcp_toolservers.servers.whimsical import WhimsicalServer

from conftest import RecordingTransport, json_response


class TestBraveSearch:
    @pytest.mark.asyncio
    async def test_search_without_query(self, make_settings):
        transport = RecordingTransport(lambda request: json_response(200, {}))
        server = BraveSearchServer(make_settings({"BRAVE_SEARCH_API_KEY": "k"}), transport=transport)
        async with server:
            envelope = await server.call_tool("search", {})
        assert envelope.is_error is True
        assert isinstance(envelope.error, InvalidParamsError)
        assert "Query is required" in envelope.text()
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_search_sends_key_and_default_count(self, make_settings):
        transport = RecordingTransport(lambda request: json_response(200, {"web": {"results": []}}))
        server = BraveSearchServer(make_settings({"BRAVE_SEARCH_API_KEY": "secret"}), transport=transport)
        async with server:
            envelope = await server.call_tool("search", {"query": "model context protocol"})
        assert envelope.is_error is False
        request = transport.last
        assert request.url.path == "/res/v1/web/search"
        assert request.url.params["q"] == "model context protocol"
        assert request.url.params["count"] == "10"
        assert request.headers["X-Subscription-Token"] == "secret"

    @pytest.mark.asyncio
    async def test_count_is_capped(self, make_settings):
        transport = RecordingTransport(lambda request: json_response(200, {}))
        server = BraveSearchServer(make_settings({"BRAVE_SEARCH_API_KEY": "k"}), transport=transport)
        async with server:
            await server.call_tool("search", {"query": "x", "count": 50})
        assert transport.last.url.params["count"] == "20"

    @pytest.mark.asyncio
    async def test_missing_key_is_unauthorized(self, make_settings):
        transport = RecordingTransport(lambda request: json_response(200, {}))
        server = BraveSearchServer(make_settings(), transport=transport)
        async with server:
            envelope = await server.call_tool("get_suggestions", {"query": "mc"})
        assert isinstance(envelope.error, UnauthorizedError)
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_upstream_error_message(self, make_settings):
        transport = RecordingTransport(
            lambda request: json_response(429, {"error": {"detail": "Rate limit exceeded"}})
        )
        server = BraveSearchServer(make_settings({"BRAVE_SEARCH_API_KEY": "k"}), transport=transport)
        async with server:
            envelope = await server.call_tool("search", {"query": "x"})
        assert isinstance(envelope.error, UpstreamError)
        assert envelope.text().startswith("Brave Search API error (429): Rate limit exceeded")


class TestVercel:
    @pytest.mark.asyncio
    async def test_list_projects(self, make_settings):
        transport = RecordingTransport(lambda request: json_response(200, {"projects": [{"name": "site"}]}))
        server = VercelServer(make_settings({"VERCEL_API_TOKEN": "vt"}), transport=transport)
        async with server:
            envelope = await server.call_tool("list_projects", {"team_id": "team_1"})
        assert json.loads(envelope.text()) == {"projects": [{"name": "site"}]}
        assert transport.last.url.path == "/v9/projects"
        assert transport.last.url.params["teamId"] == "team_1"
        assert transport.last.headers["Authorization"] == "Bearer vt"

    @pytest.mark.asyncio
    async def test_missing_token(self, make_settings):
        server = VercelServer(make_settings())
        async with server:
            envelope = await server.call_tool("list_projects")
        assert envelope.error_kind == "unauthorized"


class TestWhimsical:
    def test_missing_key_fails_construction(self, make_settings):
        with pytest.raises(ConfigurationError, match="WHIMSICAL_API_KEY"):
            WhimsicalServer(make_settings())

    @pytest.mark.asyncio
    async def test_create_diagram_payload(self, make_settings):
        transport = RecordingTransport(lambda request: json_response(201, {"id": "d1"}))
        server = WhimsicalServer(make_settings({"WHIMSICAL_API_KEY": "wk"}), transport=transport)
        async with server:
            envelope = await server.call_tool(
                "create_whimsical_diagram",
                {"type": "flowchart", "initial_nodes": [{"name": "Start"}]},
            )
        assert envelope.is_error is False
        assert transport.last.url.path == "/api/v1/diagrams"
        assert transport.last_json() == {"type": "flowchart", "initialNodes": [{"name": "Start"}]}


def test_create_server_by_name(make_settings):
    server = create_server("brave-search", make_settings())
    assert isinstance(server, BraveSearchServer)


def test_create_unknown_server(make_settings):
    with pytest.raises(ConfigurationError, match="Unknown server"):
        create_server("gitlab", make_settings())


@pytest.mark.parametrize("name", sorted(SERVER_FACTORIES))
def test_server_modules_are_documented(name):
    module = sys.modules[SERVER_FACTORIES[name].__module__]
    assert module.__doc__ and module.__doc__.strip()
