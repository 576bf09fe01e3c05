"""
Fetch server: SSRF protection, redirect handling and body handling.

Host checks are exercised with IP literals only so no DNS lookups happen.
"""
from __future__ import annotations

import json

import httpx
import pytest

from mcp_toolservers.errors import InvalidParamsError, UpstreamError
from mcp_toolservers.servers.fetch import (
    MAX_BODY_BYTES,
    FetchServer,
    _is_blocked_host,
    _validate_url,
    extract_text,
)

from conftest import RecordingTransport, json_response

PUBLIC = "http://93.184.216.34"


class TestBlockedHosts:
    @pytest.mark.parametrize(
        "host",
        ["localhost", "127.0.0.1", "10.0.0.1", "192.168.1.1", "172.16.0.5", "169.254.169.254", "::1", "0.0.0.0"],
    )
    def test_private_and_local_hosts_blocked(self, host):
        error = _is_blocked_host(host, 80)
        assert error is not None
        assert "blocked" in error

    def test_public_ip_allowed(self):
        assert _is_blocked_host("93.184.216.34", 443) is None

    def test_only_http_and_https(self):
        assert _validate_url("file:///etc/passwd") == "only http/https allowed"
        assert _validate_url("ftp://93.184.216.34/") == "only http/https allowed"

    def test_host_check_can_be_skipped(self):
        assert _validate_url("http://127.0.0.1/", check_host=False) is None


def _server(make_settings, handler, allow_private=False):
    env = {"FETCH_ALLOW_PRIVATE_NETWORKS": "1"} if allow_private else {}
    transport = RecordingTransport(handler)
    return FetchServer(make_settings(env), transport=transport), transport


@pytest.mark.asyncio
async def test_fetch_returns_body(make_settings):
    server, transport = _server(make_settings, lambda request: httpx.Response(200, text="plain body"))
    async with server:
        envelope = await server.call_tool("fetch", {"url": f"{PUBLIC}/data.txt"})
    assert envelope.text() == "plain body"
    assert transport.last.method == "GET"


@pytest.mark.asyncio
async def test_blocked_url_makes_no_request(make_settings):
    server, transport = _server(make_settings, lambda request: httpx.Response(200, text="secret"))
    async with server:
        envelope = await server.call_tool("fetch", {"url": "http://127.0.0.1:8080/admin"})
    assert isinstance(envelope.error, InvalidParamsError)
    assert "Blocked URL" in envelope.text()
    assert transport.requests == []


@pytest.mark.asyncio
async def test_redirect_to_private_ip_blocked(make_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"location": "http://10.0.0.1/internal"})

    server, transport = _server(make_settings, handler)
    async with server:
        envelope = await server.call_tool("fetch", {"url": f"{PUBLIC}/start"})
    assert isinstance(envelope.error, InvalidParamsError)
    assert "10.0.0.1" in envelope.text()
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_relative_redirect_followed(make_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/start":
            return httpx.Response(301, headers={"location": "/final"})
        return httpx.Response(200, text="arrived")

    server, transport = _server(make_settings, handler)
    async with server:
        envelope = await server.call_tool("fetch", {"url": f"{PUBLIC}/start"})
    assert envelope.text() == "arrived"
    assert str(transport.last.url) == f"{PUBLIC}/final"


@pytest.mark.asyncio
async def test_too_many_redirects(make_settings):
    server, transport = _server(
        make_settings, lambda request: httpx.Response(302, headers={"location": "/loop"})
    )
    async with server:
        envelope = await server.call_tool("fetch", {"url": f"{PUBLIC}/loop"})
    assert isinstance(envelope.error, UpstreamError)
    assert "Too many redirects" in envelope.text()
    assert len(transport.requests) == 6


@pytest.mark.asyncio
async def test_non_2xx_is_upstream_failure(make_settings):
    server, _ = _server(make_settings, lambda request: httpx.Response(404, text="Not Found"))
    async with server:
        envelope = await server.call_tool("fetch", {"url": f"{PUBLIC}/missing"})
    assert isinstance(envelope.error, UpstreamError)
    assert envelope.error.status_code == 404
    assert "Not Found" in envelope.text()


@pytest.mark.asyncio
async def test_error_body_kept_in_full(make_settings):
    body = "e" * 5000
    server, _ = _server(make_settings, lambda request: httpx.Response(500, text=body))
    async with server:
        envelope = await server.call_tool("fetch", {"url": f"{PUBLIC}/boom"})
    assert envelope.error.status_code == 500
    assert envelope.error.payload == body
    assert len(envelope.error.payload) == 5000


@pytest.mark.asyncio
async def test_body_is_capped(make_settings):
    server, _ = _server(make_settings, lambda request: httpx.Response(200, content=b"a" * (MAX_BODY_BYTES + 10)))
    async with server:
        response = await server.request(f"{PUBLIC}/big")
    assert len(response.body) == MAX_BODY_BYTES
    assert response.truncated is True


@pytest.mark.asyncio
async def test_fetch_json_posts_body(make_settings):
    server, transport = _server(
        make_settings, lambda request: json_response(200, {"ok": True}), allow_private=True
    )
    async with server:
        envelope = await server.call_tool(
            "fetch_json", {"url": "http://internal.test/api", "method": "POST", "body": {"a": 1}}
        )
    assert json.loads(envelope.text()) == {"ok": True}
    assert transport.last.headers["Content-Type"] == "application/json"
    assert transport.last_json() == {"a": 1}


@pytest.mark.asyncio
async def test_fetch_json_invalid_body(make_settings):
    server, _ = _server(make_settings, lambda request: httpx.Response(200, text="<html>"), allow_private=True)
    async with server:
        envelope = await server.call_tool("fetch_json", {"url": "http://internal.test/api"})
    assert isinstance(envelope.error, UpstreamError)
    assert "Error parsing JSON response" in envelope.text()


@pytest.mark.asyncio
async def test_fetch_json_invalid_body_kept_in_full(make_settings):
    body = "<html>" + "x" * 4000
    server, _ = _server(make_settings, lambda request: httpx.Response(200, text=body), allow_private=True)
    async with server:
        envelope = await server.call_tool("fetch_json", {"url": "http://internal.test/api"})
    assert envelope.error.payload == body


@pytest.mark.asyncio
async def test_fetch_html_extracts_text(make_settings):
    html = (
        "<html><head><title>Widgets</title><style>p{}</style></head>"
        "<body><h1>Hello</h1><script>var x=1;</script><p>World</p></body></html>"
    )
    server, _ = _server(
        make_settings,
        lambda request: httpx.Response(200, text=html, headers={"content-type": "text/html"}),
        allow_private=True,
    )
    async with server:
        raw = await server.call_tool("fetch_html", {"url": "http://internal.test/"})
        extracted = await server.call_tool("fetch_html", {"url": "http://internal.test/", "extract_text": True})

    assert raw.text() == html
    data = json.loads(extracted.text())
    assert data["title"] == "Widgets"
    assert "Hello" in data["text"] and "World" in data["text"]
    assert "var x" not in data["text"]


def test_extract_text_skips_scripts():
    title, text = extract_text("<title>T</title><div>a</div><script>b</script><noscript>c</noscript>")
    assert title == "T"
    assert text == "a"
