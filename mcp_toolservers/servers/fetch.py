"""
Generic URL fetching (raw text, JSON, HTML).

Outbound requests are SSRF-guarded: only http/https, and hosts resolving to
private, loopback, link-local, reserved, multicast or unspecified addresses are
refused. Redirects are followed manually so every hop is checked again.
"""
from __future__ import annotations

import asyncio
import ipaddress
import json
import socket
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlparse

import httpx

from ..config import ServerSettings
from ..env_utils import env_flag
from ..errors import InvalidParamsError, UpstreamError
from ..server import ToolServer

MAX_BODY_BYTES = 1024 * 1024
MAX_REDIRECTS = 5
DEFAULT_TIMEOUT_MS = 10000
REDIRECT_STATUSES = {301, 302, 303, 307, 308}
HTTP_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD"]


class _TextHTMLParser(HTMLParser):
    BLOCK_TAGS = {"p", "br", "div", "li", "tr", "h1", "h2", "h3", "h4", "h5", "h6"}

    def __init__(self) -> None:
        super().__init__()
        self._skip_depth = 0
        self._in_title = False
        self.title: str = ""
        self._parts: list[str] = []

    def handle_starttag(self, tag, attrs):
        t = tag.lower()
        if t in {"script", "style", "noscript"}:
            self._skip_depth += 1
        elif t == "title":
            self._in_title = True
        elif t in self.BLOCK_TAGS:
            self._parts.append("\n")

    def handle_endtag(self, tag):
        t = tag.lower()
        if t in {"script", "style", "noscript"}:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif t == "title":
            self._in_title = False
        elif t in self.BLOCK_TAGS and t != "br":
            self._parts.append("\n")

    def handle_data(self, data):
        if self._skip_depth:
            return
        s = (data or "").strip()
        if not s:
            return
        if self._in_title:
            if not self.title:
                self.title = s[:200]
            return
        self._parts.append(s)

    def text(self) -> str:
        out = "\n".join(self._parts)
        while "\n\n\n" in out:
            out = out.replace("\n\n\n", "\n\n")
        return out.strip()


def extract_text(html: str) -> tuple[str, str]:
    """Return (title, visible text) of an HTML document."""
    parser = _TextHTMLParser()
    parser.feed(html)
    parser.close()
    return parser.title, parser.text()


def _blocked_ip(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def _is_blocked_host(host: str, port: int) -> Optional[str]:
    """Reason string if `host` must not be contacted, None if it is public."""
    h = (host or "").strip().lower().strip("[]")
    if not h:
        return "missing host"
    if h == "localhost" or h.endswith(".localhost"):
        return "blocked hostname"
    try:
        literal = ipaddress.ip_address(h)
    except ValueError:
        literal = None
    if literal is not None:
        return f"blocked ip {literal}" if _blocked_ip(literal) else None

    try:
        infos = socket.getaddrinfo(h, port, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError):
        return "dns resolution failed"
    for info in infos:
        try:
            ip = ipaddress.ip_address(info[4][0])
        except ValueError:
            return "invalid ip"
        if _blocked_ip(ip):
            return f"blocked ip {ip}"
    return None


def _validate_url(url: str, *, check_host: bool = True) -> Optional[str]:
    u = urlparse(url)
    if u.scheme not in {"http", "https"}:
        return "only http/https allowed"
    if not u.hostname:
        return "missing host"
    if not check_host:
        return None
    port = u.port or (443 if u.scheme == "https" else 80)
    return _is_blocked_host(u.hostname, port)


@dataclass(frozen=True)
class FetchedResponse:
    url: str
    final_url: str
    status_code: int
    content_type: str
    body: bytes
    truncated: bool

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class FetchServer(ToolServer):
    name = "fetch"
    version = "0.2.0"
    service = "Fetch"

    def __init__(self, settings: Optional[ServerSettings] = None, *, transport=None) -> None:
        settings = settings or ServerSettings()
        self.allow_private_networks = env_flag(settings.env, "FETCH_ALLOW_PRIVATE_NETWORKS")
        self.session = httpx.AsyncClient(
            follow_redirects=False,
            timeout=httpx.Timeout(settings.http_timeout, connect=settings.connect_timeout),
            transport=transport,
        )
        super().__init__(settings, transport=transport)
        if self.allow_private_networks:
            self.logger.warning(
                "FETCH_ALLOW_PRIVATE_NETWORKS is set; SSRF host checks are disabled",
                extra={"server": self.name},
            )

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers["Accept"] = "*/*"
        return headers

    def register_tools(self) -> None:
        timeout = {
            "type": "integer",
            "description": "Request timeout in milliseconds",
            "minimum": 1,
            "default": DEFAULT_TIMEOUT_MS,
        }
        method = {
            "type": "string",
            "description": "HTTP method to use",
            "enum": HTTP_METHODS,
            "default": "GET",
        }
        headers = {"type": "object", "description": "HTTP headers to include in the request"}

        self.add_tool(
            "fetch",
            "Fetch data from a URL",
            {
                "type": "object",
                "properties": {
                    "url": {"type": "string", "minLength": 1, "description": "URL to fetch data from"},
                    "method": method,
                    "headers": headers,
                    "body": {"type": "string", "description": "Body to include in the request (for POST, PUT)"},
                    "timeout": timeout,
                },
                "required": ["url"],
            },
            self.fetch,
        )
        self.add_tool(
            "fetch_json",
            "Fetch JSON data from a URL and parse it",
            {
                "type": "object",
                "properties": {
                    "url": {"type": "string", "minLength": 1, "description": "URL to fetch JSON data from"},
                    "method": method,
                    "headers": headers,
                    "body": {"type": "object", "description": "JSON body to include in the request (for POST, PUT)"},
                    "timeout": timeout,
                },
                "required": ["url"],
            },
            self.fetch_json,
        )
        self.add_tool(
            "fetch_html",
            "Fetch HTML content from a URL, optionally reduced to its visible text",
            {
                "type": "object",
                "properties": {
                    "url": {"type": "string", "minLength": 1, "description": "URL to fetch HTML content from"},
                    "extract_text": {
                        "type": "boolean",
                        "description": "Return title and visible text instead of raw HTML",
                        "default": False,
                    },
                    "max_chars": {
                        "type": "integer",
                        "description": "Maximum number of characters of extracted text",
                        "minimum": 1,
                        "default": 20000,
                    },
                    "timeout": timeout,
                },
                "required": ["url"],
            },
            self.fetch_html,
        )

    async def _check_url(self, url: str) -> None:
        reason = await asyncio.to_thread(_validate_url, url, check_host=not self.allow_private_networks)
        if reason:
            raise InvalidParamsError(f"Blocked URL {url} ({reason})")

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        content: Optional[bytes] = None,
        timeout_ms: Optional[int] = None,
    ) -> FetchedResponse:
        """Fetch `url`, following up to MAX_REDIRECTS validated redirects."""
        request_headers = self.default_headers()
        request_headers.update({str(k): str(v) for k, v in (headers or {}).items()})
        timeout = httpx.Timeout((timeout_ms or DEFAULT_TIMEOUT_MS) / 1000.0)

        current_url = url
        method = method.upper()
        for _ in range(MAX_REDIRECTS + 1):
            await self._check_url(current_url)
            async with self.session.stream(
                method, current_url, headers=request_headers, content=content, timeout=timeout
            ) as resp:
                if resp.status_code in REDIRECT_STATUSES:
                    location = resp.headers.get("location")
                    if not location:
                        raise UpstreamError(
                            "Redirect without location header",
                            status_code=resp.status_code,
                            service=self.service,
                        )
                    current_url = urljoin(current_url, location)
                    if resp.status_code == 303 or (resp.status_code in {301, 302} and method == "POST"):
                        method, content = "GET", None
                    continue

                buf = bytearray()
                truncated = False
                async for chunk in resp.aiter_bytes():
                    remain = MAX_BODY_BYTES - len(buf)
                    if remain <= 0:
                        truncated = True
                        break
                    buf.extend(chunk[:remain])
                    if len(chunk) > remain:
                        truncated = True
                        break

                fetched = FetchedResponse(
                    url=url,
                    final_url=str(resp.url),
                    status_code=resp.status_code,
                    content_type=resp.headers.get("content-type", ""),
                    body=bytes(buf),
                    truncated=truncated,
                )

            if not 200 <= fetched.status_code < 300:
                raise UpstreamError(
                    f"HTTP {fetched.status_code} from {fetched.final_url}",
                    status_code=fetched.status_code,
                    payload=fetched.text or None,
                    service=self.service,
                )
            return fetched

        raise UpstreamError(f"Too many redirects (>{MAX_REDIRECTS}) for {url}", service=self.service)

    async def fetch(self, args: Dict[str, Any]) -> str:
        body = args.get("body")
        response = await self.request(
            args["url"],
            method=args.get("method", "GET"),
            headers=args.get("headers"),
            content=body.encode("utf-8") if isinstance(body, str) else None,
            timeout_ms=args.get("timeout"),
        )
        return response.text

    async def fetch_json(self, args: Dict[str, Any]) -> Any:
        headers = dict(args.get("headers") or {})
        content = None
        if args.get("body") is not None:
            content = json.dumps(args["body"]).encode("utf-8")
            if not any(key.lower() == "content-type" for key in headers):
                headers["Content-Type"] = "application/json"
        headers.setdefault("Accept", "application/json")

        response = await self.request(
            args["url"],
            method=args.get("method", "GET"),
            headers=headers,
            content=content,
            timeout_ms=args.get("timeout"),
        )
        try:
            return json.loads(response.text)
        except ValueError as exc:
            raise UpstreamError(
                f"Error parsing JSON response: {exc}",
                status_code=response.status_code,
                payload=response.text,
                service=self.service,
            ) from exc

    async def fetch_html(self, args: Dict[str, Any]) -> Any:
        response = await self.request(
            args["url"],
            headers={"Accept": "text/html,application/xhtml+xml"},
            timeout_ms=args.get("timeout"),
        )
        if not args.get("extract_text"):
            return response.text

        title, text = extract_text(response.text)
        max_chars = int(args.get("max_chars") or 20000)
        truncated = response.truncated
        if len(text) > max_chars:
            text = text[:max_chars]
            truncated = True
        return {
            "url": response.url,
            "final_url": response.final_url,
            "status_code": response.status_code,
            "content_type": response.content_type,
            "title": title,
            "text": text,
            "truncated": truncated,
        }

    async def close(self) -> None:
        if not self.closed:
            await self.session.aclose()
        await super().close()
