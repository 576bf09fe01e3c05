"""Thin httpx wrapper shared by the servers that talk to one upstream REST API."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from .errors import UpstreamError

logger = logging.getLogger("mcp_toolservers.http_client")


def _drop_none(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if params is None:
        return None
    cleaned: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


def upstream_message(payload: Any, default: str) -> str:
    """Pick the human-readable message out of an upstream error body."""
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
        error = payload.get("error")
        if isinstance(error, dict):
            nested = error.get("message") or error.get("detail")
            if isinstance(nested, str) and nested:
                return nested
        elif isinstance(error, str) and error:
            return error
    if isinstance(payload, str) and payload.strip():
        return payload.strip()[:500]
    return default


class UpstreamClient:
    """
    One HTTP client per server: fixed base URL, default headers, fixed timeout.

    No retries. Non-2xx responses, connection errors and timeouts all become
    UpstreamError with the status code (when there is one) and the raw body.
    """

    def __init__(
        self,
        base_url: str,
        *,
        service: str,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = 30.0,
        connect_timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service = service
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=dict(headers or {}),
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            follow_redirects=False,
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        url = "/" + path.lstrip("/") if path else ""
        try:
            response = await self._client.request(
                method.upper(),
                url,
                params=_drop_none(params),
                json=json,
                headers=dict(headers) if headers else None,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamError(
                f"Request to {self.service} timed out: {exc}",
                service=self.service,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"Request to {self.service} failed: {exc}",
                service=self.service,
            ) from exc

        payload = _decode_body(response)
        if not 200 <= response.status_code < 300:
            logger.debug(
                "upstream %s %s -> %s", method.upper(), url, response.status_code,
                extra={"server": self.service},
            )
            raise UpstreamError(
                upstream_message(payload, response.reason_phrase or f"HTTP {response.status_code}"),
                status_code=response.status_code,
                payload=payload,
                service=self.service,
            )
        return payload

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
