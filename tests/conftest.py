from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from mcp_toolservers.config import ServerSettings


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


def json_response(status_code: int, payload: Any, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    return httpx.Response(status_code, json=payload, headers=headers)


@pytest.fixture
def make_settings() -> Callable[..., ServerSettings]:
    def _make(env: Optional[Dict[str, str]] = None, **fields: Any) -> ServerSettings:
        return ServerSettings(env=dict(env or {}), **fields)

    return _make
