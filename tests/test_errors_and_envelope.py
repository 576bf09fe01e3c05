from __future__ import annotations

import json

from mcp_toolservers.envelope import ResponseEnvelope
from mcp_toolservers.errors import (
    InternalToolError,
    InvalidParamsError,
    MethodNotFoundError,
    ToolClientError,
    ToolServerError,
    UnauthorizedError,
    UpstreamError,
)


def test_error_hierarchy_and_codes():
    assert issubclass(InvalidParamsError, ToolClientError)
    assert issubclass(UnauthorizedError, ToolClientError)
    assert issubclass(UpstreamError, ToolServerError)
    assert issubclass(InternalToolError, ToolServerError)
    assert InvalidParamsError("x").code == -32602
    assert MethodNotFoundError("x").code == -32601
    assert InternalToolError("x").code == -32603


def test_upstream_describe_with_payload():
    error = UpstreamError(
        "Not Found",
        status_code=404,
        payload={"message": "Not Found", "documentation_url": "https://docs.github.com"},
        service="GitHub",
    )
    text = error.describe()
    assert text.startswith("GitHub API error (404): Not Found")
    assert "documentation_url" in text
    assert error.to_dict()["status_code"] == 404


def test_upstream_describe_without_status():
    error = UpstreamError("Request timed out", service="GitHub")
    assert error.describe() == "GitHub API error: Request timed out"


def test_failure_envelope():
    envelope = ResponseEnvelope.failure(InvalidParamsError("Query is required"))
    assert envelope.is_error is True
    assert envelope.to_dict() == {
        "content": [{"type": "text", "text": "Invalid params error: Query is required"}],
        "isError": True,
        "error": {"kind": "invalid_params", "code": -32602, "message": "Query is required"},
    }


def test_success_envelope_renders_json():
    envelope = ResponseEnvelope.success({"name": "Zürich", "n": 1})
    assert envelope.text() == json.dumps({"name": "Zürich", "n": 1}, indent=2, ensure_ascii=False)
    result = envelope.to_mcp_result()
    assert result.isError is False
    assert result.content[0].type == "text"
