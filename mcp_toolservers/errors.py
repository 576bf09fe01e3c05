"""
Error taxonomy shared by all tool servers.

Handlers raise one of the ToolError subclasses; the dispatcher converts them
into an error envelope. RegistryError and ConfigurationError are the only
fatal conditions and surface at construction time.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

# JSON-RPC error codes (MCP uses the JSON-RPC 2.0 numbering)
INVALID_PARAMS = -32602
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603
UNAUTHORIZED = -32001
UPSTREAM_FAILURE = -32002


class ToolError(Exception):
    """Base exception for all tool invocation errors."""

    kind = "internal_error"
    label = "Internal"
    code = INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def describe(self) -> str:
        """Human-readable text used as the error envelope body."""
        return f"{self.label} error: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "code": self.code, "message": self.message}


class ToolClientError(ToolError):
    """Caller-side errors - fix the input and retry."""
    pass


class ToolServerError(ToolError):
    """Server-side errors - upstream outages or bugs."""
    pass


class InvalidParamsError(ToolClientError):
    kind = "invalid_params"
    label = "Invalid params"
    code = INVALID_PARAMS


class MethodNotFoundError(ToolClientError):
    kind = "method_not_found"
    label = "Method not found"
    code = METHOD_NOT_FOUND

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class UnauthorizedError(ToolClientError):
    """Missing or invalid credential, detected before any upstream call."""

    kind = "unauthorized"
    label = "Unauthorized"
    code = UNAUTHORIZED


class UpstreamError(ToolServerError):
    """The upstream API rejected the call or could not be reached."""

    kind = "upstream_failure"
    label = "Upstream"
    code = UPSTREAM_FAILURE

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Any = None,
        service: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
        self.service = service

    def describe(self) -> str:
        prefix = f"{self.service} API error" if self.service else "Upstream error"
        status = f" ({self.status_code})" if self.status_code is not None else ""
        text = f"{prefix}{status}: {self.message}"
        if self.payload not in (None, "", self.message):
            text += f"\n\nUpstream response:\n{_render_payload(self.payload)}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        data["payload"] = self.payload
        return data


class InternalToolError(ToolServerError):
    """Unexpected failure inside a handler - treated as a bug signal."""
    pass


class RegistryError(RuntimeError):
    """Tool catalog/registry misconfiguration (duplicate names, late registration)."""
    pass


class ConfigurationError(RuntimeError):
    """Mandatory startup configuration (e.g. a required credential) is missing."""
    pass


def _render_payload(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(payload)
