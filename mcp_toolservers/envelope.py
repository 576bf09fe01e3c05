"""Uniform response envelope returned for every invocation."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from mcp import types

from .errors import ToolError


def render_json(data: Any) -> str:
    """Indented JSON - callers display tool output directly."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


@dataclass(frozen=True)
class ContentBlock:
    kind: str  # "text" | "json"
    payload: Any

    def as_text(self) -> str:
        if self.kind == "text":
            return str(self.payload)
        return render_json(self.payload)


@dataclass(frozen=True)
class ResponseEnvelope:
    content: Tuple[ContentBlock, ...]
    is_error: bool = False
    error: Optional[ToolError] = None

    @classmethod
    def success(cls, result: Any) -> "ResponseEnvelope":
        if isinstance(result, str):
            block = ContentBlock(kind="text", payload=result)
        else:
            block = ContentBlock(kind="json", payload=result)
        return cls(content=(block,), is_error=False)

    @classmethod
    def failure(cls, error: ToolError) -> "ResponseEnvelope":
        block = ContentBlock(kind="text", payload=error.describe())
        return cls(content=(block,), is_error=True, error=error)

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None

    def text(self) -> str:
        return "\n".join(block.as_text() for block in self.content)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "content": [{"type": "text", "text": block.as_text()} for block in self.content],
            "isError": self.is_error,
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data

    def to_mcp_result(self) -> types.CallToolResult:
        blocks: List[types.TextContent] = [
            types.TextContent(type="text", text=block.as_text()) for block in self.content
        ]
        return types.CallToolResult(content=blocks, isError=self.is_error)
