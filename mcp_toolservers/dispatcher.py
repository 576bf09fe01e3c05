"""
Dispatcher - routes one invocation through resolve -> validate -> execute -> respond.

The dispatcher holds no per-call state, so invocations can run concurrently.
Every outcome, including unknown tools, ends as exactly one ResponseEnvelope;
whether an unknown tool is additionally raised as a transport fault is the
transport adapter's decision (see ToolServer.unknown_tool_policy).
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from .catalog import CapabilityCatalog
from .envelope import ResponseEnvelope
from .errors import (
    InternalToolError,
    InvalidParamsError,
    MethodNotFoundError,
    ToolError,
    UpstreamError,
)
from .observability import InMemoryMetrics
from .registry import HandlerRegistry
from .validation import SchemaValidator


@dataclass(frozen=True)
class InvocationRequest:
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> "InvocationRequest":
        return cls(tool_name=tool_name, arguments=dict(arguments or {}))


def classify_exception(exc: Exception, *, service: str = "") -> ToolError:
    """Map any exception raised by a handler onto the error taxonomy."""
    if isinstance(exc, ToolError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return UpstreamError(f"Request timed out: {exc}", service=service)
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        try:
            payload: Any = response.json()
        except ValueError:
            payload = response.text
        return UpstreamError(
            str(exc),
            status_code=response.status_code,
            payload=payload,
            service=service,
        )
    if isinstance(exc, httpx.HTTPError):
        return UpstreamError(f"Request failed: {exc}", service=service)
    message = str(exc) or type(exc).__name__
    return InternalToolError(message)


class Dispatcher:
    def __init__(
        self,
        catalog: CapabilityCatalog,
        registry: HandlerRegistry,
        *,
        validator: Optional[SchemaValidator] = None,
        metrics: Optional[InMemoryMetrics] = None,
        logger: Optional[logging.Logger] = None,
        server_name: str = "",
        service: str = "",
    ) -> None:
        self.catalog = catalog
        self.registry = registry
        self.validator = validator or SchemaValidator()
        self.metrics = metrics or InMemoryMetrics()
        self.logger = logger or logging.getLogger("mcp_toolservers.dispatcher")
        self.server_name = server_name
        self.service = service

    async def dispatch(self, request: InvocationRequest) -> ResponseEnvelope:
        start = time.perf_counter()
        tool_name = request.tool_name
        try:
            # Idle -> Validating
            entry = self.registry.resolve(tool_name)
            descriptor = self.catalog.get(tool_name)
            if descriptor is None:
                raise MethodNotFoundError(tool_name)

            # Validating -> Executing
            arguments = self.validator.validate(descriptor, request.arguments)

            # Executing -> Responding
            result = await entry.handler(arguments)
        except Exception as exc:  # CancelledError is a BaseException and propagates
            error = classify_exception(exc, service=self.service)
            self._record(tool_name, start, error, exc)
            return ResponseEnvelope.failure(error)

        self._record(tool_name, start, None)
        return ResponseEnvelope.success(result)

    def _record(
        self,
        tool_name: str,
        start: float,
        error: Optional[ToolError],
        exc: Optional[BaseException] = None,
    ) -> None:
        duration_ms = (time.perf_counter() - start) * 1000.0
        extra = {
            "server": self.server_name,
            "tool": tool_name,
            "kind": error.kind if error is not None else "ok",
            "duration_ms": round(duration_ms, 2),
        }
        if error is None:
            self.metrics.record(tool_name, duration_ms, error=False)
            self.logger.info("Tool call succeeded", extra=extra)
            return

        # Unknown tools are not recorded per name: callers control the name
        if not isinstance(error, MethodNotFoundError):
            self.metrics.record(tool_name, duration_ms, error=True)

        if isinstance(error, (InvalidParamsError, MethodNotFoundError)):
            self.logger.warning(f"Tool call rejected: {error.message}", extra=extra)
        elif isinstance(error, InternalToolError):
            self.logger.error(
                f"Unexpected error: {error.message}",
                extra={**extra, "error_type": type(exc).__name__ if exc else ""},
                exc_info=exc if exc is not error else None,
            )
        else:
            self.logger.warning(f"Tool call failed: {error.message}", extra=extra)
