from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List


LOGGER_NAME = "mcp_toolservers"


class StructuredFormatter(logging.Formatter):
    """Formatter that fills in missing structured fields instead of failing."""

    FIELDS = ("server", "tool", "kind", "duration_ms")

    def format(self, record: logging.LogRecord) -> str:
        for name in self.FIELDS:
            if not hasattr(record, name):
                setattr(record, name, "")
        return super().format(record)


def setup_logger(log_level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger once.

    Logs go to stderr: stdout belongs to the stdio transport.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    logger.setLevel(level)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter(
        '{"ts":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","server":"%(server)s",'
        '"tool":"%(tool)s","kind":"%(kind)s","duration_ms":"%(duration_ms)s","msg":"%(message)s"}'
    ))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


@dataclass
class ToolMetrics:
    calls: int = 0
    errors: int = 0
    total_latency_ms: float = 0.0

    def observe(self, duration_ms: float, error: bool) -> None:
        self.calls += 1
        self.total_latency_ms += float(duration_ms)
        if error:
            self.errors += 1

    @property
    def avg_latency_ms(self) -> float:
        if self.calls == 0:
            return 0.0
        return self.total_latency_ms / self.calls


class InMemoryMetrics:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tools: Dict[str, ToolMetrics] = {}

    def record(self, tool: str, duration_ms: float, error: bool) -> None:
        with self._lock:
            metrics = self._tools.get(tool)
            if metrics is None:
                metrics = ToolMetrics()
                self._tools[tool] = metrics
            metrics.observe(duration_ms, error)

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {
                name: {
                    "calls": float(m.calls),
                    "errors": float(m.errors),
                    "avg_latency_ms": float(m.avg_latency_ms),
                }
                for name, m in self._tools.items()
            }


def _prometheus_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def render_prometheus(snapshots: Iterable[tuple[str, Dict[str, Dict[str, Any]]]]) -> str:
    """Render (server_name, snapshot) pairs in Prometheus text format."""
    lines: List[str] = [
        "# HELP mcp_server_healthy MCP server health status",
        "# TYPE mcp_server_healthy gauge",
        "mcp_server_healthy 1",
        "# HELP mcp_tool_calls_total Total number of tool calls",
        "# TYPE mcp_tool_calls_total counter",
        "# HELP mcp_tool_errors_total Total number of tool errors",
        "# TYPE mcp_tool_errors_total counter",
        "# HELP mcp_tool_avg_latency_ms Average tool latency in milliseconds",
        "# TYPE mcp_tool_avg_latency_ms gauge",
    ]
    for server_name, snapshot in snapshots:
        for tool_name, m in sorted(snapshot.items()):
            labels = f'server="{_prometheus_label(server_name)}",tool="{_prometheus_label(tool_name)}"'
            lines.append(f"mcp_tool_calls_total{{{labels}}} {m['calls']}")
            lines.append(f"mcp_tool_errors_total{{{labels}}} {m['errors']}")
            lines.append(f"mcp_tool_avg_latency_ms{{{labels}}} {m['avg_latency_ms']}")
    return "\n".join(lines) + "\n"
