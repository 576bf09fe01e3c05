from __future__ import annotations

import logging

from mcp_toolservers.observability import InMemoryMetrics, StructuredFormatter, render_prometheus


def test_formatter_tolerates_missing_extras():
    formatter = StructuredFormatter("%(server)s|%(tool)s|%(kind)s|%(message)s")
    record = logging.LogRecord("mcp_toolservers", logging.INFO, __file__, 1, "started", None, None)
    assert formatter.format(record) == "|||started"


def test_metrics_snapshot_averages_latency():
    metrics = InMemoryMetrics()
    metrics.record("search", 10.0, error=False)
    metrics.record("search", 30.0, error=True)
    snapshot = metrics.snapshot()
    assert snapshot["search"] == {"calls": 2.0, "errors": 1.0, "avg_latency_ms": 20.0}


def test_render_prometheus_escapes_labels():
    text = render_prometheus([("github", {'we"ird': {"calls": 1.0, "errors": 0.0, "avg_latency_ms": 2.0}})])
    assert 'mcp_tool_calls_total{server="github",tool="we\\"ird"} 1.0' in text
    assert text.endswith("\n")
