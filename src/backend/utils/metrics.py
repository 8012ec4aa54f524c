"""
Prometheus collectors for askstream, served at ``/metrics``.

Names follow ``askstream_<subsystem>_<name>_<unit>``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

NAMESPACE = "askstream"

# --- WebSocket transport ----------------------------------------------------

ws_connections_active = Gauge(f"{NAMESPACE}_websocket_connections_active", "Open WebSocket connections")
ws_connections_total = Counter(f"{NAMESPACE}_websocket_connections_total", "WebSocket connections accepted")
ws_messages_total = Counter(
    f"{NAMESPACE}_websocket_messages_total",
    "WebSocket messages received (inbound) or frames sent (outbound)",
    ["direction"],
)

# --- Answer streams ---------------------------------------------------------

chat_streams_total = Counter(
    f"{NAMESPACE}_chat_streams_total",
    "Finished answer streams by terminal state (done, aborted, failed)",
    ["outcome"],
)
chat_stream_duration_seconds = Histogram(
    f"{NAMESPACE}_chat_stream_duration_seconds",
    "Seconds from request start to terminal state",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)
frames_emitted_total = Counter(f"{NAMESPACE}_frames_emitted_total", "Frames written to sinks", ["type"])

# --- Tools ------------------------------------------------------------------

tool_calls_total = Counter(
    f"{NAMESPACE}_tool_calls_total",
    "Tool executions by outcome (success, error, bad_arguments, cancelled)",
    ["tool_name", "provider", "status"],
)
tool_call_duration_seconds = Histogram(
    f"{NAMESPACE}_tool_call_duration_seconds",
    "Seconds spent inside a tool, provider call included",
    ["tool_name", "provider"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# --- Thread store -----------------------------------------------------------

db_query_duration_seconds = Histogram(
    f"{NAMESPACE}_db_query_duration_seconds",
    "PostgreSQL thread store query time by kind (select, insert)",
    ["query_type"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)
db_pool_connections = Gauge(f"{NAMESPACE}_db_pool_connections", "Pool connections by state (free, used)", ["state"])
thread_store_errors_total = Counter(
    f"{NAMESPACE}_thread_store_errors_total",
    "Thread appends that failed and were skipped",
    ["operation"],
)
