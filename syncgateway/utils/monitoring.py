"""Monitoring utilities leveraging Prometheus client."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

http_requests_total = Counter(
    "syncgateway_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_latency_seconds = Histogram(
    "syncgateway_http_request_latency_seconds",
    "HTTP request latency",
    ["method", "path"],
)

documents_written_total = Counter(
    "syncgateway_documents_written_total",
    "Documents applied to the store by push and update requests",
    ["operation"],
)

documents_served_total = Counter(
    "syncgateway_documents_served_total",
    "Documents returned to clients by read requests",
    ["operation"],
)


def observe_request(method: str, path: str, status: int, duration_seconds: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_latency_seconds.labels(method=method, path=path).observe(duration_seconds)


def observe_written(operation: str, count: int) -> None:
    if count:
        documents_written_total.labels(operation=operation).inc(count)


def observe_served(operation: str, count: int) -> None:
    if count:
        documents_served_total.labels(operation=operation).inc(count)
