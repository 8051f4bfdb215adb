"""Prometheus metrics."""
from prometheus_client import CollectorRegistry, Counter, Histogram, PlatformCollector, ProcessCollector

registry = CollectorRegistry()

# Process CPU, memory and file descriptors, plus the Python runtime version
ProcessCollector(registry=registry)
PlatformCollector(registry=registry)

http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status_code"],
    registry=registry
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "Duration of HTTP requests in seconds",
    ["method", "route", "status_code"],
    registry=registry
)

cache_requests_total = Counter(
    "bookstore_cache_requests_total",
    "Cache lookups by key kind and result",
    ["kind", "result"],
    registry=registry
)
