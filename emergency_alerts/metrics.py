"""
Prometheus metrics for the alert dispatch API.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Dispatch outcome counter (result)
- Alert record write failure counter

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# result: sent, failed, invalid
alert_dispatch_total = Counter(
    "alert_dispatch_total",
    "Total alert dispatch outcomes",
    labelnames=["result"]
)

alert_record_failures_total = Counter(
    "alert_record_failures_total",
    "Alert records that could not be written to the store"
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    # Normalize path to avoid high-cardinality labels
    normalized_path = path.split("?")[0]

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_dispatch_outcome(result: str) -> None:
    """
    Record a dispatch outcome.

    Args:
        result: "sent", "failed" (gateway rejected or unreachable) or
            "invalid" (request rejected before delivery)
    """
    alert_dispatch_total.labels(result=result).inc()


def record_store_failure() -> None:
    alert_record_failures_total.inc()


def get_metrics() -> bytes:
    """Generate Prometheus exposition format metrics."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
