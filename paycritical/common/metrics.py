"""Prometheus metric definitions for gateway calls and the sandbox."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


gateway_requests_total = Counter(
    "paycritical_gateway_requests_total",
    "Total Paycritical API calls issued by the client",
    ["operation", "method", "status_code"],
)
gateway_request_duration_seconds = Histogram(
    "paycritical_gateway_request_duration_seconds",
    "Paycritical API call duration seconds",
    ["operation"],
)
sandbox_requests_total = Counter(
    "paycritical_sandbox_requests_total",
    "Total HTTP requests served by the sandbox simulator",
    ["route", "method", "status_code"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
