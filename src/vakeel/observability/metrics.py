"""Prometheus metrics for the Vakeel API.

Adds an HTTP middleware that records request latency per method/path/status
and a counter for upstream AI calls that were answered with fallback text.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from prometheus_client import Counter, Histogram
from starlette.requests import Request
from starlette.responses import Response

# Web latencies in seconds; upstream AI calls land in the top buckets
REQUEST_LATENCY = Histogram(
    "vakeel_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path", "status"),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

AI_FALLBACKS = Counter(
    "vakeel_ai_fallback_total",
    "Upstream AI calls answered with mock or fallback text",
    labelnames=("reason",),
)

UNOBSERVED_PREFIXES = ("/metrics",)

Handler = Callable[[Request], Awaitable[Response]]


def record_ai_fallback(reason: str) -> None:
    AI_FALLBACKS.labels(reason=reason).inc()


def sanitize_path(path: str) -> str:
    """Collapse a request path to its area, e.g. /api/documents/{id}/review -> /api/documents."""
    segments = [s for s in (path or "").split("?")[0].split("/") if s]
    if not segments:
        return "/"
    if segments[0] == "api" and len(segments) > 1:
        return f"/api/{segments[1]}"
    return f"/{segments[0]}"


def metrics_middleware_factory() -> Callable[[Request, Handler], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Handler) -> Response:
        if request.url.path.startswith(UNOBSERVED_PREFIXES):
            return await call_next(request)
        started = time.perf_counter()
        response = await call_next(request)
        REQUEST_LATENCY.labels(
            method=request.method,
            path=sanitize_path(request.url.path),
            status=str(response.status_code),
        ).observe(time.perf_counter() - started)
        return response

    return middleware
