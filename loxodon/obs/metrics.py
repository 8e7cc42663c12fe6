"""Prometheus metrics for HTTP traffic, directory calls and follow-up tasks."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

METRICS_PATH = "/metrics"

REQUEST_LATENCY_SECONDS = Histogram(
    "http_request_latency_seconds",
    "Latency of HTTP requests in seconds.",
    labelnames=("method", "path"),
)
REQUEST_COUNTER = Counter(
    "http_requests_total",
    "HTTP requests by route template and status code.",
    labelnames=("method", "path", "status"),
)
REQUEST_ERROR_COUNTER = Counter(
    "http_request_errors_total",
    "HTTP requests answered with a 5xx status.",
    labelnames=("method", "path", "status"),
)
DIRECTORY_REQUEST_SECONDS = Histogram(
    "directory_request_seconds",
    "Duration of paginated directory queries in seconds.",
    labelnames=("operation",),
)
DIRECTORY_SYNC_COUNTER = Counter(
    "directory_sync_total",
    "Directory user synchronisations by outcome.",
    labelnames=("outcome",),
)
POST_COMMIT_FAILURE_COUNTER = Counter(
    "post_commit_task_failures_total",
    "Best-effort follow-up tasks that failed and were abandoned.",
    labelnames=("task",),
)


def _route_path(request: Request) -> str:
    # templated path, e.g. /users/{oid}
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _record(request: Request, status_code: int, started: float) -> None:
    method = request.method
    path = _route_path(request)
    status = str(status_code)
    REQUEST_LATENCY_SECONDS.labels(method=method, path=path).observe(time.perf_counter() - started)
    REQUEST_COUNTER.labels(method=method, path=path, status=status).inc()
    if status_code >= 500:
        REQUEST_ERROR_COUNTER.labels(method=method, path=path, status=status).inc()


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Count and time every request except scrapes of the metrics endpoint."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        if request.url.path == METRICS_PATH:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            _record(request, 500, started)
            raise
        _record(request, response.status_code, started)
        return response


metrics_router = APIRouter(tags=["observability"])


@metrics_router.get(METRICS_PATH, include_in_schema=False)
def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "DIRECTORY_REQUEST_SECONDS",
    "DIRECTORY_SYNC_COUNTER",
    "POST_COMMIT_FAILURE_COUNTER",
    "PrometheusMiddleware",
    "REQUEST_COUNTER",
    "REQUEST_ERROR_COUNTER",
    "REQUEST_LATENCY_SECONDS",
    "metrics_endpoint",
    "metrics_router",
]
