"""Metrics, request logging and tracing."""

from .metrics import (
    DIRECTORY_REQUEST_SECONDS,
    DIRECTORY_SYNC_COUNTER,
    POST_COMMIT_FAILURE_COUNTER,
    REQUEST_COUNTER,
    REQUEST_ERROR_COUNTER,
    REQUEST_LATENCY_SECONDS,
    PrometheusMiddleware,
    metrics_router,
)
from .request_log import RequestLogMiddleware, RequestLogRecord, mask_query
from .tracing import directory_span, initialise_tracing, instrument_application, instrument_engine

__all__ = [
    "DIRECTORY_REQUEST_SECONDS",
    "DIRECTORY_SYNC_COUNTER",
    "POST_COMMIT_FAILURE_COUNTER",
    "PrometheusMiddleware",
    "REQUEST_COUNTER",
    "REQUEST_ERROR_COUNTER",
    "REQUEST_LATENCY_SECONDS",
    "RequestLogMiddleware",
    "RequestLogRecord",
    "directory_span",
    "initialise_tracing",
    "instrument_application",
    "instrument_engine",
    "mask_query",
    "metrics_router",
]
