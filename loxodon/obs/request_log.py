"""Structured per-request logging middleware."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from loxodon.core.dates import utcnow

_SENSITIVE_KEYS = {"email", "token", "access_token", "code", "client_secret"}


def _mask_value(value: str) -> str:
    if "@" in value:
        name, _, domain = value.partition("@")
        hidden = name[0] + "***" if name else "***"
        return f"{hidden}@{domain}" if domain else "***@***"
    return value


def mask_query(mapping: dict[str, Any]) -> dict[str, Any]:
    """Hide credentials and email addresses found in query parameters."""

    sanitized: dict[str, Any] = {}
    for key, value in mapping.items():
        if key.lower() in _SENSITIVE_KEYS and not (isinstance(value, str) and "@" in value):
            sanitized[key] = "***"
        elif isinstance(value, str):
            sanitized[key] = _mask_value(value)
        else:
            sanitized[key] = value
    return sanitized


@dataclass(slots=True)
class RequestLogRecord:
    """Structured log entry emitted by the middleware."""

    timestamp: str
    request_id: str
    method: str
    path: str
    status: int
    duration_ms: float
    actor: str | None
    ip_address: str | None
    query: dict[str, Any]

    def to_json(self) -> str:
        payload = asdict(self)
        payload["duration_ms"] = round(self.duration_ms, 2)
        return json.dumps(payload, default=str)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log one JSON line per request and echo ``X-Request-ID``."""

    def __init__(self, app: ASGIApp, *, logger: logging.Logger | None = None) -> None:
        super().__init__(app)
        self._logger = logger or logging.getLogger("loxodon.request")

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        start = time.perf_counter()

        response = await call_next(request)

        record = RequestLogRecord(
            timestamp=utcnow().isoformat(),
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=(time.perf_counter() - start) * 1000,
            actor=getattr(request.state, "actor_oid", None),
            ip_address=request.client.host if request.client else None,
            query=mask_query(dict(request.query_params.multi_items())),
        )
        self._logger.info(record.to_json())

        response.headers["X-Request-ID"] = request_id
        return response


__all__ = ["RequestLogMiddleware", "RequestLogRecord", "mask_query"]
