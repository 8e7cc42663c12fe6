"""Bearer token authentication applied before routing."""
from __future__ import annotations

from typing import Any, Callable

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from loxodon.api.errors import error_response
from loxodon.core.config import Settings
from loxodon.core.errors import AuthenticationError
from loxodon.services.identity import TokenVerifier


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Verify the bearer token and expose its claims as ``request.state.claims``.

    ``OPTIONS`` requests and paths under the configured unprotected prefixes
    pass through untouched.
    """

    def __init__(self, app: ASGIApp, *, settings: Settings, verifier: TokenVerifier) -> None:
        super().__init__(app)
        self._prefixes = tuple(settings.unprotected_prefixes)
        self._verifier = verifier

    def _is_public(self, path: str) -> bool:
        return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in self._prefixes)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        if request.method == "OPTIONS" or self._is_public(request.url.path):
            return await call_next(request)

        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return error_response(AuthenticationError.status_code, AuthenticationError.default_message)
        try:
            # a JWKS refresh performs blocking network I/O
            claims = await run_in_threadpool(self._verifier.verify, token.strip())
        except AuthenticationError as exc:
            return error_response(exc.status_code, exc.message)

        request.state.claims = claims
        request.state.actor_oid = claims.subject
        return await call_next(request)


__all__ = ["AuthenticationMiddleware"]
