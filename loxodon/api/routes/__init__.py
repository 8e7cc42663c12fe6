"""Top level API router registration."""
from fastapi import FastAPI

from loxodon.api.routes import audit_logs, customers, health, roles, stats, users
from loxodon.schemas import ErrorResponse

ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 500)}


def register_routes(application: FastAPI) -> None:
    """Register all API routers with the FastAPI application."""

    application.include_router(health.router, tags=["health"])
    application.include_router(customers.router, tags=["customers"], responses=ERROR_RESPONSES)
    application.include_router(users.router, tags=["users"], responses=ERROR_RESPONSES)
    application.include_router(roles.router, tags=["roles"], responses=ERROR_RESPONSES)
    application.include_router(audit_logs.router, tags=["audit-logs"], responses=ERROR_RESPONSES)
    application.include_router(stats.router, tags=["stats"], responses=ERROR_RESPONSES)
    application.include_router(stats.entra_router, tags=["stats"], responses=ERROR_RESPONSES)


__all__ = ["register_routes"]
