"""FastAPI application entrypoint."""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loxodon.api.errors import register_exception_handlers
from loxodon.api.middleware import AuthenticationMiddleware
from loxodon.api.routes import register_routes
from loxodon.core.config import Settings, get_settings
from loxodon.core.logging import configure_logging
from loxodon.obs import (
    PrometheusMiddleware,
    RequestLogMiddleware,
    initialise_tracing,
    instrument_application,
    metrics_router,
)
from loxodon.services.identity import TokenVerifier


def create_application(settings: Settings | None = None) -> FastAPI:
    """Application factory used by ASGI servers and tests."""
    settings = settings or get_settings()
    configure_logging(settings.logging_config, level=settings.log_level)

    if settings.enable_tracing:
        initialise_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
    )

    verifier = TokenVerifier(settings)

    # Last added runs first: CORS, metrics, request log, then authentication.
    application.add_middleware(AuthenticationMiddleware, settings=settings, verifier=verifier)
    application.add_middleware(RequestLogMiddleware)
    if settings.enable_metrics:
        application.add_middleware(PrometheusMiddleware)
        application.include_router(metrics_router)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)
    register_routes(application)

    if settings.enable_tracing:
        instrument_application(application)

    return application


app = create_application()
