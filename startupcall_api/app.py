"""
FastAPI application factory.

``create_app()`` builds the app around a ``Platform``; tests pass their
own (in-memory SQLite, deterministic clock), production builds one from
``get_active_config()``.
"""

from __future__ import annotations

import uuid

from fastapi import FastAPI, Request

from startupcall_config import get_active_config
from startupcall_kernel import __version__
from startupcall_kernel.logging_config import LogContext, get_logger
from startupcall_services.platform import Platform
from startupcall_api.errors import install_error_handlers
from startupcall_api.schemas import ErrorResponse
from startupcall_api.routes import (
    applications,
    budgets,
    calls,
    health,
    notifications,
    reviews,
    sponsorship,
)

logger = get_logger("api.app")

_ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 500)
}


def create_app(platform: Platform | None = None) -> FastAPI:
    if platform is None:
        platform = Platform.from_config(get_active_config())

    app = FastAPI(title="Startup Call Platform", version=__version__)
    app.state.platform = platform

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        LogContext.clear()
        LogContext.set(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            LogContext.clear()
        response.headers["X-Request-Id"] = request_id
        return response

    install_error_handlers(app, expose_error_details=platform.config.api.expose_error_details)

    for module in (health, calls, applications, reviews, sponsorship, budgets, notifications):
        app.include_router(module.router, responses=_ERROR_RESPONSES)

    logger.info("api_initialized", extra={"route_count": len(app.routes)})
    return app
