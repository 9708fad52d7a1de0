"""
Domain exception -> HTTP response mapping.

Every error body has the same shape::

    {"error": CODE, "message": str, "details": {...}}
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from startupcall_kernel.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateSponsorshipApplicationError,
    NotFoundError,
    StartupCallError,
)
from startupcall_kernel.logging_config import get_logger

logger = get_logger("api.errors")

# Most specific class first
_STATUS_BY_ERROR: tuple[tuple[type[StartupCallError], int], ...] = (
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateSponsorshipApplicationError, status.HTTP_409_CONFLICT),
)


def status_for(exc: StartupCallError) -> int:
    for error_cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return code
    return status.HTTP_400_BAD_REQUEST


def error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"error": code, "message": message, "details": jsonable_encoder(details or {})}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def install_error_handlers(app: FastAPI, expose_error_details: bool = False) -> None:

    @app.exception_handler(StartupCallError)
    async def domain_error_handler(request: Request, exc: StartupCallError) -> JSONResponse:
        http_status = status_for(exc)
        logger.info("request_rejected", extra={
            "path": request.url.path,
            "error_code": exc.code,
            "status_code": http_status,
        })
        details = {_camel(key): value for key, value in exc.details().items()}
        return JSONResponse(
            status_code=http_status,
            content=error_body(exc.code, str(exc), details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = sorted({
            str(err["loc"][-1]) for err in exc.errors() if err.get("loc")
        })
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(
                "VALIDATION_ERROR",
                "Request validation failed",
                {"fields": fields, "errors": [
                    {"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()
                ]},
            ),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("request_failed", extra={"path": request.url.path}, exc_info=exc)
        message = str(exc) if expose_error_details else "An unexpected error occurred"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("INTERNAL_ERROR", message),
        )
