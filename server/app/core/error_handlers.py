"""Global exception handlers.

Domain errors keep their own status, request validation is reported as 400
with field details, integrity violations become 409 and anything else is a
500 that never leaks internals.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from app.core.errors import AppError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    _register_app_error_handler(app)
    _register_validation_error_handler(app)
    _register_integrity_error_handler(app)
    _register_generic_error_handler(app)


def _register_app_error_handler(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        logger.info(
            "request_rejected",
            extra={"error_code": exc.code, "status_code": exc.status_code, "path": request.url.path},
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())


def _register_validation_error_handler(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("validation_failed", extra={"path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=build_validation_error_response(exc),
        )


def _register_integrity_error_handler(app: FastAPI) -> None:
    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("integrity_error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": "Duplicate field value entered", "code": "conflict"},
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error("unhandled_exception", extra={"path": request.url.path}, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "code": "internal_error"},
        )


def build_validation_error_response(exc: RequestValidationError) -> dict:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append(
            {
                "field": ".".join(location),
                "message": error.get("msg", ""),
                "type": error.get("type", ""),
            }
        )
    return {"detail": "Validation failed", "code": "validation_error", "errors": errors}
