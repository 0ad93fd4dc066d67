"""Error Handlers — map carnet, request-shape and unexpected failures to JSON envelopes.

Invariants:
    - CarnetsError → its own to_response() envelope at its http_status
    - RequestValidationError → 400 VALIDATION_ERROR with the same field_errors map the
      carnet validator produces (keys are dotted request locations, "miembros.0.dni")
    - Exception (catch-all) → 500, message never includes internals
    - 4xx logged as warning, 5xx as error, always with the request path

Design Decisions:
    - One envelope shape for every 400: the form layer reads error.field_errors whether
      the body was malformed or the carnet broke a composition rule
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from app.core.errors import CarnetsError, ErrorCategory, ErrorSeverity

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_carnets_error_handler(app)
    _register_request_validation_handler(app)
    _register_unexpected_error_handler(app)


def _register_carnets_error_handler(app: FastAPI) -> None:

    @app.exception_handler(CarnetsError)
    async def carnets_error_handler(request: Request, exc: CarnetsError):
        log = logger.warning if exc.http_status < 500 else logger.error
        log(
            f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
            extra={
                "error_code": exc.code,
                "path": request.url.path,
                "carnet_id": exc.context.carnet_id,
            },
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_request_validation_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError,
    ):
        field_errors = _field_errors(exc)
        logger.warning(
            f"Malformed request on {request.url.path}: {sorted(field_errors)}",
            extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Invalid request data",
                    "category": ErrorCategory.VALIDATION.value,
                    "severity": ErrorSeverity.ERROR.value,
                    "field_errors": field_errors,
                },
            },
        )


def _register_unexpected_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc}",
            extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "Ocurrió un error inesperado",
                    "category": ErrorCategory.INTERNAL.value,
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _field_errors(exc: RequestValidationError) -> dict[str, str]:
    """Flatten pydantic errors to {"miembros.0.dni": msg}, dropping the body/query prefix."""
    errors: dict[str, str] = {}
    for e in exc.errors():
        loc = [str(part) for part in e["loc"]]
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        errors[".".join(loc) or "body"] = e["msg"]
    return errors
