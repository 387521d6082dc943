from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from formhub.core.config import settings

_LOG = logging.getLogger("formhub.errors")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class FormhubError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailure(FormhubError):
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(FormhubError):
    status_code = 401
    default_message = "Authentication required"


class Unauthorized(FormhubError):
    status_code = 403
    default_message = "Unauthorized"


class NotFound(FormhubError):
    status_code = 404
    default_message = "Resource not found"


class PersistenceFailure(FormhubError):
    status_code = 500
    default_message = "Storage operation failed"


class IdentityGatewayError(FormhubError):
    """Raised by the identity gateway; routes pick the status per call."""

    status_code = 400
    default_message = "Identity provider request failed"


def error_payload(message: str, status_code: int) -> dict:
    if status_code >= 500 and settings.is_production:
        message = GENERIC_ERROR_MESSAGE
    return {"success": False, "error": message}


def _first_validation_message(exc: RequestValidationError) -> str:
    for item in exc.errors():
        loc = ".".join(str(part) for part in item.get("loc", ()) if part not in ("body", "path", "query"))
        msg = str(item.get("msg") or "Invalid value")
        return f"{loc}: {msg}" if loc else msg
    return ValidationFailure.default_message


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FormhubError)
    async def _formhub_error_handler(request: Request, exc: FormhubError):
        if exc.status_code >= 500:
            _LOG.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_payload(exc.message, exc.status_code))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=error_payload(_first_validation_message(exc), 400))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Resource not found" if exc.status_code == 404 else str(exc.detail or "Request failed")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(message, exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unexpected_error_handler(request: Request, exc: Exception):
        _LOG.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_payload(str(exc) or GENERIC_ERROR_MESSAGE, 500))
