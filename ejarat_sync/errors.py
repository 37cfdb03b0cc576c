"""
Error kinds raised by the HTTP handlers and the handlers that render them.

Every error response carries a ``{"error": "<message>"}`` body.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "server error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=type(self).status_code, detail=detail or self.default_detail)


class BadRequest(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "email and password are required"


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "login required"


class InvalidSession(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "invalid session"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "not found"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "email already registered"


class PayloadTooLarge(ApiError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_detail = "request body too large"


class ServerError(ApiError):
    pass


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        if exc.status_code == status.HTTP_404_NOT_FOUND and not isinstance(exc, ApiError):
            # Unmatched routes.
            message = NotFound.default_detail
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "invalid request body"
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            reason = errors[0].get("msg", "invalid value")
            message = f"{location}: {reason}" if location else reason
        return error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ServerError.default_detail)
