# yourvoice/core/errors.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str, param: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.param = param


class NotFound(ApiError):
    def __init__(self, message: str = "Resource not found.", param: str | None = None):
        super().__init__(404, "resource_missing", message, param=param)


class Unauthorized(ApiError):
    """No identity (401) or an identity without the required role (403)."""

    def __init__(self, message: str = "Not authenticated.", param: str | None = None, *, forbidden: bool = False):
        if forbidden:
            super().__init__(403, "forbidden", message, param=param)
        else:
            super().__init__(401, "unauthorized", message, param=param)


class ValidationFailure(ApiError):
    def __init__(self, message: str, param: str | None = None):
        super().__init__(400, "invalid_request_error", message, param=param)


class UpstreamFailure(ApiError):
    def __init__(self, message: str, param: str | None = None):
        super().__init__(502, "upstream_error", message, param=param)


def error_body(code: str, message: str, param: str | None = None, type_: str = "invalid_request_error"):
    body = {
        "error": {
            "type": type_,
            "code": code,
            "message": message,
        }
    }
    if param:
        body["error"]["param"] = param
    return body


def _error_type(exc: ApiError) -> str:
    if isinstance(exc, UpstreamFailure):
        return "api_error"
    if isinstance(exc, Unauthorized):
        return "authentication_error"
    return "invalid_request_error"


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, exc.param, type_=_error_type(exc)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(p) for p in first.get("loc", ()) if p != "body"]
        return JSONResponse(
            status_code=400,
            content=error_body(
                "invalid_request_error",
                first.get("msg", "Invalid request."),
                ".".join(loc) or None,
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        # do not leak a traceback in the response
        return JSONResponse(
            status_code=500,
            content=error_body("internal_error", f"{type(exc).__name__}: {exc}", type_="api_error"),
        )
