"""
Error taxonomy and the JSON envelope every response is rendered in.

Services raise these directly; the handlers registered by
``register_exception_handlers`` turn them (and anything unexpected) into
``{"success": false, "error": "..."}`` bodies.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

log = structlog.get_logger()

GENERIC_ERROR_MESSAGE = "Internal server error"


class PlannerError(HTTPException):
    """Base for domain errors. ``detail`` is the client-facing message."""

    status_code = 500
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class ValidationFailed(PlannerError):
    status_code = 400
    default_message = "Invalid request"


class InvalidArgument(ValidationFailed):
    default_message = "Invalid argument"


class PreconditionFailed(PlannerError):
    status_code = 400
    default_message = "Precondition failed"


class Unauthenticated(PlannerError):
    status_code = 401
    default_message = "Not authorized, no token provided"


class TokenExpired(Unauthenticated):
    default_message = "Token expired, please login again"


class InvalidToken(Unauthenticated):
    default_message = "Invalid token"


class Forbidden(PlannerError):
    status_code = 403
    default_message = "You do not have access to this resource"


class NotFound(PlannerError):
    status_code = 404
    default_message = "Not found"


class Conflict(PlannerError):
    status_code = 409
    default_message = "Resource already exists"


class AlreadyMember(Conflict):
    default_message = "You are already a member of this context"


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------

def ok(data: Optional[dict[str, Any]] = None, message: Optional[str] = None) -> dict[str, Any]:
    """Success envelope."""
    body: dict[str, Any] = {"success": True, "data": data or {}}
    if message:
        body["message"] = message
    return body


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    # Custom ValueError messages from our validators are already client-ready.
    ctx_error = (err.get("ctx") or {}).get("error")
    if ctx_error is not None:
        return str(ctx_error)
    loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code >= 500:
            log.error("request.failed", path=request.url.path, status=exc.status_code, detail=exc.detail)
            return error_response(exc.status_code, GENERIC_ERROR_MESSAGE)
        response = error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, _first_validation_message(exc))

    @app.exception_handler(IntegrityError)
    async def _integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
        log.warning("request.integrity_error", path=request.url.path, error=str(exc.orig))
        return error_response(409, Conflict.default_message)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        log.exception("request.unhandled_error", path=request.url.path, method=request.method)
        return error_response(500, GENERIC_ERROR_MESSAGE)
