"""API error codes, ApiError and the {success, error} envelope handlers."""
import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)

UNAUTHORIZED = "UNAUTHORIZED"
FORBIDDEN = "FORBIDDEN"
INVALID_TOKEN = "INVALID_TOKEN"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
ALREADY_EXISTS = "ALREADY_EXISTS"
CONFLICT = "CONFLICT"
RSVP_CUTOFF_PASSED = "RSVP_CUTOFF_PASSED"
GUEST_ADDITIONS_DISABLED = "GUEST_ADDITIONS_DISABLED"
THEME_IN_USE = "THEME_IN_USE"
PLANNER_DISABLED = "PLANNER_DISABLED"
INTERNAL_ERROR = "INTERNAL_ERROR"
DATABASE_ERROR = "DATABASE_ERROR"
EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

_STATUS_CODES = {
    400: VALIDATION_ERROR,
    401: UNAUTHORIZED,
    403: FORBIDDEN,
    404: NOT_FOUND,
    409: CONFLICT,
    502: EXTERNAL_SERVICE_ERROR,
}


class ApiError(HTTPException):
    """HTTPException with a machine-readable error code."""

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message
        self.details = details


def error_body(code: str, message: str, details: Any = None) -> dict:
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


def _code_for_status(status_code: int) -> str:
    if status_code in _STATUS_CODES:
        return _STATUS_CODES[status_code]
    return INTERNAL_ERROR if status_code >= 500 else VALIDATION_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        headers = getattr(exc, "headers", None)
        if isinstance(exc, ApiError):
            body = error_body(exc.code, exc.message, jsonable_encoder(exc.details))
        else:
            message = exc.detail if isinstance(exc.detail, str) else "Request failed"
            body = error_body(_code_for_status(exc.status_code), message)
        return JSONResponse(status_code=exc.status_code, content=body, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=error_body(VALIDATION_ERROR, "Invalid request data", jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        log.exception("[DB] %s %s failed", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body(DATABASE_ERROR, "Database error"))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        log.exception("[API] Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body(INTERNAL_ERROR, "Internal server error"))
