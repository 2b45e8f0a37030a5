"""
Error taxonomy and JSON error rendering.

Every error response has the shape {"error": {"code", "message", "details"}}.
"""
from typing import Any, List, Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    415: "UNSUPPORTED_MEDIA_TYPE",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def format_error(code: str, message: str, details: Any = None) -> dict:
    return {"error": {"code": code, "message": message, "details": details}}


def issue(path: str, message: str, code: str = "custom") -> dict:
    """One field-level validation issue."""
    return {"path": path, "message": message, "code": code}


class CMSError(Exception):
    """Base class for errors that map to a specific HTTP response."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(CMSError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: Optional[List[dict]] = None):
        super().__init__(message, details)


class NotFound(CMSError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class StorageNotConfigured(CMSError):
    code = "MISSING_ENV"


class APIError(StarletteHTTPException):
    """HTTPException carrying an explicit error code."""

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.details = details


def _validation_issues(exc: RequestValidationError) -> List[dict]:
    issues = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        issues.append(issue(".".join(loc), err.get("msg", "Invalid value"), err.get("type", "invalid")))
    return issues


async def cms_error_handler(request: Request, exc: CMSError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=format_error(exc.code, exc.message, exc.details))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = _validation_issues(exc)
    logger.warning(f"Request validation failed: {request.method} {request.url.path} issues={len(issues)}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error("VALIDATION_ERROR", "Invalid request payload", issues),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = getattr(exc, "code", None) or STATUS_CODES.get(exc.status_code, "ERROR")
    details = getattr(exc, "details", None)
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if not isinstance(exc.detail, str) and details is None:
        details = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error(code, message, details),
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CMSError, cms_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
