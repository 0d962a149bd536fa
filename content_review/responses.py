"""
Content Review API Response Utilities
Standardized error format and exception handling
"""
from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict
from datetime import datetime, timezone

from .lifecycle import InvalidTransition, LifecycleError, MissingRejectionNotes
from .logging_config import api_logger, db_logger
from .policies import AuthorizationDenied


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================
# ERROR RESPONSES
# ============================================================

class ApiException(HTTPException):
    """Custom API exception with error codes"""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str = None,
        details: Dict = None,
        headers: Dict[str, str] = None,
    ):
        self.error_code = error_code or f"ERR_{status_code}"
        self.details = details
        super().__init__(status_code=status_code, detail=message, headers=headers)


def unauthorized(message: str = "Not authenticated"):
    raise ApiException(401, message, "UNAUTHORIZED", headers={"WWW-Authenticate": "Bearer"})

def forbidden(message: str = "Access denied"):
    raise ApiException(403, message, "FORBIDDEN")

def not_found(resource: str = "Resource", id: str = None):
    message = f"{resource} not found" if not id else f"{resource} '{id}' not found"
    raise ApiException(404, message, "NOT_FOUND")

def validation_error(message: str, details: Dict = None):
    raise ApiException(422, message, "VALIDATION_ERROR", details)


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

async def api_exception_handler(request: Request, exc: ApiException) -> JSONResponse:
    """Render ApiException as the standard error envelope"""
    api_logger.warning(
        f"API Error: {exc.detail}",
        status_code=exc.status_code,
        error_code=exc.error_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "ok": False,
            "error": exc.detail,
            "error_code": exc.error_code,
            "details": exc.details,
            "timestamp": _timestamp(),
        },
        headers=exc.headers,
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters, in the standard envelope."""
    errors = jsonable_encoder(exc.errors())
    fields = [".".join(str(part) for part in err["loc"] if part != "body") for err in errors]
    return await api_exception_handler(
        request,
        ApiException(422, "Invalid request", "VALIDATION_ERROR", {"fields": fields, "errors": errors}),
    )


async def authorization_exception_handler(request: Request, exc: AuthorizationDenied) -> JSONResponse:
    """A write refused by the row policies."""
    return await api_exception_handler(
        request,
        ApiException(403, "You are not allowed to modify this content", "FORBIDDEN", {"table": exc.table}),
    )


async def lifecycle_exception_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    """Review workflow errors: missing notes or a move out of a terminal state."""
    if isinstance(exc, MissingRejectionNotes):
        error = ApiException(422, str(exc), "VALIDATION_ERROR", {"field": "rejection_notes"})
    elif isinstance(exc, InvalidTransition):
        error = ApiException(
            409,
            str(exc),
            "INVALID_TRANSITION",
            {"current": exc.current.value, "target": exc.target.value},
        )
    else:
        error = ApiException(400, str(exc), "LIFECYCLE_ERROR")
    return await api_exception_handler(request, error)


async def backend_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Storage failures surface as a generic error; nothing is retried."""
    db_logger.error(
        "Database error",
        error=exc,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=503,
        content={
            "ok": False,
            "error": "The storage backend is unavailable, please try again",
            "error_code": "BACKEND_ERROR",
            "details": None,
            "timestamp": _timestamp(),
        },
    )


def timeout_response(path: str, timeout: float) -> JSONResponse:
    api_logger.warning("Request timed out", path=path, timeout_seconds=timeout)
    return JSONResponse(
        status_code=504,
        content={
            "ok": False,
            "error": "The request took too long and was cancelled",
            "error_code": "TIMEOUT",
            "details": {"timeout_seconds": timeout},
            "timestamp": _timestamp(),
        },
    )

