"""Error taxonomy and the HTTP error envelope.

Services raise these exceptions; the handlers registered in
``register_exception_handlers`` turn them into
``{"success": false, "error": ..., "details": ...}`` responses.
Anything unexpected becomes a generic 500 and is logged server-side.
"""

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = structlog.get_logger()


class BackofficeError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class AuthenticationError(BackofficeError):
    """Missing, malformed, expired or forged token, or an unusable account."""

    status_code = 401
    default_message = "Invalid or expired token"


class AuthorizationError(BackofficeError):
    """Valid session, insufficient role."""

    status_code = 403
    default_message = "Insufficient permissions"


class ValidationError(BackofficeError):
    status_code = 400
    default_message = "Validation failed"


class ConflictError(ValidationError):
    """A uniqueness rule was violated (e.g. email already registered)."""

    default_message = "Resource already exists"


class NotFoundError(BackofficeError):
    status_code = 404
    default_message = "Not found"


class RateLimitError(BackofficeError):
    status_code = 429
    default_message = "Too many requests. Try again later."


def error_response(
    status_code: int,
    message: str,
    details: Any = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _field_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    """Flatten pydantic errors into {field: [messages]}."""
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        key = ".".join(loc) or "body"
        fields.setdefault(key, []).append(err.get("msg", "Invalid value"))
    return fields


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on the app."""

    @app.exception_handler(BackofficeError)
    async def handle_backoffice_error(request: Request, exc: BackofficeError):
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(
            "request.failed",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error=exc.message,
        )
        headers = None
        if isinstance(exc, AuthenticationError):
            headers = {"WWW-Authenticate": "Bearer"}
        elif isinstance(exc, RateLimitError):
            headers = {"Retry-After": str((exc.details or {}).get("retryAfter", 60))}
        return error_response(exc.status_code, exc.message, exc.details, headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return error_response(400, "Validation failed", _field_errors(exc))

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return error_response(exc.status_code, message, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(
            "request.unhandled_error",
            path=request.url.path,
            method=request.method,
        )
        return error_response(500, "Internal server error")
