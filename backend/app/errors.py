"""Domain exceptions and their HTTP rendering.

Services raise these instead of building HTTP responses themselves; the
handler registered by :func:`register_exception_handlers` turns them into the
API's ``{"success": false, "message": ...}`` envelope.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for API-visible errors."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationFailedError(AppError):
    """Raised when request content fails a domain rule."""
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class ConflictError(AppError):
    """Raised when the requested state already exists."""
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class AuthenticationError(AppError):
    """Raised when a credential is missing, invalid or expired."""
    def __init__(self, message: str = "Not authorized to access this route"):
        super().__init__(message, status_code=401)


class ForbiddenError(AppError):
    """Raised when the caller is not a participant of the resource."""
    def __init__(self, message: str):
        super().__init__(message, status_code=403)


class NotFoundError(AppError):
    """Raised when a referenced record does not exist."""
    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class ServiceUnavailableError(AppError):
    """Raised when a runtime component (socket hub, AI provider) is not set up."""
    def __init__(self, message: str):
        super().__init__(message, status_code=503)


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        {"success": False, "message": exc.message},
        status_code=exc.status_code,
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    if field:
        message = f"{field}: {message}"
    return JSONResponse(
        {"success": False, "message": message},
        status_code=400,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain error handlers to a FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
