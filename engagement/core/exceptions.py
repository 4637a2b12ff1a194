"""
Domain Exceptions Module

Error taxonomy for the engagement lifecycle. Services raise these; the
handlers registered in ``engagement.main`` turn them into JSON responses of
the form::

    {"success": false, "error": "Human-readable message", "error_code": "CONFLICT"}
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class EngagementError(Exception):
    """
    Base exception for all business-rule violations.

    Attributes:
        status_code: HTTP status code the error maps to
        error_code: Machine-readable error code
        message: Short explanation shown to the caller
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "ERROR"
    default_message = "An unexpected error occurred."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(EngagementError):
    """Missing or malformed input."""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    default_message = "Invalid request."


class AuthenticationError(EngagementError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "NOT_AUTHENTICATED"
    default_message = "Not authenticated"


class ForbiddenError(EngagementError):
    """Wrong role, or not the owner of the resource."""
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_message = "Not authorized"


class NotFoundError(EngagementError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(EngagementError):
    """The request clashes with the current state of the resource."""
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Conflicting request"


class DatabaseError(EngagementError):
    """A transaction failed and was rolled back."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "DATABASE_ERROR"
    default_message = "Database error"


def _error_body(message: str, error_code: str) -> dict:
    return {"success": False, "error": message, "error_code": error_code}


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """
    Attach the domain error handlers to ``app``.

    Unexpected exceptions are logged with their traceback and reported with a
    generic message; the exception text is only exposed when ``debug`` is set.
    """

    @app.exception_handler(EngagementError)
    async def handle_engagement_error(request: Request, exc: EngagementError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.error_code),
            headers={"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = f"Internal server error: {exc}" if debug else "Internal server error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(message, "INTERNAL_ERROR"),
        )
