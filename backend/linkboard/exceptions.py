"""
Domain errors and the FastAPI handlers that render them.

Every domain error names the input field it concerns, so the GraphQL layer can
turn it into a ``FieldError`` instead of failing the whole request.
"""
import logging
from typing import Optional, Dict, Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base exception class for application-specific errors."""

    def __init__(
        self,
        field: str,
        message: str,
        error_code: str = "APP_ERROR",
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[Dict[str, Any]] = None
    ):
        self.field = field
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_field_error(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(AppException):
    """Raised when input validation fails."""
    def __init__(self, field: str, message: str):
        super().__init__(
            field=field,
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class DuplicateError(AppException):
    """Raised when a unique value is already taken."""
    def __init__(self, field: str, message: str = "already taken"):
        super().__init__(
            field=field,
            message=message,
            error_code="DUPLICATE",
            status_code=status.HTTP_409_CONFLICT
        )


class NotFoundError(AppException):
    """Raised when a looked-up entity does not exist."""
    def __init__(self, field: str, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(
            field=field,
            message=message,
            error_code=error_code,
            status_code=status.HTTP_404_NOT_FOUND
        )


class UserGoneError(NotFoundError):
    """Raised when a reset token outlives the user it was issued for."""
    def __init__(self, field: str = "token", message: str = "user no longer exists"):
        super().__init__(field=field, message=message, error_code="USER_GONE")


class InvalidCredentialsError(AppException):
    """Raised when a password does not match."""
    def __init__(self, field: str = "password", message: str = "incorrect password"):
        super().__init__(
            field=field,
            message=message,
            error_code="INVALID_CREDENTIALS",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class TokenExpiredError(AppException):
    """Raised when a reset token is unknown, already used or past its TTL."""
    def __init__(self, field: str = "token", message: str = "token expired"):
        super().__init__(
            field=field,
            message=message,
            error_code="TOKEN_EXPIRED",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class SessionUnavailableError(AppException):
    """Raised when the session store refuses to record a login."""
    def __init__(self, field: str = "session", message: str = "could not start a session, try again"):
        super().__init__(
            field=field,
            message=message,
            error_code="SESSION_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions."""
    logger.warning(
        f"AppException: {exc.error_code} - {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": {"field": exc.field, **exc.details}
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        f"Unexpected error: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method
        }
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": {}
        }
    )
