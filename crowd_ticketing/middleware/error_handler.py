"""
Error handling middleware that turns platform exceptions into JSON responses.
"""

import logging
import traceback
from datetime import datetime, timezone
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as SQLTimeoutError
from pydantic import ValidationError as PydanticValidationError

from ..utils.exceptions import (
    CrowdError,
    ErrorCode,
    ValidationError,
    NotFoundError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
)

logger = logging.getLogger(__name__)


STATUS_MAP = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INSUFFICIENT_TICKETS: status.HTTP_409_CONFLICT,
    ErrorCode.TICKET_LIMIT_EXCEEDED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.TICKET_SALE_CLOSED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_NOT_ON_SALE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_HAS_SALES: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATUS_TRANSITION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_ORDER_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INSUFFICIENT_FUNDS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RATE_LIMIT_EXCEEDED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.EXTERNAL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: CrowdError) -> int:
    """Map an error code to its HTTP status code."""
    return STATUS_MAP.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_body(exc: CrowdError, error_id: str) -> dict:
    return {
        "error": exc.to_dict(),
        "error_id": error_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware for error handling and response formatting."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return self.handle_exception(request, exc, str(uuid4()))

    def handle_exception(self, request: Request, exc: Exception, error_id: str) -> JSONResponse:
        """Handle different types of exceptions and return appropriate responses."""
        self._log_error(request, exc, error_id)

        if isinstance(exc, CrowdError):
            return self._handle_platform_error(exc, error_id)
        elif isinstance(exc, PydanticValidationError):
            return self._handle_validation_error(exc, error_id)
        elif isinstance(exc, IntegrityError):
            return self._handle_integrity_error(exc, error_id)
        elif isinstance(exc, (OperationalError, SQLTimeoutError)):
            return self._handle_database_error(exc, error_id)
        else:
            return self._handle_unexpected_error(exc, error_id)

    def _handle_platform_error(self, exc: CrowdError, error_id: str) -> JSONResponse:
        headers = {}
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        if isinstance(exc, AuthenticationError):
            headers["WWW-Authenticate"] = "Bearer"

        return JSONResponse(
            status_code=status_code_for(exc),
            content=error_body(exc, error_id),
            headers=headers
        )

    def _handle_validation_error(self, exc: PydanticValidationError, error_id: str) -> JSONResponse:
        """Handle Pydantic validation errors raised outside request parsing."""
        field_errors = {}
        for error in exc.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            field_errors.setdefault(field_path, []).append(error["msg"])

        validation_error = ValidationError("Request validation failed", field_errors=field_errors)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(validation_error, error_id)
        )

    def _handle_integrity_error(self, exc: IntegrityError, error_id: str) -> JSONResponse:
        """Handle database integrity constraint violations."""
        error_message = str(exc.orig) if hasattr(exc, "orig") else str(exc)
        lowered = error_message.lower()

        if "unique" in lowered:
            platform_error = ConflictError(
                "A record with this information already exists",
                details={"constraint_type": "unique"}
            )
        elif "foreign key" in lowered:
            platform_error = ConflictError(
                "Referenced resource does not exist",
                details={"constraint_type": "foreign_key"}
            )
        elif "check constraint" in lowered:
            platform_error = ConflictError(
                "The change would violate a data constraint",
                details={"constraint_type": "check"}
            )
        else:
            platform_error = ConflictError(
                "Data integrity constraint violation",
                details={"constraint_type": "unknown"}
            )

        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=error_body(platform_error, error_id)
        )

    def _handle_database_error(self, exc: Exception, error_id: str) -> JSONResponse:
        platform_error = ExternalServiceError(
            "database",
            "Database service temporarily unavailable",
            details={"error_type": type(exc).__name__}
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=error_body(platform_error, error_id),
            headers={"Retry-After": "30"}
        )

    def _handle_unexpected_error(self, exc: Exception, error_id: str) -> JSONResponse:
        platform_error = CrowdError(
            "An unexpected error occurred",
            error_code=ErrorCode.INTERNAL_ERROR,
            details={"error_type": type(exc).__name__} if self.debug else None
        )
        response_data = error_body(platform_error, error_id)

        if self.debug:
            response_data["debug"] = {
                "exception": str(exc),
                "traceback": traceback.format_exc()
            }

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response_data
        )

    def _log_error(self, request: Request, exc: Exception, error_id: str) -> None:
        """Log error with request context."""
        request_info = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        }

        user_info = getattr(request.state, "user_info", None) or {}

        extra = {
            "error_id": error_id,
            "request": request_info,
            "user": user_info,
        }

        if isinstance(exc, CrowdError):
            extra["error_code"] = exc.error_code.value
            extra["details"] = exc.details
            if isinstance(exc, (ValidationError, NotFoundError, AuthenticationError, AuthorizationError)):
                logger.warning(f"Client error [{error_id}]: {exc.message}", extra=extra)
            elif isinstance(exc, ExternalServiceError):
                logger.error(f"System error [{error_id}]: {exc.message}", extra=extra)
            else:
                logger.info(f"Business rule rejected request [{error_id}]: {exc.message}", extra=extra)
        else:
            extra["error_type"] = type(exc).__name__
            logger.error(f"Unexpected error [{error_id}]: {exc}", extra=extra, exc_info=exc)
