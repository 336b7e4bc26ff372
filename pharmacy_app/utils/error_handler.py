"""
Error taxonomy and standardized error responses for the ordering API
"""

import uuid
import logging
from typing import Optional
from datetime import datetime, timezone
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

class ErrorContext:
    """Context object for tracking error information across the request lifecycle"""

    def __init__(self, request: Request):
        self.request_id = str(uuid.uuid4())
        self.request = request
        self.endpoint = str(request.url.path)
        self.method = request.method
        self.client_ip = self._get_client_ip()
        self.user_agent = request.headers.get("user-agent")
        self.timestamp = datetime.now(timezone.utc)

    def _get_client_ip(self) -> Optional[str]:
        """Extract client IP from request headers"""
        if "x-forwarded-for" in self.request.headers:
            return self.request.headers["x-forwarded-for"].split(",")[0].strip()
        elif "x-real-ip" in self.request.headers:
            return self.request.headers["x-real-ip"]
        elif self.request.client:
            return self.request.client.host
        return None

class StoreError(Exception):
    """Base class for order store failures surfaced to callers"""
    status_code = 500
    error_code = "STORE_ERROR"

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

class ValidationError(StoreError):
    """Order input is well-formed JSON but violates an order rule"""
    status_code = 422
    error_code = "VALIDATION_ERROR"

class InvalidTransitionError(StoreError):
    """Requested status change is not allowed from the current status"""
    status_code = 409
    error_code = "INVALID_TRANSITION"

class ConcurrentUpdateError(InvalidTransitionError):
    """Order changed between being read and being updated"""
    error_code = "CONCURRENT_UPDATE"

class ConnectivityError(StoreError):
    """Backing store could not be reached"""
    status_code = 503
    error_code = "STORE_UNAVAILABLE"

class StoreTimeoutError(StoreError, TimeoutError):
    """Store call did not complete in time"""
    status_code = 504
    error_code = "STORE_TIMEOUT"

class DatabaseError(StoreError):
    """Custom exception for database-related errors"""
    error_code = "DATABASE_ERROR"

class ErrorHandler:
    """Centralized error handling service"""

    @staticmethod
    def create_error_response(
        error_context: ErrorContext,
        error: Exception,
        status_code: int = 500,
        error_code: Optional[str] = None
    ) -> JSONResponse:
        """Create a standardized error response"""

        error_data = {
            "error": {
                "code": error_code or ErrorHandler._get_error_code(error),
                "message": ErrorHandler._get_user_friendly_message(error),
                "request_id": error_context.request_id,
                "timestamp": error_context.timestamp.isoformat(),
                "endpoint": error_context.endpoint,
                "method": error_context.method
            }
        }

        ErrorHandler._log_error(error_context, error, status_code)

        return JSONResponse(
            status_code=status_code,
            content=error_data
        )

    @staticmethod
    def _get_error_code(error: Exception) -> str:
        """Generate appropriate error codes based on exception type"""
        if isinstance(error, HTTPException):
            return f"HTTP_{error.status_code}"
        elif isinstance(error, StoreError):
            return error.error_code
        elif isinstance(error, ValueError):
            return "VALIDATION_ERROR"
        else:
            return "INTERNAL_ERROR"

    @staticmethod
    def _get_user_friendly_message(error: Exception) -> str:
        """Generate user-friendly error messages"""
        if isinstance(error, HTTPException):
            return error.detail
        elif isinstance(error, (ValidationError, InvalidTransitionError)):
            return error.message
        elif isinstance(error, ConnectivityError):
            return "The order store is unavailable. Please try again later."
        elif isinstance(error, StoreTimeoutError):
            return "The order store took too long to respond. Please try again."
        elif isinstance(error, DatabaseError):
            return "A database error occurred. Please try again later."
        elif isinstance(error, ValueError):
            return "Invalid input provided. Please check your data and try again."
        else:
            return "An unexpected error occurred. Please try again later."

    @staticmethod
    def _log_error(error_context: ErrorContext, error: Exception, status_code: int):
        """Log error with comprehensive context"""
        log = logger.warning if status_code < 500 else logger.error
        log(
            f"Error {error_context.request_id}: {type(error).__name__} in {error_context.method} {error_context.endpoint}",
            extra={
                "request_id": error_context.request_id,
                "endpoint": error_context.endpoint,
                "method": error_context.method,
                "status_code": status_code,
                "client_ip": error_context.client_ip,
                "user_agent": error_context.user_agent,
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
        )

async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Exception handler mapping store errors to their HTTP status"""
    return ErrorHandler.create_error_response(ErrorContext(request), exc, exc.status_code)
