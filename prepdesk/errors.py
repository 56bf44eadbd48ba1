"""
prepdesk/errors.py
Centralized error handling

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional, for validation errors)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Invalid input / malformed request
- 401: Authentication missing or expired
- 403: AI access not enabled for the user
- 404: Resource does not exist OR belongs to another user
- 409: Conflicting plan for the same week
- 422: Validation error (Pydantic)
- 429: Rate limit exceeded
- 502: External plan generation failed
- 500: NEVER caused by user input (internal only)
"""

import logging
import uuid
from typing import Optional, Dict, Any
from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_FIELD = "MISSING_FIELD"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    UNKNOWN_REFERENCE = "UNKNOWN_REFERENCE"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"

    FORBIDDEN = "FORBIDDEN"

    NOT_FOUND = "NOT_FOUND"
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"

    PLAN_CONFLICT = "PLAN_CONFLICT"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    AI_SERVICE_ERROR = "AI_SERVICE_ERROR"


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class UnauthorizedError(APIError):
    """401 Unauthorized - Authentication required"""
    def __init__(self, message: str = "Authentication required", code: str = ErrorCode.AUTH_REQUIRED):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message=message,
            code=code
        )


class ForbiddenError(APIError):
    """403 Forbidden - Access denied"""
    def __init__(self, message: str, code: str = ErrorCode.FORBIDDEN, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Forbidden",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """
    404 Not Found.

    Also used when the resource exists but belongs to another user, so
    callers cannot probe for other students' records.
    """
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class ConflictError(APIError):
    """409 Conflict"""
    def __init__(self, message: str, code: str = ErrorCode.PLAN_CONFLICT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="Conflict",
            message=message,
            code=code,
            details=details
        )


class PlanGenerationError(APIError):
    """502 - the external generator failed; details stay in the logs"""
    def __init__(self, message: str = "Plan generation failed. Please try again later."):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            error="Bad Gateway",
            message=message,
            code=ErrorCode.AI_SERVICE_ERROR
        )


def validate_range(value: Optional[int], field_name: str, low: int, high: int):
    """Reject values outside [low, high]. None passes."""
    if value is not None and not (low <= value <= high):
        raise BadRequestError(
            f"{field_name} must be between {low} and {high}",
            code=ErrorCode.OUT_OF_RANGE,
            details={"field": field_name, "value": value, "min": low, "max": high}
        )


def new_log_id() -> str:
    return str(uuid.uuid4())[:8]


def internal_error_response(error: Exception, context: str = "") -> JSONResponse:
    """Log an unexpected error and build the generic 500 body"""
    log_id = new_log_id()
    logger.error(f"[{log_id}] Internal error in {context}: {type(error).__name__}: {str(error)}", exc_info=error)
    return APIError(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error="Internal Error",
        message="An unexpected error occurred. Please try again later.",
        code=ErrorCode.INTERNAL_ERROR,
        details={"log_id": log_id}
    ).to_response()


def get_error_summary() -> Dict[str, Any]:
    """Return summary of error handling system for documentation"""
    return {
        "service": "prepdesk-api-errors",
        "response_structure": {
            "success": "boolean (always false for errors)",
            "error": "string (error type)",
            "message": "string (human-readable)",
            "code": "string (machine-readable)",
            "details": "object (optional)"
        },
        "status_codes": {
            "400": "Invalid input / malformed request",
            "401": "Authentication missing or expired",
            "403": "AI access not enabled",
            "404": "Resource does not exist or is not yours",
            "409": "Plan already exists for that week",
            "422": "Validation error (Pydantic)",
            "429": "Rate limit exceeded",
            "502": "Plan generation failed",
            "500": "Internal error (NEVER caused by user input)"
        },
        "error_codes": [
            attr for attr in dir(ErrorCode)
            if not attr.startswith('_')
        ]
    }
