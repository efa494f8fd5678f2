"""Domain exceptions and error classification for API responses."""

from enum import Enum

from pydantic import BaseModel, ValidationError

from src.core.config import Constants


class InvalidParentError(ValueError):
    """Raised when a reparent operation names a parent that cannot hold the task."""


class ParentCycleError(InvalidParentError):
    """Raised when a reparent operation would make a task its own ancestor."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Record errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_VALIDATION = "ERR_VALIDATION"

    # Hierarchy errors
    ERR_INVALID_PARENT = "ERR_INVALID_PARENT"
    ERR_PARENT_CYCLE = "ERR_PARENT_CYCLE"

    # Storage errors
    ERR_DATABASE = "ERR_DATABASE"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_STATUS_BY_CODE: dict[str, int] = {
    ErrorCode.ERR_NOT_FOUND: Constants.HTTP_NOT_FOUND,
    ErrorCode.ERR_VALIDATION: Constants.HTTP_BAD_REQUEST,
    ErrorCode.ERR_INVALID_PARENT: Constants.HTTP_BAD_REQUEST,
    ErrorCode.ERR_PARENT_CYCLE: Constants.HTTP_CONFLICT,
    ErrorCode.ERR_DATABASE: Constants.HTTP_SERVER_ERROR,
    ErrorCode.ERR_UNKNOWN: Constants.HTTP_SERVER_ERROR,
}


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    The order of checks matters: ``ParentCycleError`` is an ``InvalidParentError``,
    which is a ``ValueError``, and record-not-found errors subclass ``KeyError``.

    Args:
        exception: The exception raised by a service call

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, ParentCycleError):
        return ErrorResponse(
            code=ErrorCode.ERR_PARENT_CYCLE,
            message=str(exception),
            suggestion="Choose a parent that is not one of the task's own subtasks.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidParentError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_PARENT,
            message=str(exception),
            suggestion="Pick a parent task from the same project.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, KeyError):
        # KeyError wraps its message in quotes; unwrap for display
        message = exception.args[0] if exception.args else "Record not found"
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=str(message),
            suggestion="Refresh the project to load its current tasks.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, ValidationError | ValueError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            suggestion="Check the submitted fields and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, RuntimeError):
        return ErrorResponse(
            code=ErrorCode.ERR_DATABASE,
            message="The task store could not complete the request.",
            suggestion="Please try again later. If the problem persists, contact support.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )


def status_code_for(response: ErrorResponse) -> int:
    """Map a classified error to its HTTP status code."""
    return _STATUS_BY_CODE.get(response.code, Constants.HTTP_SERVER_ERROR)
