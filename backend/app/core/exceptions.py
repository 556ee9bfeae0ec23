"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
import math
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("englishcamp.errors")


def json_safe(value: Any) -> Any:
    """Responses render with allow_nan=False; NaN and infinities go out as text."""
    if isinstance(value, float) and not math.isfinite(value):
        return repr(value)
    if isinstance(value, dict):
        return {key: json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(item) for item in value]
    return value


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


# Grading domain errors

class UnknownStudentError(AppException):
    """Raised when a student id does not resolve in the roster index."""

    def __init__(self, student_id: str):
        super().__init__(
            message=f"Student '{student_id}' is not in the roster",
            error_code="ERR_STUDENT_404",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"student_id": student_id}
        )


class InvalidScoreError(AppException):
    """Raised when a score is not an integer within the allowed range."""

    def __init__(self, score: Any, max_score: int = 100):
        super().__init__(
            message=f"Score must be an integer between 0 and {max_score}",
            error_code="ERR_SCORE_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"score": json_safe(score), "max_score": max_score}
        )


class MissingJustificationError(AppException):
    """Raised when a score reduction has no reason or no committee attribution."""

    def __init__(self, missing: list[str]):
        super().__init__(
            message="A score reduction requires a reason and a committee name",
            error_code="ERR_SCORE_002",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"missing": missing}
        )


class EmptySubmissionError(AppException):
    """Raised when a lecturer submission carries neither scores nor notes."""

    def __init__(self, message: str = "Input at least one score or group note"):
        super().__init__(
            message=message,
            error_code="ERR_SCORE_003",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class StoreUnavailableError(AppException):
    """Raised when the document store backend cannot be reached."""

    def __init__(self, operation: str, reason: str = ""):
        super().__init__(
            message=f"Document store unavailable during {operation}",
            error_code="ERR_STORE_503",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"operation": operation, "reason": reason}
        )


class DuplicateStudentError(AppException):
    """Raised when a roster group already contains the given name."""

    def __init__(self, name: str, class_name: str, group: str):
        super().__init__(
            message=f"Student '{name}' already exists in class {class_name} group {group}",
            error_code="ERR_ROSTER_409",
            status_code=status.HTTP_409_CONFLICT,
            details={"name": name, "class": class_name, "group": group}
        )


class InvalidRosterInputError(AppException):
    """Raised for roster edits with blank or unusable fields."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_ROSTER_400",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class UnknownSubjectError(AppException):
    """Raised when a subject is not in the subject list."""

    def __init__(self, subject: str):
        super().__init__(
            message=f"Subject '{subject}' is not configured",
            error_code="ERR_SUBJECT_404",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"subject": subject}
        )


class SystemLockedError(AppException):
    """Raised when the lecturer or committee system is locked by an admin."""

    def __init__(self, role: str):
        super().__init__(
            message=f"The {role} system is currently locked",
            error_code="ERR_LOCKED_423",
            status_code=status.HTTP_423_LOCKED,
            details={"role": role}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry the raw exception object
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "input" in error:
            error["input"] = json_safe(error["input"])
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
