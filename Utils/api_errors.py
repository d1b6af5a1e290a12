"""
API error taxonomy and response envelope helpers.

Every error raised by the CRUD/service layer is an ApiError subclass carrying a
stable machine-readable code and the HTTP status code it maps to. main.py renders
them into the standard envelope:

    {"success": false, "error": {"message", "code", "status_code", "details"?}}
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, NoResultFound

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"


class ApiError(Exception):
    """Base class for errors surfaced to API clients."""

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return create_api_error(self.message, self.status_code, self.code, self.details)


class InputValidationError(ApiError):
    """Malformed or out-of-range input, detected before any write or provider call."""

    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Validation error"


class NotFoundError(ApiError):
    code = "RESOURCE_NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class DuplicateResourceError(ApiError):
    code = "DUPLICATE_RESOURCE"
    status_code = 409
    default_message = "Resource already exists"


class NoValidLocationsError(ApiError):
    code = "NO_VALID_LOCATIONS"
    status_code = 400
    default_message = "No valid locations found"


class RouteOptimizationFailed(ApiError):
    """The routing provider could not produce a route. Retryable."""

    code = "ROUTE_OPTIMIZATION_FAILED"
    status_code = 503
    default_message = "Unable to optimize route. Please check addresses and try again."


class InternalError(ApiError):
    code = "INTERNAL_ERROR"
    status_code = 500


def create_api_error(
    message: str,
    status_code: int = 500,
    code: Optional[str] = None,
    details: Any = None
) -> Dict[str, Any]:
    """Create a standardized API error body."""
    error = {
        "message": message,
        "code": code or f"ERROR_{status_code}",
        "status_code": status_code,
    }
    if details is not None:
        error["details"] = details
    return error


def is_unique_violation(error: IntegrityError) -> bool:
    """
    True when an IntegrityError comes from a unique constraint.
    NOT NULL, foreign key and check violations return False.
    """
    orig = getattr(error, "orig", None)
    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    # SQLite: "UNIQUE constraint failed", PostgreSQL: "violates unique constraint"
    return "unique constraint" in str(orig if orig is not None else error).lower()


def handle_api_error(error: BaseException) -> ApiError:
    """
    Classify any exception into the API error taxonomy.
    ApiError instances pass through unchanged.
    """
    if isinstance(error, ApiError):
        return error

    if isinstance(error, IntegrityError) and is_unique_violation(error):
        return DuplicateResourceError()

    if isinstance(error, NoResultFound):
        return NotFoundError()

    logger.error(f"Unhandled error classified as INTERNAL_ERROR: {type(error).__name__}: {error}")
    return InternalError(str(error) or InternalError.default_message)


def error_envelope(error: ApiError) -> Dict[str, Any]:
    return {"success": False, "error": error.to_dict()}
