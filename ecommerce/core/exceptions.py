"""
Exception classes for the application.

Every error raised by services carries an HTTP status, a stable machine
readable ``error_code`` and an optional ``details`` payload. The global
exception handler turns them into the standard error envelope.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


# Error codes
PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
VARIANT_NOT_FOUND = "VARIANT_NOT_FOUND"
PRODUCT_OPTION_NOT_FOUND = "PRODUCT_OPTION_NOT_FOUND"
PRODUCT_OPTION_VALUE_NOT_FOUND = "PRODUCT_OPTION_VALUE_NOT_FOUND"
USER_NOT_FOUND = "USER_NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
SKU_CONFLICT = "SKU_CONFLICT"
PRODUCT_SKU_CONFLICT = "PRODUCT_SKU_CONFLICT"
VARIANT_COMBINATION_EXISTS = "VARIANT_COMBINATION_EXISTS"
PRODUCT_OPTION_NAME_EXISTS = "PRODUCT_OPTION_NAME_EXISTS"
PRODUCT_OPTION_VALUE_EXISTS = "PRODUCT_OPTION_VALUE_EXISTS"
PRODUCT_OPTION_IN_USE = "PRODUCT_OPTION_IN_USE"
PRODUCT_OPTION_VALUE_IN_USE = "PRODUCT_OPTION_VALUE_IN_USE"
PRODUCT_OPTION_MISMATCH = "PRODUCT_OPTION_MISMATCH"
PRODUCT_OPTION_VALUE_MISMATCH = "PRODUCT_OPTION_VALUE_MISMATCH"
LAST_VARIANT_DELETE_NOT_ALLOWED = "LAST_VARIANT_DELETE_NOT_ALLOWED"
INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
VARIANT_OUT_OF_STOCK = "VARIANT_OUT_OF_STOCK"
BULK_UPDATE_VARIANT_NOT_FOUND = "BULK_UPDATE_VARIANT_NOT_FOUND"
USERNAME_EXISTS = "USERNAME_EXISTS"
FOREIGN_KEY_VIOLATION = "FOREIGN_KEY_VIOLATION"
CONFLICT = "CONFLICT"
FORBIDDEN = "FORBIDDEN"
UNAUTHORIZED = "UNAUTHORIZED"
INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(HTTPException):
    """Base class for all typed application errors."""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = VALIDATION_ERROR,
    ):
        super().__init__(
            status.HTTP_400_BAD_REQUEST, error_code, message, details
        )


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
    ):
        code = error_code or f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND"
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            code,
            message or f"{resource_type} not found",
            details,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ForbiddenError(AppError):
    """Raised when the caller may not act on a resource."""

    def __init__(self, message: str = "Operation not permitted"):
        super().__init__(status.HTTP_403_FORBIDDEN, FORBIDDEN, message)


class ConflictError(AppError):
    """
    Raised when there's a conflict with existing data.

    State conflicts that clients are expected to resolve themselves (an option
    still used by variants, deleting the last variant, not enough stock) are
    reported with 400 instead of 409 by passing ``status_code``.
    """

    def __init__(
        self,
        message: str,
        error_code: str = CONFLICT,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_409_CONFLICT,
    ):
        super().__init__(status_code, error_code, message, details)


class ForeignKeyError(AppError):
    """Raised when a write references a row that does not exist."""

    def __init__(self, message: str = "Referenced resource does not exist"):
        super().__init__(
            status.HTTP_400_BAD_REQUEST, FOREIGN_KEY_VIOLATION, message
        )


class DatabaseError(AppError):
    """Raised when database operations fail."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(
            status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR, message
        )


class UnauthorizedError(AppError):
    """Raised when a user is not authorized to access a resource."""

    def __init__(self, message: str):
        super().__init__(status.HTTP_401_UNAUTHORIZED, UNAUTHORIZED, message)
