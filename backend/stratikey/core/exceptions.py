"""
Centralized Exception Handling Module
=====================================

Defines custom exception classes for the authorization core.

Every failure maps to a stable error code and HTTP status class and is
rendered as the structured error envelope:

    {"error": {"code": ..., "message": ..., "details": ...}}

Usage:
    raise AuthenticationError()
    raise PermissionDeniedError(module="crm", action="update")
"""

from typing import Any, Dict, Optional

from fastapi import status


class ErrorCodes:
    """Stable error codes shared with API clients."""

    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_A_MEMBER = "NOT_A_MEMBER"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class StratikeyException(Exception):
    """
    Base exception class for the Stratikey authorization core.

    All custom exceptions should inherit from this class.
    """

    code: str = ErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if code is not None:
            self.code = code
        super().__init__(self.message)


# ==========================
# Authentication Exceptions
# ==========================

class AuthenticationError(StratikeyException):
    """Raised when the caller has no resolvable identity."""

    code = ErrorCodes.UNAUTHORIZED

    def __init__(
        self,
        message: str = "You must be logged in to perform this action",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


# ==========================
# Authorization Exceptions
# ==========================

class AuthorizationError(StratikeyException):
    """Raised when the caller is known but lacks the required access."""

    code = ErrorCodes.FORBIDDEN

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
        )


class NoActiveMembershipError(AuthorizationError):
    """Raised when the caller has no usable organization membership."""

    def __init__(self):
        super().__init__(
            message="No organization access",
            details={"reason": "no_active_membership"},
        )


class PermissionDeniedError(AuthorizationError):
    """Raised when the active role lacks a (module, action) permission."""

    def __init__(self, module: str, action: str):
        super().__init__(
            message="Insufficient permissions for this action",
            details={"module": module, "action": action},
        )


class ApprovalCapabilityError(AuthorizationError):
    """Raised when the active role may edit but not approve an entity type."""

    def __init__(self, entity_type: str):
        super().__init__(
            message="Insufficient permissions to review this content",
            details={"entityType": entity_type},
        )


class NotAMemberError(AuthorizationError):
    """
    Raised when a caller targets an organization they do not belong to.

    The message is identical whether or not the organization exists.
    """

    code = ErrorCodes.NOT_A_MEMBER

    def __init__(self):
        super().__init__(message="You are not a member of this organization")


# ==========================
# Resource Exceptions
# ==========================

class NotFoundError(StratikeyException):
    """Raised when a resource is not found in the caller's organization."""

    code = ErrorCodes.NOT_FOUND

    def __init__(self, resource: str = "Resource", identifier: Optional[str] = None):
        details: Dict[str, Any] = {"resource": resource}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            message=f"{resource} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
        )


class ConflictError(StratikeyException):
    """Raised when a compare-and-swap precondition no longer holds."""

    code = ErrorCodes.CONFLICT

    def __init__(
        self,
        message: str = "The resource was modified concurrently. Reload and try again.",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


# ==========================
# Validation Exceptions
# ==========================

class ValidationError(StratikeyException):
    """Raised when a request is malformed or a transition is not allowed."""

    code = ErrorCodes.VALIDATION_ERROR

    def __init__(
        self,
        message: str = "The provided data is invalid",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class InvalidTransitionError(ValidationError):
    """Raised when an approval transition is undefined for the current state."""

    def __init__(self, transition: str, current_status: str):
        super().__init__(
            message=f"Cannot {transition.replace('_', ' ')} content in status {current_status}",
            details={"transition": transition, "currentStatus": current_status},
        )


class ReviewNotesRequiredError(ValidationError):
    """Raised when changes are requested without feedback."""

    def __init__(self):
        super().__init__(
            message="Review notes are required when requesting changes",
            details={"field": "reviewNotes"},
        )


# ==========================
# Rate Limiting Exceptions
# ==========================

class RateLimitError(StratikeyException):
    """Raised when rate limit is exceeded."""

    code = ErrorCodes.RATE_LIMIT_EXCEEDED

    def __init__(self, retry_after: int = 60):
        self.retry_after = retry_after
        super().__init__(
            message="Too many requests. Please try again later",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"retryAfter": retry_after},
        )


# ==========================
# Internal Exceptions
# ==========================

class InternalError(StratikeyException):
    """Raised when the durable layer fails unexpectedly."""

    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# ==========================
# Helper Functions
# ==========================

def to_error_envelope(exc: StratikeyException) -> Dict[str, Any]:
    """
    Convert a StratikeyException to the structured error envelope.

    Args:
        exc: StratikeyException instance

    Returns:
        Dictionary of the form {"error": {"code", "message", "details"?}}
    """
    error: Dict[str, Any] = {
        "code": exc.code,
        "message": exc.message,
    }
    if exc.details:
        error["details"] = exc.details
    return {"error": error}
