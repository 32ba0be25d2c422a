from typing import Any, Dict, List, Optional

from fastapi import status


class BaseAppException(Exception):
    """Base exception for application"""
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Return error response as dictionary with error code"""
        return {
            "error": self.error_code,
            "message": self.message,
        }


class NotFoundException(BaseAppException):
    """Raised when an id has no matching row"""
    error_code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class AlreadyExistsException(BaseAppException):
    """Raised when a conditional create hits an occupied address"""
    error_code = "ALREADY_EXISTS"

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message, status.HTTP_409_CONFLICT)


class InvalidIdException(BaseAppException):
    """Raised when an identifier cannot be encoded into a key"""
    error_code = "INVALID_ID"

    def __init__(self, message: str = "Invalid identifier"):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class MalformedKeyException(BaseAppException):
    """Raised when a stored key does not match any known layout"""
    error_code = "MALFORMED_KEY"

    def __init__(self, message: str = "Malformed key"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ValidationException(BaseAppException):
    """Raised when input fails schema constraints"""
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.details:
            body["details"] = self.details
        return body


class ForbiddenException(BaseAppException):
    """Raised when the caller does not own the resource"""
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "You do not have access to this resource"):
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class AuthenticationException(BaseAppException):
    """Base class for authorization gate failures.

    ``reason`` keeps the internal cause for logging; it never reaches the
    response body.
    """
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized", reason: Optional[str] = None):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)
        self.reason = reason or message


class MissingTokenException(AuthenticationException):
    """Raised when no bearer token is supplied"""
    error_code = "MISSING_TOKEN"

    def __init__(self, reason: Optional[str] = None):
        super().__init__("Authentication required", reason or "No Authorization header provided")


class InvalidHeaderFormatException(AuthenticationException):
    """Raised when the Authorization header is not ``Bearer <token>``"""
    error_code = "INVALID_HEADER_FORMAT"

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Invalid Authorization header format. Expected: Bearer <token>",
            reason or "Authorization header does not match Bearer scheme",
        )


class TokenVerificationFailedException(AuthenticationException):
    """Raised when the token signature or claims do not verify"""
    error_code = "TOKEN_VERIFICATION_FAILED"

    def __init__(self, reason: Optional[str] = None):
        super().__init__("Invalid or expired token", reason)


class StoreException(BaseAppException):
    """Raised when the key-value store rejects an operation"""
    error_code = "STORE_ERROR"

    def __init__(self, message: str = "Storage error", status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(message, status_code)


class StoreUnavailableException(StoreException):
    """Raised on throttling, timeouts or transient store errors (retryable)"""
    error_code = "STORE_UNAVAILABLE"

    def __init__(self, message: str = "Storage temporarily unavailable, retry later"):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class PartialFailureException(BaseAppException):
    """Raised when a multi-step operation stopped partway.

    Completed steps are idempotent, so the caller may retry the whole
    operation.
    """
    error_code = "PARTIAL_FAILURE"

    def __init__(self, operation: str, completed: List[str], remaining: List[str], cause: Optional[str] = None):
        super().__init__(
            f"{operation} stopped after {len(completed)} of {len(completed) + len(remaining)} steps; retry the operation",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        self.operation = operation
        self.completed = completed
        self.remaining = remaining
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["details"] = {
            "operation": self.operation,
            "completedSteps": len(self.completed),
            "remainingSteps": self.remaining,
        }
        return body
