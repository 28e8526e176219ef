"""Custom exception classes."""

from typing import Any, Optional


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
        status_code: int = 400,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.status_code = status_code
        super().__init__(message)


# ========== Auth Exceptions ==========
class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Authentication required."):
        super().__init__(
            code="AUTHENTICATION_ERROR",
            message=message,
            status_code=401,
        )


class InvalidCredentialsError(AuthenticationError):
    """Invalid credentials provided."""

    def __init__(self):
        super().__init__(message="Invalid email or password.")


class SessionInvalidError(AuthenticationError):
    """Session cookie does not resolve to a live user."""

    def __init__(self):
        super().__init__(message="Session invalid.")


class EmailNotVerifiedError(AppException):
    """Login attempted before the email address was verified."""

    def __init__(self):
        super().__init__(
            code="EMAIL_NOT_VERIFIED",
            message="Your email address has not been verified. Please check your inbox.",
            status_code=403,
        )


# ========== Resource Exceptions ==========
class ResourceNotFoundError(AppException):
    """Resource not found, or owned by someone else."""

    def __init__(self, resource: str, message: Optional[str] = None):
        super().__init__(
            code="RESOURCE_NOT_FOUND",
            message=message or f"{resource} not found or access denied.",
            details={"resource": resource},
            status_code=404,
        )


class TokenExpiredError(AppException):
    """A one-time token exists but is past its expiry."""

    def __init__(self, message: str):
        super().__init__(code="TOKEN_EXPIRED", message=message, status_code=410)


# ========== Validation Exceptions ==========
class ValidationError(AppException):
    """Validation failed."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            details={"field": field} if field else None,
            status_code=400,
        )


class DuplicateResourceError(AppException):
    """Resource already exists."""

    def __init__(self, message: str, resource: str, field: str):
        super().__init__(
            code="DUPLICATE_RESOURCE",
            message=message,
            details={"resource": resource, "field": field},
            status_code=409,
        )


class PayloadTooLargeError(AppException):
    """Request body exceeds the configured cap."""

    def __init__(self, limit: int):
        super().__init__(
            code="PAYLOAD_TOO_LARGE",
            message="File size exceeds limit.",
            details={"limit": limit},
            status_code=413,
        )


# ========== Rate Limit Exceptions ==========
class RateLimitExceededError(AppException):
    """Rate limit exceeded."""

    def __init__(self, message: str, retry_after_ms: int):
        super().__init__(
            code="RATE_LIMIT_EXCEEDED",
            message=message,
            details={"code": "RATE_LIMITED", "retryAfterMs": retry_after_ms},
            status_code=429,
        )


# ========== System Exceptions ==========
class SystemError(AppException):
    """System error."""

    def __init__(self, message: str, code: str = "SYSTEM_ERROR"):
        super().__init__(
            code=code,
            message=message,
            status_code=500,
        )


class DatabaseError(SystemError):
    """Database operation failed."""

    def __init__(self, message: str):
        super().__init__(message=message)


class StorageError(SystemError):
    """Object store operation failed."""

    def __init__(self, message: str):
        super().__init__(message=message, code="STORAGE_ERROR")


class ObjectNotFoundError(StorageError):
    """Object key does not exist in the object store."""

    def __init__(self, key: str):
        super().__init__(message=f"Object '{key}' not found in cloud storage.")
        self.key = key
        self.code = "OBJECT_NOT_FOUND"
        self.status_code = 404
