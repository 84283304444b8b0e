"""
Custom Exceptions for the SOP Manager
=====================================

Services raise these instead of HTTPException so the API layer can render
one error envelope with bilingual messages.

Usage:
    from sopmanager.core.exceptions import ResourceNotFoundError

    if not document:
        raise ResourceNotFoundError("SOPDocument", document_id)
"""

from datetime import datetime
from typing import Optional, Any, Dict

from sopmanager.core.errors import ErrorCode, get_error_messages, get_severity


class SOPManagerError(Exception):
    """Base exception for all SOP Manager errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def severity(self) -> str:
        return get_severity(self.status_code)

    def to_dict(self, locale: str = "en") -> Dict[str, Any]:
        messages = get_error_messages(self.code)
        return {
            "code": self.code.value,
            "message": messages.get(locale, messages["en"]),
            "messages": messages,
            "detail": self.message,
            "severity": self.severity,
            "details": self.details,
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(SOPManagerError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication required", code: ErrorCode = ErrorCode.AUTH_REQUIRED):
        super().__init__(message, code=code)


class InvalidCredentialsError(AuthenticationError):
    """Email/PIN pair rejected"""

    def __init__(self):
        super().__init__("Invalid email or PIN", code=ErrorCode.INVALID_CREDENTIALS)


class InvalidTokenError(AuthenticationError):
    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, code=ErrorCode.INVALID_TOKEN)


class SessionExpiredError(AuthenticationError):
    def __init__(self):
        super().__init__("Session has expired", code=ErrorCode.SESSION_EXPIRED)


class AccountLockedError(SOPManagerError):
    """Too many failed PIN attempts"""

    status_code = 423

    def __init__(self, locked_until: datetime):
        retry_after = max(0, int((locked_until - datetime.utcnow()).total_seconds()))
        super().__init__(
            f"Account locked until {locked_until.isoformat()}",
            code=ErrorCode.ACCOUNT_LOCKED,
            details={
                "locked_until": locked_until.isoformat(),
                "retry_after_seconds": retry_after,
            },
        )


class AccountInactiveError(SOPManagerError):
    status_code = 403

    def __init__(self):
        super().__init__("User account is inactive", code=ErrorCode.ACCOUNT_INACTIVE)


class AuthorizationError(SOPManagerError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized", permission: Optional[str] = None):
        details = {"required_permission": permission} if permission else {}
        super().__init__(message, code=ErrorCode.INSUFFICIENT_PERMISSIONS, details=details)


class SessionRefreshDeniedError(SOPManagerError):
    status_code = 400

    def __init__(self, reason: str):
        super().__init__(reason, code=ErrorCode.SESSION_REFRESH_DENIED, details={"reason": reason})


# ============================================
# Resource Errors
# ============================================

class ResourceNotFoundError(SOPManagerError):
    """Missing row, or a row owned by another restaurant"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class ConflictError(SOPManagerError):
    status_code = 409

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=ErrorCode.CONFLICT, details=details)


class InvalidStatusTransitionError(SOPManagerError):
    status_code = 409

    def __init__(self, current: str, requested: str, allowed: list):
        super().__init__(
            f"Cannot transition from '{current}' to '{requested}'. "
            f"Allowed transitions: {', '.join(allowed) or 'none'}",
            code=ErrorCode.INVALID_STATUS_TRANSITION,
            details={"current_status": current, "requested_status": requested, "allowed": allowed},
        )


class StatusUnchangedError(SOPManagerError):
    status_code = 400

    def __init__(self, status: str):
        super().__init__(
            f"Already in status '{status}'",
            code=ErrorCode.STATUS_UNCHANGED,
            details={"status": status},
        )


# ============================================
# Validation Errors
# ============================================

class ValidationError(SOPManagerError):
    """Input validation failed"""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, code: ErrorCode = ErrorCode.VALIDATION_ERROR):
        details = {"field": field} if field else {}
        super().__init__(message, code=code, details=details)


class PinPolicyError(ValidationError):
    """New PIN rejected by the PIN policy"""

    status_code = 400

    def __init__(self, code: ErrorCode, errors: Optional[list] = None):
        super().__init__("; ".join(errors) if errors else code.value, field="pin", code=code)
        if errors:
            self.details["errors"] = errors


# ============================================
# Training Errors
# ============================================

class MaxAttemptsExceededError(SOPManagerError):
    status_code = 409

    def __init__(self, max_attempts: int):
        super().__init__(
            f"Maximum of {max_attempts} attempts reached",
            code=ErrorCode.MAX_ATTEMPTS_EXCEEDED,
            details={"max_attempts": max_attempts},
        )


class TrainingIncompleteError(SOPManagerError):
    status_code = 409

    def __init__(self, progress_percentage: int):
        super().__init__(
            f"Training progress is {progress_percentage}%",
            code=ErrorCode.TRAINING_INCOMPLETE,
            details={"progress_percentage": progress_percentage},
        )


# ============================================
# Platform Errors
# ============================================

class RateLimitError(SOPManagerError):
    status_code = 429

    def __init__(self, retry_after_seconds: int = 60):
        super().__init__(
            "Rate limit exceeded",
            code=ErrorCode.RATE_LIMIT_EXCEEDED,
            details={"retry_after_seconds": retry_after_seconds},
        )


class DatabaseError(SOPManagerError):
    status_code = 500

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, code=ErrorCode.DATABASE_ERROR)


# ============================================
# Helper function for API responses
# ============================================

def error_response(
    error: SOPManagerError,
    locale: str = "en",
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict(locale),
        "request_id": request_id,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }
