"""
Error taxonomy for the guardian pickup credential service.

Every failure a caller can act on is a subclass of PickupError. Services raise
these; the application renders them into a typed JSON result and the client
maps that result back onto the same classes.
"""

from typing import Dict, Optional


class PickupError(Exception):
    """Base class for all credential service errors."""

    error_code = "pickup_error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict:
        return {
            "success": False,
            "error": self.error_code,
            "message": self.message,
        }


class ValidationError(PickupError):
    """Malformed input. Carries one message per offending field."""

    error_code = "validation_error"
    status_code = 422
    default_message = "Invalid input"

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message or "; ".join(self.errors.values()) or self.default_message)

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class LimitExceededError(PickupError):
    """A student already has the maximum number of active guardians."""

    error_code = "limit_exceeded"
    status_code = 409
    default_message = "Maximum number of active guardians reached for this student"


# Login failures share one message so a caller cannot tell which check failed.
LOGIN_FAILED_MESSAGE = "Login failed, please try again"


class InvalidTokenError(PickupError):
    error_code = "invalid_token"
    status_code = 401
    default_message = LOGIN_FAILED_MESSAGE


class InactiveGuardianError(PickupError):
    error_code = "inactive_guardian"
    status_code = 401
    default_message = LOGIN_FAILED_MESSAGE


class AuthError(PickupError):
    """The presented credential does not resolve to a caller."""

    error_code = "auth_error"
    status_code = 401
    default_message = "Not authenticated"


class ForbiddenError(AuthError):
    """The caller is known but may not act on the target."""

    error_code = "forbidden"
    status_code = 403
    default_message = "No access to this student"


class NotFoundError(PickupError):
    error_code = "not_found"
    status_code = 404
    default_message = "Not found"


class RequestTimeoutError(PickupError, TimeoutError):
    """Raised client-side when the service does not answer in time."""

    error_code = "timeout"
    status_code = 504
    default_message = "The request timed out, please try again"


class TokenCollisionError(Exception):
    """Internal: a freshly generated pickup token already exists in the store."""


ERRORS_BY_CODE = {
    cls.error_code: cls
    for cls in (
        ValidationError,
        LimitExceededError,
        InvalidTokenError,
        InactiveGuardianError,
        AuthError,
        ForbiddenError,
        NotFoundError,
        RequestTimeoutError,
    )
}
