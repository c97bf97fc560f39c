"""
Audit logging for security-sensitive operations.

Logs guardian logins, pickup token rotations, guardian lifecycle changes and
authorization failures to help with security monitoring and incident response.
Pickup tokens and auth codes are masked before they reach the log.
"""

import logging
from typing import Optional
from fastapi import Request

from guardian_pickup.auth.tokens import mask

# Configure audit logger
audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)

# Create handler if not already configured
if not audit_logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        '%(asctime)s - AUDIT - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    audit_logger.addHandler(handler)


class AuditLogger:
    """
    Centralized audit logging for security events.

    All credential-lifecycle operations should be logged here.
    """

    @staticmethod
    def _get_client_ip(request: Optional[Request]) -> str:
        """Extract client IP from request."""
        if not request:
            return "unknown"

        # Check for forwarded IP (if behind proxy)
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

        return request.client.host if request.client else "unknown"

    @staticmethod
    def log_login_event(
        token: Optional[str],
        guardian_id: Optional[int],
        success: bool,
        request: Optional[Request] = None,
        device_type: Optional[str] = None,
        details: Optional[str] = None
    ):
        """
        Log a guardian pickup login attempt.

        Args:
            token: The presented pickup token (masked in the log)
            guardian_id: Guardian id if the token resolved
            success: Whether a session was issued
            request: FastAPI request object for IP extraction
            device_type: Platform tag from the device claim
            details: Failure reason or other details
        """
        ip = AuditLogger._get_client_ip(request)
        status = "SUCCESS" if success else "FAILURE"

        message = (
            f"AUTH_EVENT | GUARDIAN_LOGIN | {status} | "
            f"guardian_id={guardian_id or 'N/A'} | token={mask(token or '')} | "
            f"device={device_type or 'N/A'} | ip={ip}"
        )

        if details:
            message += f" | details={details}"

        if success:
            audit_logger.info(message)
        else:
            audit_logger.warning(message)

    @staticmethod
    def log_authorization_failure(
        user_id: str,
        role: str,
        resource_type: str,
        resource_id: str,
        action: str,
        request: Optional[Request] = None,
        reason: Optional[str] = None
    ):
        """
        Log authorization failures (403 responses).

        Args:
            user_id: Caller attempting access
            role: Caller's role
            resource_type: Type of resource (student, guardian)
            resource_id: ID of resource
            action: Action attempted (list, rotate, deactivate, ...)
            request: FastAPI request object
            reason: Reason for denial
        """
        ip = AuditLogger._get_client_ip(request)

        message = (
            f"AUTHZ_FAILURE | user_id={user_id} | role={role} | "
            f"resource={resource_type}:{resource_id} | action={action} | ip={ip}"
        )

        if reason:
            message += f" | reason={reason}"

        audit_logger.warning(message)

    @staticmethod
    def log_guardian_operation(
        operation: str,
        user_id: Optional[str],
        role: Optional[str],
        guardian_id: int,
        student_id: Optional[int] = None,
        request: Optional[Request] = None,
        details: Optional[str] = None
    ):
        """
        Log a change to a guardian's credentials or status.

        Args:
            operation: Operation type (create, rotate_token, deactivate, reactivate,
                complete_profile, update_profile)
            user_id: Caller performing the operation, if a staff member or parent
            role: Caller's role ('guardian' for self-service)
            guardian_id: Affected guardian
            student_id: Student the guardian is bound to
            request: FastAPI request object
            details: Additional details
        """
        ip = AuditLogger._get_client_ip(request)

        message = (
            f"GUARDIAN_OP | {operation.upper()} | "
            f"user_id={user_id or 'N/A'} | role={role or 'N/A'} | "
            f"guardian_id={guardian_id} | ip={ip}"
        )

        if student_id is not None:
            message += f" | student_id={student_id}"

        if details:
            message += f" | details={details}"

        audit_logger.info(message)


# Convenience functions
def log_login_event(
    token: Optional[str],
    guardian_id: Optional[int],
    success: bool,
    request: Optional[Request] = None,
    device_type: Optional[str] = None,
    details: Optional[str] = None
):
    """Convenience wrapper for AuditLogger.log_login_event."""
    AuditLogger.log_login_event(token, guardian_id, success, request, device_type, details)


def log_authorization_failure(
    user_id: str,
    role: str,
    resource_type: str,
    resource_id: str,
    action: str,
    request: Optional[Request] = None,
    reason: Optional[str] = None
):
    """Convenience wrapper for AuditLogger.log_authorization_failure."""
    AuditLogger.log_authorization_failure(
        user_id, role, resource_type, resource_id, action, request, reason
    )


def log_guardian_operation(
    operation: str,
    user_id: Optional[str],
    role: Optional[str],
    guardian_id: int,
    student_id: Optional[int] = None,
    request: Optional[Request] = None,
    details: Optional[str] = None
):
    """Convenience wrapper for AuditLogger.log_guardian_operation."""
    AuditLogger.log_guardian_operation(
        operation, user_id, role, guardian_id, student_id, request, details
    )
