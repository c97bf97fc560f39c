"""
Utility modules for the guardian pickup service.
"""

from .audit_log import AuditLogger, log_login_event, log_authorization_failure, log_guardian_operation

__all__ = [
    "AuditLogger",
    "log_login_event",
    "log_authorization_failure",
    "log_guardian_operation"
]
