"""
Credential services: guardian management, pickup login, device registration
and branch-scoped contacts.
"""

from .credentials import CredentialService, GuardianLimit, MAX_ACTIVE_GUARDIANS
from .login import GuardianAuthValidator, GuardianSession, LoginState
from .devices import DeviceClaim, DeviceRegistry
from .branch_filter import ContactGroup, group_contacts, contacts_for_session, is_head_of_school
from .validation import relation_choices, validate_guardian_data, validate_profile_fields

__all__ = [
    "CredentialService",
    "GuardianLimit",
    "MAX_ACTIVE_GUARDIANS",
    "GuardianAuthValidator",
    "GuardianSession",
    "LoginState",
    "DeviceClaim",
    "DeviceRegistry",
    "ContactGroup",
    "group_contacts",
    "contacts_for_session",
    "is_head_of_school",
    "relation_choices",
    "validate_guardian_data",
    "validate_profile_fields",
]
