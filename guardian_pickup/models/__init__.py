"""
Pydantic models for request/response validation.
"""

from .guardian import (
    GuardianCreate,
    GuardianActionRequest,
    GuardianProfileResponse,
    GuardianResponse,
    CreateGuardianResponse,
    GuardianListResponse,
    RotateTokenResponse,
    GuardianStatusResponse,
    GuardianLimitResponse,
    RelationChoice
)

from .session import (
    GuardianLoginRequest,
    GuardianLoginResponse,
    DeviceUpdateRequest,
    DeviceResponse,
    StudentSnapshot,
    SessionResponse,
    ProfileUpdate,
    ProfileResponse,
    PhotoUploadResponse,
    StaffContact,
    ContactGroupResponse,
    ContactsResponse
)

__all__ = [
    # Guardian management models
    "GuardianCreate",
    "GuardianActionRequest",
    "GuardianProfileResponse",
    "GuardianResponse",
    "CreateGuardianResponse",
    "GuardianListResponse",
    "RotateTokenResponse",
    "GuardianStatusResponse",
    "GuardianLimitResponse",
    "RelationChoice",

    # Guardian session models
    "GuardianLoginRequest",
    "GuardianLoginResponse",
    "DeviceUpdateRequest",
    "DeviceResponse",
    "StudentSnapshot",
    "SessionResponse",
    "ProfileUpdate",
    "ProfileResponse",
    "PhotoUploadResponse",
    "StaffContact",
    "ContactGroupResponse",
    "ContactsResponse"
]
