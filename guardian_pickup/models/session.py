"""
Pydantic models for guardian login and guardian self-service.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field

from .guardian import GuardianProfileResponse


class GuardianLoginRequest(BaseModel):
    """
    Request model for the pickup login.

    The token is left untyped: a number, list or object must fail the same
    way as an unknown token, not as a schema error.
    """
    token: Any = Field("", description="Pickup token, scanned or typed")
    device_token: Optional[str] = Field(None, alias="deviceToken", description="Push notification token")
    device_type: Optional[str] = Field(None, alias="deviceType", description="Platform, e.g. 'ios'")
    device_name: Optional[str] = Field(None, alias="deviceName", description="Device display name")

    class Config:
        populate_by_name = True


class DeviceUpdateRequest(BaseModel):
    """Request model for attaching a device to an existing session."""
    device_token: Optional[str] = Field(None, alias="deviceToken")
    device_type: Optional[str] = Field(None, alias="deviceType")
    device_name: Optional[str] = Field(None, alias="deviceName")

    class Config:
        populate_by_name = True


class StudentSnapshot(BaseModel):
    """The student a guardian is bound to."""
    student_id: int
    name: str
    branch_id: Optional[int]

    class Config:
        from_attributes = True


class GuardianLoginResponse(BaseModel):
    success: bool = True
    message: str
    auth_code: str
    user_type: str = "guardian"
    first_time_login: bool
    profile_complete: bool
    requires_profile_completion: bool
    next_step: str
    guardian: GuardianProfileResponse
    child: StudentSnapshot


class SessionResponse(BaseModel):
    success: bool = True
    guardian: GuardianProfileResponse
    child: StudentSnapshot
    requires_profile_completion: bool


class ProfileUpdate(BaseModel):
    """Request model for profile completion and edits. Unset fields are left alone."""
    email: Optional[str] = None
    national_id: Optional[str] = None
    emergency_contact: Optional[str] = None
    address: Optional[str] = None
    photo_url: Optional[str] = None


class ProfileResponse(BaseModel):
    success: bool = True
    message: str
    guardian: GuardianProfileResponse


class PhotoUploadResponse(BaseModel):
    success: bool = True
    message: str
    photo_url: str
    photo_path: str
    guardian: GuardianProfileResponse


class DeviceResponse(BaseModel):
    success: bool = True
    device_type: str
    device_name: str
    has_push_token: bool


class StaffContact(BaseModel):
    id: int
    name: str
    role: str
    email: Optional[str]
    title: Optional[str]
    photo: Optional[str]
    branch_id: Optional[int]

    class Config:
        from_attributes = True


class ContactGroupResponse(BaseModel):
    type: str
    type_label: str
    count: int
    users: List[StaffContact]


class ContactsResponse(BaseModel):
    success: bool = True
    grouped_users: List[ContactGroupResponse]
    total_count: int
    access_level: str = "branch"
