"""
Pydantic models for guardian management requests and responses.

Request models only check types; field rules (lengths, relation categories,
phone format) are enforced by the credential service so that every caller
gets the same field-level error map.
"""

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class GuardianCreate(BaseModel):
    """Request model for creating a guardian."""
    student_id: Optional[int] = Field(None, description="Student the guardian may pick up")
    name: Optional[str] = Field(None, description="Guardian display name")
    relation: Optional[str] = Field(None, description="Relation category, e.g. 'driver'")
    phone: Optional[str] = Field(None, description="Phone number in E.164-like form")


class GuardianActionRequest(BaseModel):
    """Request model for actions on one guardian (rotate, deactivate, reactivate)."""
    pickup_card_id: int = Field(..., description="Guardian id")


class GuardianProfileResponse(BaseModel):
    """Guardian data without the pickup token."""
    pickup_card_id: int
    student_id: int
    name: str
    relation: str
    phone: Optional[str]
    email: Optional[str]
    national_id: Optional[str]
    address: Optional[str]
    emergency_contact: Optional[str]
    photo_url: Optional[str]
    status: int
    profile_complete: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GuardianResponse(GuardianProfileResponse):
    """Guardian data as shown to staff and parents, including the pickup token."""
    qr_token: str
    qr_url: str
    token_issued_at: datetime
    created_by: Optional[str]


class CreateGuardianResponse(BaseModel):
    success: bool = True
    guardian: GuardianResponse
    qr_token: str
    qr_url: str


class GuardianListResponse(BaseModel):
    success: bool = True
    guardians: List[GuardianResponse]


class RotateTokenResponse(BaseModel):
    success: bool = True
    pickup_card_id: int
    qr_token: str
    qr_url: str
    token_issued_at: datetime


class GuardianStatusResponse(BaseModel):
    success: bool = True
    guardian: GuardianResponse


class GuardianLimitResponse(BaseModel):
    success: bool = True
    student_id: int
    count: int
    limit: int
    is_at_limit: bool
    remaining: int


class RelationChoice(BaseModel):
    label: str
    value: str
