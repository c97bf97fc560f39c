"""
Guardian self-service routes.

Provides endpoints for a logged-in guardian to:
- Check that their session is still valid
- Complete and edit their profile
- Upload a profile photo
- Attach a push notification device
- List the staff they may contact
- Log out
"""

from fastapi import APIRouter, Depends, File, Request, UploadFile

from guardian_pickup.models.guardian import GuardianProfileResponse
from guardian_pickup.models.session import (
    SessionResponse,
    StudentSnapshot,
    ProfileUpdate,
    ProfileResponse,
    PhotoUploadResponse,
    DeviceUpdateRequest,
    DeviceResponse,
    ContactsResponse,
    ContactGroupResponse,
    StaffContact
)
from guardian_pickup.auth.dependencies import (
    get_auth_code,
    get_credential_service,
    get_device_registry,
    get_guardian_session,
    get_store,
    get_validator
)
from guardian_pickup.services.branch_filter import contacts_for_session
from guardian_pickup.services.credentials import CredentialService
from guardian_pickup.services.devices import DeviceClaim, DeviceRegistry
from guardian_pickup.services.login import GuardianAuthValidator, GuardianSession
from guardian_pickup.store.base import GuardianStore
from guardian_pickup.utils.audit_log import log_guardian_operation

router = APIRouter(prefix="/guardian", tags=["Guardian"])


@router.get("/me", response_model=SessionResponse)
async def get_session(session: GuardianSession = Depends(get_guardian_session)):
    """
    Return the guardian and student behind the auth code.

    Clients call this on resume; a 401 means the cached session must be dropped.
    """
    return SessionResponse(
        guardian=GuardianProfileResponse.model_validate(session.guardian),
        child=StudentSnapshot.model_validate(session.student),
        requires_profile_completion=session.requires_profile_completion
    )


@router.post("/complete-profile", response_model=ProfileResponse)
async def complete_profile(
    profile: ProfileUpdate,
    request: Request,
    auth_code: str = Depends(get_auth_code),
    service: CredentialService = Depends(get_credential_service)
):
    """Complete the guardian profile after the first login."""
    guardian = await service.complete_profile(auth_code, profile.model_dump(exclude_unset=True))

    log_guardian_operation(
        operation="complete_profile",
        user_id=None,
        role="guardian",
        guardian_id=guardian.pickup_card_id,
        student_id=guardian.student_id,
        request=request
    )

    return ProfileResponse(
        message="Profile completed successfully",
        guardian=GuardianProfileResponse.model_validate(guardian)
    )


@router.post("/update-profile", response_model=ProfileResponse)
async def update_profile(
    profile: ProfileUpdate,
    request: Request,
    auth_code: str = Depends(get_auth_code),
    service: CredentialService = Depends(get_credential_service)
):
    """Edit profile fields. Only the fields sent are changed."""
    guardian = await service.update_profile(auth_code, profile.model_dump(exclude_unset=True))

    log_guardian_operation(
        operation="update_profile",
        user_id=None,
        role="guardian",
        guardian_id=guardian.pickup_card_id,
        student_id=guardian.student_id,
        request=request
    )

    return ProfileResponse(
        message="Profile updated successfully",
        guardian=GuardianProfileResponse.model_validate(guardian)
    )


@router.post("/upload-photo", response_model=PhotoUploadResponse)
async def upload_photo(
    request: Request,
    photo: UploadFile = File(...),
    auth_code: str = Depends(get_auth_code),
    service: CredentialService = Depends(get_credential_service)
):
    """Store a profile photo and set it as the guardian's photo_url."""
    content = await photo.read()
    guardian, photo_path = await service.upload_photo(auth_code, content, photo.content_type)

    log_guardian_operation(
        operation="upload_photo",
        user_id=None,
        role="guardian",
        guardian_id=guardian.pickup_card_id,
        student_id=guardian.student_id,
        request=request
    )

    return PhotoUploadResponse(
        message="Photo uploaded successfully",
        photo_url=guardian.photo_url,
        photo_path=photo_path,
        guardian=GuardianProfileResponse.model_validate(guardian)
    )


@router.post("/device", response_model=DeviceResponse)
async def update_device(
    device: DeviceUpdateRequest,
    session: GuardianSession = Depends(get_guardian_session),
    devices: DeviceRegistry = Depends(get_device_registry)
):
    """Attach or replace the push notification device of this session."""
    record = await devices.update_device_token(
        session.record.session_id,
        DeviceClaim(
            device_token=device.device_token,
            device_type=device.device_type or "unknown",
            device_name=device.device_name
        )
    )

    return DeviceResponse(
        device_type=record.device_type,
        device_name=record.device_name,
        has_push_token=record.device_token is not None
    )


@router.get("/contacts", response_model=ContactsResponse)
async def list_contacts(
    session: GuardianSession = Depends(get_guardian_session),
    store: GuardianStore = Depends(get_store)
):
    """Staff the guardian may contact, limited to the student's branch."""
    staff = await store.list_staff(branch_id=session.student.branch_id)
    groups = contacts_for_session(session, staff)

    return ContactsResponse(
        grouped_users=[
            ContactGroupResponse(
                type=group.type,
                type_label=group.type_label,
                count=group.count,
                users=[StaffContact.model_validate(member) for member in group.users]
            )
            for group in groups
        ],
        total_count=sum(group.count for group in groups)
    )


@router.post("/logout")
async def logout(
    auth_code: str = Depends(get_auth_code),
    validator: GuardianAuthValidator = Depends(get_validator)
):
    """Revoke this session. Logging out twice is not an error."""
    await validator.logout(auth_code)
    return {"success": True, "message": "Logged out"}
