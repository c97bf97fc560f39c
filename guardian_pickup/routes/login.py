"""
Guardian pickup login route.

Exchanges a pickup token (from a scanned QR code or typed by hand) for a
guardian auth code. No authentication required; the route is rate limited.
"""

from fastapi import APIRouter, Depends, Request

from guardian_pickup.models.guardian import GuardianProfileResponse
from guardian_pickup.models.session import GuardianLoginRequest, GuardianLoginResponse, StudentSnapshot
from guardian_pickup.auth.dependencies import get_validator
from guardian_pickup.errors import PickupError
from guardian_pickup.services.devices import DeviceClaim
from guardian_pickup.services.login import GuardianAuthValidator
from guardian_pickup.utils.audit_log import log_login_event

router = APIRouter(prefix="/pickup/qr", tags=["Pickup Login"])


@router.post("/login", response_model=GuardianLoginResponse)
async def guardian_login(
    login_request: GuardianLoginRequest,
    request: Request,
    validator: GuardianAuthValidator = Depends(get_validator)
):
    """
    Log a guardian in with a pickup token.

    Unknown, rotated and malformed tokens all fail with the same response.
    A missing device token does not fail the login.
    """
    token = login_request.token if isinstance(login_request.token, str) else ""
    claim = DeviceClaim(
        device_token=login_request.device_token,
        device_type=login_request.device_type or "unknown",
        device_name=login_request.device_name
    )

    try:
        session = await validator.login(token, claim)
    except PickupError as e:
        log_login_event(
            token=token,
            guardian_id=None,
            success=False,
            request=request,
            device_type=claim.device_type,
            details=e.error_code
        )
        raise

    log_login_event(
        token=token,
        guardian_id=session.guardian.pickup_card_id,
        success=True,
        request=request,
        device_type=claim.device_type
    )

    if session.requires_profile_completion:
        message = "Welcome! Please complete your profile to continue."
        next_step = "complete_profile"
    else:
        message = "Login successful"
        next_step = "dashboard"

    return GuardianLoginResponse(
        message=message,
        auth_code=session.auth_code,
        first_time_login=session.first_time_login,
        profile_complete=session.guardian.profile_complete,
        requires_profile_completion=session.requires_profile_completion,
        next_step=next_step,
        guardian=GuardianProfileResponse.model_validate(session.guardian),
        child=StudentSnapshot.model_validate(session.student)
    )
