"""
Guardian management routes.

Provides endpoints for staff and parents to:
- Create guardians (pickup cards) for a student
- List guardians and check the active-guardian limit
- Rotate a guardian's pickup token
- Deactivate and reactivate guardians
"""

from fastapi import APIRouter, Depends, Query, Request, status
from typing import List, Optional

from guardian_pickup.models.guardian import (
    GuardianCreate,
    GuardianActionRequest,
    GuardianResponse,
    CreateGuardianResponse,
    GuardianListResponse,
    RotateTokenResponse,
    GuardianStatusResponse,
    GuardianLimitResponse,
    RelationChoice
)
from guardian_pickup.auth.dependencies import get_credential_service, require_manager
from guardian_pickup.auth.principal import Principal
from guardian_pickup.auth.tokens import to_pickup_url
from guardian_pickup.errors import ForbiddenError
from guardian_pickup.services.credentials import CredentialService
from guardian_pickup.services.validation import relation_choices
from guardian_pickup.store.base import GuardianRecord
from guardian_pickup.utils.audit_log import log_authorization_failure, log_guardian_operation

router = APIRouter(prefix="/pickup/guardians", tags=["Guardians"])


def guardian_response(guardian: GuardianRecord) -> GuardianResponse:
    return GuardianResponse(
        pickup_card_id=guardian.pickup_card_id,
        student_id=guardian.student_id,
        name=guardian.name,
        relation=guardian.relation,
        phone=guardian.phone,
        email=guardian.email,
        national_id=guardian.national_id,
        address=guardian.address,
        emergency_contact=guardian.emergency_contact,
        photo_url=guardian.photo_url,
        status=guardian.status,
        profile_complete=guardian.profile_complete,
        created_at=guardian.created_at,
        updated_at=guardian.updated_at,
        qr_token=guardian.qr_token,
        qr_url=to_pickup_url(guardian.qr_token),
        token_issued_at=guardian.token_issued_at,
        created_by=guardian.created_by
    )


def _denied(principal: Principal, resource_type: str, resource_id, action: str, request: Request):
    log_authorization_failure(
        user_id=principal.user_id,
        role=principal.role,
        resource_type=resource_type,
        resource_id=str(resource_id),
        action=action,
        request=request
    )


@router.get("/relations", response_model=List[RelationChoice])
async def list_relations():
    """List the guardian relation categories (public endpoint)."""
    return [RelationChoice(**choice) for choice in relation_choices()]


@router.post("/create", response_model=CreateGuardianResponse, status_code=status.HTTP_201_CREATED)
async def create_guardian(
    guardian: GuardianCreate,
    request: Request,
    principal: Principal = Depends(require_manager()),
    service: CredentialService = Depends(get_credential_service)
):
    """
    Create a new guardian for a student and issue its pickup token.

    A student can have at most five active guardians.
    """
    try:
        created = await service.create_guardian(
            guardian.student_id,
            guardian.name,
            guardian.relation,
            guardian.phone,
            principal=principal
        )
    except ForbiddenError:
        _denied(principal, "student", guardian.student_id, "create_guardian", request)
        raise

    log_guardian_operation(
        operation="create",
        user_id=principal.user_id,
        role=principal.role,
        guardian_id=created.pickup_card_id,
        student_id=created.student_id,
        request=request
    )

    response = guardian_response(created)
    return CreateGuardianResponse(
        guardian=response,
        qr_token=response.qr_token,
        qr_url=response.qr_url
    )


@router.get("/list", response_model=GuardianListResponse)
async def list_guardians(
    request: Request,
    student_id: Optional[int] = Query(None, description="Only this student's guardians"),
    principal: Principal = Depends(require_manager()),
    service: CredentialService = Depends(get_credential_service)
):
    """
    List guardians of the students the caller can manage.

    Shows both active and inactive guardians.
    """
    try:
        guardians = await service.list_guardians(principal, student_id)
    except ForbiddenError:
        _denied(principal, "student", student_id, "list_guardians", request)
        raise

    return GuardianListResponse(guardians=[guardian_response(g) for g in guardians])


@router.get("/limit", response_model=GuardianLimitResponse)
async def get_guardian_limit(
    request: Request,
    student_id: int = Query(..., description="Student to check"),
    principal: Principal = Depends(require_manager()),
    service: CredentialService = Depends(get_credential_service)
):
    """How many more active guardians a student can have."""
    try:
        limit = await service.guardian_limit(principal, student_id)
    except ForbiddenError:
        _denied(principal, "student", student_id, "guardian_limit", request)
        raise

    return GuardianLimitResponse(
        student_id=limit.student_id,
        count=limit.count,
        limit=limit.limit,
        is_at_limit=limit.is_at_limit,
        remaining=limit.remaining
    )


@router.post("/rotate-qr", response_model=RotateTokenResponse)
async def rotate_qr_token(
    action: GuardianActionRequest,
    request: Request,
    principal: Principal = Depends(require_manager()),
    service: CredentialService = Depends(get_credential_service)
):
    """
    Issue a new pickup token for a guardian.

    The previous token stops working immediately.
    """
    try:
        guardian = await service.rotate_token(principal, action.pickup_card_id)
    except ForbiddenError:
        _denied(principal, "guardian", action.pickup_card_id, "rotate_token", request)
        raise

    log_guardian_operation(
        operation="rotate_token",
        user_id=principal.user_id,
        role=principal.role,
        guardian_id=guardian.pickup_card_id,
        student_id=guardian.student_id,
        request=request
    )

    return RotateTokenResponse(
        pickup_card_id=guardian.pickup_card_id,
        qr_token=guardian.qr_token,
        qr_url=to_pickup_url(guardian.qr_token),
        token_issued_at=guardian.token_issued_at
    )


@router.post("/deactivate", response_model=GuardianStatusResponse)
async def deactivate_guardian(
    action: GuardianActionRequest,
    request: Request,
    principal: Principal = Depends(require_manager()),
    service: CredentialService = Depends(get_credential_service)
):
    """
    Deactivate a guardian.

    The guardian is kept for audit history; its token and sessions stop working.
    """
    try:
        guardian = await service.deactivate_guardian(principal, action.pickup_card_id)
    except ForbiddenError:
        _denied(principal, "guardian", action.pickup_card_id, "deactivate", request)
        raise

    log_guardian_operation(
        operation="deactivate",
        user_id=principal.user_id,
        role=principal.role,
        guardian_id=guardian.pickup_card_id,
        student_id=guardian.student_id,
        request=request
    )
    return GuardianStatusResponse(guardian=guardian_response(guardian))


@router.post("/reactivate", response_model=GuardianStatusResponse)
async def reactivate_guardian(
    action: GuardianActionRequest,
    request: Request,
    principal: Principal = Depends(require_manager()),
    service: CredentialService = Depends(get_credential_service)
):
    """Reactivate a guardian, subject to the active-guardian limit."""
    try:
        guardian = await service.reactivate_guardian(principal, action.pickup_card_id)
    except ForbiddenError:
        _denied(principal, "guardian", action.pickup_card_id, "reactivate", request)
        raise

    log_guardian_operation(
        operation="reactivate",
        user_id=principal.user_id,
        role=principal.role,
        guardian_id=guardian.pickup_card_id,
        student_id=guardian.student_id,
        request=request
    )
    return GuardianStatusResponse(guardian=guardian_response(guardian))
