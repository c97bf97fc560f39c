"""
FastAPI dependencies for authentication and authorization.

Two kinds of callers reach this service:
- staff, admins and parents, with a JWT from the school account system
- guardians, with the opaque auth code from their pickup login

Both travel as `Authorization: Bearer <credential>`.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jwt.exceptions import InvalidTokenError

from guardian_pickup.errors import AuthError, ForbiddenError
from guardian_pickup.services.credentials import CredentialService
from guardian_pickup.services.devices import DeviceRegistry
from guardian_pickup.services.login import GuardianAuthValidator, GuardianSession
from guardian_pickup.store.base import GuardianStore
from .jwt import PRINCIPAL_ROLES, decode_token
from .principal import Principal

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def get_store(request: Request) -> GuardianStore:
    return request.app.state.store


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_validator(request: Request) -> GuardianAuthValidator:
    return request.app.state.validator


def get_device_registry(request: Request) -> DeviceRegistry:
    return request.app.state.devices


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Principal:
    """
    Resolve a staff, admin or parent caller from a bearer JWT.

    Raises:
        AuthError: Missing, invalid or expired token, or a role this service does not serve
    """
    if not credentials:
        raise AuthError()

    try:
        payload = decode_token(credentials.credentials)
    except InvalidTokenError:
        raise AuthError("Invalid or expired token")

    if payload.get("type") != "access":
        raise AuthError("Invalid token type")
    if not payload.get("sub"):
        raise AuthError("Invalid token payload")
    if payload.get("role") not in PRINCIPAL_ROLES:
        raise AuthError("Invalid token role")

    return Principal.from_claims(payload)


def require_role(*roles: str):
    """
    Create a dependency that requires one of the given roles.

    Args:
        roles: Accepted roles ('admin', 'staff', 'parent')

    Returns:
        Dependency function that checks the caller's role
    """
    async def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise ForbiddenError(f"Requires {' or '.join(roles)} role")
        return principal

    return role_checker


def require_manager():
    """Shorthand for callers that can manage guardians."""
    return require_role("admin", "staff", "parent")


async def get_guardian_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    validator: GuardianAuthValidator = Depends(get_validator)
) -> GuardianSession:
    """
    Resolve a guardian from the auth code issued at pickup login.

    Raises:
        AuthError: Unknown or revoked auth code
        InactiveGuardianError: The guardian was deactivated
    """
    return await validator.resolve_session(credentials.credentials if credentials else None)


def get_auth_code(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    if not credentials:
        raise AuthError()
    return credentials.credentials
