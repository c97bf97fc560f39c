"""
Guardian pickup login.

Exchanges a pickup token and device claim for a guardian session. Each call
is one attempt that moves through

    RECEIVED -> TOKEN_LOOKUP -> STATUS_CHECK -> SESSION_ISSUANCE -> ISSUED

and stops with InvalidTokenError or InactiveGuardianError on the way. A
malformed token fails exactly like an unknown one. Scanned and typed tokens
arrive here as the same plain string.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from guardian_pickup.auth.tokens import generate_auth_code, hash_auth_code, is_well_formed, mask
from guardian_pickup.errors import AuthError, InactiveGuardianError, InvalidTokenError
from guardian_pickup.store.base import GuardianRecord, GuardianStore, SessionRecord, StudentRecord
from .devices import DeviceClaim, DeviceRegistry

logger = logging.getLogger(__name__)


class LoginState(enum.Enum):
    RECEIVED = "received"
    TOKEN_LOOKUP = "token_lookup"
    STATUS_CHECK = "status_check"
    SESSION_ISSUANCE = "session_issuance"
    ISSUED = "issued"


@dataclass
class GuardianSession:
    """An authenticated guardian with the student they are bound to."""
    auth_code: str
    guardian: GuardianRecord
    student: StudentRecord
    record: SessionRecord

    @property
    def first_time_login(self) -> bool:
        return self.record.first_time_login

    @property
    def requires_profile_completion(self) -> bool:
        return not self.guardian.profile_complete


class GuardianAuthValidator:

    def __init__(self, store: GuardianStore, devices: Optional[DeviceRegistry] = None):
        self.store = store
        self.devices = devices or DeviceRegistry(store)

    async def login(self, token: Optional[str], claim: Optional[DeviceClaim] = None) -> GuardianSession:
        """
        Exchange a pickup token for a session.

        Args:
            token: Pickup token as scanned or typed
            claim: Device details; an empty device token is accepted

        Returns:
            The issued session, including the plain auth code

        Raises:
            InvalidTokenError: The token is malformed, unknown or was rotated away
            InactiveGuardianError: The guardian has been deactivated
        """
        token = token.strip() if isinstance(token, str) else ""
        claim = claim or DeviceClaim()
        self._trace(LoginState.RECEIVED, token)

        self._trace(LoginState.TOKEN_LOOKUP, token)
        guardian = await self.store.find_guardian_by_token(token) if is_well_formed(token) else None
        if guardian is None:
            raise InvalidTokenError()

        self._trace(LoginState.STATUS_CHECK, token)
        if not guardian.is_active:
            raise InactiveGuardianError()

        student = await self.store.get_student(guardian.student_id)
        if student is None:
            logger.error("Guardian %s is bound to unknown student %s", guardian.pickup_card_id, guardian.student_id)
            raise InvalidTokenError()

        self._trace(LoginState.SESSION_ISSUANCE, token)
        auth_code = generate_auth_code()
        record = await self.store.create_session(
            hash_auth_code(auth_code),
            guardian.pickup_card_id,
            student.student_id,
            first_time_login=not guardian.profile_complete,
        )
        await self.devices.register(record.session_id, claim)

        self._trace(LoginState.ISSUED, token)
        return GuardianSession(auth_code=auth_code, guardian=guardian, student=student, record=record)

    async def resolve_session(self, auth_code: Optional[str]) -> GuardianSession:
        """
        Look up the session behind an auth code.

        Raises:
            AuthError: Unknown or revoked auth code
            InactiveGuardianError: The guardian was deactivated after login
        """
        if not auth_code:
            raise AuthError()

        record = await self.store.get_session(hash_auth_code(auth_code))
        if record is None or record.is_revoked:
            raise AuthError("Session not found")

        guardian = await self.store.get_guardian(record.guardian_id)
        if guardian is None:
            raise AuthError("Session not found")
        if not guardian.is_active:
            raise InactiveGuardianError()

        student = await self.store.get_student(record.student_id)
        if student is None:
            raise AuthError("Session not found")

        return GuardianSession(auth_code=auth_code, guardian=guardian, student=student, record=record)

    async def logout(self, auth_code: Optional[str]) -> bool:
        """Revoke a session. Revoking an unknown or revoked session is a no-op."""
        if not auth_code:
            return False
        return await self.store.revoke_session(hash_auth_code(auth_code))

    @staticmethod
    def _trace(state: LoginState, token: str):
        logger.debug("Guardian login %s (token %s)", state.value, mask(token))
