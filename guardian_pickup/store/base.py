"""
Credential store contract.

The store is the single source of truth for guardians, their pickup tokens,
guardian sessions and device registrations. Implementations must honour:

- create_guardian and set_status(active=True) check the active-guardian cap
  and write in one atomic step per student.
- swap_token is a compare-and-swap: it only replaces the token when the
  stored token still equals `expected`, so two racing rotations can never
  both win and the guardian is never left without a token.
- find_guardian_by_token sees either the old or the new token, never a
  transient empty value.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

ACTIVE = 1
INACTIVE = 0


@dataclass
class StudentRecord:
    """Read-only student snapshot owned by the school system."""
    student_id: int
    name: str
    branch_id: Optional[int] = None


@dataclass
class GuardianRecord:
    """A guardian (pickup card) together with its current pickup token."""
    pickup_card_id: int
    student_id: int
    name: str
    relation: str
    qr_token: str
    token_issued_at: datetime
    created_at: datetime
    updated_at: datetime
    phone: Optional[str] = None
    email: Optional[str] = None
    national_id: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    photo_url: Optional[str] = None
    status: int = ACTIVE
    profile_complete: bool = False
    created_by: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE


@dataclass
class NewGuardian:
    """Validated input for a guardian insert."""
    student_id: int
    name: str
    relation: str
    qr_token: str
    phone: Optional[str] = None
    created_by: Optional[str] = None


@dataclass
class SessionRecord:
    session_id: int
    auth_code_hash: str
    guardian_id: int
    student_id: int
    first_time_login: bool
    created_at: datetime
    revoked_at: Optional[datetime] = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None


@dataclass
class DeviceRecord:
    session_id: int
    device_type: str
    device_name: str
    registered_at: datetime
    device_token: Optional[str] = None


@dataclass
class StaffRecord:
    """Staff directory entry as published by the messaging system."""
    id: int
    name: str
    role: str
    branch_id: Optional[int] = None
    email: Optional[str] = None
    title: Optional[str] = None
    photo: Optional[str] = None
    extra: Dict = field(default_factory=dict)


PROFILE_FIELDS = ("email", "national_id", "emergency_contact", "address", "photo_url")


class GuardianStore(ABC):
    """Persistence contract used by the credential services."""

    @abstractmethod
    async def get_student(self, student_id: int) -> Optional[StudentRecord]:
        pass

    @abstractmethod
    async def list_guardians(
        self,
        student_ids: Optional[Sequence[int]] = None,
        branch_id: Optional[int] = None
    ) -> List[GuardianRecord]:
        """List guardians, optionally limited to students or to one branch."""

    @abstractmethod
    async def count_active_guardians(self, student_id: int) -> int:
        pass

    @abstractmethod
    async def create_guardian(self, new: NewGuardian, max_active: int) -> GuardianRecord:
        """
        Insert a guardian if the student is below the active cap.

        Raises:
            LimitExceededError: student already has max_active active guardians
            TokenCollisionError: the token is already used by another guardian
        """

    @abstractmethod
    async def get_guardian(self, guardian_id: int) -> Optional[GuardianRecord]:
        pass

    @abstractmethod
    async def find_guardian_by_token(self, token: str) -> Optional[GuardianRecord]:
        pass

    @abstractmethod
    async def swap_token(self, guardian_id: int, expected: str, new: str) -> Optional[GuardianRecord]:
        """
        Replace the guardian's token if it still equals `expected`.

        Returns:
            The updated guardian, or None if the expected token no longer matched

        Raises:
            TokenCollisionError: `new` is already used by another guardian
        """

    @abstractmethod
    async def set_status(self, guardian_id: int, active: bool, max_active: int) -> Optional[GuardianRecord]:
        """
        Activate or deactivate a guardian. Returns None if it does not exist.

        Raises:
            LimitExceededError: reactivation would exceed max_active
        """

    @abstractmethod
    async def update_profile(
        self,
        guardian_id: int,
        fields: Dict[str, Optional[str]],
        mark_complete: bool
    ) -> Optional[GuardianRecord]:
        pass

    @abstractmethod
    async def create_session(
        self,
        auth_code_hash: str,
        guardian_id: int,
        student_id: int,
        first_time_login: bool
    ) -> SessionRecord:
        pass

    @abstractmethod
    async def get_session(self, auth_code_hash: str) -> Optional[SessionRecord]:
        pass

    @abstractmethod
    async def revoke_session(self, auth_code_hash: str) -> bool:
        pass

    @abstractmethod
    async def save_device(
        self,
        session_id: int,
        device_token: Optional[str],
        device_type: str,
        device_name: str
    ) -> DeviceRecord:
        """Insert or replace the device registered for a session."""

    @abstractmethod
    async def list_devices(self, guardian_id: int) -> List[DeviceRecord]:
        """Devices attached to the guardian's non-revoked sessions."""

    @abstractmethod
    async def list_staff(self, branch_id: Optional[int] = None) -> List[StaffRecord]:
        pass

    async def close(self):
        pass
