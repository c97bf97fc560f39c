"""
In-process credential store.

Used by the test suite and for local development without PostgreSQL. All
state lives behind one asyncio.Lock, which gives every method the same
atomicity the PostgreSQL store gets from single-row updates and row locks.
"""

import asyncio
import itertools
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from guardian_pickup.errors import LimitExceededError, TokenCollisionError
from .base import (
    ACTIVE,
    INACTIVE,
    DeviceRecord,
    GuardianRecord,
    GuardianStore,
    NewGuardian,
    SessionRecord,
    StaffRecord,
    StudentRecord,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryGuardianStore(GuardianStore):

    def __init__(self):
        self._lock = asyncio.Lock()
        self._students: Dict[int, StudentRecord] = {}
        self._guardians: Dict[int, GuardianRecord] = {}
        self._tokens: Dict[str, int] = {}
        self._sessions: Dict[str, SessionRecord] = {}
        self._devices: Dict[int, DeviceRecord] = {}
        self._staff: List[StaffRecord] = []
        self._guardian_ids = itertools.count(1)
        self._session_ids = itertools.count(1)

    # Seeding helpers; students and staff belong to other systems.

    def add_student(self, student_id: int, name: str, branch_id: Optional[int] = None) -> StudentRecord:
        student = StudentRecord(student_id=student_id, name=name, branch_id=branch_id)
        self._students[student_id] = student
        return student

    def add_staff(self, staff: StaffRecord) -> StaffRecord:
        self._staff.append(staff)
        return staff

    # Students

    async def get_student(self, student_id: int) -> Optional[StudentRecord]:
        return self._students.get(student_id)

    # Guardians

    async def list_guardians(
        self,
        student_ids: Optional[Sequence[int]] = None,
        branch_id: Optional[int] = None
    ) -> List[GuardianRecord]:
        async with self._lock:
            guardians = [replace(g) for g in self._guardians.values()]

        if student_ids is not None:
            wanted = set(student_ids)
            guardians = [g for g in guardians if g.student_id in wanted]
        if branch_id is not None:
            guardians = [
                g for g in guardians
                if g.student_id in self._students and self._students[g.student_id].branch_id == branch_id
            ]
        return sorted(guardians, key=lambda g: (g.student_id, g.pickup_card_id))

    async def count_active_guardians(self, student_id: int) -> int:
        async with self._lock:
            return self._count_active(student_id)

    def _count_active(self, student_id: int) -> int:
        return sum(
            1 for g in self._guardians.values()
            if g.student_id == student_id and g.is_active
        )

    async def create_guardian(self, new: NewGuardian, max_active: int) -> GuardianRecord:
        async with self._lock:
            if self._count_active(new.student_id) >= max_active:
                raise LimitExceededError()
            if new.qr_token in self._tokens:
                raise TokenCollisionError(new.qr_token)

            now = _now()
            guardian = GuardianRecord(
                pickup_card_id=next(self._guardian_ids),
                student_id=new.student_id,
                name=new.name,
                relation=new.relation,
                phone=new.phone,
                qr_token=new.qr_token,
                token_issued_at=now,
                created_at=now,
                updated_at=now,
                created_by=new.created_by,
            )
            self._guardians[guardian.pickup_card_id] = guardian
            self._tokens[guardian.qr_token] = guardian.pickup_card_id
            return replace(guardian)

    async def get_guardian(self, guardian_id: int) -> Optional[GuardianRecord]:
        async with self._lock:
            guardian = self._guardians.get(guardian_id)
            return replace(guardian) if guardian else None

    async def find_guardian_by_token(self, token: str) -> Optional[GuardianRecord]:
        async with self._lock:
            guardian_id = self._tokens.get(token)
            if guardian_id is None:
                return None
            return replace(self._guardians[guardian_id])

    async def swap_token(self, guardian_id: int, expected: str, new: str) -> Optional[GuardianRecord]:
        async with self._lock:
            guardian = self._guardians.get(guardian_id)
            if guardian is None or guardian.qr_token != expected:
                return None
            if new in self._tokens:
                raise TokenCollisionError(new)

            now = _now()
            updated = replace(guardian, qr_token=new, token_issued_at=now, updated_at=now)
            del self._tokens[expected]
            self._tokens[new] = guardian_id
            self._guardians[guardian_id] = updated
            return replace(updated)

    async def set_status(self, guardian_id: int, active: bool, max_active: int) -> Optional[GuardianRecord]:
        async with self._lock:
            guardian = self._guardians.get(guardian_id)
            if guardian is None:
                return None
            if active and not guardian.is_active and self._count_active(guardian.student_id) >= max_active:
                raise LimitExceededError()

            updated = replace(guardian, status=ACTIVE if active else INACTIVE, updated_at=_now())
            self._guardians[guardian_id] = updated
            return replace(updated)

    async def update_profile(
        self,
        guardian_id: int,
        fields: Dict[str, Optional[str]],
        mark_complete: bool
    ) -> Optional[GuardianRecord]:
        async with self._lock:
            guardian = self._guardians.get(guardian_id)
            if guardian is None:
                return None

            changes = dict(fields)
            if mark_complete:
                changes["profile_complete"] = True
            updated = replace(guardian, updated_at=_now(), **changes)
            self._guardians[guardian_id] = updated
            return replace(updated)

    # Sessions and devices

    async def create_session(
        self,
        auth_code_hash: str,
        guardian_id: int,
        student_id: int,
        first_time_login: bool
    ) -> SessionRecord:
        async with self._lock:
            session = SessionRecord(
                session_id=next(self._session_ids),
                auth_code_hash=auth_code_hash,
                guardian_id=guardian_id,
                student_id=student_id,
                first_time_login=first_time_login,
                created_at=_now(),
            )
            self._sessions[auth_code_hash] = session
            return replace(session)

    async def get_session(self, auth_code_hash: str) -> Optional[SessionRecord]:
        async with self._lock:
            session = self._sessions.get(auth_code_hash)
            return replace(session) if session else None

    async def revoke_session(self, auth_code_hash: str) -> bool:
        async with self._lock:
            session = self._sessions.get(auth_code_hash)
            if session is None or session.is_revoked:
                return False
            self._sessions[auth_code_hash] = replace(session, revoked_at=_now())
            return True

    async def save_device(
        self,
        session_id: int,
        device_token: Optional[str],
        device_type: str,
        device_name: str
    ) -> DeviceRecord:
        async with self._lock:
            device = DeviceRecord(
                session_id=session_id,
                device_token=device_token,
                device_type=device_type,
                device_name=device_name,
                registered_at=_now(),
            )
            self._devices[session_id] = device
            return replace(device)

    async def list_devices(self, guardian_id: int) -> List[DeviceRecord]:
        async with self._lock:
            live = {
                s.session_id for s in self._sessions.values()
                if s.guardian_id == guardian_id and not s.is_revoked
            }
            return [replace(d) for sid, d in sorted(self._devices.items()) if sid in live]

    # Staff directory

    async def list_staff(self, branch_id: Optional[int] = None) -> List[StaffRecord]:
        if branch_id is None:
            return list(self._staff)
        return [s for s in self._staff if s.branch_id == branch_id]
