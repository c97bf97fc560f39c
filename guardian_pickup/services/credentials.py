"""
Guardian credential management.

Staff and parents create guardians for a student, list them, rotate their
pickup tokens and switch them on or off. Guardians complete and edit their
own profile with the auth code from their pickup login.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from guardian_pickup.auth.principal import Principal
from guardian_pickup.auth.tokens import generate_pickup_token, hash_auth_code, mask, to_pickup_url
from guardian_pickup.errors import (
    ForbiddenError,
    InactiveGuardianError,
    NotFoundError,
    TokenCollisionError,
    ValidationError,
)
from guardian_pickup.store.base import GuardianRecord, GuardianStore, NewGuardian, StudentRecord
from guardian_pickup.store.photos import PhotoStorage
from .validation import (
    PHOTO_CONTENT_TYPES,
    normalize_phone,
    normalize_relation,
    validate_guardian_data,
    validate_photo,
    validate_profile_fields,
)

logger = logging.getLogger(__name__)

MAX_ACTIVE_GUARDIANS = int(os.getenv("MAX_ACTIVE_GUARDIANS", "5"))

# One regenerate on a token collision, then give up.
TOKEN_ATTEMPTS = 2


@dataclass
class GuardianLimit:
    student_id: int
    count: int
    limit: int

    @property
    def is_at_limit(self) -> bool:
        return self.count >= self.limit

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


class CredentialService:

    def __init__(
        self,
        store: GuardianStore,
        max_active: int = MAX_ACTIVE_GUARDIANS,
        photos: Optional[PhotoStorage] = None
    ):
        self.store = store
        self.max_active = max_active
        self.photos = photos

    @staticmethod
    def pickup_url(guardian: GuardianRecord) -> str:
        return to_pickup_url(guardian.qr_token)

    async def create_guardian(
        self,
        student_id: Optional[int],
        name: Optional[str],
        relation: Optional[str],
        phone: Optional[str] = None,
        principal: Optional[Principal] = None
    ) -> GuardianRecord:
        """
        Create a guardian bound to a student and issue its first pickup token.

        Args:
            student_id: Student the guardian may pick up
            name: Guardian display name
            relation: Relation category
            phone: Optional phone number
            principal: Caller; when given, must be allowed to manage the student

        Returns:
            The stored guardian, including its pickup token

        Raises:
            ValidationError: A field is missing or malformed
            LimitExceededError: The student already has the maximum of active guardians
            ForbiddenError: The caller may not manage this student
        """
        errors = validate_guardian_data(student_id, name, relation, phone)
        if errors:
            raise ValidationError(errors)

        student = await self.store.get_student(int(student_id))
        if student is None:
            raise ValidationError({"student_id": "Student not found"})
        if principal is not None:
            self._authorize(principal, student)

        new = NewGuardian(
            student_id=student.student_id,
            name=name.strip(),
            relation=normalize_relation(relation),
            phone=normalize_phone(phone),
            qr_token="",
            created_by=principal.user_id if principal else None,
        )

        for attempt in range(TOKEN_ATTEMPTS):
            new.qr_token = generate_pickup_token()
            try:
                guardian = await self.store.create_guardian(new, self.max_active)
            except TokenCollisionError:
                if attempt + 1 == TOKEN_ATTEMPTS:
                    raise
                logger.warning("Pickup token collision on create, regenerating")
                continue

            logger.info(
                "Created guardian %s for student %s", guardian.pickup_card_id, student.student_id
            )
            return guardian

    async def list_guardians(self, principal: Principal, student_id: Optional[int] = None) -> List[GuardianRecord]:
        """
        List guardians of the students the caller may manage.

        Args:
            principal: Caller
            student_id: Restrict to one student

        Raises:
            ForbiddenError: student_id is outside the caller's students
        """
        if student_id is not None:
            student = await self.store.get_student(student_id)
            if student is None or not principal.can_manage(student):
                raise ForbiddenError()
            return await self.store.list_guardians(student_ids=[student_id])

        if principal.is_admin:
            return await self.store.list_guardians()
        if principal.role == "staff":
            if principal.branch_id is None:
                return []
            return await self.store.list_guardians(branch_id=principal.branch_id)
        return await self.store.list_guardians(student_ids=sorted(principal.student_ids))

    async def rotate_token(self, principal: Principal, guardian_id: int) -> GuardianRecord:
        """
        Replace a guardian's pickup token.

        The old token stops working the moment the new one is stored. When two
        rotations race, one of them wins; the other changes nothing and
        reports the winner's token.

        Raises:
            NotFoundError: No such guardian
            ForbiddenError: The caller may not manage the guardian's student
        """
        guardian = await self._managed_guardian(principal, guardian_id)
        expected = guardian.qr_token

        for attempt in range(TOKEN_ATTEMPTS):
            try:
                rotated = await self.store.swap_token(guardian_id, expected, generate_pickup_token())
            except TokenCollisionError:
                if attempt + 1 == TOKEN_ATTEMPTS:
                    raise
                logger.warning("Pickup token collision on rotation, regenerating")
                continue

            if rotated is None:
                # Another rotation replaced the token between our read and our swap.
                current = await self.store.get_guardian(guardian_id)
                logger.info(
                    "Concurrent rotation for guardian %s, keeping token %s",
                    guardian_id, mask(current.qr_token)
                )
                return current

            logger.info("Rotated pickup token for guardian %s", guardian_id)
            return rotated

    async def deactivate_guardian(self, principal: Principal, guardian_id: int) -> GuardianRecord:
        await self._managed_guardian(principal, guardian_id)
        return await self.store.set_status(guardian_id, active=False, max_active=self.max_active)

    async def reactivate_guardian(self, principal: Principal, guardian_id: int) -> GuardianRecord:
        """
        Raises:
            LimitExceededError: The student already has the maximum of active guardians
        """
        await self._managed_guardian(principal, guardian_id)
        return await self.store.set_status(guardian_id, active=True, max_active=self.max_active)

    async def guardian_limit(self, principal: Principal, student_id: int) -> GuardianLimit:
        student = await self.store.get_student(student_id)
        if student is None or not principal.can_manage(student):
            raise ForbiddenError()
        count = await self.store.count_active_guardians(student_id)
        return GuardianLimit(student_id=student_id, count=count, limit=self.max_active)

    async def complete_profile(self, auth_code: str, fields: Dict[str, Optional[str]]) -> GuardianRecord:
        """
        First-time profile completion. Marks the profile complete.

        Raises:
            ValidationError: A field is malformed
            NotFoundError: The auth code does not map to a guardian
        """
        return await self._save_profile(auth_code, fields, mark_complete=True)

    async def update_profile(self, auth_code: str, fields: Dict[str, Optional[str]]) -> GuardianRecord:
        """Later profile edits; the completion flag is left as it is."""
        return await self._save_profile(auth_code, fields, mark_complete=False)

    async def upload_photo(
        self,
        auth_code: str,
        content: bytes,
        content_type: Optional[str]
    ) -> Tuple[GuardianRecord, str]:
        """
        Store a profile photo and point the guardian's photo_url at it.

        Returns:
            The updated guardian and the object path of the photo

        Raises:
            ValidationError: Not an accepted image type, empty or too large
            NotFoundError: The auth code does not map to a guardian
        """
        errors = validate_photo(content, content_type)
        if errors:
            raise ValidationError(errors)
        if self.photos is None:
            raise RuntimeError("Photo storage is not configured")

        guardian = await self._guardian_for_auth_code(auth_code)
        path = (
            f"guardian_photos/guardian_{guardian.pickup_card_id}_{uuid.uuid4().hex}"
            f"{PHOTO_CONTENT_TYPES[content_type]}"
        )
        url = await self.photos.save(path, content, content_type)

        updated = await self.store.update_profile(guardian.pickup_card_id, {"photo_url": url}, False)
        if updated is None:
            raise NotFoundError("Guardian not found")

        logger.info("Stored photo for guardian %s", guardian.pickup_card_id)
        return updated, path

    async def _save_profile(
        self,
        auth_code: str,
        fields: Dict[str, Optional[str]],
        mark_complete: bool
    ) -> GuardianRecord:
        cleaned = {
            key: (value.strip() or None) if isinstance(value, str) else value
            for key, value in fields.items()
        }
        errors = validate_profile_fields(cleaned)
        if errors:
            raise ValidationError(errors)

        guardian = await self._guardian_for_auth_code(auth_code)
        updated = await self.store.update_profile(guardian.pickup_card_id, cleaned, mark_complete)
        if updated is None:
            raise NotFoundError("Guardian not found")
        return updated

    async def _guardian_for_auth_code(self, auth_code: str) -> GuardianRecord:
        session = await self.store.get_session(hash_auth_code(auth_code)) if auth_code else None
        if session is None or session.is_revoked:
            raise NotFoundError("Guardian not found")

        guardian = await self.store.get_guardian(session.guardian_id)
        if guardian is None:
            raise NotFoundError("Guardian not found")
        if not guardian.is_active:
            raise InactiveGuardianError()
        return guardian

    async def _managed_guardian(self, principal: Principal, guardian_id: int) -> GuardianRecord:
        guardian = await self.store.get_guardian(guardian_id)
        if guardian is None:
            raise NotFoundError("Guardian not found")

        student = await self.store.get_student(guardian.student_id)
        if student is None:
            raise NotFoundError("Student not found")
        self._authorize(principal, student)
        return guardian

    @staticmethod
    def _authorize(principal: Principal, student: StudentRecord):
        if not principal.can_manage(student):
            raise ForbiddenError()
