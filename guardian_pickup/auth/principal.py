"""
Staff and parent callers and the students they may manage.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from guardian_pickup.store.base import StudentRecord


@dataclass(frozen=True)
class Principal:
    """An authenticated staff member, admin or parent."""
    user_id: str
    role: str
    branch_id: Optional[int] = None
    student_ids: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_claims(cls, payload: Dict) -> "Principal":
        return cls(
            user_id=str(payload["sub"]),
            role=payload["role"],
            branch_id=payload.get("branch_id"),
            student_ids=frozenset(int(s) for s in payload.get("student_ids") or []),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def can_manage(self, student: StudentRecord) -> bool:
        """
        Admins manage every student, staff the students of their own branch,
        parents only the students linked to them.
        """
        if self.is_admin:
            return True
        if self.role == "staff":
            return self.branch_id is not None and student.branch_id == self.branch_id
        if self.role == "parent":
            return student.student_id in self.student_ids
        return False
