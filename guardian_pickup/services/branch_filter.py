"""
Branch-scoped contact list for guardians.

A guardian may only contact staff in the branch of the student they are
bound to. The result is grouped the way the messaging screens show it, with
the head of school listed apart from the heads of section.
"""

import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

from guardian_pickup.store.base import StaffRecord

LEGACY_HEAD_OF_SCHOOL_HEURISTIC = os.getenv("LEGACY_HEAD_OF_SCHOOL_HEURISTIC", "false").lower() == "true"

HEAD_OF_SCHOOL_KEYWORDS = ("principal", "director")

GROUPS = [
    ("head_of_school", "Head of School"),
    ("homeroom_teacher", "Homeroom Teacher"),
    ("subject_teacher", "Subject Teachers"),
    ("head_of_section", "Head of Section"),
]


@dataclass
class ContactGroup:
    type: str
    type_label: str
    users: List[StaffRecord]

    @property
    def count(self) -> int:
        return len(self.users)


def is_head_of_school(staff: StaffRecord, legacy_heuristic: bool = False) -> bool:
    """
    Head of school is an explicit role. Older directories only mark heads of
    section, so the email/title keyword match can be switched on for them.
    """
    if staff.role == "head_of_school":
        return True
    if legacy_heuristic and staff.role == "head_of_section":
        haystack = f"{staff.email or ''} {staff.title or ''}".lower()
        return any(keyword in haystack for keyword in HEAD_OF_SCHOOL_KEYWORDS)
    return False


def _group_of(staff: StaffRecord, legacy_heuristic: bool) -> Optional[str]:
    if is_head_of_school(staff, legacy_heuristic):
        return "head_of_school"
    if staff.role in ("homeroom_teacher", "subject_teacher", "head_of_section"):
        return staff.role
    return None


def group_contacts(
    branch_id: Optional[int],
    staff: Iterable[StaffRecord],
    legacy_heuristic: Optional[bool] = None
) -> List[ContactGroup]:
    """
    Filter staff to one branch and partition them into contact groups.

    Args:
        branch_id: Branch of the guardian's student; None matches nobody
        staff: Staff directory entries
        legacy_heuristic: Override for LEGACY_HEAD_OF_SCHOOL_HEURISTIC

    Returns:
        Non-empty groups in display order
    """
    if legacy_heuristic is None:
        legacy_heuristic = LEGACY_HEAD_OF_SCHOOL_HEURISTIC

    buckets = {key: [] for key, _ in GROUPS}
    for member in staff:
        if branch_id is None or member.branch_id != branch_id:
            continue
        group = _group_of(member, legacy_heuristic)
        if group:
            buckets[group].append(member)

    return [
        ContactGroup(type=key, type_label=label, users=buckets[key])
        for key, label in GROUPS
        if buckets[key]
    ]


def contacts_for_session(session, staff: Iterable[StaffRecord], legacy_heuristic: Optional[bool] = None) -> List[ContactGroup]:
    """group_contacts for an authenticated guardian session."""
    return group_contacts(session.student.branch_id, staff, legacy_heuristic)
