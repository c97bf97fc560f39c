"""
Test utilities and helper functions.

Provides helpers for seeding the store and making authenticated requests.
"""

from typing import Dict, Optional
from httpx import AsyncClient

from guardian_pickup.store import MemoryGuardianStore, StaffRecord

BRANCH_ID = 1
OTHER_BRANCH_ID = 2

STUDENT_ID = 123
OTHER_STUDENT_ID = 456


def seed_school(store: MemoryGuardianStore):
    """
    Two students in two branches, with a full staff list in the first branch
    and one homeroom teacher in the second.
    """
    store.add_student(STUDENT_ID, "Amira Haddad", branch_id=BRANCH_ID)
    store.add_student(OTHER_STUDENT_ID, "Leo Martin", branch_id=OTHER_BRANCH_ID)

    store.add_staff(StaffRecord(id=1, name="Dr. Salma Nasser", role="head_of_school", branch_id=BRANCH_ID))
    store.add_staff(StaffRecord(id=2, name="Ms. Rana Khoury", role="homeroom_teacher", branch_id=BRANCH_ID))
    store.add_staff(StaffRecord(id=3, name="Mr. Omar Aziz", role="subject_teacher", branch_id=BRANCH_ID))
    store.add_staff(StaffRecord(id=4, name="Ms. Dana Saleh", role="subject_teacher", branch_id=BRANCH_ID))
    store.add_staff(StaffRecord(
        id=5, name="Mr. Karim Haddad", role="head_of_section", branch_id=BRANCH_ID,
        email="k.haddad@school.com", title="Head of Primary"
    ))
    store.add_staff(StaffRecord(id=6, name="Ms. Julia Roth", role="homeroom_teacher", branch_id=OTHER_BRANCH_ID))
    store.add_staff(StaffRecord(id=7, name="Mr. Sami Fares", role="accountant", branch_id=BRANCH_ID))


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def create_guardian_via_api(
    client: AsyncClient,
    token: str,
    student_id: int = STUDENT_ID,
    name: str = "John Driver",
    relation: str = "driver",
    phone: Optional[str] = None
) -> Dict:
    """
    Create a guardian through the API.

    Returns:
        The response JSON; asserts the request succeeded
    """
    response = await client.post(
        "/pickup/guardians/create",
        json={"student_id": student_id, "name": name, "relation": relation, "phone": phone},
        headers=auth_headers(token)
    )
    assert response.status_code == 201, response.text
    return response.json()


async def login_guardian(client: AsyncClient, token: str, device_token: str = "") -> Dict:
    response = await client.post("/pickup/qr/login", json={
        "token": token,
        "deviceToken": device_token,
        "deviceType": "ios",
    })
    assert response.status_code == 200, response.text
    return response.json()
