"""
Pytest configuration and fixtures for testing.

Provides fixtures for:
- An in-process credential store seeded with students and staff
- In-memory photo storage
- The application and an HTTP client bound to it
- Access tokens for admin, staff and parent callers
- A guardian with a live pickup token
"""

import os
from typing import AsyncGenerator, Dict
import pytest
import httpx

# Set test environment variables before importing app
os.environ["JWT_SECRET"] = "test-secret-key-do-not-use-in-production"
os.environ["PICKUP_BASE_URL"] = "https://school.com/pickup/qr/login"

from guardian_pickup.app import create_app
from guardian_pickup.auth import create_access_token
from guardian_pickup.services import CredentialService, DeviceRegistry, GuardianAuthValidator
from guardian_pickup.store import MemoryGuardianStore, MemoryPhotoStorage
from tests.utils import seed_school, STUDENT_ID, OTHER_STUDENT_ID, BRANCH_ID, OTHER_BRANCH_ID


@pytest.fixture
def store() -> MemoryGuardianStore:
    """In-process store with two students in two branches and their staff."""
    memory_store = MemoryGuardianStore()
    seed_school(memory_store)
    return memory_store


@pytest.fixture
def photos() -> MemoryPhotoStorage:
    return MemoryPhotoStorage(public_url="https://cdn.school.com/guardian-photos")


@pytest.fixture
def credential_service(store, photos) -> CredentialService:
    return CredentialService(store, photos=photos)


@pytest.fixture
def device_registry(store) -> DeviceRegistry:
    return DeviceRegistry(store)


@pytest.fixture
def validator(store, device_registry) -> GuardianAuthValidator:
    return GuardianAuthValidator(store, device_registry)


@pytest.fixture
def app(store, photos):
    return create_app(store=store, photos=photos)


@pytest.fixture
async def async_client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_token() -> str:
    return create_access_token("admin-1", "admin")


@pytest.fixture
def staff_token() -> str:
    """Staff member of the branch STUDENT_ID belongs to."""
    return create_access_token("staff-1", "staff", branch_id=BRANCH_ID)


@pytest.fixture
def other_branch_staff_token() -> str:
    return create_access_token("staff-2", "staff", branch_id=OTHER_BRANCH_ID)


@pytest.fixture
def parent_token() -> str:
    """Parent linked to STUDENT_ID only."""
    return create_access_token("parent-1", "parent", student_ids=[STUDENT_ID])


@pytest.fixture
def other_parent_token() -> str:
    return create_access_token("parent-2", "parent", student_ids=[OTHER_STUDENT_ID])


@pytest.fixture
async def test_guardian(credential_service) -> Dict:
    """An active guardian of STUDENT_ID with a fresh pickup token."""
    guardian = await credential_service.create_guardian(
        STUDENT_ID, "John Driver", "driver", "+15551234567"
    )
    return {
        "id": guardian.pickup_card_id,
        "student_id": guardian.student_id,
        "name": guardian.name,
        "token": guardian.qr_token,
    }


@pytest.fixture
async def guardian_session(validator, test_guardian) -> Dict:
    """A logged-in guardian; returns the auth code with the guardian data."""
    session = await validator.login(test_guardian["token"])
    return {**test_guardian, "auth_code": session.auth_code, "session_id": session.record.session_id}
