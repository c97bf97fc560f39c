"""
Integration tests for guardian management API endpoints.

Tests /pickup/guardians/* endpoints used by staff and parents.
"""

import pytest

from tests.utils import auth_headers, create_guardian_via_api, STUDENT_ID, OTHER_STUDENT_ID


@pytest.mark.integration
@pytest.mark.asyncio
class TestCreateGuardian:
    """Test /pickup/guardians/create endpoint."""

    async def test_create_guardian(self, async_client, staff_token):
        """Staff creates a guardian and receives its pickup token and QR URL."""
        response = await async_client.post("/pickup/guardians/create", json={
            "student_id": STUDENT_ID,
            "name": "John Driver",
            "relation": "driver",
            "phone": "+15551234567"
        }, headers=auth_headers(staff_token))

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert len(data["qr_token"]) == 32
        assert data["qr_url"] == f"https://school.com/pickup/qr/login?token={data['qr_token']}"
        assert data["guardian"]["name"] == "John Driver"
        assert data["guardian"]["relation"] == "driver"
        assert data["guardian"]["student_id"] == STUDENT_ID
        assert data["guardian"]["status"] == 1
        assert data["guardian"]["profile_complete"] is False
        assert data["guardian"]["created_by"] == "staff-1"

    async def test_create_requires_auth(self, async_client):
        response = await async_client.post("/pickup/guardians/create", json={
            "student_id": STUDENT_ID, "name": "John Driver", "relation": "driver"
        })

        assert response.status_code == 401
        assert response.json()["error"] == "auth_error"

    async def test_create_with_invalid_token(self, async_client):
        response = await async_client.post("/pickup/guardians/create", json={
            "student_id": STUDENT_ID, "name": "John Driver", "relation": "driver"
        }, headers=auth_headers("not-a-jwt"))

        assert response.status_code == 401

    async def test_missing_fields(self, async_client, staff_token):
        """All missing fields are reported together."""
        response = await async_client.post(
            "/pickup/guardians/create", json={}, headers=auth_headers(staff_token)
        )

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "validation_error"
        assert data["errors"] == {
            "name": "Guardian name is required",
            "relation": "Relation to student is required",
            "student_id": "Student selection is required",
        }

    async def test_wrong_field_type(self, async_client, staff_token):
        response = await async_client.post("/pickup/guardians/create", json={
            "student_id": "abc", "name": "John Driver", "relation": "driver"
        }, headers=auth_headers(staff_token))

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "validation_error"
        assert "student_id" in data["errors"]

    async def test_invalid_phone(self, async_client, staff_token):
        response = await async_client.post("/pickup/guardians/create", json={
            "student_id": STUDENT_ID, "name": "John Driver", "relation": "driver", "phone": "call me"
        }, headers=auth_headers(staff_token))

        assert response.status_code == 422
        assert response.json()["errors"] == {"phone": "Please enter a valid phone number"}

    async def test_unknown_student(self, async_client, admin_token):
        response = await async_client.post("/pickup/guardians/create", json={
            "student_id": 999, "name": "John Driver", "relation": "driver"
        }, headers=auth_headers(admin_token))

        assert response.status_code == 422
        assert response.json()["errors"] == {"student_id": "Student not found"}

    async def test_limit_exceeded(self, async_client, staff_token):
        """The sixth active guardian is rejected with 409."""
        for i in range(5):
            await create_guardian_via_api(async_client, staff_token, name=f"Guardian {i}")

        response = await async_client.post("/pickup/guardians/create", json={
            "student_id": STUDENT_ID, "name": "One Too Many", "relation": "other"
        }, headers=auth_headers(staff_token))

        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "limit_exceeded"

    async def test_parent_creates_for_own_child(self, async_client, parent_token):
        data = await create_guardian_via_api(async_client, parent_token, name="Grandma", relation="grandparent")

        assert data["guardian"]["created_by"] == "parent-1"


@pytest.mark.integration
@pytest.mark.asyncio
class TestListGuardians:
    """Test /pickup/guardians/list and /pickup/guardians/limit endpoints."""

    async def test_list_guardians(self, async_client, staff_token, admin_token):
        created = await create_guardian_via_api(async_client, staff_token)
        await create_guardian_via_api(async_client, admin_token, student_id=OTHER_STUDENT_ID, name="Other")

        response = await async_client.get("/pickup/guardians/list", headers=auth_headers(staff_token))

        assert response.status_code == 200
        guardians = response.json()["guardians"]
        assert [g["pickup_card_id"] for g in guardians] == [created["guardian"]["pickup_card_id"]]
        assert guardians[0]["qr_token"] == created["qr_token"]

    async def test_list_for_one_student(self, async_client, admin_token):
        await create_guardian_via_api(async_client, admin_token)
        await create_guardian_via_api(async_client, admin_token, student_id=OTHER_STUDENT_ID, name="Other")

        response = await async_client.get(
            "/pickup/guardians/list", params={"student_id": OTHER_STUDENT_ID}, headers=auth_headers(admin_token)
        )

        assert response.status_code == 200
        assert [g["name"] for g in response.json()["guardians"]] == ["Other"]

    async def test_guardian_limit(self, async_client, parent_token):
        await create_guardian_via_api(async_client, parent_token)
        await create_guardian_via_api(async_client, parent_token, name="Second")

        response = await async_client.get(
            "/pickup/guardians/limit", params={"student_id": STUDENT_ID}, headers=auth_headers(parent_token)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["limit"] == 5
        assert data["remaining"] == 3
        assert data["is_at_limit"] is False

    async def test_relations_are_public(self, async_client):
        response = await async_client.get("/pickup/guardians/relations")

        assert response.status_code == 200
        values = [choice["value"] for choice in response.json()]
        assert values == [
            "driver", "grandparent", "uncle", "aunt", "sibling",
            "family_friend", "caregiver", "relative", "other"
        ]


@pytest.mark.integration
@pytest.mark.asyncio
class TestGuardianActions:
    """Test rotate-qr, deactivate and reactivate endpoints."""

    async def test_rotate_qr(self, async_client, staff_token):
        created = await create_guardian_via_api(async_client, staff_token)
        guardian_id = created["guardian"]["pickup_card_id"]

        response = await async_client.post(
            "/pickup/guardians/rotate-qr", json={"pickup_card_id": guardian_id}, headers=auth_headers(staff_token)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["pickup_card_id"] == guardian_id
        assert data["qr_token"] != created["qr_token"]
        assert data["qr_url"].endswith(f"?token={data['qr_token']}")

        old_login = await async_client.post("/pickup/qr/login", json={"token": created["qr_token"]})
        assert old_login.status_code == 401

        new_login = await async_client.post("/pickup/qr/login", json={"token": data["qr_token"]})
        assert new_login.status_code == 200

    async def test_rotate_unknown_guardian(self, async_client, admin_token):
        response = await async_client.post(
            "/pickup/guardians/rotate-qr", json={"pickup_card_id": 999}, headers=auth_headers(admin_token)
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    async def test_deactivate_and_reactivate(self, async_client, staff_token):
        created = await create_guardian_via_api(async_client, staff_token)
        guardian_id = created["guardian"]["pickup_card_id"]

        response = await async_client.post(
            "/pickup/guardians/deactivate", json={"pickup_card_id": guardian_id}, headers=auth_headers(staff_token)
        )
        assert response.status_code == 200
        assert response.json()["guardian"]["status"] == 0

        login = await async_client.post("/pickup/qr/login", json={"token": created["qr_token"]})
        assert login.status_code == 401
        assert login.json()["error"] == "inactive_guardian"

        response = await async_client.post(
            "/pickup/guardians/reactivate", json={"pickup_card_id": guardian_id}, headers=auth_headers(staff_token)
        )
        assert response.status_code == 200
        assert response.json()["guardian"]["status"] == 1

        login = await async_client.post("/pickup/qr/login", json={"token": created["qr_token"]})
        assert login.status_code == 200

    async def test_reactivate_over_limit(self, async_client, staff_token):
        first = await create_guardian_via_api(async_client, staff_token, name="First")
        first_id = first["guardian"]["pickup_card_id"]
        await async_client.post(
            "/pickup/guardians/deactivate", json={"pickup_card_id": first_id}, headers=auth_headers(staff_token)
        )
        for i in range(5):
            await create_guardian_via_api(async_client, staff_token, name=f"Guardian {i}")

        response = await async_client.post(
            "/pickup/guardians/reactivate", json={"pickup_card_id": first_id}, headers=auth_headers(staff_token)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "limit_exceeded"

    async def test_missing_pickup_card_id(self, async_client, staff_token):
        response = await async_client.post(
            "/pickup/guardians/rotate-qr", json={}, headers=auth_headers(staff_token)
        )

        assert response.status_code == 422
        assert "pickup_card_id" in response.json()["errors"]
