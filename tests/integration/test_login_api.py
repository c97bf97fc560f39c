"""
Integration tests for the guardian pickup login endpoint.

Tests /pickup/qr/login, the one unauthenticated endpoint.
"""

import pytest

from guardian_pickup.errors import LOGIN_FAILED_MESSAGE
from tests.utils import auth_headers, create_guardian_via_api, login_guardian, STUDENT_ID


@pytest.mark.integration
@pytest.mark.asyncio
class TestGuardianLogin:
    """Test /pickup/qr/login endpoint."""

    async def test_first_login(self, async_client, test_guardian):
        response = await async_client.post("/pickup/qr/login", json={
            "token": test_guardian["token"],
            "deviceToken": "fcm-token-1",
            "deviceType": "ios",
            "deviceName": "John's iPhone"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["auth_code"].startswith("guardian_")
        assert data["user_type"] == "guardian"
        assert data["first_time_login"] is True
        assert data["profile_complete"] is False
        assert data["requires_profile_completion"] is True
        assert data["next_step"] == "complete_profile"
        assert data["message"] == "Welcome! Please complete your profile to continue."
        assert data["guardian"]["pickup_card_id"] == test_guardian["id"]
        assert data["guardian"]["name"] == "John Driver"
        assert data["child"] == {"student_id": STUDENT_ID, "name": "Amira Haddad", "branch_id": 1}

    async def test_login_response_has_no_pickup_token(self, async_client, test_guardian):
        response = await async_client.post("/pickup/qr/login", json={"token": test_guardian["token"]})

        assert "qr_token" not in response.json()["guardian"]
        assert test_guardian["token"] not in response.text

    async def test_login_without_device_token(self, async_client, test_guardian, store):
        """An empty device token must not fail the login."""
        response = await async_client.post("/pickup/qr/login", json={
            "token": test_guardian["token"],
            "deviceToken": "",
            "deviceType": "android"
        })

        assert response.status_code == 200
        devices = await store.list_devices(test_guardian["id"])
        assert devices[0].device_token is None
        assert devices[0].device_name == "android Device"

    async def test_snake_case_device_fields_accepted(self, async_client, test_guardian, store):
        response = await async_client.post("/pickup/qr/login", json={
            "token": test_guardian["token"],
            "device_token": "fcm-token-2",
            "device_type": "web"
        })

        assert response.status_code == 200
        devices = await store.list_devices(test_guardian["id"])
        assert devices[0].device_token == "fcm-token-2"

    async def test_returning_guardian_goes_to_dashboard(self, async_client, guardian_session):
        await async_client.post(
            "/guardian/complete-profile",
            json={"email": "john@example.com"},
            headers={"Authorization": f"Bearer {guardian_session['auth_code']}"}
        )

        response = await async_client.post("/pickup/qr/login", json={"token": guardian_session["token"]})

        assert response.status_code == 200
        data = response.json()
        assert data["first_time_login"] is False
        assert data["requires_profile_completion"] is False
        assert data["next_step"] == "dashboard"
        assert data["message"] == "Login successful"

    async def test_unknown_token(self, async_client):
        response = await async_client.post("/pickup/qr/login", json={"token": "A" * 32})

        assert response.status_code == 401
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "invalid_token"
        assert data["message"] == LOGIN_FAILED_MESSAGE

    async def test_missing_token(self, async_client):
        response = await async_client.post("/pickup/qr/login", json={})

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"

    async def test_inactive_guardian(self, async_client, test_guardian, store):
        await store.set_status(test_guardian["id"], active=False, max_active=5)

        response = await async_client.post("/pickup/qr/login", json={"token": test_guardian["token"]})

        assert response.status_code == 401
        data = response.json()
        assert data["error"] == "inactive_guardian"
        assert data["message"] == LOGIN_FAILED_MESSAGE

    async def test_rate_limit_headers(self, async_client, test_guardian):
        response = await async_client.post("/pickup/qr/login", json={"token": test_guardian["token"]})

        assert response.headers["X-RateLimit-Limit"] == "10"
        assert response.headers["X-RateLimit-Remaining"] == "9"


@pytest.mark.integration
@pytest.mark.asyncio
class TestHealth:

    async def test_health(self, async_client):
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.integration
@pytest.mark.asyncio
class TestPickupScenarios:

    async def test_rotation_scenario(self, async_client, staff_token):
        """John Driver logs in with T1; after rotation T1 fails and T2 gets a new auth code."""
        created = await create_guardian_via_api(async_client, staff_token, student_id=123, name="John Driver")
        t1 = created["qr_token"]

        first = await async_client.post("/pickup/qr/login", json={"token": t1})
        assert first.status_code == 200
        a1 = first.json()["auth_code"]
        assert first.json()["first_time_login"] is True

        rotated = await async_client.post(
            "/pickup/guardians/rotate-qr",
            json={"pickup_card_id": created["guardian"]["pickup_card_id"]},
            headers=auth_headers(staff_token)
        )
        t2 = rotated.json()["qr_token"]
        assert t2 != t1

        old = await async_client.post("/pickup/qr/login", json={"token": t1})
        assert old.status_code == 401
        assert old.json()["error"] == "invalid_token"

        second = await async_client.post("/pickup/qr/login", json={"token": t2})
        assert second.status_code == 200
        assert second.json()["auth_code"] != a1

    async def test_profile_completion_scenario(self, async_client, staff_token):
        """After completing the profile, a login with a freshly rotated token skips the profile step."""
        created = await create_guardian_via_api(async_client, staff_token, student_id=123, name="John Driver")
        a1 = (await login_guardian(async_client, created["qr_token"]))["auth_code"]

        completed = await async_client.post(
            "/guardian/complete-profile", json={"email": "x@y.com"}, headers=auth_headers(a1)
        )
        assert completed.json()["guardian"]["profile_complete"] is True

        rotated = await async_client.post(
            "/pickup/guardians/rotate-qr",
            json={"pickup_card_id": created["guardian"]["pickup_card_id"]},
            headers=auth_headers(staff_token)
        )
        data = await login_guardian(async_client, rotated.json()["qr_token"])

        assert data["requires_profile_completion"] is False
