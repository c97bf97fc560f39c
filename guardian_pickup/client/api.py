"""
HTTP client for the guardian pickup service.

Every call has a bounded timeout. A timeout or an unreachable server raises
RequestTimeoutError so the app can offer a retry; error responses are turned
back into the service's typed exceptions.
"""

import logging
import os
from typing import Dict, Optional

import httpx

from guardian_pickup.errors import (
    ERRORS_BY_CODE,
    AuthError,
    ForbiddenError,
    NotFoundError,
    PickupError,
    RequestTimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PICKUP_API_URL = os.getenv("PICKUP_API_URL", "http://localhost:8000")
PICKUP_API_TIMEOUT = float(os.getenv("PICKUP_API_TIMEOUT", "10"))

STATUS_ERRORS = {
    401: AuthError,
    403: ForbiddenError,
    404: NotFoundError,
}


def error_from_response(status_code: int, data: Dict) -> PickupError:
    """Rebuild the typed exception described by an error payload."""
    message = data.get("message") or data.get("detail")
    if not isinstance(message, str):
        message = None

    cls = ERRORS_BY_CODE.get(data.get("error"))
    if cls is None and status_code == 422:
        cls = ValidationError
    if cls is ValidationError:
        return ValidationError(data.get("errors") or {}, message)
    if cls is None:
        cls = STATUS_ERRORS.get(status_code, PickupError)
    return cls(message)


class PickupApiClient:
    """
    Async client for guardian and staff operations.

    Args:
        base_url: Service root URL
        timeout: Seconds before a call is abandoned
        transport: Optional httpx transport (e.g. ASGITransport in tests)
    """

    def __init__(
        self,
        base_url: str = PICKUP_API_URL,
        timeout: float = PICKUP_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "PickupApiClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, bearer: Optional[str] = None, **kwargs) -> Dict:
        headers = {"Authorization": f"Bearer {bearer}"} if bearer else None
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException:
            logger.warning("Pickup service timed out on %s %s", method, path)
            raise RequestTimeoutError()
        except httpx.TransportError as e:
            logger.warning("Pickup service unreachable on %s %s: %s", method, path, e)
            raise RequestTimeoutError("Could not reach the pickup service, please try again")

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_success:
            return data
        raise error_from_response(response.status_code, data if isinstance(data, dict) else {})

    # Guardian calls

    async def guardian_login(
        self,
        token: str,
        device_token: Optional[str] = "",
        device_type: str = "unknown",
        device_name: Optional[str] = None
    ) -> Dict:
        return await self._request("POST", "/pickup/qr/login", json={
            "token": token,
            "deviceToken": device_token or "",
            "deviceType": device_type,
            "deviceName": device_name,
        })

    async def me(self, auth_code: str) -> Dict:
        return await self._request("GET", "/guardian/me", bearer=auth_code)

    async def complete_profile(self, auth_code: str, **fields) -> Dict:
        return await self._request("POST", "/guardian/complete-profile", bearer=auth_code, json=fields)

    async def update_profile(self, auth_code: str, **fields) -> Dict:
        return await self._request("POST", "/guardian/update-profile", bearer=auth_code, json=fields)

    async def upload_photo(self, auth_code: str, content: bytes, filename: str, content_type: str = "image/jpeg") -> Dict:
        return await self._request(
            "POST", "/guardian/upload-photo",
            bearer=auth_code, files={"photo": (filename, content, content_type)}
        )

    async def update_device(
        self,
        auth_code: str,
        device_token: Optional[str],
        device_type: str = "unknown",
        device_name: Optional[str] = None
    ) -> Dict:
        return await self._request("POST", "/guardian/device", bearer=auth_code, json={
            "deviceToken": device_token,
            "deviceType": device_type,
            "deviceName": device_name,
        })

    async def contacts(self, auth_code: str) -> Dict:
        return await self._request("GET", "/guardian/contacts", bearer=auth_code)

    async def logout(self, auth_code: str) -> Dict:
        return await self._request("POST", "/guardian/logout", bearer=auth_code)

    # Staff and parent calls

    async def create_guardian(
        self,
        access_token: str,
        student_id: int,
        name: str,
        relation: str,
        phone: Optional[str] = None
    ) -> Dict:
        return await self._request("POST", "/pickup/guardians/create", bearer=access_token, json={
            "student_id": student_id,
            "name": name,
            "relation": relation,
            "phone": phone,
        })

    async def list_guardians(self, access_token: str, student_id: Optional[int] = None) -> Dict:
        params = {"student_id": student_id} if student_id is not None else None
        return await self._request("GET", "/pickup/guardians/list", bearer=access_token, params=params)

    async def rotate_token(self, access_token: str, pickup_card_id: int) -> Dict:
        return await self._request(
            "POST", "/pickup/guardians/rotate-qr",
            bearer=access_token, json={"pickup_card_id": pickup_card_id}
        )

    async def deactivate_guardian(self, access_token: str, pickup_card_id: int) -> Dict:
        return await self._request(
            "POST", "/pickup/guardians/deactivate",
            bearer=access_token, json={"pickup_card_id": pickup_card_id}
        )

    async def reactivate_guardian(self, access_token: str, pickup_card_id: int) -> Dict:
        return await self._request(
            "POST", "/pickup/guardians/reactivate",
            bearer=access_token, json={"pickup_card_id": pickup_card_id}
        )
