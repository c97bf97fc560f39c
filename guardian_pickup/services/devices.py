"""
Push-notification device registration for guardian sessions.

A guardian login always succeeds without a device token; the guardian then
simply does not receive notifications until a token is attached.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from guardian_pickup.auth.tokens import mask
from guardian_pickup.store.base import DeviceRecord, GuardianStore

logger = logging.getLogger(__name__)


@dataclass
class DeviceClaim:
    """Device details submitted with a pickup login."""
    device_token: Optional[str] = None
    device_type: str = "unknown"
    device_name: Optional[str] = None

    def normalized(self) -> "DeviceClaim":
        device_type = (self.device_type or "").strip().lower() or "unknown"
        return DeviceClaim(
            device_token=(self.device_token or "").strip() or None,
            device_type=device_type,
            device_name=(self.device_name or "").strip() or f"{device_type} Device",
        )


class DeviceRegistry:

    def __init__(self, store: GuardianStore):
        self.store = store

    async def register(self, session_id: int, claim: DeviceClaim) -> Optional[DeviceRecord]:
        """
        Attach a device to a session.

        Never raises: a storage failure here only costs notification delivery,
        so it is logged and the login carries on.
        """
        claim = claim.normalized()
        if claim.device_token is None:
            logger.info("Session %s registered without a push token", session_id)

        try:
            return await self.store.save_device(
                session_id, claim.device_token, claim.device_type, claim.device_name
            )
        except Exception:
            logger.exception("Could not register device for session %s", session_id)
            return None

    async def update_device_token(self, session_id: int, claim: DeviceClaim) -> DeviceRecord:
        """Replace the device of an existing session, e.g. when the push token arrives late."""
        claim = claim.normalized()
        logger.info(
            "Updating device for session %s (token %s)", session_id, mask(claim.device_token or "")
        )
        return await self.store.save_device(
            session_id, claim.device_token, claim.device_type, claim.device_name
        )

    async def targets_for_guardian(self, guardian_id: int) -> List[str]:
        """Push tokens the messaging system can notify for this guardian."""
        devices = await self.store.list_devices(guardian_id)
        tokens = []
        for device in devices:
            if device.device_token and device.device_token not in tokens:
                tokens.append(device.device_token)
        return tokens
