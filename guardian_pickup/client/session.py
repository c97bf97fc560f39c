"""
Guardian login flow on the device.

Ties the API client and the credential cache together:

- resume() decides at launch between the dashboard and the login screen
- login_with_scan() and login_with_manual_entry() both reduce their input to
  a token string and go through the same login()
- refresh() and every other auth-code call let the server overrule the cache
"""

import asyncio
import enum
import logging
import os
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from guardian_pickup.auth.tokens import extract_token
from guardian_pickup.errors import (
    LOGIN_FAILED_MESSAGE,
    AuthError,
    ForbiddenError,
    InactiveGuardianError,
    InvalidTokenError,
    PickupError,
    RequestTimeoutError,
)
from .api import PickupApiClient
from .cache import CachedSession, CredentialCache

logger = logging.getLogger(__name__)

DEVICE_TOKEN_TIMEOUT = float(os.getenv("DEVICE_TOKEN_TIMEOUT", "3"))

DeviceTokenProvider = Callable[[], Awaitable[Optional[str]]]


class StartupRoute(enum.Enum):
    DASHBOARD = "dashboard"
    LOGIN = "login"


@dataclass
class StartupDecision:
    route: StartupRoute
    session: Optional[CachedSession] = None


@dataclass
class LoginOutcome:
    success: bool
    session: Optional[CachedSession] = None
    message: Optional[str] = None
    retryable: bool = False
    persisted: bool = False
    first_time_login: bool = False
    requires_profile_completion: bool = False


class GuardianSessionManager:
    """
    Args:
        api: Client for the pickup service
        cache: Local credential slot
        device_token_provider: Coroutine function returning the push token
        device_type: Platform tag sent with the login
        device_name: Device display name sent with the login
        device_token_timeout: Seconds to wait for the push token
    """

    def __init__(
        self,
        api: PickupApiClient,
        cache: CredentialCache,
        device_token_provider: Optional[DeviceTokenProvider] = None,
        device_type: str = "unknown",
        device_name: Optional[str] = None,
        device_token_timeout: float = DEVICE_TOKEN_TIMEOUT
    ):
        self.api = api
        self.cache = cache
        self.device_token_provider = device_token_provider
        self.device_type = device_type
        self.device_name = device_name
        self.device_token_timeout = device_token_timeout
        self.current: Optional[CachedSession] = None

    def resume(self) -> StartupDecision:
        """Pick the first screen from the cache alone, without a network call."""
        cached = self.cache.load()
        if cached is None:
            return StartupDecision(route=StartupRoute.LOGIN)

        self.current = cached
        logger.info("Resuming guardian session for %s", cached.guardian.get("name"))
        return StartupDecision(route=StartupRoute.DASHBOARD, session=cached)

    async def login_with_scan(self, scanned: str) -> LoginOutcome:
        """QR payload: either the pickup URL or a bare token."""
        return await self.login(extract_token(scanned))

    async def login_with_manual_entry(self, text: str) -> LoginOutcome:
        """Typed or pasted text; a pasted pickup URL works too."""
        return await self.login(extract_token(text))

    async def login(self, token: str) -> LoginOutcome:
        device_token = await self._device_token()

        try:
            data = await self.api.guardian_login(
                token,
                device_token=device_token,
                device_type=self.device_type,
                device_name=self.device_name
            )
        except (InvalidTokenError, InactiveGuardianError):
            return LoginOutcome(success=False, message=LOGIN_FAILED_MESSAGE)
        except RequestTimeoutError as e:
            return LoginOutcome(success=False, message=e.message, retryable=True)
        except PickupError as e:
            logger.warning("Guardian login failed: %s", e.error_code)
            return LoginOutcome(success=False, message=LOGIN_FAILED_MESSAGE)

        guardian, auth_code, student = data["guardian"], data["auth_code"], data["child"]
        persisted = self.cache.store(guardian, auth_code, student)
        if not persisted:
            logger.warning("Guardian session not cached; auto-login unavailable next launch")

        self.current = CachedSession(auth_code=auth_code, guardian=guardian, student=student, stored_at=0)
        return LoginOutcome(
            success=True,
            session=self.current,
            persisted=persisted,
            first_time_login=data.get("first_time_login", False),
            requires_profile_completion=data.get("requires_profile_completion", False)
        )

    async def refresh(self) -> Optional[CachedSession]:
        """
        Check the current session with the server.

        Returns the session, or None after evicting it because the server no
        longer accepts it. Timeouts leave the cache alone and propagate.
        """
        session = self.current or self.cache.load()
        if session is None:
            return None

        self.current = session
        try:
            data = await self._authorized(self.api.me)
        except (AuthError, InactiveGuardianError):
            return None

        if data["guardian"] != session.guardian or data["child"] != session.student:
            self.cache.store(data["guardian"], session.auth_code, data["child"])
        self.current = CachedSession(
            auth_code=session.auth_code,
            guardian=data["guardian"],
            student=data["child"],
            stored_at=session.stored_at
        )
        return self.current

    async def save_profile(self, fields: Dict[str, Optional[str]], complete: bool = False) -> Dict:
        """Complete or edit the profile and keep the cached guardian in step."""
        call = self.api.complete_profile if complete else self.api.update_profile
        data = await self._authorized(call, **fields)
        return self._remember_guardian(data["guardian"])

    async def upload_photo(self, content: bytes, filename: str, content_type: str = "image/jpeg") -> Dict:
        """Upload a profile photo and keep the cached guardian in step."""
        data = await self._authorized(self.api.upload_photo, content, filename, content_type)
        return self._remember_guardian(data["guardian"])

    async def contacts(self) -> Dict:
        """Branch staff the guardian may message."""
        return await self._authorized(self.api.contacts)

    async def logout(self) -> bool:
        """Revoke the session on the server if reachable, then wipe the cache."""
        session = self.current or self.cache.load()
        if session is not None:
            try:
                await self.api.logout(session.auth_code)
            except PickupError as e:
                logger.info("Server logout skipped: %s", e.error_code)

        self.current = None
        return self.cache.clear()

    async def _authorized(self, call, *args, **kwargs) -> Dict:
        """
        Run an auth-code call for the current session.

        A rejected auth code or a deactivated guardian evicts the session
        before the error propagates, so the next launch shows the login screen.
        """
        if self.current is None:
            raise AuthError()

        try:
            return await call(self.current.auth_code, *args, **kwargs)
        except ForbiddenError:
            raise
        except (AuthError, InactiveGuardianError):
            logger.info("Server rejected cached guardian session, evicting it")
            self.cache.clear()
            self.current = None
            raise

    def _remember_guardian(self, guardian: Dict) -> Dict:
        self.current.guardian = guardian
        self.cache.update_guardian(guardian)
        return guardian

    async def _device_token(self) -> str:
        if self.device_token_provider is None:
            return ""
        try:
            token = await asyncio.wait_for(self.device_token_provider(), self.device_token_timeout)
        except asyncio.TimeoutError:
            logger.warning("Push token not available within %ss, logging in without it", self.device_token_timeout)
            return ""
        except Exception:
            logger.warning("Could not get push token, logging in without it", exc_info=True)
            return ""
        return token or ""
