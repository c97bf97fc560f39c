"""
Device-side pieces: API client, credential cache and login flow.
"""

from .api import PickupApiClient
from .cache import CachedSession, CredentialCache, FileCredentialCache, MemoryCredentialCache
from .session import GuardianSessionManager, LoginOutcome, StartupDecision, StartupRoute

__all__ = [
    "PickupApiClient",
    "CachedSession",
    "CredentialCache",
    "FileCredentialCache",
    "MemoryCredentialCache",
    "GuardianSessionManager",
    "LoginOutcome",
    "StartupDecision",
    "StartupRoute",
]
