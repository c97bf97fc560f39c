"""
API route modules.
"""

from .guardians import router as guardians_router
from .login import router as login_router
from .profile import router as profile_router

__all__ = [
    "guardians_router",
    "login_router",
    "profile_router"
]
