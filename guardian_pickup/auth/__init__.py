"""
Authentication module for the guardian pickup service.

This module provides:
- Pickup token and auth code generation
- JWT validation for staff and parent callers
- Principal scoping (which students a caller may manage)

FastAPI dependencies live in guardian_pickup.auth.dependencies.
"""

from .jwt import create_access_token, decode_token
from .tokens import (
    generate_pickup_token,
    to_pickup_url,
    extract_token,
    is_well_formed,
    generate_auth_code,
    hash_auth_code,
)
from .principal import Principal

__all__ = [
    "create_access_token",
    "decode_token",
    "generate_pickup_token",
    "to_pickup_url",
    "extract_token",
    "is_well_formed",
    "generate_auth_code",
    "hash_auth_code",
    "Principal",
]
