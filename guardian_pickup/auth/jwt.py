"""
JWT utilities for staff and parent callers.

Staff and parents are full accounts in the school system; that system issues
HS256 access tokens which this service only needs to verify. Guardians never
receive a JWT, they use the opaque auth code from the pickup login.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional
import jwt
from jwt.exceptions import InvalidTokenError

# Configuration from environment
JWT_SECRET = os.getenv("JWT_SECRET", "your-secret-key-change-in-production")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))

PRINCIPAL_ROLES = ("admin", "staff", "parent")


def create_access_token(
    user_id: str,
    role: str,
    branch_id: Optional[int] = None,
    student_ids: Optional[Iterable[int]] = None,
    additional_claims: Optional[Dict] = None
) -> str:
    """
    Create a JWT access token for a staff member or parent.

    Args:
        user_id: The account id as a string
        role: One of 'admin', 'staff', 'parent'
        branch_id: Branch a staff member works in
        student_ids: Students a parent is linked to
        additional_claims: Optional additional claims to include in the token

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)

    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "exp": now + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS),
        "iat": now
    }

    if branch_id is not None:
        payload["branch_id"] = branch_id
    if student_ids is not None:
        payload["student_ids"] = [int(s) for s in student_ids]
    if additional_claims:
        payload.update(additional_claims)

    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Dict:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT token string to decode

    Returns:
        Dictionary containing the token payload

    Raises:
        InvalidTokenError: If the token is invalid or expired
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError as e:
        raise InvalidTokenError(f"Invalid token: {str(e)}")
