"""
Pickup token codec.

Pickup tokens are opaque bearer secrets: they carry no guardian id and no
signature, so validating one is always a store lookup. This module only
generates them and turns them into the URL printed inside the QR code.
"""

import hashlib
import os
import re
import secrets
import string
from urllib.parse import parse_qs, urlencode, urlsplit

PICKUP_BASE_URL = os.getenv("PICKUP_BASE_URL", "https://school.com/pickup/qr/login")

TOKEN_LENGTH = 32
TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9]{%d}$" % TOKEN_LENGTH)

AUTH_CODE_PREFIX = "guardian_"


def generate_pickup_token() -> str:
    """
    Generate a new pickup token.

    32 characters drawn from a 62 symbol alphabet gives roughly 190 bits of
    entropy, far above what a practical collision requires.

    Returns:
        URL-safe alphanumeric token string
    """
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def to_pickup_url(token: str, base_url: str = None) -> str:
    """
    Build the QR-encodable login URL for a token.

    Args:
        token: The pickup token
        base_url: Override for PICKUP_BASE_URL

    Returns:
        The pickup login URL
    """
    base = base_url or PICKUP_BASE_URL
    return f"{base}?{urlencode({'token': token})}"


def is_well_formed(token: str) -> bool:
    """Check the token shape without touching the store."""
    return bool(token) and TOKEN_PATTERN.match(token) is not None


def extract_token(scanned: str) -> str:
    """
    Pull the pickup token out of scanned or pasted text.

    QR codes normally contain the full pickup URL, while manual entry is
    usually the bare token. Both end up as the same token string.

    Args:
        scanned: Raw QR payload or pasted text

    Returns:
        The token, or an empty string if none could be found
    """
    if not scanned:
        return ""

    data = scanned.strip()
    if "token=" in data:
        query = urlsplit(data).query or data.split("?", 1)[-1]
        values = parse_qs(query).get("token")
        return values[0].strip() if values else ""

    return data


def generate_auth_code() -> str:
    """Generate an opaque guardian session auth code."""
    return AUTH_CODE_PREFIX + secrets.token_urlsafe(32)


def hash_auth_code(auth_code: str) -> str:
    """Digest stored in place of the auth code itself."""
    return hashlib.sha256(auth_code.encode("utf-8")).hexdigest()


def mask(secret: str) -> str:
    """Shorten a secret for log output."""
    if not secret:
        return "<empty>"
    return secret[:4] + "…"
