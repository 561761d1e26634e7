"""
Access-token claim helpers.

The client never holds the signing key, so claims are read without signature
verification purely to schedule refreshes and pick the identity header.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import jwt
from jwt.exceptions import InvalidTokenError


def decode_claims(token: Optional[str]) -> Dict[str, Any]:
    """
    Decode a JWT's claims without verifying it.

    Args:
        token: Encoded access token

    Returns:
        Claims dictionary, or an empty dict when the token is absent or opaque
    """
    if not token:
        return {}
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False, "verify_aud": False},
        )
    except InvalidTokenError:
        return {}


def get_expiry(token: Optional[str]) -> Optional[datetime]:
    """Get the token's expiry from its `exp` claim, if decodable."""
    exp = decode_claims(token).get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


def seconds_until_expiry(token: Optional[str], now: Optional[float] = None) -> Optional[float]:
    """
    Seconds remaining before the token expires.

    Args:
        token: Encoded access token
        now: Current epoch time (defaults to time.time())

    Returns:
        Remaining seconds (negative once expired), or None without an `exp` claim
    """
    exp = decode_claims(token).get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return exp - (time.time() if now is None else now)


def get_username_claim(token: Optional[str], claims: Iterable[str]) -> Optional[str]:
    """Return the first non-empty username-like claim."""
    decoded = decode_claims(token)
    for claim in claims:
        value = decoded.get(claim)
        if value:
            return str(value)
    return None
