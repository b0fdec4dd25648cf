"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (15min), used for API calls
- Refresh token: long-lived (7 days), used to get new access tokens

Both carry the user id (`sub`) and the role. Refresh tokens are signed
with their own secret so an access token can never be replayed as one.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from campus_portal.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def _encode(payload: dict, secret: str) -> str:
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(
    user_id: str,
    role: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "exp": now + timedelta(
            minutes=expires_minutes or settings.access_token_expire_minutes
        ),
        "iat": now,
    }
    return _encode(payload, settings.jwt_secret)


def create_refresh_token(
    user_id: str,
    role: str,
    expires_days: Optional[int] = None,
) -> str:
    """Create a JWT refresh token."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "type": "refresh",
        "exp": now + timedelta(days=expires_days or settings.refresh_token_expire_days),
        "iat": now,
    }
    return _encode(payload, settings.jwt_refresh_secret)


def _decode(token: str, secret: str, expected_type: str) -> dict:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if payload.get("type") != expected_type:
        raise TokenError(f"Not an {expected_type} token")
    if not payload.get("sub") or not payload.get("role"):
        raise TokenError("Token is missing subject or role")
    return payload


def verify_token(token: str) -> dict:
    """Verify and decode an access token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    return _decode(token, settings.jwt_secret, "access")


def verify_refresh_token(token: str) -> dict:
    """Verify and decode a refresh token."""
    return _decode(token, settings.jwt_refresh_secret, "refresh")
