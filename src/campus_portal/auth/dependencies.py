"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

Two places a bearer token can come from:
1. `Authorization: Bearer <token>` header (every route)
2. `?token=<token>` query parameter. Only the live event stream accepts
   it, because the browser EventSource API cannot set request headers.
   Both are validated by the same code path.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Header, Query

from campus_portal.auth.jwt import TokenError, verify_token

ROLES = ("admin", "faculty", "student")


class CurrentIdentity:
    """Represents the authenticated identity making the request."""

    def __init__(self, user_id: str, role: str):
        self.user_id = user_id
        self.role = role

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id!r}, role={self.role!r})"


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        return token or None
    return None


def _authenticate_jwt(token: str) -> CurrentIdentity:
    """Authenticate via JWT access token."""
    try:
        payload = verify_token(token)
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentIdentity(user_id=payload["sub"], role=payload["role"])


def _missing_token() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail="Missing Bearer token",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Extract current identity from the Authorization header (401 if absent)."""
    token = _bearer(authorization)
    if not token:
        raise _missing_token()
    return _authenticate_jwt(token)


def require_role(*roles: str):
    """Build a dependency that only lets the given roles through (403 otherwise)."""

    async def _check(
        identity: CurrentIdentity = Depends(get_current_user),
    ) -> CurrentIdentity:
        if identity.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return identity

    return _check


require_admin = require_role("admin")


async def get_stream_identity(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Query(None),
) -> CurrentIdentity:
    """Identity for the event stream: header first, then ?token=."""
    raw = _bearer(authorization)
    if raw is None and token and token.strip():
        raw = token.strip()
    if raw is None:
        raise _missing_token()
    return _authenticate_jwt(raw)


async def require_stream_admin(
    identity: CurrentIdentity = Depends(get_stream_identity),
) -> CurrentIdentity:
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden")
    return identity
