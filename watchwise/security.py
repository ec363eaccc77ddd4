# watchwise/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from watchwise.core.settings import settings

# IMPORTANT: auto_error=False so we can return a clean 401 instead of framework 403
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, minutes: int = 60) -> str:
    """Sign a token the way the auth service does. Used by tests and local tooling."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
        "type": "access",
    }
    return jwt.encode(payload, settings.auth_secret, algorithm=settings.auth_algorithm)


def decode_user_id(token: str) -> int:
    try:
        data = jwt.decode(token, settings.auth_secret, algorithms=[settings.auth_algorithm])
        return int(data["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")


async def get_current_user_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_auth_token: Optional[str] = Header(default=None),
) -> int:
    """
    Resolve the caller's user id. Accepts `Authorization: Bearer <jwt>` or the
    legacy `x-auth-token` header the web client still sends.
    """
    token: Optional[str] = None
    if creds and creds.scheme and creds.scheme.lower() == "bearer":
        token = creds.credentials
    elif x_auth_token:
        token = x_auth_token
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    return decode_user_id(token)
