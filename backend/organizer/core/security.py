"""
Bearer token handling.

Tokens are JWTs issued by the identity provider with the shared SECRET_KEY.
The subject is the provider's user id; display name and email ride along as
claims so created events can be stamped without another lookup.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from organizer.core.config import get_settings
from organizer.core.errors import UnauthenticatedError
from organizer.schemas.user import AuthUser


def create_access_token(user: AuthUser, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expires_at = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": user.uid,
        "name": user.display_name,
        "email": user.email,
        "iat": now,
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> AuthUser:
    """
    Verify a token and return the user it identifies.

    Raises:
        UnauthenticatedError: If the token is expired, malformed or has no subject.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.InvalidTokenError as e:
        raise UnauthenticatedError() from e

    uid = payload.get("sub")
    if not uid:
        raise UnauthenticatedError()
    return AuthUser(uid=uid, display_name=payload.get("name"), email=payload.get("email"))
