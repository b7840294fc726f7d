"""
Request dependencies: the shared document store and the caller's identity.
"""

from typing import Optional

from fastapi import Depends
from starlette.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from organizer.core.errors import UnauthenticatedError
from organizer.core.security import decode_access_token
from organizer.infrastructure.identity import SessionIdentity
from organizer.schemas.user import AuthUser
from organizer.services.interfaces.store import DocumentStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(connection: HTTPConnection) -> DocumentStore:
    """Works for both HTTP requests and WebSocket connections."""
    return connection.app.state.store


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthUser:
    if credentials is None:
        raise UnauthenticatedError()
    return decode_access_token(credentials.credentials)


def get_identity(user: AuthUser = Depends(get_current_user)) -> SessionIdentity:
    return SessionIdentity(user)
