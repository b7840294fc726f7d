"""
Identity provider holding the user of one application session.

The HTTP layer builds one per request from the bearer token; long-lived
clients (the WebSocket feed, scripts) sign in once and keep it.
"""

from typing import Optional

from organizer.core.logging import get_logger
from organizer.schemas.user import AuthUser
from organizer.services.interfaces.identity import IdentityProvider

logger = get_logger(__name__)


class SessionIdentity(IdentityProvider):

    def __init__(self, user: Optional[AuthUser] = None):
        self._user = user

    def current_user(self) -> Optional[AuthUser]:
        return self._user

    def sign_in(self, user: AuthUser) -> None:
        self._user = user
        logger.info("user_signed_in", user_id=user.uid)

    def sign_out(self) -> None:
        if self._user is not None:
            logger.info("user_signed_out", user_id=self._user.uid)
        self._user = None
