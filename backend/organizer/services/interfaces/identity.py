"""
Identity provider interface.
Sign-in itself happens in the external auth provider; services only ask
who is signed in right now.
"""

from abc import ABC, abstractmethod
from typing import Optional

from organizer.schemas.user import AuthUser


class IdentityProvider(ABC):

    @abstractmethod
    def current_user(self) -> Optional[AuthUser]:
        """Return the signed-in user, or None."""
        pass

    @abstractmethod
    def sign_in(self, user: AuthUser) -> None:
        pass

    @abstractmethod
    def sign_out(self) -> None:
        pass

    def current_user_id(self) -> Optional[str]:
        user = self.current_user()
        return user.uid if user else None
