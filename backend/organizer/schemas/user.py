"""
Pydantic schemas for signed-in users and their preference documents.
"""

from typing import TYPE_CHECKING, Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from organizer.services.interfaces.store import DocumentSnapshot


class AuthUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_label(self) -> str:
        """Name stamped on events this user creates."""
        return self.display_name or self.email or ""


class UserPreference(BaseModel):
    """Per-user document holding the ids of favorite events."""

    model_config = ConfigDict(frozen=True)

    favorites: frozenset[str] = frozenset()

    @field_validator("favorites", mode="before")
    @classmethod
    def _missing_favorites(cls, value: Any) -> Any:
        return () if value is None else value

    @classmethod
    def from_document(cls, doc: "DocumentSnapshot") -> "UserPreference":
        """A missing document means no favorites yet."""
        if not doc.exists:
            return cls()
        return cls.model_validate(doc.data)
