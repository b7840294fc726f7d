"""
Pydantic schemas for event records, event forms and event responses.

Stored documents use the mobile client's camelCase field names; aliases map
them onto snake_case attributes. Documents are parsed once at the store
boundary and trusted afterwards.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from organizer.services.interfaces.store import DocumentSnapshot


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EventRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    title: str
    description: str
    location: str
    date: datetime
    created_by: str = Field(..., min_length=1, alias="createdBy")
    created_by_name: str = Field("", alias="createdByName")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @field_validator("created_by_name", mode="before")
    @classmethod
    def _missing_name(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("date", "created_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value) if value is not None else None

    @classmethod
    def from_document(cls, doc: "DocumentSnapshot") -> "EventRecord":
        """Parse a store document. Raises pydantic.ValidationError on bad payloads."""
        return cls.model_validate({**(doc.data or {}), "id": doc.id})


class EventFields(BaseModel):
    """Editable event fields as submitted by the create and edit forms."""

    title: str = ""
    description: str = ""
    location: str = ""
    date: datetime

    @field_validator("date")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class EventCard(BaseModel):
    """One row of the dashboard list."""

    event: EventRecord
    is_favorite: bool
    can_manage: bool


class EventListResponse(BaseModel):
    events: list[EventCard]
    total: int
    query: str = ""
