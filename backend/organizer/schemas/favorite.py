"""
Pydantic schemas for favorites responses.
"""

from pydantic import BaseModel

from organizer.schemas.event import EventRecord


class FavoriteToggleResponse(BaseModel):
    event_id: str
    favorite: bool


class FavoritesResponse(BaseModel):
    events: list[EventRecord]
    total: int
