from organizer.schemas.user import AuthUser, UserPreference
from organizer.schemas.event import EventRecord, EventFields, EventCard, EventListResponse
from organizer.schemas.favorite import FavoriteToggleResponse, FavoritesResponse

__all__ = [
    "AuthUser", "UserPreference",
    "EventRecord", "EventFields", "EventCard", "EventListResponse",
    "FavoriteToggleResponse", "FavoritesResponse",
]
