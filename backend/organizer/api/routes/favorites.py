"""
Favorites endpoints.

Each request runs a short-lived reconciler: subscribe to both feeds, wait for
their first snapshots, answer, cancel.
"""

from fastapi import APIRouter, Depends

from organizer.api.deps import get_identity, get_store
from organizer.infrastructure.identity import SessionIdentity
from organizer.schemas.favorite import FavoritesResponse, FavoriteToggleResponse
from organizer.services.favorites import FavoritesReconciler
from organizer.services.interfaces.store import DocumentStore

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("/", response_model=FavoritesResponse)
async def list_favorites_endpoint(
    identity: SessionIdentity = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    """The caller's favorite events, in feed order."""
    async with FavoritesReconciler(store, identity) as reconciler:
        events = reconciler.favorite_events
    return FavoritesResponse(events=events, total=len(events))


@router.post("/{event_id}", response_model=FavoriteToggleResponse)
async def toggle_favorite_endpoint(
    event_id: str,
    identity: SessionIdentity = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    """Add the event to favorites, or remove it if it already is one."""
    async with FavoritesReconciler(store, identity) as reconciler:
        favorite = await reconciler.toggle_favorite(event_id)
    return FavoriteToggleResponse(event_id=event_id, favorite=favorite)
