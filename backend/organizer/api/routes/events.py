"""
Event endpoints: dashboard listing with search, create, edit, delete.
"""

from fastapi import APIRouter, Depends, Query, Response, status

from organizer.api.deps import get_identity, get_store
from organizer.infrastructure.identity import SessionIdentity
from organizer.schemas.event import EventFields, EventListResponse, EventRecord
from organizer.services.dashboard import DashboardFeed
from organizer.services.event_service import create_event, delete_event, get_event, update_event
from organizer.services.interfaces.store import DocumentStore
from organizer.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    q: str = Query("", max_length=200),
    identity: SessionIdentity = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    """
    Dashboard list: every event matching `q`, flagged with whether it is a
    favorite of the caller and whether the caller may edit or delete it.
    """
    async with DashboardFeed(store, identity) as feed:
        feed.set_query(q)
        cards = feed.cards
    logger.info("events_listed", query=q, results=len(cards))
    return EventListResponse(events=cards, total=len(cards), query=q)


@router.post("/", response_model=EventRecord, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    fields: EventFields,
    identity: SessionIdentity = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    """Create a new event owned by the caller."""
    return await create_event(store, identity, fields)


@router.get("/{event_id}", response_model=EventRecord)
async def get_event_endpoint(
    event_id: str,
    identity: SessionIdentity = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    return await get_event(store, event_id)


@router.put("/{event_id}", response_model=EventRecord)
async def update_event_endpoint(
    event_id: str,
    fields: EventFields,
    identity: SessionIdentity = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    """Edit an event. The date may be in the past when editing."""
    return await update_event(store, identity, event_id, fields)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: str,
    identity: SessionIdentity = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    await delete_event(store, identity, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
