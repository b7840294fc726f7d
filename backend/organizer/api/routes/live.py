"""
WebSocket endpoint for the live dashboard.

Accepts connections at /ws/dashboard?token=<jwt>. The server pushes

    {"type": "dashboard", "query": ..., "events": [...], "favorites": [...]}

every time either live feed changes or the search query changes. Clients send

    {"type": "search", "query": "..."}
    {"type": "toggle_favorite", "event_id": "..."}
    {"type": "refresh"}

Store failures, frames that are not JSON objects and unknown message types are
reported as {"type": "error", "message": ...} and leave the connection open.
"""

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from organizer.api.deps import get_store
from organizer.api.errors import GENERIC_STORE_MESSAGE
from organizer.core.errors import StoreError, UnauthenticatedError
from organizer.core.logging import get_logger
from organizer.core.security import decode_access_token
from organizer.infrastructure.identity import SessionIdentity
from organizer.services.dashboard import DashboardFeed
from organizer.services.interfaces.store import DocumentStore

logger = get_logger(__name__)
router = APIRouter(tags=["Live"])

INVALID_MESSAGE = "Messages must be JSON objects"


def _dashboard_message(feed: DashboardFeed) -> dict[str, Any]:
    return {
        "type": "dashboard",
        "query": feed.query,
        "events": [card.model_dump(mode="json", by_alias=True) for card in feed.cards],
        "favorites": [
            event.model_dump(mode="json", by_alias=True) for event in feed.reconciler.favorite_events
        ],
    }


async def _pump(websocket: WebSocket, updates: asyncio.Queue) -> None:
    while True:
        message = await updates.get()
        await websocket.send_json(message)


async def _handle(message: dict[str, Any], feed: DashboardFeed, updates: asyncio.Queue) -> None:
    kind = message.get("type")
    if kind == "search":
        feed.set_query(str(message.get("query") or ""))
    elif kind == "toggle_favorite":
        event_id = message.get("event_id")
        if not isinstance(event_id, str) or not event_id:
            updates.put_nowait({"type": "error", "message": "event_id is required"})
            return
        try:
            await feed.toggle_favorite(event_id)
        except StoreError:
            updates.put_nowait({"type": "error", "message": GENERIC_STORE_MESSAGE})
    elif kind == "refresh":
        try:
            await feed.refresh()
        except StoreError:
            updates.put_nowait({"type": "error", "message": GENERIC_STORE_MESSAGE})
    else:
        updates.put_nowait({"type": "error", "message": f"Unknown message type: {kind}"})


@router.websocket("/ws/dashboard")
async def dashboard_socket(
    websocket: WebSocket,
    token: str = Query(""),
    store: DocumentStore = Depends(get_store),
):
    try:
        user = decode_access_token(token)
    except UnauthenticatedError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    feed = DashboardFeed(store, SessionIdentity(user))
    updates: asyncio.Queue = asyncio.Queue()
    sender = asyncio.create_task(_pump(websocket, updates))
    logger.info("dashboard_socket_opened", user_id=user.uid)

    try:
        async with feed:
            feed.add_listener(lambda _cards: updates.put_nowait(_dashboard_message(feed)))
            updates.put_nowait(_dashboard_message(feed))
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    message = None
                if not isinstance(message, dict):
                    updates.put_nowait({"type": "error", "message": INVALID_MESSAGE})
                    continue
                await _handle(message, feed, updates)
    except WebSocketDisconnect:
        pass
    finally:
        feed.stop()
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
        logger.info("dashboard_socket_closed", user_id=user.uid)
