"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from organizer.api.routes import events, favorites, live

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(events.router)
api_router.include_router(favorites.router)

ws_router = APIRouter()
ws_router.include_router(live.router)
