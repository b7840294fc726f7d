"""
Dashboard feed: the searchable event list with favorite and manage flags.

Wraps a FavoritesReconciler, so the dashboard and the favorites view share
the same two subscriptions. Changing the search query only re-filters the
latest snapshot; it never re-subscribes.
"""

from typing import Callable, Optional

from organizer.core.config import get_settings
from organizer.schemas.event import EventCard
from organizer.services.event_service import can_manage
from organizer.services.favorites import FavoritesReconciler
from organizer.services.interfaces.identity import IdentityProvider
from organizer.services.interfaces.store import DocumentStore
from organizer.services.search import filter_events

CardsListener = Callable[[list[EventCard]], None]


class DashboardFeed:

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        reconciler: Optional[FavoritesReconciler] = None,
        owner_only: Optional[bool] = None,
    ) -> None:
        self._identity = identity
        self._reconciler = reconciler or FavoritesReconciler(store, identity)
        self._owner_only = get_settings().OWNER_ONLY_MUTATIONS if owner_only is None else owner_only
        self._query = ""
        self._listeners: list[CardsListener] = []
        self._reconciler.add_listener(lambda _favorites: self._emit())

    @property
    def reconciler(self) -> FavoritesReconciler:
        return self._reconciler

    @property
    def query(self) -> str:
        return self._query

    def set_query(self, query: str) -> None:
        self._query = query
        self._emit()

    def clear_query(self) -> None:
        self.set_query("")

    @property
    def cards(self) -> list[EventCard]:
        uid = self._identity.current_user_id()
        return [
            EventCard(
                event=event,
                is_favorite=self._reconciler.is_favorite(event.id),
                can_manage=can_manage(event, uid, owner_only=self._owner_only),
            )
            for event in filter_events(self._reconciler.events, self._query)
        ]

    def add_listener(self, listener: CardsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _emit(self) -> None:
        if not self._listeners:
            return
        cards = self.cards
        for listener in list(self._listeners):
            listener(cards)

    async def start(self) -> None:
        await self._reconciler.start()

    def stop(self) -> None:
        self._reconciler.stop()

    async def refresh(self) -> None:
        await self._reconciler.refresh()

    async def toggle_favorite(self, event_id: str) -> bool:
        return await self._reconciler.toggle_favorite(event_id)

    async def __aenter__(self) -> "DashboardFeed":
        await self._reconciler.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()
