"""
Favorites reconciliation over two live feeds.

RECONCILIATION STRATEGY
=======================

Inputs:
  - the events feed: full snapshot of the events collection
  - the preference feed: the signed-in user's preference document

Both are independent subscriptions owned by the reconciler. Neither is
opened from inside the other's callback, so each can be cancelled on its
own and a refresh never leaves a stale listener behind.

On every snapshot from either feed the reconciler stores the parsed input
and recomputes

    favorite_events = [e for e in events if e.id in favorite_ids]

There is no ordering between the two feeds. A favorite id whose event has
not arrived yet (or was deleted) is simply absent from the view until the
feeds agree again.

MUTATIONS
=========

Toggling is optimistic and last-writer-wins at field level:
  - remove: array-remove on the preference document; a missing document
    means there is nothing to remove, so NotFound is a no-op
  - add: array-union on the preference document; on NotFound the document
    is created with a merge write, so a concurrent creator is not clobbered
  - any other store failure is raised to the caller, never retried

Local state is never patched after a write. The view changes only when the
preference feed delivers the authoritative document.
"""

import asyncio
from typing import Callable, Iterable, Optional, Sequence

from pydantic import ValidationError

from organizer.core.config import get_settings
from organizer.core.errors import NotFoundError, StoreError, UnauthenticatedError
from organizer.core.logging import get_logger
from organizer.core.metrics import record_favorite_toggle, record_feed_snapshot
from organizer.schemas.event import EventRecord
from organizer.schemas.user import UserPreference
from organizer.services.interfaces.identity import IdentityProvider
from organizer.services.interfaces.store import (
    ArrayRemove,
    ArrayUnion,
    DocumentStore,
    Query,
    QuerySnapshot,
    Subscription,
)

logger = get_logger(__name__)

FavoritesListener = Callable[[list[EventRecord]], None]


def select_favorites(events: Sequence[EventRecord], favorite_ids: Iterable[str]) -> list[EventRecord]:
    """Events whose id is a favorite, in feed order."""
    ids = favorite_ids if isinstance(favorite_ids, (set, frozenset)) else frozenset(favorite_ids)
    return [event for event in events if event.id in ids]


def parse_events(snapshot: QuerySnapshot) -> tuple[list[EventRecord], int]:
    """Parse an events snapshot, dropping documents that fail validation."""
    events: list[EventRecord] = []
    rejected = 0
    for doc in snapshot:
        try:
            events.append(EventRecord.from_document(doc))
        except ValidationError as e:
            rejected += 1
            logger.warning(
                "feed_document_rejected",
                feed="events",
                document_id=doc.id,
                errors=e.error_count(),
            )
    return events, rejected


class FavoritesReconciler:
    """
    Derives the favorites view of one user and toggles favorites.

    Usage:
        async with FavoritesReconciler(store, identity) as reconciler:
            reconciler.add_listener(render)
            await reconciler.toggle_favorite(event_id)
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        *,
        events_collection: Optional[str] = None,
        users_collection: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._identity = identity
        self._events_collection = events_collection or settings.EVENTS_COLLECTION
        self._users_collection = users_collection or settings.USERS_COLLECTION
        self._ready_timeout = settings.FEED_READY_TIMEOUT

        self._uid: Optional[str] = None
        self._events: tuple[EventRecord, ...] = ()
        self._favorite_ids: frozenset[str] = frozenset()
        self._favorite_events: list[EventRecord] = []

        self._events_subscription: Optional[Subscription] = None
        self._preference_subscription: Optional[Subscription] = None
        self._events_ready = asyncio.Event()
        self._preference_ready = asyncio.Event()
        self._listeners: list[FavoritesListener] = []

    # State

    @property
    def events(self) -> tuple[EventRecord, ...]:
        return self._events

    @property
    def favorite_ids(self) -> frozenset[str]:
        return self._favorite_ids

    @property
    def favorite_events(self) -> list[EventRecord]:
        return list(self._favorite_events)

    @property
    def running(self) -> bool:
        return self._events_subscription is not None or self._preference_subscription is not None

    @property
    def ready(self) -> bool:
        return self._events_ready.is_set() and self._preference_ready.is_set()

    def is_favorite(self, event_id: str) -> bool:
        return event_id in self._favorite_ids

    def add_listener(self, listener: FavoritesListener) -> Callable[[], None]:
        """Register a callback for every recomputed view. Returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # Lifecycle

    async def start(self) -> None:
        """Open the events and preference subscriptions for the current user."""
        uid = self._identity.current_user_id()
        if uid is None:
            raise UnauthenticatedError()
        if self.running:
            if uid == self._uid:
                return
            # Signed-in user changed: drop the previous user's feeds and favorites
            self.stop()
        if uid != self._uid:
            self._favorite_ids = frozenset()
            self._favorite_events = []

        self._uid = uid
        self._events_ready.clear()
        self._preference_ready.clear()
        try:
            self._events_subscription = await self._store.subscribe(
                Query(collection=self._events_collection),
                self._on_events,
            )
            self._preference_subscription = await self._store.subscribe(
                Query(collection=self._users_collection, document_id=uid),
                self._on_preference,
            )
        except StoreError:
            self.stop()
            raise
        logger.info("favorites_feed_started", user_id=uid)

    def stop(self) -> None:
        """Cancel both subscriptions. Safe to call more than once."""
        if self._events_subscription is not None:
            self._events_subscription.cancel()
            self._events_subscription = None
        if self._preference_subscription is not None:
            self._preference_subscription.cancel()
            self._preference_subscription = None
            logger.info("favorites_feed_stopped", user_id=self._uid)

    async def refresh(self) -> None:
        """Re-subscribe both feeds. Old subscriptions are cancelled first."""
        self.stop()
        await self.start()

    async def wait_ready(self, timeout: Optional[float] = None) -> None:
        """Wait until both feeds delivered their first snapshot."""
        await asyncio.wait_for(
            asyncio.gather(self._events_ready.wait(), self._preference_ready.wait()),
            timeout=timeout if timeout is not None else self._ready_timeout,
        )

    async def __aenter__(self) -> "FavoritesReconciler":
        await self.start()
        try:
            await self.wait_ready()
        except asyncio.TimeoutError:
            self.stop()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # Feed handlers

    def _on_events(self, snapshot: QuerySnapshot) -> None:
        events, rejected = parse_events(snapshot)
        record_feed_snapshot("events", rejected)
        self._events = tuple(events)
        self._events_ready.set()
        self._reconcile()

    def _on_preference(self, snapshot: QuerySnapshot) -> None:
        doc = snapshot.get(self._uid)
        try:
            preference = UserPreference.from_document(doc)
        except ValidationError as e:
            record_feed_snapshot("preferences", rejected=1)
            logger.warning(
                "feed_document_rejected",
                feed="preferences",
                document_id=doc.id,
                errors=e.error_count(),
            )
            self._preference_ready.set()
            return
        record_feed_snapshot("preferences")
        self._favorite_ids = preference.favorites
        self._preference_ready.set()
        self._reconcile()

    def _reconcile(self) -> None:
        self._favorite_events = select_favorites(self._events, self._favorite_ids)
        view = list(self._favorite_events)
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                logger.error("favorites_listener_failed", user_id=self._uid, error=str(e))

    # Mutations

    async def toggle_favorite(self, event_id: str) -> bool:
        """
        Flip membership of `event_id` in the user's favorites.

        Returns:
            True if the event was requested as a favorite, False if removed.

        Raises:
            UnauthenticatedError: If nobody is signed in.
            StoreError: If the write fails for any reason other than a
                missing preference document.
        """
        uid = self._identity.current_user_id()
        if uid is None:
            raise UnauthenticatedError()

        if event_id in self._favorite_ids:
            await self._remove_favorite(uid, event_id)
            return False
        await self._add_favorite(uid, event_id)
        return True

    async def _add_favorite(self, uid: str, event_id: str) -> None:
        fields = {"favorites": ArrayUnion(event_id)}
        try:
            try:
                await self._store.update(self._users_collection, uid, fields)
                result = "ok"
            except NotFoundError:
                await self._store.set(self._users_collection, uid, fields, merge=True)
                result = "created"
        except StoreError as e:
            record_favorite_toggle("add", "error")
            logger.error("favorite_toggle_failed", user_id=uid, event_id=event_id, action="add", error=str(e))
            raise

        record_favorite_toggle("add", result)
        logger.info("favorite_toggled", user_id=uid, event_id=event_id, action="add", result=result)

    async def _remove_favorite(self, uid: str, event_id: str) -> None:
        try:
            await self._store.update(self._users_collection, uid, {"favorites": ArrayRemove(event_id)})
            result = "ok"
        except NotFoundError:
            result = "noop"
        except StoreError as e:
            record_favorite_toggle("remove", "error")
            logger.error("favorite_toggle_failed", user_id=uid, event_id=event_id, action="remove", error=str(e))
            raise

        record_favorite_toggle("remove", result)
        logger.info("favorite_toggled", user_id=uid, event_id=event_id, action="remove", result=result)
