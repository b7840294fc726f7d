"""
Process-local document store with live subscriptions.

Used by the test suite and for local development (STORE_BACKEND=memory).
Every write is applied atomically on the event loop and then pushed to the
matching subscriptions synchronously, so listeners observe snapshots in
write order. Documents are ordered by id, like the managed backend's
default ordering.
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from organizer.core.errors import NotFoundError
from organizer.core.logging import get_logger
from organizer.core.metrics import active_subscriptions, record_store_operation
from organizer.services.interfaces.store import (
    DocumentSnapshot,
    DocumentStore,
    Query,
    QuerySnapshot,
    SnapshotListener,
    Subscription,
    resolve_fields,
)

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemorySubscription(Subscription):

    def __init__(self, store: "InMemoryDocumentStore", query: Query, listener: SnapshotListener):
        self.query = query
        self._store = store
        self._listener = listener
        self._active = True
        active_subscriptions.inc()

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._store._detach(self)
        active_subscriptions.dec()

    def deliver(self, snapshot: QuerySnapshot) -> None:
        if not self._active:
            return
        try:
            self._listener(snapshot)
        except Exception as e:
            # A broken listener must not break the write that triggered it
            logger.error(
                "subscription_listener_failed",
                collection=self.query.collection,
                document_id=self.query.document_id,
                error=str(e),
            )


class InMemoryDocumentStore(DocumentStore):

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscriptions: list[MemorySubscription] = []
        self._clock = clock or _utcnow

    # Reads

    def _snapshot(self, query: Query) -> QuerySnapshot:
        docs = self._collections.get(query.collection, {})
        if query.is_document:
            data = docs.get(query.document_id)
            if data is None:
                return QuerySnapshot(query=query)
            return QuerySnapshot(
                query=query,
                documents=(DocumentSnapshot(id=query.document_id, data=copy.deepcopy(data)),),
            )
        return QuerySnapshot(
            query=query,
            documents=tuple(
                DocumentSnapshot(id=doc_id, data=copy.deepcopy(docs[doc_id]))
                for doc_id in sorted(docs)
            ),
        )

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        record_store_operation("get", "ok")
        data = self._collections.get(collection, {}).get(doc_id)
        return DocumentSnapshot(id=doc_id, data=copy.deepcopy(data) if data is not None else None)

    async def list(self, collection: str) -> QuerySnapshot:
        record_store_operation("list", "ok")
        return self._snapshot(Query(collection=collection))

    async def subscribe(self, query: Query, listener: SnapshotListener) -> Subscription:
        subscription = MemorySubscription(self, query, listener)
        self._subscriptions.append(subscription)
        logger.debug("subscription_opened", collection=query.collection, document_id=query.document_id)
        subscription.deliver(self._snapshot(query))
        return subscription

    def _detach(self, subscription: MemorySubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug(
                "subscription_closed",
                collection=subscription.query.collection,
                document_id=subscription.query.document_id,
            )

    def _notify(self, collection: str, doc_id: str) -> None:
        for subscription in list(self._subscriptions):
            query = subscription.query
            if query.collection != collection:
                continue
            if query.is_document and query.document_id != doc_id:
                continue
            subscription.deliver(self._snapshot(query))

    # Writes

    async def add(self, collection: str, fields: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        docs = self._collections.setdefault(collection, {})
        docs[doc_id] = copy.deepcopy(resolve_fields(None, fields, self._clock()))
        record_store_operation("add", "ok")
        self._notify(collection, doc_id)
        return doc_id

    async def set(self, collection: str, doc_id: str, fields: dict[str, Any], *, merge: bool = False) -> None:
        docs = self._collections.setdefault(collection, {})
        current = docs.get(doc_id)
        resolved = copy.deepcopy(resolve_fields(current if merge else None, fields, self._clock()))
        if merge and current is not None:
            docs[doc_id] = {**current, **resolved}
        else:
            docs[doc_id] = resolved
        record_store_operation("set", "ok")
        self._notify(collection, doc_id)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        docs = self._collections.get(collection, {})
        current = docs.get(doc_id)
        if current is None:
            record_store_operation("update", "not_found")
            raise NotFoundError(collection, doc_id)
        docs[doc_id] = {**current, **copy.deepcopy(resolve_fields(current, fields, self._clock()))}
        record_store_operation("update", "ok")
        self._notify(collection, doc_id)

    async def delete(self, collection: str, doc_id: str) -> None:
        docs = self._collections.get(collection, {})
        existed = docs.pop(doc_id, None) is not None
        record_store_operation("delete", "ok")
        if existed:
            self._notify(collection, doc_id)

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.cancel()
