"""
Redis-backed document store with live subscriptions.

STORAGE LAYOUT
==============

  - One hash per collection: "{prefix}{collection}", field = document id,
    value = JSON document (datetimes tagged as {"$date": iso8601})
  - One pub/sub channel per collection: "{prefix}{collection}:changes",
    message = id of the document that changed

WRITE STRATEGY: Optimistic transactions with retry
==================================================

Field transforms (array union/remove, server timestamp) need the current
document, so set/update are read-modify-write cycles:

  1. WATCH the collection hash
  2. HGET the current document and resolve the transforms against it
  3. MULTI / HSET / EXEC - fails with WatchError if anyone touched the hash
  4. On conflict retry, up to STORE_MAX_RETRY_ATTEMPTS
  5. PUBLISH the document id so live subscriptions re-read

LIVE FEED
=========

A subscription SUBSCRIBEs to the collection channel first and only then
reads its initial snapshot, so no change can fall between the two. Every
matching change message triggers a full re-read of the query, which keeps
the "every update is a complete snapshot" contract without diffing.
Documents that fail to decode are logged and left out; a write treats them
as missing.
"""

import asyncio
import json
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from organizer.core.config import get_settings
from organizer.core.errors import NotFoundError, StoreFailureError
from organizer.core.logging import get_logger
from organizer.core.metrics import (
    active_subscriptions,
    record_store_operation,
    store_latency,
    store_retries,
)
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

_DATE_TAG = "$date"


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_DATE_TAG: value.isoformat()}
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def _object_hook(obj: dict[str, Any]) -> Any:
    if len(obj) == 1 and _DATE_TAG in obj:
        return datetime.fromisoformat(obj[_DATE_TAG])
    return obj


def encode_document(data: dict[str, Any]) -> str:
    return json.dumps(data, default=_default, separators=(",", ":"))


def decode_document(raw: str) -> dict[str, Any]:
    return json.loads(raw, object_hook=_object_hook)


class RedisSubscription(Subscription):

    def __init__(self, store: "RedisDocumentStore", query: Query, listener: SnapshotListener, pubsub):
        self.query = query
        self._store = store
        self._listener = listener
        self._pubsub = pubsub
        self._active = True
        self._task: Optional[asyncio.Task] = None
        active_subscriptions.inc()

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        self._task = asyncio.create_task(self._run())

    def deliver(self, snapshot: QuerySnapshot) -> None:
        if not self._active:
            return
        try:
            self._listener(snapshot)
        except Exception as e:
            logger.error(
                "subscription_listener_failed",
                collection=self.query.collection,
                document_id=self.query.document_id,
                error=str(e),
            )

    async def _run(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                doc_id = message.get("data")
                if self.query.is_document and doc_id != self.query.document_id:
                    continue
                snapshot = await self._store._read_query(self.query)
                self.deliver(snapshot)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "subscription_failed",
                collection=self.query.collection,
                document_id=self.query.document_id,
                error=str(e),
            )
        self._deactivate()
        self._store._spawn(self._close())

    def _deactivate(self) -> None:
        if self._active:
            self._active = False
            active_subscriptions.dec()

    def cancel(self) -> None:
        if not self._active:
            return
        self._deactivate()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._store._spawn(self._close())

    async def _close(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        try:
            await self._pubsub.aclose()
        except RedisError as e:
            logger.warning("subscription_close_failed", collection=self.query.collection, error=str(e))
        self._store._forget(self)


class RedisDocumentStore(DocumentStore):

    def __init__(
        self,
        client: redis.Redis,
        key_prefix: Optional[str] = None,
        max_retry_attempts: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        settings = get_settings()
        self._redis = client
        self._prefix = settings.REDIS_KEY_PREFIX if key_prefix is None else key_prefix
        self._max_attempts = max_retry_attempts or settings.STORE_MAX_RETRY_ATTEMPTS
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._subscriptions: set[RedisSubscription] = set()
        self._background: set[asyncio.Task] = set()

    def collection_key(self, collection: str) -> str:
        return f"{self._prefix}{collection}"

    def channel(self, collection: str) -> str:
        return f"{self._prefix}{collection}:changes"

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        except RedisError as e:
            record_store_operation(name, "error")
            logger.error("store_operation_failed", operation=name, error=str(e))
            raise StoreFailureError("The event store is unavailable, please try again") from e
        else:
            record_store_operation(name, "ok")
        finally:
            store_latency.labels(operation=name).observe(time.perf_counter() - start)

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _forget(self, subscription: RedisSubscription) -> None:
        self._subscriptions.discard(subscription)

    # Reads

    def _decode(self, collection: str, doc_id: str, raw: Optional[str]) -> Optional[dict[str, Any]]:
        """Decoded document, or None if it is missing or unreadable."""
        if raw is None:
            return None
        try:
            data = decode_document(raw)
        except ValueError as e:
            logger.warning(
                "store_document_undecodable",
                collection=collection,
                document_id=doc_id,
                error=str(e),
            )
            return None
        if not isinstance(data, dict):
            logger.warning("store_document_undecodable", collection=collection, document_id=doc_id)
            return None
        return data

    async def _read_query(self, query: Query) -> QuerySnapshot:
        """Current result of `query`. Unreadable documents are left out."""
        key = self.collection_key(query.collection)
        if query.is_document:
            raw = await self._redis.hget(key, query.document_id)
            data = self._decode(query.collection, query.document_id, raw)
            if data is None:
                return QuerySnapshot(query=query)
            return QuerySnapshot(query=query, documents=(DocumentSnapshot(id=query.document_id, data=data),))
        raw_docs = await self._redis.hgetall(key)
        documents = []
        for doc_id in sorted(raw_docs):
            data = self._decode(query.collection, doc_id, raw_docs[doc_id])
            if data is not None:
                documents.append(DocumentSnapshot(id=doc_id, data=data))
        return QuerySnapshot(query=query, documents=tuple(documents))

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        with self._operation("get"):
            raw = await self._redis.hget(self.collection_key(collection), doc_id)
        return DocumentSnapshot(id=doc_id, data=self._decode(collection, doc_id, raw))

    async def list(self, collection: str) -> QuerySnapshot:
        with self._operation("list"):
            return await self._read_query(Query(collection=collection))

    async def subscribe(self, query: Query, listener: SnapshotListener) -> Subscription:
        with self._operation("subscribe"):
            pubsub = self._redis.pubsub()
            await pubsub.subscribe(self.channel(query.collection))
            snapshot = await self._read_query(query)
        subscription = RedisSubscription(self, query, listener, pubsub)
        self._subscriptions.add(subscription)
        subscription.deliver(snapshot)
        subscription.start()
        logger.debug("subscription_opened", collection=query.collection, document_id=query.document_id)
        return subscription

    # Writes

    async def _publish(self, collection: str, doc_id: str) -> None:
        await self._redis.publish(self.channel(collection), doc_id)

    async def _write(
        self,
        operation: str,
        collection: str,
        doc_id: str,
        build: Callable[[Optional[dict[str, Any]]], dict[str, Any]],
    ) -> None:
        """Optimistic read-modify-write of one document, retried on concurrent modification."""
        key = self.collection_key(collection)
        with self._operation(operation):
            async with self._redis.pipeline(transaction=True) as pipe:
                for attempt in range(1, self._max_attempts + 1):
                    try:
                        await pipe.watch(key)
                        raw = await pipe.hget(key, doc_id)
                        current = self._decode(collection, doc_id, raw)
                        document = build(current)
                        pipe.multi()
                        pipe.hset(key, doc_id, encode_document(document))
                        await pipe.execute()
                        break
                    except WatchError:
                        store_retries.inc()
                        logger.info(
                            "store_write_retry",
                            collection=collection,
                            document_id=doc_id,
                            attempt=attempt,
                            reason="concurrent_modification",
                        )
                        if attempt == self._max_attempts:
                            raise StoreFailureError("Too many concurrent changes, please try again")
                        continue
            await self._publish(collection, doc_id)

    async def add(self, collection: str, fields: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        document = resolve_fields(None, fields, self._clock())
        with self._operation("add"):
            await self._redis.hsetnx(self.collection_key(collection), doc_id, encode_document(document))
            await self._publish(collection, doc_id)
        return doc_id

    async def set(self, collection: str, doc_id: str, fields: dict[str, Any], *, merge: bool = False) -> None:
        def build(current: Optional[dict[str, Any]]) -> dict[str, Any]:
            if merge and current is not None:
                return {**current, **resolve_fields(current, fields, self._clock())}
            return resolve_fields(None, fields, self._clock())

        await self._write("set", collection, doc_id, build)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        def build(current: Optional[dict[str, Any]]) -> dict[str, Any]:
            if current is None:
                raise NotFoundError(collection, doc_id)
            return {**current, **resolve_fields(current, fields, self._clock())}

        try:
            await self._write("update", collection, doc_id, build)
        except NotFoundError:
            record_store_operation("update", "not_found")
            raise

    async def delete(self, collection: str, doc_id: str) -> None:
        with self._operation("delete"):
            removed = await self._redis.hdel(self.collection_key(collection), doc_id)
            if removed:
                await self._publish(collection, doc_id)

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
