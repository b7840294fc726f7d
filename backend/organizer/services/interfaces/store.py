"""
Document store interface consumed by the organizer services.

The store is an external, live-synchronized document database:
- documents are JSON-like dicts grouped in named collections
- a subscription delivers the full matching result set once on subscribe
  and again every time any matching document changes, until cancelled
- writes may carry field transforms (array union/remove, server timestamp)
  that the store resolves atomically against the current document

Implementations:
- InMemoryDocumentStore: process-local, used by tests and local development
- RedisDocumentStore: shared store over Redis hashes and pub/sub
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator, Optional


@dataclass(frozen=True)
class Query:
    """Describes what a subscription watches: a whole collection or one document."""

    collection: str
    document_id: Optional[str] = None

    @property
    def is_document(self) -> bool:
        return self.document_id is not None


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time copy of one document. `data` is None when it does not exist."""

    id: str
    data: Optional[dict[str, Any]] = None

    @property
    def exists(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class QuerySnapshot:
    """Full result set of a query at one point in time, in store order."""

    query: Query
    documents: tuple[DocumentSnapshot, ...] = ()

    def __iter__(self) -> Iterator[DocumentSnapshot]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    def get(self, doc_id: str) -> DocumentSnapshot:
        for doc in self.documents:
            if doc.id == doc_id:
                return doc
        return DocumentSnapshot(id=doc_id)


SnapshotListener = Callable[[QuerySnapshot], None]


class Subscription(ABC):
    """Handle to a live query. Cancelling is idempotent."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivering snapshots and release the underlying connection."""
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        pass


# Field transforms

@dataclass(frozen=True)
class ArrayUnion:
    """Add values to an array field, skipping ones already present."""

    values: tuple[Any, ...] = field(default=())

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove:
    """Remove every occurrence of the values from an array field."""

    values: tuple[Any, ...] = field(default=())

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    # Identity checks against the sentinel must survive copies
    def __copy__(self) -> "_ServerTimestamp":
        return self

    def __deepcopy__(self, memo: dict) -> "_ServerTimestamp":
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


def resolve_fields(current: Optional[dict[str, Any]], fields: dict[str, Any], now: datetime) -> dict[str, Any]:
    """
    Resolve field transforms against the current document.

    Returns only the written fields with concrete values; callers merge or
    replace as the write mode requires.
    """
    current = current or {}
    resolved: dict[str, Any] = {}
    for name, value in fields.items():
        if isinstance(value, ArrayUnion):
            existing = current.get(name)
            items = list(existing) if isinstance(existing, list) else []
            for item in value.values:
                if item not in items:
                    items.append(item)
            resolved[name] = items
        elif isinstance(value, ArrayRemove):
            existing = current.get(name)
            items = list(existing) if isinstance(existing, list) else []
            resolved[name] = [item for item in items if item not in value.values]
        elif value is SERVER_TIMESTAMP:
            resolved[name] = now
        else:
            resolved[name] = value
    return resolved


class DocumentStore(ABC):
    """
    Interface for the live document store.

    All I/O is async. Failures surface as StoreError subclasses:
    NotFoundError from update() on a missing document, StoreFailureError
    for anything else.
    """

    @abstractmethod
    async def subscribe(self, query: Query, listener: SnapshotListener) -> Subscription:
        """
        Start a live query.

        The initial snapshot is delivered to `listener` before this returns;
        later snapshots follow in the order the store emits them.
        """
        pass

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        """One-shot read of a single document."""
        pass

    @abstractmethod
    async def list(self, collection: str) -> QuerySnapshot:
        """One-shot read of a whole collection."""
        pass

    @abstractmethod
    async def add(self, collection: str, fields: dict[str, Any]) -> str:
        """Create a document with a store-assigned id and return the id."""
        pass

    @abstractmethod
    async def set(self, collection: str, doc_id: str, fields: dict[str, Any], *, merge: bool = False) -> None:
        """Create or overwrite a document. With merge=True only the given fields change."""
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """
        Change fields of an existing document.

        Raises:
            NotFoundError: If the document does not exist.
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document succeeds."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Cancel open subscriptions and release connections."""
        pass
