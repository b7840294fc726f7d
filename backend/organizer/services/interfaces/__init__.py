"""
Service interfaces for dependency inversion.
Allows swapping the document store and identity provider without changing
the reconciliation logic.
"""

from .store import (
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    DocumentSnapshot,
    DocumentStore,
    Query,
    QuerySnapshot,
    SnapshotListener,
    Subscription,
    resolve_fields,
)
from .identity import IdentityProvider

__all__ = [
    'SERVER_TIMESTAMP', 'ArrayRemove', 'ArrayUnion', 'DocumentSnapshot',
    'DocumentStore', 'Query', 'QuerySnapshot', 'SnapshotListener',
    'Subscription', 'resolve_fields', 'IdentityProvider',
]
