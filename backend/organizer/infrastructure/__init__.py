"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .redis_client import get_redis, RedisClient
from .memory_store import InMemoryDocumentStore
from .redis_store import RedisDocumentStore
from .identity import SessionIdentity

__all__ = ['get_redis', 'RedisClient', 'InMemoryDocumentStore', 'RedisDocumentStore', 'SessionIdentity']
