"""
Document store factory.
Configures which store backend the application talks to.
"""

from organizer.core.config import get_settings
from organizer.infrastructure.memory_store import InMemoryDocumentStore
from organizer.infrastructure.redis_client import get_redis
from organizer.infrastructure.redis_store import RedisDocumentStore
from organizer.services.interfaces.store import DocumentStore


def create_document_store() -> DocumentStore:
    """
    Build the configured document store.

    Backend selection:
    - memory: process-local store (development, tests)
    - redis: shared store, every API replica sees the same live feeds

    Selected by the STORE_BACKEND env var.
    """
    settings = get_settings()
    backend = settings.STORE_BACKEND.lower()

    if backend == "redis":
        return RedisDocumentStore(get_redis())
    if backend == "memory":
        return InMemoryDocumentStore()
    raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")
