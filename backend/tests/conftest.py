"""
Pytest fixtures for the document store, signed-in users, and the HTTP client.

Every test gets a fresh in-memory store; the API's store dependency is
overridden to point at it.
"""

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from organizer.api.deps import get_store
from organizer.core.errors import StoreFailureError
from organizer.core.security import create_access_token
from organizer.infrastructure.identity import SessionIdentity
from organizer.infrastructure.memory_store import InMemoryDocumentStore
from organizer.main import app
from organizer.schemas.user import AuthUser


class FailingStore(InMemoryDocumentStore):
    """In-memory store whose writes fail like an unreachable backend."""

    def __init__(self, fail_on: tuple[str, ...] = ("update", "set")):
        super().__init__()
        self.fail_on = fail_on

    async def update(self, collection, doc_id, fields):
        if "update" in self.fail_on:
            raise StoreFailureError("connection reset")
        await super().update(collection, doc_id, fields)

    async def set(self, collection, doc_id, fields, *, merge=False):
        if "set" in self.fail_on:
            raise StoreFailureError("connection reset")
        await super().set(collection, doc_id, fields, merge=merge)

    async def subscribe(self, query, listener):
        if "subscribe" in self.fail_on:
            raise StoreFailureError("connection reset")
        return await super().subscribe(query, listener)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def alice() -> AuthUser:
    return AuthUser(uid="alice-uid", display_name="Alice Martin", email="alice@example.com")


@pytest.fixture
def bob() -> AuthUser:
    return AuthUser(uid="bob-uid", email="bob@example.com")


@pytest.fixture
def identity(alice: AuthUser) -> SessionIdentity:
    return SessionIdentity(alice)


@pytest.fixture
def future_date() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=30)


async def add_event(
    store: InMemoryDocumentStore,
    owner: AuthUser,
    title: str,
    *,
    description: str = "A gathering worth showing up for",
    location: str = "Main Hall",
    date: Optional[datetime] = None,
    doc_id: Optional[str] = None,
) -> str:
    """Write an event document the way the mobile client stores it."""
    fields = {
        "title": title,
        "description": description,
        "location": location,
        "date": date or datetime.now(timezone.utc) + timedelta(days=7),
        "createdBy": owner.uid,
        "createdByName": owner.display_label,
        "createdAt": datetime.now(timezone.utc),
    }
    if doc_id is None:
        return await store.add("events", fields)
    await store.set("events", doc_id, fields)
    return doc_id


@pytest_asyncio.fixture
async def alice_event(store: InMemoryDocumentStore, alice: AuthUser) -> str:
    return await add_event(store, alice, "Team Offsite", doc_id="evt-offsite")


@pytest_asyncio.fixture
async def bob_event(store: InMemoryDocumentStore, bob: AuthUser) -> str:
    return await add_event(store, bob, "Picnic in the Park", location="Riverside Park", doc_id="evt-picnic")


@pytest_asyncio.fixture(scope="function")
async def client(store: InMemoryDocumentStore) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the store dependency with the test store."""
    app.dependency_overrides[get_store] = lambda: store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(alice: AuthUser) -> dict:
    """Authorization headers with a bearer token for Alice."""
    return {"Authorization": f"Bearer {create_access_token(alice)}"}


@pytest.fixture
def bob_headers(bob: AuthUser) -> dict:
    return {"Authorization": f"Bearer {create_access_token(bob)}"}
