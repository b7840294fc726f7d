"""
Tests for favorites endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_toggle_favorite_adds_then_removes(client: AsyncClient, auth_headers, store, alice, bob_event):
    first = await client.post(f"/api/v1/favorites/{bob_event}", headers=auth_headers)
    assert first.status_code == 200
    assert first.json() == {"event_id": bob_event, "favorite": True}
    assert (await store.get("users", alice.uid)).data == {"favorites": [bob_event]}

    second = await client.post(f"/api/v1/favorites/{bob_event}", headers=auth_headers)
    assert second.json() == {"event_id": bob_event, "favorite": False}
    assert (await store.get("users", alice.uid)).data == {"favorites": []}


@pytest.mark.asyncio
async def test_list_favorites(client: AsyncClient, auth_headers, store, alice, alice_event, bob_event):
    await store.set("users", alice.uid, {"favorites": [bob_event, "deleted-event"]})

    response = await client.get("/api/v1/favorites/", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["events"][0]["id"] == bob_event
    assert data["events"][0]["location"] == "Riverside Park"


@pytest.mark.asyncio
async def test_list_favorites_without_preference_document(client: AsyncClient, auth_headers, alice_event):
    response = await client.get("/api/v1/favorites/", headers=auth_headers)
    assert response.json() == {"events": [], "total": 0}


@pytest.mark.asyncio
async def test_favorites_are_per_user(client: AsyncClient, auth_headers, bob_headers, bob_event):
    await client.post(f"/api/v1/favorites/{bob_event}", headers=auth_headers)

    response = await client.get("/api/v1/favorites/", headers=bob_headers)
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_favorites_require_authentication(client: AsyncClient, bob_event):
    assert (await client.get("/api/v1/favorites/")).status_code == 401
    assert (await client.post(f"/api/v1/favorites/{bob_event}")).status_code == 401
