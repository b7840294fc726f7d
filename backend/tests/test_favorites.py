"""
Tests for the favorites reconciler: derived view, toggling, feed lifecycle.
"""

from datetime import datetime, timezone

import pytest

from conftest import FailingStore, add_event
from organizer.core.errors import StoreFailureError, UnauthenticatedError
from organizer.infrastructure.identity import SessionIdentity
from organizer.schemas.event import EventRecord
from organizer.services.favorites import FavoritesReconciler, select_favorites


def _record(event_id: str) -> EventRecord:
    return EventRecord.model_validate({
        "id": event_id,
        "title": f"Event {event_id}",
        "description": "Described well enough",
        "location": "Somewhere",
        "date": datetime(2026, 6, 1, tzinfo=timezone.utc),
        "createdBy": "owner",
    })


class TestSelectFavorites:

    def test_keeps_only_favorites_in_feed_order(self):
        events = [_record("a"), _record("b"), _record("c")]
        assert [e.id for e in select_favorites(events, {"c", "a"})] == ["a", "c"]

    def test_ids_without_events_are_omitted(self):
        events = [_record("a")]
        assert [e.id for e in select_favorites(events, {"a", "ghost"})] == ["a"]

    def test_empty_favorites(self):
        assert select_favorites([_record("a")], set()) == []

    def test_accepts_any_iterable_of_ids(self):
        events = [_record("a"), _record("b")]
        assert [e.id for e in select_favorites(events, ["b"])] == ["b"]


@pytest.mark.asyncio
async def test_view_reflects_existing_favorites(store, identity, alice, alice_event, bob_event):
    await store.set("users", alice.uid, {"favorites": [bob_event]})

    async with FavoritesReconciler(store, identity) as reconciler:
        assert reconciler.favorite_ids == frozenset({bob_event})
        assert [e.id for e in reconciler.favorite_events] == [bob_event]
        assert len(reconciler.events) == 2


@pytest.mark.asyncio
async def test_toggle_creates_missing_preference_record(store, identity, alice, alice_event):
    """First toggle of a new user creates the preference document."""
    async with FavoritesReconciler(store, identity) as reconciler:
        assert (await store.get("users", alice.uid)).exists is False

        added = await reconciler.toggle_favorite(alice_event)

        assert added is True
        doc = await store.get("users", alice.uid)
        assert doc.data == {"favorites": [alice_event]}
        assert [e.id for e in reconciler.favorite_events] == [alice_event]


@pytest.mark.asyncio
async def test_toggle_twice_restores_membership(store, identity, alice, alice_event, bob_event):
    await store.set("users", alice.uid, {"favorites": [bob_event]})

    async with FavoritesReconciler(store, identity) as reconciler:
        before = reconciler.favorite_ids
        assert await reconciler.toggle_favorite(alice_event) is True
        assert reconciler.is_favorite(alice_event)
        assert await reconciler.toggle_favorite(alice_event) is False
        assert reconciler.favorite_ids == before


@pytest.mark.asyncio
async def test_toggle_keeps_other_preference_fields(store, identity, alice, alice_event):
    await store.set("users", alice.uid, {"favorites": [], "theme": "dark"})

    async with FavoritesReconciler(store, identity) as reconciler:
        await reconciler.toggle_favorite(alice_event)

    doc = await store.get("users", alice.uid)
    assert doc.data == {"favorites": [alice_event], "theme": "dark"}


@pytest.mark.asyncio
async def test_remove_without_preference_record_is_noop(store, identity, alice):
    reconciler = FavoritesReconciler(store, identity)
    await reconciler.start()
    # Local state still lists the favorite but the document was deleted elsewhere
    reconciler._favorite_ids = frozenset({"evt-1"})

    assert await reconciler.toggle_favorite("evt-1") is False
    assert (await store.get("users", alice.uid)).exists is False
    reconciler.stop()


@pytest.mark.asyncio
async def test_view_waits_for_authoritative_echo(identity, alice, alice_event, store):
    """Without a live echo the view stays unchanged after a write."""
    async with FavoritesReconciler(store, identity) as reconciler:
        reconciler.stop()  # feeds closed: the write below is never echoed back
        await reconciler.toggle_favorite(alice_event)
        assert reconciler.favorite_events == []
        assert (await store.get("users", alice.uid)).data == {"favorites": [alice_event]}


@pytest.mark.asyncio
async def test_favorite_for_missing_event_appears_once_event_arrives(store, identity, alice):
    await store.set("users", alice.uid, {"favorites": ["late-event"]})

    async with FavoritesReconciler(store, identity) as reconciler:
        assert reconciler.favorite_events == []

        await add_event(store, alice, "Late Arrival", doc_id="late-event")

        assert [e.id for e in reconciler.favorite_events] == ["late-event"]


@pytest.mark.asyncio
async def test_deleted_event_drops_out_of_view(store, identity, alice, alice_event):
    await store.set("users", alice.uid, {"favorites": [alice_event]})

    async with FavoritesReconciler(store, identity) as reconciler:
        await store.delete("events", alice_event)
        assert reconciler.favorite_events == []
        assert reconciler.favorite_ids == frozenset({alice_event})


@pytest.mark.asyncio
async def test_malformed_event_documents_are_skipped(store, identity, alice, alice_event):
    await store.set("events", "broken", {"title": "No owner or date"})
    await store.set("users", alice.uid, {"favorites": [alice_event, "broken"]})

    async with FavoritesReconciler(store, identity) as reconciler:
        assert [e.id for e in reconciler.events] == [alice_event]
        assert [e.id for e in reconciler.favorite_events] == [alice_event]


@pytest.mark.asyncio
async def test_listeners_receive_each_recomputed_view(store, identity, alice, alice_event):
    views = []
    reconciler = FavoritesReconciler(store, identity)
    remove = reconciler.add_listener(lambda view: views.append([e.id for e in view]))

    async with reconciler:
        await reconciler.toggle_favorite(alice_event)
        remove()
        await reconciler.toggle_favorite(alice_event)

    assert views[-1] == [alice_event]
    assert [] in views


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_others(store, identity, alice_event):
    seen = []

    def broken(view):
        raise RuntimeError("render failed")

    reconciler = FavoritesReconciler(store, identity)
    reconciler.add_listener(broken)
    reconciler.add_listener(lambda view: seen.append(len(view)))

    async with reconciler:
        await reconciler.toggle_favorite(alice_event)

    assert seen[-1] == 1


@pytest.mark.asyncio
async def test_store_failure_is_raised_and_state_unchanged(identity, alice):
    store = FailingStore()
    event_id = await add_event(store, alice, "Team Offsite")

    async with FavoritesReconciler(store, identity) as reconciler:
        with pytest.raises(StoreFailureError):
            await reconciler.toggle_favorite(event_id)
        assert reconciler.favorite_ids == frozenset()

    assert (await store.get("users", alice.uid)).exists is False


@pytest.mark.asyncio
async def test_create_fallback_failure_is_raised(identity, alice):
    """update() reports NotFound, then the create write fails."""
    store = FailingStore(fail_on=("set",))

    async with FavoritesReconciler(store, identity) as reconciler:
        with pytest.raises(StoreFailureError):
            await reconciler.toggle_favorite("evt-1")


@pytest.mark.asyncio
async def test_requires_signed_in_user(store):
    reconciler = FavoritesReconciler(store, SessionIdentity())

    with pytest.raises(UnauthenticatedError):
        await reconciler.start()
    with pytest.raises(UnauthenticatedError):
        await reconciler.toggle_favorite("evt-1")


@pytest.mark.asyncio
async def test_stop_cancels_both_subscriptions(store, identity, alice, alice_event):
    reconciler = FavoritesReconciler(store, identity)
    await reconciler.start()
    assert reconciler.running
    assert len(store._subscriptions) == 2

    reconciler.stop()
    reconciler.stop()

    assert not reconciler.running
    assert store._subscriptions == []


@pytest.mark.asyncio
async def test_refresh_does_not_duplicate_subscriptions(store, identity, alice, alice_event):
    calls = []
    reconciler = FavoritesReconciler(store, identity)
    reconciler.add_listener(lambda view: calls.append(view))

    async with reconciler:
        await reconciler.refresh()
        await reconciler.refresh()
        assert len(store._subscriptions) == 2

        calls.clear()
        await store.set("users", alice.uid, {"favorites": [alice_event]})
        assert len(calls) == 1


@pytest.mark.asyncio
async def test_start_after_sign_in_switch_follows_new_user(store, identity, alice, bob, alice_event, bob_event):
    await store.set("users", alice.uid, {"favorites": [alice_event]})
    await store.set("users", bob.uid, {"favorites": [bob_event]})

    async with FavoritesReconciler(store, identity) as reconciler:
        assert reconciler.favorite_ids == frozenset({alice_event})

        identity.sign_in(bob)
        await reconciler.start()

        assert reconciler.favorite_ids == frozenset({bob_event})
        assert [e.id for e in reconciler.favorite_events] == [bob_event]
        assert len(store._subscriptions) == 2

        # Alice's document no longer drives the view
        await store.set("users", alice.uid, {"favorites": []})
        assert reconciler.favorite_ids == frozenset({bob_event})


@pytest.mark.asyncio
async def test_toggle_after_sign_out_is_rejected(store, identity, alice_event):
    async with FavoritesReconciler(store, identity) as reconciler:
        identity.sign_out()

        assert identity.current_user_id() is None
        with pytest.raises(UnauthenticatedError):
            await reconciler.toggle_favorite(alice_event)
