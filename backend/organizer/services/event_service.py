"""
Event service handling create, edit, delete and lookups.

Creating an event is two independent writes: the creator's preference
document is merged first (so it exists for later favorite toggles), then the
event is added. A failure between them leaves an event without a preference
document, which the lazy creation in the favorites path tolerates.
"""

from typing import Optional

from pydantic import ValidationError

from organizer.core.config import get_settings
from organizer.core.errors import (
    EventNotFoundError,
    PermissionDeniedError,
    UnauthenticatedError,
)
from organizer.core.logging import get_logger
from organizer.schemas.event import EventFields, EventRecord
from organizer.schemas.user import AuthUser
from organizer.services.interfaces.identity import IdentityProvider
from organizer.services.interfaces.store import SERVER_TIMESTAMP, DocumentStore
from organizer.services.validation import normalize_event_fields, validate_event

logger = get_logger(__name__)


def _require_user(identity: IdentityProvider) -> AuthUser:
    user = identity.current_user()
    if user is None:
        raise UnauthenticatedError()
    return user


def can_manage(event: EventRecord, uid: Optional[str], owner_only: Optional[bool] = None) -> bool:
    """Whether `uid` may edit or delete `event` under the configured policy."""
    if uid is None:
        return False
    if owner_only is None:
        owner_only = get_settings().OWNER_ONLY_MUTATIONS
    return not owner_only or event.created_by == uid


async def get_event(store: DocumentStore, event_id: str) -> EventRecord:
    """
    Get a single event by ID.

    Raises:
        EventNotFoundError: If the event does not exist or its document is unreadable.
    """
    settings = get_settings()
    doc = await store.get(settings.EVENTS_COLLECTION, event_id)
    if not doc.exists:
        raise EventNotFoundError(event_id)
    try:
        return EventRecord.from_document(doc)
    except ValidationError as e:
        logger.warning("event_document_rejected", event_id=event_id, errors=e.error_count())
        raise EventNotFoundError(event_id) from e


async def create_event(store: DocumentStore, identity: IdentityProvider, fields: EventFields) -> EventRecord:
    """Validate the form and create the event as the signed-in user."""
    user = _require_user(identity)
    validate_event(fields, creating=True)
    settings = get_settings()

    await store.set(settings.USERS_COLLECTION, user.uid, {"favorites": []}, merge=True)

    event_id = await store.add(
        settings.EVENTS_COLLECTION,
        {
            **normalize_event_fields(fields),
            "createdBy": user.uid,
            "createdByName": user.display_label,
            "createdAt": SERVER_TIMESTAMP,
        },
    )

    logger.info("event_created", event_id=event_id, user_id=user.uid, title=fields.title.strip())
    return await get_event(store, event_id)


async def update_event(
    store: DocumentStore,
    identity: IdentityProvider,
    event_id: str,
    fields: EventFields,
) -> EventRecord:
    """
    Edit title, description, location and date of an event.

    Ownership fields and createdAt are never rewritten.

    Raises:
        EventValidationError: Before any store call, if the form is invalid.
        EventNotFoundError: If the event does not exist.
        PermissionDeniedError: If the user may not manage the event.
    """
    user = _require_user(identity)
    validate_event(fields, creating=False)
    settings = get_settings()

    event = await get_event(store, event_id)
    if not can_manage(event, user.uid):
        logger.warning("event_update_denied", event_id=event_id, user_id=user.uid, owner_id=event.created_by)
        raise PermissionDeniedError(event_id)

    await store.update(settings.EVENTS_COLLECTION, event_id, normalize_event_fields(fields))

    logger.info("event_updated", event_id=event_id, user_id=user.uid)
    return await get_event(store, event_id)


async def delete_event(store: DocumentStore, identity: IdentityProvider, event_id: str) -> None:
    """
    Delete an event.

    Favorites that reference it are left alone; the favorites view drops ids
    with no matching event.
    """
    user = _require_user(identity)
    settings = get_settings()

    event = await get_event(store, event_id)
    if not can_manage(event, user.uid):
        logger.warning("event_delete_denied", event_id=event_id, user_id=user.uid, owner_id=event.created_by)
        raise PermissionDeniedError(event_id)

    await store.delete(settings.EVENTS_COLLECTION, event_id)
    logger.info("event_deleted", event_id=event_id, user_id=user.uid)
