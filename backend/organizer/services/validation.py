"""
Event form validation.

Runs before any store call; a rejected form never reaches the backend.
Rules are checked in order and the first failure wins.
"""

from datetime import datetime, timezone
from typing import Optional

from organizer.core.config import get_settings
from organizer.core.errors import EventValidationError, ValidationErrorKind
from organizer.core.metrics import record_validation_failure
from organizer.schemas.event import EventFields

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 500
LOCATION_MAX_LENGTH = 200


def _check(fields: EventFields, creating: bool, now: datetime, enforce_max_lengths: bool) -> Optional[ValidationErrorKind]:
    title = fields.title.strip()
    description = fields.description.strip()
    location = fields.location.strip()

    if not title:
        return ValidationErrorKind.EMPTY_TITLE
    if len(title) < TITLE_MIN_LENGTH:
        return ValidationErrorKind.TITLE_TOO_SHORT
    if not description:
        return ValidationErrorKind.EMPTY_DESCRIPTION
    if len(description) < DESCRIPTION_MIN_LENGTH:
        return ValidationErrorKind.DESCRIPTION_TOO_SHORT
    if not location:
        return ValidationErrorKind.EMPTY_LOCATION
    if creating and fields.date < now:
        return ValidationErrorKind.DATE_IN_PAST

    if enforce_max_lengths:
        if len(title) > TITLE_MAX_LENGTH:
            return ValidationErrorKind.TITLE_TOO_LONG
        if len(description) > DESCRIPTION_MAX_LENGTH:
            return ValidationErrorKind.DESCRIPTION_TOO_LONG
        if len(location) > LOCATION_MAX_LENGTH:
            return ValidationErrorKind.LOCATION_TOO_LONG
    return None


def validate_event(
    fields: EventFields,
    *,
    creating: bool,
    now: Optional[datetime] = None,
    enforce_max_lengths: Optional[bool] = None,
) -> None:
    """
    Validate event form fields.

    The date rule applies only when creating; edits may keep or move an
    event into the past.

    Raises:
        EventValidationError: With the first failing rule as `kind`.
    """
    if enforce_max_lengths is None:
        enforce_max_lengths = get_settings().ENFORCE_MAX_LENGTHS
    kind = _check(fields, creating, now or datetime.now(timezone.utc), enforce_max_lengths)
    if kind is not None:
        record_validation_failure(kind.name)
        raise EventValidationError(kind)


def normalize_event_fields(fields: EventFields) -> dict:
    """Trimmed document fields for a validated form."""
    return {
        "title": fields.title.strip(),
        "description": fields.description.strip(),
        "location": fields.location.strip(),
        "date": fields.date,
    }
