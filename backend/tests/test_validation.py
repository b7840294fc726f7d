"""
Tests for event form validation.
"""

from datetime import datetime, timezone, timedelta

import pytest

from organizer.core.errors import EventValidationError, ValidationErrorKind
from organizer.schemas.event import EventFields
from organizer.services.validation import normalize_event_fields, validate_event

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_fields(**overrides) -> EventFields:
    values = {
        "title": "Team Offsite",
        "description": "Annual offsite meeting for the engineering team",
        "location": "Building 4, Room 210",
        "date": NOW + timedelta(days=1),
    }
    values.update(overrides)
    return EventFields(**values)


def rejection(fields: EventFields, creating: bool = True, **kwargs) -> ValidationErrorKind:
    with pytest.raises(EventValidationError) as exc_info:
        validate_event(fields, creating=creating, now=NOW, **kwargs)
    return exc_info.value.kind


def test_accepts_valid_event():
    """A complete form with a future date passes."""
    validate_event(make_fields(), creating=True, now=NOW)


@pytest.mark.parametrize(
    "overrides, kind",
    [
        ({"title": "   "}, ValidationErrorKind.EMPTY_TITLE),
        ({"title": "ab"}, ValidationErrorKind.TITLE_TOO_SHORT),
        ({"title": "  ab  "}, ValidationErrorKind.TITLE_TOO_SHORT),
        ({"description": ""}, ValidationErrorKind.EMPTY_DESCRIPTION),
        ({"description": "short"}, ValidationErrorKind.DESCRIPTION_TOO_SHORT),
        ({"location": ""}, ValidationErrorKind.EMPTY_LOCATION),
        ({"date": NOW - timedelta(seconds=1)}, ValidationErrorKind.DATE_IN_PAST),
    ],
)
def test_rejects_invalid_field(overrides, kind):
    assert rejection(make_fields(**overrides)) is kind


def test_first_failing_rule_wins():
    """Title problems are reported before description and location problems."""
    fields = make_fields(title="ab", description="short", location="")
    assert rejection(fields) is ValidationErrorKind.TITLE_TOO_SHORT


def test_past_date_allowed_when_editing():
    validate_event(make_fields(date=NOW - timedelta(days=3)), creating=False, now=NOW)


def test_date_equal_to_now_is_accepted():
    validate_event(make_fields(date=NOW), creating=True, now=NOW)


def test_upper_bounds_enforced():
    assert rejection(make_fields(title="x" * 101), enforce_max_lengths=True) is ValidationErrorKind.TITLE_TOO_LONG
    assert (
        rejection(make_fields(description="x" * 501), enforce_max_lengths=True)
        is ValidationErrorKind.DESCRIPTION_TOO_LONG
    )
    assert rejection(make_fields(location="x" * 201), enforce_max_lengths=True) is ValidationErrorKind.LOCATION_TOO_LONG


def test_upper_bounds_can_be_disabled():
    validate_event(make_fields(title="x" * 150), creating=True, now=NOW, enforce_max_lengths=False)


def test_error_carries_user_message():
    with pytest.raises(EventValidationError) as exc_info:
        validate_event(make_fields(location=" "), creating=True, now=NOW)
    assert exc_info.value.message == "Please enter an event location"


def test_normalize_trims_text_fields():
    fields = make_fields(title="  Team Offsite ", location=" Building 4 ")
    normalized = normalize_event_fields(fields)
    assert normalized["title"] == "Team Offsite"
    assert normalized["location"] == "Building 4"
    assert normalized["date"] == fields.date
