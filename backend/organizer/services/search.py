"""
Dashboard search.

Case-insensitive substring match over the text fields of each event. The
full list is rescanned on every query change; event lists are human-curated
and small, so there is no index.
"""

from typing import Sequence

from organizer.schemas.event import EventRecord


def matches(event: EventRecord, needle: str) -> bool:
    """`needle` must already be lowercased."""
    return (
        needle in event.title.lower()
        or needle in event.description.lower()
        or needle in event.location.lower()
        or needle in event.created_by_name.lower()
    )


def filter_events(events: Sequence[EventRecord], query: str) -> list[EventRecord]:
    """Events matching `query` in feed order; a blank query keeps every event."""
    if not query.strip():
        return list(events)
    needle = query.lower()
    return [event for event in events if matches(event, needle)]
