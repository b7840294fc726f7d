"""Error taxonomy shared by the services, the stores and the HTTP layer."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    STORE_FAILURE = "STORE_FAILURE"


class ValidationErrorKind(Enum):
    """Reasons an event form is rejected, with the message shown to the user."""

    EMPTY_TITLE = "Please enter an event title"
    TITLE_TOO_SHORT = "Event title must be at least 3 characters"
    TITLE_TOO_LONG = "Event title must be at most 100 characters"
    EMPTY_DESCRIPTION = "Please enter an event description"
    DESCRIPTION_TOO_SHORT = "Event description must be at least 10 characters"
    DESCRIPTION_TOO_LONG = "Event description must be at most 500 characters"
    EMPTY_LOCATION = "Please enter an event location"
    LOCATION_TOO_LONG = "Event location must be at most 200 characters"
    DATE_IN_PAST = "Event date must be in the future"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class EventValidationError(DomainError):
    """Raised when event fields break a form rule. Never reaches the store."""

    def __init__(self, kind: ValidationErrorKind) -> None:
        super().__init__(code=ErrorCode.VALIDATION_FAILED, message=kind.value)
        object.__setattr__(self, "kind", kind)


class UnauthenticatedError(DomainError):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.UNAUTHENTICATED,
            message="Please sign in to continue",
        )


class PermissionDeniedError(DomainError):
    """Raised when a user tries to edit or delete an event they cannot manage."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.PERMISSION_DENIED,
            message="You can only manage events you created",
        )
        object.__setattr__(self, "event_id", event_id)


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        object.__setattr__(self, "event_id", event_id)


class StoreError(DomainError):
    """Base class for failures reported by the document store."""


class NotFoundError(StoreError):
    """Raised by update operations when the target document does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(
            code=ErrorCode.DOCUMENT_NOT_FOUND,
            message=f"No document to update: {collection}/{doc_id}",
        )
        object.__setattr__(self, "collection", collection)
        object.__setattr__(self, "doc_id", doc_id)


class StoreFailureError(StoreError):
    """Raised for any other store failure. Surfaced to the user, never retried."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.STORE_FAILURE, message=message)
