"""
Maps domain errors to HTTP responses.

Store failures are reported with a generic message; internal details only
go to the log.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from organizer.core.errors import (
    DomainError,
    EventNotFoundError,
    EventValidationError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    UnauthenticatedError,
)
from organizer.core.logging import get_logger

logger = get_logger(__name__)

GENERIC_STORE_MESSAGE = "Something went wrong, please try again"


def _body(error: DomainError, message: str) -> dict:
    return {"code": error.code.value, "message": message}


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if isinstance(exc, EventValidationError):
        body = _body(exc, exc.message)
        body["kind"] = exc.kind.name
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)

    if isinstance(exc, UnauthenticatedError):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=_body(exc, exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    if isinstance(exc, PermissionDeniedError):
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=_body(exc, exc.message))

    if isinstance(exc, (EventNotFoundError, NotFoundError)):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_body(exc, "Event not found"))

    if isinstance(exc, StoreError):
        logger.error("store_error_response", code=exc.code.value, error=exc.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_body(exc, GENERIC_STORE_MESSAGE),
        )

    logger.error("unmapped_domain_error", code=exc.code.value, error=exc.message)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_body(exc, GENERIC_STORE_MESSAGE))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
