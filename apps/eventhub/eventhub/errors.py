"""Domain errors and the FastAPI handlers that turn them into JSON responses."""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class EventHubError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(message)


class ValidationFailed(EventHubError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotAuthenticated(EventHubError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(EventHubError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(EventHubError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(EventHubError):
    status_code = status.HTTP_409_CONFLICT


def _error_messages(errors) -> List[str]:
    messages = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        msg = err.get("msg", "invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return messages


async def eventhub_error_handler(request: Request, exc: EventHubError) -> JSONResponse:
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "errors": exc.errors},
    )


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    messages = _error_messages(exc.errors())
    logger.warning("%s %s -> 400: %s", request.method, request.url.path, "; ".join(messages))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation Error", "errors": messages},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error", "errors": []},
    )


EXCEPTION_HANDLERS = {
    EventHubError: eventhub_error_handler,
    RequestValidationError: validation_error_handler,
    ValidationError: validation_error_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
