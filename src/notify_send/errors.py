"""Exception types for the send worker and error handlers for the FastAPI surface."""

from typing import Optional

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

__all__ = [
    "CredentialError",
    "NotificationNotFoundError",
    "NotifySendError",
    "ParseError",
    "SendAttemptError",
    "handle_broad_exceptions",
    "handle_pydantic_validation_errors",
]


class NotifySendError(Exception):
    """Base class for errors raised by the send worker."""


class CredentialError(NotifySendError):
    """The bot token endpoint failed or returned an unusable response."""


class ParseError(NotifySendError):
    """A response body or queue message did not match its expected shape."""


class NotificationNotFoundError(NotifySendError):
    """The work item references a notification that is not in the sending table."""

    def __init__(self, notification_id: str):
        super().__init__(f"Sending notification {notification_id} not found")
        self.notification_id = notification_id


class SendAttemptError(NotifySendError):
    """
    Raised after an unexpected failure has been recorded for a work item.

    The queue transport decides from ``dead_lettered`` whether the message is retried
    (left on the queue) or moved to the poison queue. The original exception is chained
    as ``__cause__``.
    """

    def __init__(
        self,
        notification_id: str,
        recipient_id: str,
        delivery_count: int,
        dead_lettered: bool,
        message: Optional[str] = None,
    ):
        super().__init__(
            message or f"Processing failed for notification {notification_id}, recipient {recipient_id}"
        )
        self.notification_id = notification_id
        self.recipient_id = recipient_id
        self.delivery_count = delivery_count
        self.dead_lettered = dead_lettered


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {"detail": "Internal server error", "error_type": type(err).__name__}

        logger.error(
            "Unhandled exception: {error_type}: {error}",
            error=str(err),
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            exc_info=True,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = exc.errors()
    error_response = {
        "detail": [
            {
                "msg": error["msg"],
                "input": error["input"],
            }
            for error in errors
        ]
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        validation_errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response,
    )
