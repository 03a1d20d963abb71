"""
Send Worker Enums

Enum types used by the send worker.
Values must match exactly with what is stored in the notification tables.
"""

from enum import Enum


class DeliveryStatus(str, Enum):
    """Per-recipient delivery status stored on the sent notification row."""

    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    THROTTLED = "Throttled"  # Deprecated: throttled items are rescheduled, not recorded
    CONTINUED = "Continued"  # Unexpected error, the queue will redeliver the item


class RecipientType(str, Enum):
    """Kind of conversation a notification is delivered into."""

    USER = "User"
    TEAM = "Team"


class DispatchResult(str, Enum):
    """What the orchestrator did with one work item."""

    DEFERRED = "DEFERRED"  # Global backoff window active, rescheduled without calling the API
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"  # Terminal non-throttle status recorded
    THROTTLED = "THROTTLED"  # Retry budget exhausted, global delay set and rescheduled


# HTTP status codes with special meaning to the send worker
STATUS_CREATED = 201
STATUS_TOO_MANY_REQUESTS = 429
STATUS_CONTINUE = 100
STATUS_INTERNAL_SERVER_ERROR = 500


def delivery_status_for(status_code: int) -> DeliveryStatus:
    """Map a stored status code to its delivery status."""
    if status_code == STATUS_CREATED:
        return DeliveryStatus.SUCCEEDED
    if status_code == STATUS_TOO_MANY_REQUESTS:
        return DeliveryStatus.THROTTLED
    if status_code == STATUS_CONTINUE:
        return DeliveryStatus.CONTINUED
    return DeliveryStatus.FAILED
