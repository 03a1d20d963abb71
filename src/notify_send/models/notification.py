"""
Notification Models

Database models for the notification tables the send worker reads and writes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict

from notify_send.enums import DeliveryStatus
from notify_send.enums import RecipientType


class SendingNotification(BaseModel):
    """Notification currently being sent. ``content`` is the rendered adaptive card JSON."""

    notification_id: str
    content: str

    model_config = ConfigDict(from_attributes=True)


class GlobalSendingNotificationData(BaseModel):
    """Singleton row shared by all workers: the system backs off until ``send_retry_delay_time``."""

    send_retry_delay_time: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SentNotificationData(BaseModel):
    """Per-recipient outcome row, keyed by (notification_id, recipient_id).

    Upserted - the last write for a key wins.
    """

    notification_id: str
    recipient_id: str
    recipient_type: RecipientType = RecipientType.USER
    total_number_of_send_throttles: int = 0
    sent_date: datetime
    is_status_code_from_create_conversation: bool = False
    status_code: int
    all_send_status_codes: Optional[str] = None  # Comma-joined codes seen in this attempt
    number_of_function_attempts_to_send: Optional[int] = None  # Queue delivery count
    delivery_status: DeliveryStatus
    conversation_id: Optional[str] = None
    service_url: Optional[str] = None
    tenant_id: Optional[str] = None
    user_id: Optional[str] = None
    error_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
