"""
Outcome Recorder

Persists the per-recipient result of a send attempt as a SentNotificationData row.
"""

from datetime import datetime
from typing import Callable
from typing import List
from typing import Optional

from loguru import logger

from notify_send.clock import utc_now
from notify_send.db.repository_sent_notification import SentNotificationRepository
from notify_send.enums import RecipientType
from notify_send.enums import delivery_status_for
from notify_send.models.notification import SentNotificationData
from notify_send.models.work_item import UserDataEntity


class OutcomeRecorder:
    """Builds outcome rows and upserts them. Safe to call concurrently for different recipients."""

    def __init__(
        self,
        repository: SentNotificationRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self._clock = clock

    def build(
        self,
        notification_id: str,
        recipient: UserDataEntity,
        throttle_count: int,
        is_from_creation: bool,
        status_code: int,
        status_codes: Optional[List[int]] = None,
        delivery_count: Optional[int] = None,
        error_message: Optional[str] = None,
        recipient_type: Optional[RecipientType] = None,
    ) -> SentNotificationData:
        if recipient_type is None:
            recipient_type = RecipientType.TEAM if recipient.is_team else RecipientType.USER
        return SentNotificationData(
            notification_id=notification_id,
            recipient_id=recipient.aad_id,
            recipient_type=recipient_type,
            total_number_of_send_throttles=throttle_count,
            sent_date=self._clock(),
            is_status_code_from_create_conversation=is_from_creation,
            status_code=status_code,
            all_send_status_codes=",".join(str(code) for code in status_codes) if status_codes else None,
            number_of_function_attempts_to_send=delivery_count,
            delivery_status=delivery_status_for(status_code),
            conversation_id=recipient.conversation_id or None,
            service_url=recipient.service_url,
            tenant_id=recipient.tenant_id,
            user_id=recipient.user_id,
            error_message=error_message,
        )

    async def record(
        self,
        notification_id: str,
        recipient: UserDataEntity,
        throttle_count: int,
        is_from_creation: bool,
        status_code: int,
        status_codes: Optional[List[int]] = None,
        delivery_count: Optional[int] = None,
        error_message: Optional[str] = None,
        recipient_type: Optional[RecipientType] = None,
    ) -> SentNotificationData:
        """
        Upsert the outcome row for (notification_id, recipient.aad_id) and return it.

        ``recipient_type`` defaults to Team for a `19:` conversation id and User otherwise.
        Conversations created by this worker are always 1:1 chats and pass User explicitly.
        """
        record = self.build(
            notification_id,
            recipient,
            throttle_count,
            is_from_creation,
            status_code,
            status_codes=status_codes,
            delivery_count=delivery_count,
            error_message=error_message,
            recipient_type=recipient_type,
        )
        await self.repository.upsert(record)

        logger.info(
            "Recorded send outcome",
            notification_id=notification_id,
            recipient_id=record.recipient_id,
            status_code=status_code,
            delivery_status=record.delivery_status.value,
            throttles=throttle_count,
        )
        return record
