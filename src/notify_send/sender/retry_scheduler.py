"""
Retry Scheduler

Puts a work item back on the send queue with a delayed visibility time when the
whole system has to back off.
"""

from typing import Optional

from loguru import logger

from notify_send.models.work_item import SendQueueMessageContent
from notify_send.queue.queue_client import SendQueueClient
from notify_send.sender.throttle import ThrottleCoordinator


class RetryScheduler:
    """
    Schedules delayed redeliveries of work items.

    Args:
        queue_client: Send queue the item is re-submitted to
        throttle: Coordinator used when this worker starts a new backoff window
        retry_delay_minutes: Default delay (SendRetryDelayNumberOfMinutes)
    """

    def __init__(
        self,
        queue_client: SendQueueClient,
        throttle: ThrottleCoordinator,
        retry_delay_minutes: int = 11,
    ):
        self.queue_client = queue_client
        self.throttle = throttle
        self.retry_delay_minutes = retry_delay_minutes

    async def schedule_redelivery(
        self,
        work_item: SendQueueMessageContent,
        delay_minutes: Optional[int] = None,
    ) -> None:
        """Re-enqueue the work item, invisible for delay_minutes (default retry_delay_minutes)."""
        delay_minutes = self.retry_delay_minutes if delay_minutes is None else delay_minutes

        await self.queue_client.send_message(work_item.to_message(), visibility_timeout=delay_minutes * 60)

        logger.info(
            "Scheduled delayed redelivery",
            notification_id=work_item.notification_id,
            recipient_id=work_item.recipient.aad_id,
            delay_minutes=delay_minutes,
        )

    async def set_delay_and_reschedule(self, work_item: SendQueueMessageContent) -> None:
        """Start a global backoff window, then reschedule the item for after it."""
        await self.throttle.set_delay(self.retry_delay_minutes)
        await self.schedule_redelivery(work_item, self.retry_delay_minutes)
