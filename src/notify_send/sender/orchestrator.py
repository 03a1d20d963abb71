"""
Dispatch Orchestrator

Entry point for one work item pulled off the send queue:

    CheckGlobalThrottle -> (Deferred | ResolveConversation) -> SendMessage -> RecordOutcome

Throttling (429) and hard failures (any other non-201 status) are handled here and
never raised. Any other exception is recorded with a "Continued" marker (or "Failed"
once the queue is about to dead-letter the message) and re-raised as SendAttemptError
so the queue transport can redeliver or poison the message.
"""

import asyncio
import json
from typing import List
from typing import Optional

from loguru import logger

from notify_send.bot_auth.token_cache import TokenCache
from notify_send.db.repository_notification import SendingNotificationRepository
from notify_send.enums import STATUS_CONTINUE
from notify_send.enums import STATUS_INTERNAL_SERVER_ERROR
from notify_send.enums import DispatchResult
from notify_send.enums import RecipientType
from notify_send.errors import NotificationNotFoundError
from notify_send.errors import ParseError
from notify_send.errors import SendAttemptError
from notify_send.models.notification import SendingNotification
from notify_send.models.work_item import SendQueueMessageContent
from notify_send.sender.conversation import ConversationResolver
from notify_send.sender.outcome import OutcomeRecorder
from notify_send.sender.retry_scheduler import RetryScheduler
from notify_send.sender.send_loop import Delivered
from notify_send.sender.send_loop import SendAttemptLoop
from notify_send.sender.send_loop import Throttled
from notify_send.sender.throttle import ThrottleCoordinator


def parse_card(notification: SendingNotification):
    """Decode the rendered adaptive card stored on the notification."""
    try:
        return json.loads(notification.content)
    except json.JSONDecodeError as e:
        raise ParseError(f"Notification {notification.notification_id} content is not valid JSON: {e}") from e


class DispatchOrchestrator:
    """
    Sequences one delivery attempt cycle for a (notification, recipient) work item.

    Args:
        token_cache: Shared bot token cache
        sending_notifications: Source of the rendered card per notification
        throttle: Global backoff signal
        resolver: Conversation resolver (creates conversations when needed)
        send_loop: Retry loop for the delivery call
        recorder: Outcome recorder
        retry_scheduler: Delayed redelivery of throttled/deferred items
        max_attempts: MaxNumberOfAttempts for the delivery call
        max_delivery_count: Queue delivery count at which failures are recorded as final
    """

    def __init__(
        self,
        token_cache: TokenCache,
        sending_notifications: SendingNotificationRepository,
        throttle: ThrottleCoordinator,
        resolver: ConversationResolver,
        send_loop: SendAttemptLoop,
        recorder: OutcomeRecorder,
        retry_scheduler: RetryScheduler,
        max_attempts: int = 1,
        max_delivery_count: int = 10,
    ):
        self.token_cache = token_cache
        self.sending_notifications = sending_notifications
        self.throttle = throttle
        self.resolver = resolver
        self.send_loop = send_loop
        self.recorder = recorder
        self.retry_scheduler = retry_scheduler
        self.max_attempts = max_attempts
        self.max_delivery_count = max_delivery_count

    async def process(self, work_item: SendQueueMessageContent, delivery_count: int = 1) -> DispatchResult:
        """
        Process one work item.

        Args:
            work_item: Decoded queue message
            delivery_count: How many times the queue has delivered this message (1 on first delivery)

        Returns:
            What was done with the item

        Raises:
            SendAttemptError: After recording the failure, for any unexpected error
        """
        notification_id = work_item.notification_id
        recipient = work_item.recipient

        with logger.contextualize(notification_id=notification_id, recipient_id=recipient.aad_id):
            pending: List[asyncio.Task] = []
            status_codes: List[int] = []
            throttle_count = 0
            recipient_type: Optional[RecipientType] = None

            try:
                notification, delay_until, stored = await asyncio.gather(
                    self.sending_notifications.get(notification_id),
                    self.throttle.check_delay(),
                    self.resolver.lookup(recipient),
                )

                # The whole system is backing off: put the item back without calling the API
                if delay_until is not None:
                    logger.info("Global send retry delay active, deferring", send_retry_delay_time=delay_until.isoformat())
                    await self.retry_scheduler.schedule_redelivery(work_item)
                    return DispatchResult.DEFERRED

                if notification is None:
                    raise NotificationNotFoundError(notification_id)

                token = await self.token_cache.ensure_valid()

                resolution = await self.resolver.resolve(recipient, token.value, stored=stored, lookup_done=True)
                if resolution.directory_write is not None:
                    pending.append(resolution.directory_write)
                throttle_count += resolution.throttle_count
                status_codes.extend(resolution.status_codes or [])
                if resolution.created:
                    recipient_type = RecipientType.USER

                if not resolution.resolved:
                    creation = resolution.creation_outcome
                    if isinstance(creation, Throttled):
                        logger.warning("Create conversation throttled on every attempt, backing off")
                        await self.retry_scheduler.set_delay_and_reschedule(work_item)
                        return DispatchResult.THROTTLED

                    logger.error("Create conversation failed", status_code=creation.status_code)
                    await self.recorder.record(
                        notification_id,
                        recipient,
                        throttle_count,
                        is_from_creation=True,
                        status_code=creation.status_code,
                        status_codes=status_codes,
                        delivery_count=delivery_count,
                    )
                    return DispatchResult.FAILED

                outcome = await self.send_loop.send(
                    resolution.conversation_id,
                    recipient.service_url,
                    token.value,
                    parse_card(notification),
                    self.max_attempts,
                )
                throttle_count += outcome.throttle_count
                status_codes.extend(outcome.status_codes)

                if isinstance(outcome, Throttled):
                    logger.warning("Message throttled on every attempt, backing off", attempts=outcome.attempts_used)
                    pending.append(asyncio.create_task(self.retry_scheduler.set_delay_and_reschedule(work_item)))
                    result = DispatchResult.THROTTLED
                else:
                    pending.append(
                        asyncio.create_task(
                            self.recorder.record(
                                notification_id,
                                recipient,
                                throttle_count,
                                is_from_creation=False,
                                status_code=outcome.status_code,
                                status_codes=status_codes,
                                delivery_count=delivery_count,
                                recipient_type=recipient_type,
                            )
                        )
                    )
                    if isinstance(outcome, Delivered):
                        logger.success("Message sent", conversation_id=resolution.conversation_id)
                        result = DispatchResult.DELIVERED
                    else:
                        logger.error("Message failed", status_code=outcome.status_code)
                        result = DispatchResult.FAILED

                await asyncio.gather(*pending)
                return result

            except Exception as e:
                # Let writes already in flight finish so nothing is left unawaited
                if pending:
                    await asyncio.gather(*pending, return_exceptions=True)
                await self._record_unexpected_error(
                    work_item, e, throttle_count, status_codes, delivery_count, recipient_type
                )

    async def _record_unexpected_error(
        self,
        work_item: SendQueueMessageContent,
        error: Exception,
        throttle_count: int,
        status_codes: List[int],
        delivery_count: int,
        recipient_type: Optional[RecipientType] = None,
    ) -> None:
        """Record a Continued (or, on the last delivery, Failed) marker and raise SendAttemptError."""
        dead_lettered = delivery_count >= self.max_delivery_count
        status_code = STATUS_INTERNAL_SERVER_ERROR if dead_lettered else STATUS_CONTINUE

        logger.opt(exception=error).error(
            "ERROR: {error}, {error_type}",
            error=str(error),
            error_type=type(error).__name__,
            delivery_count=delivery_count,
            dead_lettered=dead_lettered,
        )

        await self.recorder.record(
            work_item.notification_id,
            work_item.recipient,
            throttle_count,
            is_from_creation=False,
            status_code=status_code,
            status_codes=status_codes or None,
            delivery_count=delivery_count,
            error_message=_error_message(error),
            recipient_type=recipient_type,
        )

        raise SendAttemptError(
            work_item.notification_id,
            work_item.recipient.aad_id,
            delivery_count,
            dead_lettered,
            message=f"{type(error).__name__}: {error}",
        ) from error


def _error_message(error: Exception) -> str:
    message = f"{type(error).__name__}: {error}"
    return message[:1024]
