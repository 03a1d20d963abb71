"""
Queue Consumer for the Send Queue

Background task that polls the send queue and hands each work item to the
DispatchOrchestrator. Messages received in one poll are processed concurrently.

Acknowledgement policy:
- orchestrator returns normally              -> delete the message
- orchestrator raises, retries left          -> leave it; it reappears after the visibility timeout
- orchestrator raises on the last delivery   -> move it to the poison queue
- body cannot be decoded                     -> move it to the poison queue immediately
"""

import asyncio

from loguru import logger
from pydantic import ValidationError

from notify_send.errors import SendAttemptError
from notify_send.models.work_item import SendQueueMessageContent


def decode_work_item(content: str) -> SendQueueMessageContent:
    """Decode a queue message body into a work item (raises pydantic.ValidationError)."""
    return SendQueueMessageContent.model_validate_json(content)


async def handle_message(queue_client, orchestrator, message, max_delivery_count: int) -> None:
    """
    Process a single queue message and apply the acknowledgement policy.

    Args:
        queue_client: SendQueueClient the message came from
        orchestrator: DispatchOrchestrator
        message: Received queue message (content, dequeue_count, ...)
        max_delivery_count: Delivery count at which a failing message is poisoned
    """
    delivery_count = message.dequeue_count or 1

    try:
        work_item = decode_work_item(message.content)
    except ValidationError as e:
        logger.error(
            "Undecodable send queue message, moving to poison queue: {error}",
            error=str(e),
            message_id=message.id,
        )
        await queue_client.move_to_poison(message)
        return

    try:
        result = await orchestrator.process(work_item, delivery_count=delivery_count)
    except SendAttemptError as e:
        if e.dead_lettered:
            await queue_client.move_to_poison(message)
        else:
            logger.warning(
                "Send attempt failed, leaving message for redelivery: {error}",
                error=str(e),
                message_id=message.id,
                delivery_count=delivery_count,
            )
        return
    except Exception as e:
        # Recording the failure itself failed; fall back to the delivery count alone
        logger.error("Error processing message: {error}", error=str(e), message_id=message.id, exc_info=True)
        if delivery_count >= max_delivery_count:
            await queue_client.move_to_poison(message)
        return

    await queue_client.delete_message(message)
    logger.debug("Work item handled", message_id=message.id, result=result.value)


async def start_queue_consumer(queue_client, orchestrator, settings):
    """
    Start the background send queue consumer.

    Runs as an async background task in the web app until cancelled.

    Args:
        queue_client: SendQueueClient instance
        orchestrator: DispatchOrchestrator instance
        settings: Settings (batch size, visibility timeout, poll interval, dead-letter count)
    """
    logger.info("Send queue consumer started", queue=queue_client.queue_name)

    while True:
        try:
            messages = await queue_client.receive_messages(
                max_messages=settings.queue_batch_size,
                visibility_timeout=settings.queue_visibility_timeout,
            )

            if messages:
                await asyncio.gather(
                    *(
                        handle_message(queue_client, orchestrator, msg, settings.max_delivery_count_for_dead_letter)
                        for msg in messages
                    ),
                    return_exceptions=True,
                )
                continue

        except asyncio.CancelledError:
            logger.info("Send queue consumer task cancelled - shutting down")
            raise
        except Exception as e:
            logger.error("Send queue consumer error: {error}", error=str(e), exc_info=True)

        # Sleep between polls when the queue is empty or errored
        await asyncio.sleep(settings.queue_poll_interval_seconds)
