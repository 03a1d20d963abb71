"""
Azure Storage Queue Client for the Send Queue

Wraps the async Azure Storage Queue client for receiving per-recipient work items,
scheduling delayed redeliveries, and moving poison messages aside.
"""

from typing import List
from typing import Optional

from azure.core.exceptions import ResourceExistsError
from azure.identity.aio import DefaultAzureCredential
from azure.storage.queue.aio import QueueClient
from loguru import logger

POISON_QUEUE_SUFFIX = "-poison"


class SendQueueClient:
    """
    Send queue client.

    A redelivery is scheduled by enqueuing a copy of the work item with a visibility
    timeout: the message stays hidden until the timeout elapses.
    """

    def __init__(self, client: QueueClient, poison_client: QueueClient):
        """
        Initialize with already constructed queue clients.

        Use from_connection_string() or from_account_url() instead of calling this directly.

        Args:
            client: Client for the send queue
            poison_client: Client for the matching "<queue>-poison" queue
        """
        self.client = client
        self.poison_client = poison_client
        self.queue_name = client.queue_name

    @classmethod
    def from_connection_string(cls, connection_string: str, queue_name: str) -> "SendQueueClient":
        return cls(
            QueueClient.from_connection_string(connection_string, queue_name),
            QueueClient.from_connection_string(connection_string, queue_name + POISON_QUEUE_SUFFIX),
        )

    @classmethod
    def from_account_url(cls, account_url: str, queue_name: str) -> "SendQueueClient":
        """Authenticate with managed identity / developer credentials via DefaultAzureCredential."""
        credential = DefaultAzureCredential()
        return cls(
            QueueClient(account_url, queue_name, credential=credential),
            QueueClient(account_url, queue_name + POISON_QUEUE_SUFFIX, credential=credential),
        )

    async def initialize(self) -> None:
        """Create the send and poison queues if they don't exist."""
        for client in (self.client, self.poison_client):
            try:
                await client.create_queue()
                logger.info(f"Queue '{client.queue_name}' ready")
            except ResourceExistsError:
                logger.debug("Queue exists", queue=client.queue_name)

    async def send_message(self, content: str, visibility_timeout: Optional[int] = None) -> None:
        """
        Enqueue a message.

        Args:
            content: Message body (JSON text)
            visibility_timeout: Seconds before the message becomes visible to receivers
        """
        try:
            await self.client.send_message(content, visibility_timeout=visibility_timeout)
        except Exception as e:
            logger.error(f"Failed to enqueue message on '{self.queue_name}': {e}")
            raise

    async def receive_messages(self, max_messages: int = 16, visibility_timeout: int = 600) -> List:
        """
        Receive up to max_messages messages.

        Messages become invisible for visibility_timeout seconds; if they are not deleted
        before then they reappear with an incremented dequeue_count.
        """
        messages = []
        async for message in self.client.receive_messages(
            messages_per_page=max_messages,
            visibility_timeout=visibility_timeout,
            max_messages=max_messages,
        ):
            messages.append(message)
        return messages

    async def delete_message(self, message) -> None:
        """Delete (acknowledge) a message after it has been handled."""
        try:
            await self.client.delete_message(message)
            logger.debug("Deleted message from queue", message_id=message.id)
        except Exception as e:
            logger.error(f"Failed to delete message: {e}")
            raise

    async def move_to_poison(self, message) -> None:
        """Copy a message to the poison queue and remove it from the send queue."""
        await self.poison_client.send_message(message.content)
        await self.client.delete_message(message)
        logger.warning(
            "Moved message to poison queue",
            message_id=message.id,
            dequeue_count=message.dequeue_count,
            poison_queue=self.poison_client.queue_name,
        )

    async def get_queue_length(self) -> int:
        """Approximate number of messages in the send queue."""
        try:
            properties = await self.client.get_queue_properties()
            return properties.approximate_message_count
        except Exception as e:
            logger.error(f"Failed to get queue length: {e}")
            return 0

    async def close(self) -> None:
        await self.client.close()
        await self.poison_client.close()
