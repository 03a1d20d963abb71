"""
Send Queue Module

Azure Storage Queue integration for per-recipient work items.
"""

from notify_send.queue.queue_client import SendQueueClient
from notify_send.queue.queue_consumer import start_queue_consumer

__all__ = [
    "SendQueueClient",
    "start_queue_consumer",
]
