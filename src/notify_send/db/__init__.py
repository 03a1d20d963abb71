"""
Notification Database Module

asyncpg pool and repositories for the notification tables.
"""

from notify_send.db.pool import NotificationDBPool
from notify_send.db.repository_notification import GlobalSendingNotificationRepository
from notify_send.db.repository_notification import SendingNotificationRepository
from notify_send.db.repository_sent_notification import SentNotificationRepository
from notify_send.db.repository_user_data import UserDataRepository

__all__ = [
    "GlobalSendingNotificationRepository",
    "NotificationDBPool",
    "SendingNotificationRepository",
    "SentNotificationRepository",
    "UserDataRepository",
]
