"""
Notification Repositories

Read access to the notifications being sent, and the shared global sending row.
"""

from datetime import datetime
from typing import Optional

from notify_send.db.pool import NotificationDBPool
from notify_send.models.notification import GlobalSendingNotificationData
from notify_send.models.notification import SendingNotification


class SendingNotificationRepository:
    """Sending notification repository (read-only for the send worker)."""

    def __init__(self, pool: NotificationDBPool):
        self.pool = pool

    async def get(self, notification_id: str) -> Optional[SendingNotification]:
        """Get a notification that is currently being sent."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT notification_id, content
                FROM notify.sending_notifications
                WHERE notification_id = $1
                """,
                notification_id,
            )

        return SendingNotification.model_validate(dict(row)) if row else None


class GlobalSendingNotificationRepository:
    """Singleton global sending row. Writes are unconditional overwrites (last writer wins)."""

    def __init__(self, pool: NotificationDBPool):
        self.pool = pool

    async def get(self) -> Optional[GlobalSendingNotificationData]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT send_retry_delay_time
                FROM notify.global_sending_notification_data
                WHERE id = 'global'
                """
            )

        return GlobalSendingNotificationData.model_validate(dict(row)) if row else None

    async def set_send_retry_delay_time(self, send_retry_delay_time: datetime) -> None:
        """Overwrite the shared retry delay time. No compare-and-swap."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO notify.global_sending_notification_data (id, send_retry_delay_time, updated_at)
                VALUES ('global', $1, NOW())
                ON CONFLICT (id) DO UPDATE SET
                    send_retry_delay_time = EXCLUDED.send_retry_delay_time,
                    updated_at = NOW()
                """,
                send_retry_delay_time,
            )
