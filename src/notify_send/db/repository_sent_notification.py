"""
Sent Notification Repository

Per-recipient outcome rows keyed by (notification_id, recipient_id).
"""

from notify_send.db.pool import NotificationDBPool
from notify_send.models.notification import SentNotificationData


class SentNotificationRepository:
    """Sent notification repository (insert-or-merge upsert)."""

    def __init__(self, pool: NotificationDBPool):
        self.pool = pool

    async def upsert(self, record: SentNotificationData) -> None:
        """
        Insert or merge the outcome row for (notification_id, recipient_id).

        Required columns (recipient type, throttles, sent date, status code, creation
        flag, delivery status) always take the new values. Optional columns the new
        record leaves empty keep their stored value, so a Succeeded write after a
        Continued marker keeps the earlier error_message.
        """
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO notify.sent_notifications
                    (notification_id, recipient_id, recipient_type, total_number_of_send_throttles,
                     sent_date, is_status_code_from_create_conversation, status_code,
                     all_send_status_codes, number_of_function_attempts_to_send, delivery_status,
                     conversation_id, service_url, tenant_id, user_id, error_message)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
                ON CONFLICT (notification_id, recipient_id) DO UPDATE SET
                    recipient_type = EXCLUDED.recipient_type,
                    total_number_of_send_throttles = EXCLUDED.total_number_of_send_throttles,
                    sent_date = EXCLUDED.sent_date,
                    is_status_code_from_create_conversation = EXCLUDED.is_status_code_from_create_conversation,
                    status_code = EXCLUDED.status_code,
                    all_send_status_codes = COALESCE(EXCLUDED.all_send_status_codes, sent_notifications.all_send_status_codes),
                    number_of_function_attempts_to_send = COALESCE(
                        EXCLUDED.number_of_function_attempts_to_send, sent_notifications.number_of_function_attempts_to_send
                    ),
                    delivery_status = EXCLUDED.delivery_status,
                    conversation_id = COALESCE(EXCLUDED.conversation_id, sent_notifications.conversation_id),
                    service_url = COALESCE(EXCLUDED.service_url, sent_notifications.service_url),
                    tenant_id = COALESCE(EXCLUDED.tenant_id, sent_notifications.tenant_id),
                    user_id = COALESCE(EXCLUDED.user_id, sent_notifications.user_id),
                    error_message = COALESCE(EXCLUDED.error_message, sent_notifications.error_message)
                """,
                record.notification_id,
                record.recipient_id,
                record.recipient_type.value,
                record.total_number_of_send_throttles,
                record.sent_date,
                record.is_status_code_from_create_conversation,
                record.status_code,
                record.all_send_status_codes,
                record.number_of_function_attempts_to_send,
                record.delivery_status.value,
                record.conversation_id,
                record.service_url,
                record.tenant_id,
                record.user_id,
                record.error_message,
            )

