"""
User Data Repository

Recipient directory: maps a recipient's AAD id to its conversation and contact fields.
"""

from typing import Optional

from notify_send.db.pool import NotificationDBPool
from notify_send.models.work_item import UserDataEntity


class UserDataRepository:
    """Recipient directory repository (one row per aad_id, insert-or-merge writes)."""

    def __init__(self, pool: NotificationDBPool):
        self.pool = pool

    async def get(self, aad_id: str) -> Optional[UserDataEntity]:
        """Get the directory row for a recipient, or None if it has never been stored."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT aad_id, user_id, tenant_id, service_url, conversation_id, name, email, upn
                FROM notify.user_data
                WHERE aad_id = $1
                """,
                aad_id,
            )

        return UserDataEntity.model_validate(dict(row)) if row else None

    async def upsert(self, user: UserDataEntity) -> None:
        """
        Insert or merge a directory row keyed by aad_id.

        Columns the incoming entity leaves empty keep their stored value, so a known
        conversation_id is never cleared.
        """
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO notify.user_data
                    (aad_id, user_id, tenant_id, service_url, conversation_id, name, email, upn, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, NOW())
                ON CONFLICT (aad_id) DO UPDATE SET
                    user_id = COALESCE(EXCLUDED.user_id, user_data.user_id),
                    tenant_id = COALESCE(EXCLUDED.tenant_id, user_data.tenant_id),
                    service_url = EXCLUDED.service_url,
                    conversation_id = COALESCE(EXCLUDED.conversation_id, user_data.conversation_id),
                    name = COALESCE(EXCLUDED.name, user_data.name),
                    email = COALESCE(EXCLUDED.email, user_data.email),
                    upn = COALESCE(EXCLUDED.upn, user_data.upn),
                    updated_at = NOW()
                """,
                user.aad_id,
                user.user_id,
                user.tenant_id,
                user.service_url,
                user.conversation_id or None,
                user.name,
                user.email,
                user.upn,
            )
