"""
Send Worker Models

Pydantic models for the send worker:
- Queue work item (wire format)
- Bot connector / token endpoint responses
- Notification table rows
"""

from notify_send.models.bot import AccessToken
from notify_send.models.bot import AccessTokenResponse
from notify_send.models.bot import CreateConversationResponse
from notify_send.models.notification import GlobalSendingNotificationData
from notify_send.models.notification import SendingNotification
from notify_send.models.notification import SentNotificationData
from notify_send.models.work_item import TEAM_CONVERSATION_PREFIX
from notify_send.models.work_item import SendQueueMessageContent
from notify_send.models.work_item import UserDataEntity

__all__ = [
    "TEAM_CONVERSATION_PREFIX",
    "AccessToken",
    "AccessTokenResponse",
    "CreateConversationResponse",
    "GlobalSendingNotificationData",
    "SendQueueMessageContent",
    "SendingNotification",
    "SentNotificationData",
    "UserDataEntity",
]
