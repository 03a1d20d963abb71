"""
Conversation Resolver

Works out which conversation a notification is delivered into:

1. the conversation id carried on the work item;
2. otherwise the one stored for the recipient in the user data directory;
3. otherwise a new 1:1 conversation, created through the bot connector and stored
   back in the directory keyed by aad_id.

Directory writes are started as background tasks and handed back to the caller,
which awaits them together with its other writes.
"""

import asyncio
from dataclasses import dataclass
from typing import List
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from notify_send.db.repository_user_data import UserDataRepository
from notify_send.errors import ParseError
from notify_send.models.bot import CreateConversationResponse
from notify_send.models.work_item import UserDataEntity
from notify_send.sender.send_loop import Delivered
from notify_send.sender.send_loop import SendAttemptLoop
from notify_send.sender.send_loop import SendOutcome
from notify_send.sender.send_loop import conversations_url

# Bot ids in the connector's channel account format
BOT_ID_PREFIX = "28:"


@dataclass
class ConversationResolution:
    """
    Result of resolving a recipient's conversation.

    Exactly one of conversation_id / creation_outcome is meaningful: when the
    conversation could not be created, creation_outcome is the Failed or Throttled
    outcome of the create call and conversation_id is None.
    """

    conversation_id: Optional[str] = None
    created: bool = False
    creation_outcome: Optional[SendOutcome] = None
    directory_write: Optional[asyncio.Task] = None
    throttle_count: int = 0
    status_codes: Optional[List[int]] = None

    @property
    def resolved(self) -> bool:
        return self.conversation_id is not None


def build_create_conversation_payload(bot_app_id: str, recipient: UserDataEntity) -> dict:
    return {
        "bot": {"id": f"{BOT_ID_PREFIX}{bot_app_id}"},
        "isGroup": False,
        "tenantId": recipient.tenant_id,
        "members": [{"id": recipient.user_id}],
    }


def parse_conversation_id(outcome: Delivered) -> str:
    """Decode the new conversation id from a 201 create-conversation response."""
    if outcome.response is None:
        raise ParseError("Create conversation response has no body")
    try:
        return CreateConversationResponse.model_validate_json(outcome.response.content).id
    except ValidationError as e:
        raise ParseError(f"Unexpected create conversation response: {e}") from e


class ConversationResolver:
    """
    Resolves or lazily creates the conversation for a recipient.

    Args:
        send_loop: Retry loop used for the create-conversation call
        user_data_repository: Recipient directory
        bot_app_id: Bot application id (sent as the bot member, "28:<id>")
        max_attempts: Attempt budget for the create call
    """

    def __init__(
        self,
        send_loop: SendAttemptLoop,
        user_data_repository: UserDataRepository,
        bot_app_id: str,
        max_attempts: int = 1,
    ):
        self.send_loop = send_loop
        self.user_data_repository = user_data_repository
        self.bot_app_id = bot_app_id
        self.max_attempts = max_attempts

    def _start_directory_write(self, recipient: UserDataEntity) -> asyncio.Task:
        return asyncio.create_task(self.user_data_repository.upsert(recipient.model_copy()))

    async def lookup(self, recipient: UserDataEntity) -> Optional[UserDataEntity]:
        """Directory row for the recipient, only needed when the work item has no conversation id."""
        if recipient.has_conversation:
            return None
        return await self.user_data_repository.get(recipient.aad_id)

    async def resolve(
        self,
        recipient: UserDataEntity,
        token: str,
        stored: Optional[UserDataEntity] = None,
        lookup_done: bool = False,
    ) -> ConversationResolution:
        """
        Resolve the conversation id for recipient, creating it when none is known.

        Sets recipient.conversation_id in place once it is known.

        Args:
            recipient: Descriptor from the work item
            token: Bot access token
            stored: Directory row if the caller already fetched it
            lookup_done: True when the caller already looked the directory up (stored may be None)

        Raises:
            ParseError: If a 201 create response does not contain a conversation id
        """
        if not recipient.has_conversation:
            if stored is None and not lookup_done:
                stored = await self.lookup(recipient)
            if stored is not None and stored.has_conversation:
                recipient.conversation_id = stored.conversation_id

        if recipient.has_conversation:
            resolution = ConversationResolution(conversation_id=recipient.conversation_id)
            # Team General channels have no directory row; user rows are refreshed with
            # whatever extra fields the incoming descriptor carries.
            if not recipient.is_team:
                resolution.directory_write = self._start_directory_write(recipient)
            return resolution

        return await self._create(recipient, token)

    async def _create(self, recipient: UserDataEntity, token: str) -> ConversationResolution:
        logger.info("Creating conversation", recipient_id=recipient.aad_id)

        outcome = await self.send_loop.post(
            conversations_url(recipient.service_url),
            token,
            build_create_conversation_payload(self.bot_app_id, recipient),
            self.max_attempts,
        )

        if not isinstance(outcome, Delivered):
            logger.warning(
                "Conversation could not be created",
                recipient_id=recipient.aad_id,
                status_code=outcome.status_code,
                outcome=type(outcome).__name__,
            )
            return ConversationResolution(
                creation_outcome=outcome,
                throttle_count=outcome.throttle_count,
                status_codes=outcome.status_codes,
            )

        recipient.conversation_id = parse_conversation_id(outcome)
        logger.info("Conversation created", recipient_id=recipient.aad_id, conversation_id=recipient.conversation_id)

        return ConversationResolution(
            conversation_id=recipient.conversation_id,
            created=True,
            directory_write=self._start_directory_write(recipient),
            throttle_count=outcome.throttle_count,
            status_codes=outcome.status_codes,
        )
