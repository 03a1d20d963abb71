"""
Work Item Models

Queue message body for one (notification, recipient) pair, as produced by the
upstream fan-out stage.
"""

from typing import Optional

from pydantic import AliasChoices
from pydantic import AliasGenerator
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel
from pydantic.alias_generators import to_pascal

# Conversation ids with this prefix denote a team's General channel
TEAM_CONVERSATION_PREFIX = "19:"

# camelCase on the wire; PascalCase bodies from older producers are accepted too
WIRE_ALIASES = AliasGenerator(
    validation_alias=lambda name: AliasChoices(to_camel(name), to_pascal(name), name),
    serialization_alias=to_camel,
)


class UserDataEntity(BaseModel):
    """Recipient descriptor, also the row shape of the recipient directory."""

    aad_id: str
    user_id: Optional[str] = None
    tenant_id: Optional[str] = None
    service_url: str
    conversation_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    upn: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=WIRE_ALIASES,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def has_conversation(self) -> bool:
        return bool(self.conversation_id and self.conversation_id.strip())

    @property
    def is_team(self) -> bool:
        """True when the conversation is a team's General channel rather than a 1:1 chat."""
        return bool(self.conversation_id) and self.conversation_id.startswith(TEAM_CONVERSATION_PREFIX)


class SendQueueMessageContent(BaseModel):
    """Send queue message body: ``{"notificationId": ..., "userDataEntity": {...}}``."""

    notification_id: str
    user_data_entity: UserDataEntity

    model_config = ConfigDict(
        alias_generator=WIRE_ALIASES,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def recipient(self) -> UserDataEntity:
        return self.user_data_entity

    def to_message(self) -> str:
        """Serialize back to the wire JSON used on the send queue."""
        return self.model_dump_json(by_alias=True, exclude_none=True)
