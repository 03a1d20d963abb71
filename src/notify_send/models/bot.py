"""
Bot Connector Models

Typed shapes of the token endpoint and bot connector responses.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict


class AccessTokenResponse(BaseModel):
    """Body returned by the client credentials token endpoint."""

    token_type: Optional[str] = None
    expires_in: Optional[str] = None
    ext_expires_in: Optional[str] = None
    access_token: str

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")


class AccessToken(BaseModel):
    """Cached bearer credential. ``expires_at`` already has the safety margin subtracted."""

    value: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class CreateConversationResponse(BaseModel):
    """Body of a 201 from POST /v3/conversations."""

    id: str

    model_config = ConfigDict(extra="ignore")
