"""Bot connector authentication (client credentials token + in-memory cache)."""

from notify_send.bot_auth.token_cache import TokenCache
from notify_send.bot_auth.token_gen import fetch_bot_token

__all__ = [
    "TokenCache",
    "fetch_bot_token",
]
