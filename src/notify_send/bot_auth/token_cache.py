"""In-memory bot access token cache shared by every work item in the process.

The cache is an explicitly owned object created at startup (see main.create_app) and
injected into the orchestrator. Tokens are never persisted.

Refreshes are not serialized: two work items that both find the token expired will
both call the token endpoint and the later write wins.
"""

from datetime import datetime
from typing import Callable
from typing import Optional

import httpx
from loguru import logger

from notify_send.bot_auth.token_gen import fetch_bot_token
from notify_send.clock import utc_now
from notify_send.models.bot import AccessToken


class TokenCache:
    """
    Process-wide cached bot access token with expiry.

    Attributes
    ----------
    _token : Optional[AccessToken]
        The currently cached token (in-memory only)
    _clock : Callable[[], datetime]
        Source of the current UTC time; injectable for tests
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        token_url: str,
        scope: str,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the token cache with credentials.

        Note
        ----
        The token is NOT fetched at initialization. It is fetched on the first
        call to ensure_valid().
        """
        self.http_client = http_client
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.scope = scope
        self._clock = clock

        self._token: Optional[AccessToken] = None

    async def ensure_valid(self) -> AccessToken:
        """
        Return a usable token, fetching a new one if the cache is empty or expired.

        Raises
        ------
        CredentialError
            If the token endpoint call fails
        """
        now_utc = self._clock()
        token = self._token

        if token is not None and not token.is_expired(now_utc):
            return token

        if token is None:
            logger.info("No cached bot token, fetching a new one")
        else:
            logger.info("Cached bot token expired, fetching a new one", expired_at=token.expires_at.isoformat())

        token = await fetch_bot_token(
            self.http_client,
            token_url=self.token_url,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=self.scope,
            exec_time_utc=now_utc,
        )
        self._token = token

        logger.info("New bot token cached", expires_at=token.expires_at.isoformat())
        return token

    def invalidate(self) -> None:
        """Drop the cached token so the next ensure_valid() fetches a new one."""
        logger.info("Bot token invalidated")
        self._token = None
