"""Module for generating the bot connector access token.

NOTE: This module only handles token generation (OAuth2 Client Credentials flow).
Caching is handled by the TokenCache class in token_cache.py.
"""

from datetime import datetime
from datetime import timedelta

import httpx
from pydantic import ValidationError

from notify_send.errors import CredentialError
from notify_send.models.bot import AccessToken
from notify_send.models.bot import AccessTokenResponse

# Subtracted from the nominal lifetime so a token never expires mid-flight
EXPIRY_BUFFER_SECONDS = 120

# Used when expires_in is missing or not an integer; leaves a one second usable window
DEFAULT_EXPIRES_IN_SECONDS = 121


def _parse_expires_in(raw: str | None) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return DEFAULT_EXPIRES_IN_SECONDS


async def fetch_bot_token(
    http_client: httpx.AsyncClient,
    token_url: str,
    client_id: str,
    client_secret: str,
    scope: str,
    exec_time_utc: datetime,
) -> AccessToken:
    """
    Request a new bot access token.

    Parameters
    ----------
    http_client : httpx.AsyncClient
        Shared HTTP client
    token_url : str
        Client credentials token endpoint
    client_id : str
        Bot application ID
    client_secret : str
        Bot application secret
    scope : str
        Requested scope
    exec_time_utc : datetime
        Issue time the expiry is computed from

    Returns
    -------
    AccessToken
        Token whose ``expires_at`` already has the safety buffer removed

    Raises
    ------
    CredentialError
        If the endpoint is unreachable, answers with a non-200 status, or returns
        a body without an access token
    """
    payload = {
        "grant_type": "client_credentials",
        "client_id": client_id,
        "client_secret": client_secret,
        "scope": scope,
    }

    try:
        response = await http_client.post(token_url, data=payload)
    except httpx.HTTPError as e:
        raise CredentialError(f"Network error during token request: {e}") from e

    if response.status_code != 200:
        raise CredentialError(f"Token request failed with status {response.status_code}: {response.text}")

    try:
        token_data = AccessTokenResponse.model_validate_json(response.content)
    except ValidationError as e:
        raise CredentialError(f"Failed to parse token response: {e}") from e

    if not token_data.access_token:
        raise CredentialError("Access token not found in response")

    expires_in = _parse_expires_in(token_data.expires_in)
    expires_at = exec_time_utc + timedelta(seconds=expires_in - EXPIRY_BUFFER_SECONDS)

    return AccessToken(value=token_data.access_token, expires_at=expires_at)
