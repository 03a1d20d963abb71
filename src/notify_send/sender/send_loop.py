"""
Send Attempt Loop

Bounded, throttle-aware retry loop around a single bot connector POST. Every
response is classified into one of three outcomes:

- 201            -> Delivered (stop)
- 429            -> count it, sleep 0.5-1.5 s and try again; Throttled on the last attempt
- anything else  -> Failed (stop, no further attempts)

The same loop serves the create-conversation call and the message delivery call.
"""

import asyncio
import random
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

import httpx
from loguru import logger

from notify_send.enums import STATUS_CREATED
from notify_send.enums import STATUS_TOO_MANY_REQUESTS

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"

JITTER_MIN_SECONDS = 0.5
JITTER_MAX_SECONDS = 1.5


@dataclass(frozen=True)
class Delivered:
    status_code: int
    response: Optional[httpx.Response] = None
    throttle_count: int = 0
    status_codes: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class Throttled:
    attempts_used: int
    throttle_count: int = 0
    status_codes: List[int] = field(default_factory=list)

    @property
    def status_code(self) -> int:
        return STATUS_TOO_MANY_REQUESTS


@dataclass(frozen=True)
class Failed:
    status_code: int
    throttle_count: int = 0
    status_codes: List[int] = field(default_factory=list)


SendOutcome = Union[Delivered, Throttled, Failed]


def conversations_url(service_url: str) -> str:
    return f"{service_url.rstrip('/')}/v3/conversations"


def activities_url(service_url: str, conversation_id: str) -> str:
    return f"{conversations_url(service_url)}/{conversation_id}/activities"


def build_message_payload(card: Any) -> Dict[str, Any]:
    """Wrap a rendered adaptive card in a message activity."""
    return {
        "type": "message",
        "attachments": [
            {
                "contentType": ADAPTIVE_CARD_CONTENT_TYPE,
                "content": card,
            }
        ],
    }


class SendAttemptLoop:
    """
    Issues bot connector POSTs with the bounded retry policy.

    Args:
        http_client: Shared async HTTP client
        sleep: Awaitable sleep, injectable so tests don't wait on jitter
        rng: Random source for the jittered delay
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.http_client = http_client
        self._sleep = sleep
        self._rng = rng or random.Random()

    def jitter_seconds(self) -> float:
        return self._rng.uniform(JITTER_MIN_SECONDS, JITTER_MAX_SECONDS)

    async def post(self, url: str, token: str, payload: Dict[str, Any], max_attempts: int) -> SendOutcome:
        """
        POST payload to url up to max_attempts times.

        Returns:
            Delivered, Throttled or Failed; each carries the number of 429s seen and
            every status code observed, in order
        """
        max_attempts = max(1, max_attempts)
        headers = {"Authorization": f"Bearer {token}"}
        throttle_count = 0
        status_codes: List[int] = []

        for attempt in range(1, max_attempts + 1):
            response = await self.http_client.post(url, json=payload, headers=headers)
            status_codes.append(response.status_code)

            if response.status_code == STATUS_CREATED:
                return Delivered(
                    status_code=response.status_code,
                    response=response,
                    throttle_count=throttle_count,
                    status_codes=status_codes,
                )

            if response.status_code != STATUS_TOO_MANY_REQUESTS:
                return Failed(
                    status_code=response.status_code,
                    throttle_count=throttle_count,
                    status_codes=status_codes,
                )

            throttle_count += 1
            logger.warning("Bot connector throttled the request", url=url, attempt=attempt, max_attempts=max_attempts)

            if attempt < max_attempts:
                await self._sleep(self.jitter_seconds())

        return Throttled(attempts_used=max_attempts, throttle_count=throttle_count, status_codes=status_codes)

    async def send(
        self,
        conversation_id: str,
        service_url: str,
        token: str,
        card: Any,
        max_attempts: int,
    ) -> SendOutcome:
        """Deliver a rendered adaptive card into a conversation."""
        return await self.post(
            activities_url(service_url, conversation_id),
            token,
            build_message_payload(card),
            max_attempts,
        )
