"""
Throttle Coordinator

Reads and writes the shared "system is backing off until T" signal that every worker
checks before calling the bot connector.

The signal is advisory. Writes overwrite unconditionally (last writer wins) and never
fail on contention.
"""

from datetime import datetime
from datetime import timedelta
from typing import Callable
from typing import Optional

from loguru import logger

from notify_send.clock import utc_now
from notify_send.db.repository_notification import GlobalSendingNotificationRepository

# The stored delay ends slightly before the rescheduled message becomes visible,
# so that message is not deferred a second time by its own window.
DELAY_SKEW = timedelta(seconds=15)


class ThrottleCoordinator:
    """Access to the global send retry delay."""

    def __init__(
        self,
        repository: GlobalSendingNotificationRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self._clock = clock

    def active_delay(self, send_retry_delay_time: Optional[datetime]) -> Optional[datetime]:
        """Return send_retry_delay_time if it is still in the future, else None."""
        if send_retry_delay_time is None or send_retry_delay_time <= self._clock():
            return None
        return send_retry_delay_time

    async def check_delay(self) -> Optional[datetime]:
        """Current shared delay-until time, or None if absent or expired."""
        state = await self.repository.get()
        return self.active_delay(state.send_retry_delay_time if state else None)

    async def set_delay(self, duration_minutes: int) -> datetime:
        """Start a global backoff window of duration_minutes (minus the skew) from now."""
        delay_until = self._clock() + timedelta(minutes=duration_minutes) - DELAY_SKEW
        await self.repository.set_send_retry_delay_time(delay_until)
        logger.warning("Global send retry delay set", send_retry_delay_time=delay_until.isoformat())
        return delay_until
