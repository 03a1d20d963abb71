"""Unit tests for sender/throttle.py."""

import asyncio
from datetime import timedelta

import pytest

from notify_send.models.notification import GlobalSendingNotificationData
from notify_send.sender.throttle import ThrottleCoordinator
from tests.consts import FIXED_NOW


class TestCheckDelay:
    """Tests for ThrottleCoordinator.check_delay."""

    @pytest.mark.asyncio
    async def test_no_row(self, mock_global_repo, fixed_clock):
        """Test a missing global row means no delay."""
        mock_global_repo.get.return_value = None

        assert await ThrottleCoordinator(mock_global_repo, clock=fixed_clock).check_delay() is None

    @pytest.mark.asyncio
    async def test_no_delay_stored(self, mock_global_repo, fixed_clock):
        """Test a row without a delay time means no delay."""
        assert await ThrottleCoordinator(mock_global_repo, clock=fixed_clock).check_delay() is None

    @pytest.mark.asyncio
    async def test_future_delay_is_active(self, mock_global_repo, fixed_clock):
        """Test a delay time in the future is returned."""
        delay_until = FIXED_NOW + timedelta(minutes=5)
        mock_global_repo.get.return_value = GlobalSendingNotificationData(send_retry_delay_time=delay_until)

        assert await ThrottleCoordinator(mock_global_repo, clock=fixed_clock).check_delay() == delay_until

    @pytest.mark.asyncio
    async def test_past_delay_is_ignored(self, mock_global_repo, fixed_clock):
        """Test an expired delay time is treated as absent."""
        mock_global_repo.get.return_value = GlobalSendingNotificationData(
            send_retry_delay_time=FIXED_NOW - timedelta(seconds=1)
        )

        assert await ThrottleCoordinator(mock_global_repo, clock=fixed_clock).check_delay() is None

    def test_delay_ending_now_is_inactive(self, mock_global_repo, fixed_clock):
        """Test a delay ending exactly now no longer defers."""
        assert ThrottleCoordinator(mock_global_repo, clock=fixed_clock).active_delay(FIXED_NOW) is None


class TestSetDelay:
    """Tests for ThrottleCoordinator.set_delay."""

    @pytest.mark.asyncio
    async def test_set_delay_subtracts_skew(self, mock_global_repo, fixed_clock):
        """Test the stored time is now + minutes - 15 seconds."""
        throttle = ThrottleCoordinator(mock_global_repo, clock=fixed_clock)

        delay_until = await throttle.set_delay(11)

        expected = FIXED_NOW + timedelta(minutes=11) - timedelta(seconds=15)
        assert delay_until == expected
        mock_global_repo.set_send_retry_delay_time.assert_awaited_once_with(expected)

    @pytest.mark.asyncio
    async def test_concurrent_set_delay_never_fails(self, mock_global_repo, fixed_clock):
        """Test concurrent writers both succeed; the store keeps whichever wrote last."""
        stored = {}

        async def write(value):
            await asyncio.sleep(0)
            stored["send_retry_delay_time"] = value

        mock_global_repo.set_send_retry_delay_time.side_effect = write
        throttle = ThrottleCoordinator(mock_global_repo, clock=fixed_clock)

        results = await asyncio.gather(throttle.set_delay(11), throttle.set_delay(5))

        assert mock_global_repo.set_send_retry_delay_time.await_count == 2
        assert stored["send_retry_delay_time"] in results
