"""
Test QR Countdown and Status Poller
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from waha_pairing.gateway.client import GatewayResult
from waha_pairing.pairing.countdown import QrCountdown
from waha_pairing.pairing.poller import CONNECTION_FAILED, MONITOR_FAILED, PollSignal, StatusPoller

from conftest import status_result


class TestQrCountdown:
    """Tests for QrCountdown"""

    def test_ticks_down_by_one(self):
        countdown = QrCountdown(3)

        assert countdown.tick() is False
        assert countdown.remaining == 2
        assert countdown.tick() is False
        assert countdown.tick() is True
        assert countdown.remaining == 0
        assert countdown.expired is True

    def test_never_below_zero(self):
        countdown = QrCountdown(1)
        for _ in range(5):
            countdown.tick()

        assert countdown.remaining == 0

    def test_reset(self):
        countdown = QrCountdown(120)
        countdown.tick()
        countdown.reset()

        assert countdown.remaining == 120
        assert countdown.expired is False

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            QrCountdown(0)


class TestStatusPoller:
    """Tests for StatusPoller"""

    def setup_method(self):
        self.gateway = MagicMock()
        self.poller = StatusPoller(self.gateway)

    @pytest.mark.asyncio
    async def test_connected(self):
        for status in ("WORKING", "CONNECTED"):
            self.gateway.get_status = AsyncMock(return_value=status_result(status))
            result = await self.poller.poll("s1")
            assert result.signal == PollSignal.CONNECTED

    @pytest.mark.asyncio
    async def test_working_but_not_authenticated(self):
        self.gateway.get_status = AsyncMock(return_value=status_result("WORKING", is_authenticated=False))

        result = await self.poller.poll("s1")

        assert result.signal == PollSignal.PENDING

    @pytest.mark.asyncio
    async def test_failed_statuses(self):
        for status in ("FAILED", "STOPPED", "ERROR"):
            self.gateway.get_status = AsyncMock(return_value=status_result(status))
            result = await self.poller.poll("s1")
            assert result.signal == PollSignal.FAILED
            assert result.message == CONNECTION_FAILED

    @pytest.mark.asyncio
    async def test_pending(self):
        for status in ("STARTING", "SCAN_QR_CODE", "UNKNOWN"):
            self.gateway.get_status = AsyncMock(return_value=status_result(status))
            result = await self.poller.poll("s1")
            assert result.signal == PollSignal.PENDING

    @pytest.mark.asyncio
    async def test_fetch_error(self):
        self.gateway.get_status = AsyncMock(return_value=GatewayResult.fail("Cannot connect to WAHA gateway"))

        result = await self.poller.poll("s1")

        assert result.signal == PollSignal.FAILED
        assert result.message == MONITOR_FAILED

    @pytest.mark.asyncio
    async def test_fetch_exception(self):
        self.gateway.get_status = AsyncMock(side_effect=TimeoutError())

        result = await self.poller.poll("s1")

        assert result.signal == PollSignal.FAILED
        assert result.message == MONITOR_FAILED


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
