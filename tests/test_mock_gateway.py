"""
Test Mock Gateway

The mock must drive a PairingController through the whole flow.
"""

import pytest

from waha_pairing.config.schema import PairingConfig
from waha_pairing.gateway.client import SessionStatus
from waha_pairing.gateway.mock import MOCK_PHONE, MockGatewayClient
from waha_pairing.gateway.qr import QrImage
from waha_pairing.pairing import PairingController, PairingState


class TestMockGatewayClient:
    """Tests for MockGatewayClient"""

    def setup_method(self):
        self.gateway = MockGatewayClient(connect_after_polls=2)

    @pytest.mark.asyncio
    async def test_connects_after_polls(self):
        await self.gateway.create_session("s1")

        first = await self.gateway.get_status("s1")
        second = await self.gateway.get_status("s1")

        assert isinstance(first.data, SessionStatus)
        assert first.data.status == "SCAN_QR_CODE"
        assert second.data.is_working is True
        assert second.data.phone == MOCK_PHONE

    @pytest.mark.asyncio
    async def test_stopped_session(self):
        await self.gateway.create_session("s1")
        await self.gateway.stop_session("s1")

        result = await self.gateway.get_status("s1")

        assert result.data.is_failed is True

    @pytest.mark.asyncio
    async def test_qr_code(self):
        result = await self.gateway.get_qr_code("s1")

        assert isinstance(result.data, QrImage)
        assert result.data.mimetype == "image/png"

    @pytest.mark.asyncio
    async def test_records_calls(self):
        async with self.gateway as gateway:
            await gateway.create_session("s1")
            await gateway.restart_session("s1")
            assert await gateway.health_check() is True

        assert [op for op, _ in self.gateway.calls] == [
            "create_session", "stop_session", "start_session", "health_check"
        ]

    @pytest.mark.asyncio
    async def test_drives_controller(self):
        config = PairingConfig(poll_interval=0.01, tick_interval=3600, connected_delay=0, startup_delay=0)
        controller = PairingController(self.gateway, config)

        await controller.start()
        state = await controller.wait_for_state(PairingState.NAMING, PairingState.ERROR, timeout=2)
        record = await controller.submit_name("Demo")
        await controller.close()

        assert state == PairingState.NAMING
        assert record.session_id == controller.session.session_id
        assert ("stop_session", controller.session.session_id) not in self.gateway.calls


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
