"""
Test Pairing UIs

Tests for the terminal renderer and the web UI handlers.
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from waha_pairing.gateway.qr import normalize_qr_payload
from waha_pairing.pairing.controller import PairingController
from waha_pairing.pairing.session import InboxRecord, PairingSession, PairingState
from waha_pairing.ui.terminal import TerminalPairingUI
from waha_pairing.ui.web import WebPairingUI

from conftest import PIXEL_DATA_URI, make_gateway


class TestTerminalPairingUI:
    """Tests for TerminalPairingUI"""

    def setup_method(self):
        self.session = PairingSession(session_id="whatsapp-connector-1")

    @pytest.mark.asyncio
    async def test_prints_status_once_per_state(self, tmp_path, capsys):
        ui = TerminalPairingUI(qr_dir=tmp_path)

        await ui.update(self.session)
        await ui.update(self.session)

        out = capsys.readouterr().out
        assert out.count("WhatsApp Pairing: whatsapp-connector-1") == 1
        assert "Creating WhatsApp session" in out

    @pytest.mark.asyncio
    async def test_raw_code_printed_as_ascii(self, tmp_path, capsys):
        ui = TerminalPairingUI(qr_dir=tmp_path)
        self.session.state = PairingState.SCANNING
        self.session.qr_image = normalize_qr_payload({"qr": "2@raw-pairing-code"})

        await ui.update(self.session)

        out = capsys.readouterr().out
        assert "SCAN THIS QR CODE WITH WHATSAPP" in out
        assert "QR image saved" not in out
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_image_saved_to_file(self, tmp_path, capsys):
        ui = TerminalPairingUI(qr_dir=tmp_path)
        self.session.state = PairingState.SCANNING
        self.session.qr_image = normalize_qr_payload({"qrCode": PIXEL_DATA_URI})

        await ui.update(self.session)

        path = tmp_path / "whatsapp-connector-1-qr.png"
        assert path.exists()
        assert path.read_bytes().startswith(b"\x89PNG")
        assert str(path) in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_error_and_validation(self, tmp_path, capsys):
        ui = TerminalPairingUI(qr_dir=tmp_path)
        self.session.state = PairingState.ERROR
        self.session.error_message = "connection failed"

        await ui.update(self.session)
        assert "❌ Error: connection failed" in capsys.readouterr().out

        self.session.state = PairingState.NAMING
        self.session.validation_message = "Inbox name is required"
        await ui.update(self.session)
        assert "Inbox name is required" in capsys.readouterr().out


class TestWebPairingUI:
    """Tests for WebPairingUI handlers"""

    def setup_method(self):
        self.session = PairingSession(session_id="s1", state=PairingState.SCANNING)
        self.session.qr_image = normalize_qr_payload({"qrCode": PIXEL_DATA_URI})

        self.controller = MagicMock()
        self.controller.session = self.session
        self.ui = WebPairingUI(port=0)
        self.ui.bind(self.controller)

    def test_routes(self):
        routes = {(route.method, route.resource.canonical) for route in self.ui.app.router.routes()}

        assert ("GET", "/status") in routes
        assert ("GET", "/qr.png") in routes
        assert ("POST", "/name") in routes
        assert ("POST", "/retry") in routes

    @pytest.mark.asyncio
    async def test_status(self):
        response = await self.ui._handle_status(MagicMock())
        data = json.loads(response.text)

        assert data["state"] == "scanning"
        assert data["qr_code"] == PIXEL_DATA_URI
        assert data["session_id"] == "s1"

    @pytest.mark.asyncio
    async def test_qr_image(self):
        response = await self.ui._handle_qr_image(MagicMock())

        assert response.status == 200
        assert response.content_type == "image/png"
        assert response.body.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_qr_image_missing(self):
        self.session.qr_image = None

        response = await self.ui._handle_qr_image(MagicMock())

        assert response.status == 404

    @pytest.mark.asyncio
    async def test_submit_name(self):
        record = InboxRecord(id="i1", name="Support", session_id="s1", created_at="2026-01-01T00:00:00+00:00")
        self.controller.submit_name = AsyncMock(return_value=record)
        request = MagicMock()
        request.json = AsyncMock(return_value={"name": "Support"})

        response = await self.ui._handle_name(request)

        self.controller.submit_name.assert_awaited_once_with("Support")
        assert json.loads(response.text)["sessionId"] == "s1"

    @pytest.mark.asyncio
    async def test_submit_blank_name(self):
        self.session.validation_message = "Inbox name is required"
        self.controller.submit_name = AsyncMock(return_value=None)
        request = MagicMock()
        request.json = AsyncMock(return_value={"name": " "})

        response = await self.ui._handle_name(request)

        assert response.status == 422
        assert json.loads(response.text)["error"] == "Inbox name is required"

    @pytest.mark.asyncio
    async def test_submit_numeric_name(self):
        """Test a non-text name is a validation error, not a server error"""
        controller = PairingController(make_gateway(), session_id="s1")
        controller.session.state = PairingState.NAMING
        self.ui.bind(controller)
        request = MagicMock()
        request.json = AsyncMock(return_value={"name": 123})

        response = await self.ui._handle_name(request)

        assert response.status == 422
        assert json.loads(response.text)["error"] == "Inbox name is required"
        assert controller.state == PairingState.NAMING
        assert controller.record is None

    @pytest.mark.asyncio
    async def test_retry_action(self):
        self.controller.retry = AsyncMock()

        response = await self.ui._handle_retry(MagicMock())

        self.controller.retry.assert_awaited_once()
        assert response.status == 200

    @pytest.mark.asyncio
    async def test_update_tracks_session(self):
        other = PairingSession(session_id="s2")

        await self.ui.update(other)
        response = await self.ui._handle_status(MagicMock())

        assert json.loads(response.text)["session_id"] == "s2"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
