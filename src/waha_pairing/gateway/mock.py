"""
Mock WAHA Gateway

Drop-in replacement for `WahaGatewayClient` that answers from canned
responses. Used by `waha-pair --mock` and for demos without a WAHA server.

The session reports SCAN_QR_CODE until it has been polled
``connect_after_polls`` times, then WORKING.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .client import GatewayResult, SessionStatus
from .qr import normalize_qr_payload

logger = logging.getLogger(__name__)

# 1x1 PNG
MOCK_QR_DATA_URI = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
MOCK_PHONE = "+1234567890"


class MockGatewayClient:
    """Canned gateway with the same async surface as WahaGatewayClient."""

    def __init__(self, connect_after_polls: int = 3, qr_payload: Optional[Dict[str, Any]] = None):
        self.connect_after_polls = connect_after_polls
        self.qr_payload = qr_payload or {"qr": MOCK_QR_DATA_URI}
        self.calls: List[Tuple[str, str]] = []
        self._polls: Dict[str, int] = {}
        self._running: Dict[str, bool] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    async def connect(self):
        pass

    async def disconnect(self):
        pass

    def _record(self, operation: str, session_id: str = ""):
        self.calls.append((operation, session_id))
        logger.debug(f"Mock WAHA {operation} {session_id}")

    async def create_session(self, session_id: str, options: Optional[Dict[str, Any]] = None) -> GatewayResult:
        self._record("create_session", session_id)
        self._running[session_id] = True
        self._polls[session_id] = 0
        return GatewayResult.ok({
            "success": True,
            "message": "Session created successfully",
            "session": {
                "id": session_id,
                "name": session_id,
                "status": "SCAN_QR_CODE",
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
        }, status_code=201)

    async def start_session(self, session_id: str) -> GatewayResult:
        self._record("start_session", session_id)
        self._running[session_id] = True
        return GatewayResult.ok({
            "success": True,
            "message": "Session started successfully",
            "session": {"id": session_id, "status": "STARTING"},
        })

    async def stop_session(self, session_id: str) -> GatewayResult:
        self._record("stop_session", session_id)
        self._running[session_id] = False
        return GatewayResult.ok({"success": True, "message": "Session stopped successfully"})

    async def delete_session(self, session_id: str) -> GatewayResult:
        self._record("delete_session", session_id)
        self._running.pop(session_id, None)
        self._polls.pop(session_id, None)
        return GatewayResult.ok({"success": True, "message": "Session deleted successfully"})

    async def get_session_info(self, session_id: str) -> GatewayResult:
        self._record("get_session_info", session_id)
        return GatewayResult.ok({"name": session_id, "status": self._status_name(session_id)})

    async def restart_session(self, session_id: str) -> GatewayResult:
        await self.stop_session(session_id)
        await self.start_session(session_id)
        return GatewayResult.ok({"message": "Session restarted successfully"})

    async def health_check(self) -> bool:
        self._record("health_check")
        return True

    def _status_name(self, session_id: str) -> str:
        if not self._running.get(session_id):
            return "STOPPED"
        if self._polls.get(session_id, 0) >= self.connect_after_polls:
            return "WORKING"
        return "SCAN_QR_CODE"

    async def get_status(self, session_id: str) -> GatewayResult:
        self._record("get_status", session_id)
        self._polls[session_id] = self._polls.get(session_id, 0) + 1

        body: Dict[str, Any] = {"name": session_id, "status": self._status_name(session_id)}
        if body["status"] == "WORKING":
            body.update({"phone": MOCK_PHONE, "battery": 85, "plugged": True})

        return GatewayResult.ok(SessionStatus.from_response(body))

    async def get_qr_code(self, session_id: str) -> GatewayResult:
        self._record("get_qr_code", session_id)
        return GatewayResult.ok(normalize_qr_payload(self.qr_payload))

    async def regenerate_qr_code(self, session_id: str) -> GatewayResult:
        self._record("regenerate_qr_code", session_id)
        return GatewayResult.ok(normalize_qr_payload(self.qr_payload))
