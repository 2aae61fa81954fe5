"""
WAHA Gateway Client

Thin async wrapper over the WAHA (WhatsApp HTTP API) session endpoints used
by the pairing flow.

Every public operation returns a `GatewayResult` envelope; transport errors,
HTTP errors and unparseable bodies are all mapped to
``GatewayResult(success=False, error=...)`` so callers never handle raw
aiohttp exceptions.

Example:
    async with WahaGatewayClient(GatewayConfig(base_url="http://waha:3000")) as gateway:
        result = await gateway.create_session("whatsapp-connector-1718000000000")
        if result.success:
            qr = await gateway.get_qr_code("whatsapp-connector-1718000000000")
            print(qr.data.data_uri)
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from ..config.schema import GatewayConfig
from .errors import QrCodeUnavailableError
from .qr import normalize_qr_payload

logger = logging.getLogger(__name__)

WORKING_STATUSES = ("WORKING", "CONNECTED")
FAILED_STATUSES = ("FAILED", "STOPPED", "ERROR")

HTTP_ERROR_MESSAGES = {
    400: "Bad request - Invalid parameters provided",
    401: "Unauthorized - Invalid API key or session",
    403: "Forbidden - Access denied",
    404: "Not found - Session or resource not found",
    409: "Conflict - Session already exists or is in use",
    422: "Unprocessable entity - Invalid data format",
    429: "Too many requests - Rate limit exceeded",
    500: "Internal server error - WAHA server error",
    502: "Bad gateway - WAHA server unavailable",
    503: "Service unavailable - WAHA server overloaded",
}


@dataclass
class GatewayResult:
    """Normalized outcome of a gateway call: {success, data | error}."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, data: Any = None, status_code: Optional[int] = None) -> "GatewayResult":
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error: str, status_code: Optional[int] = None) -> "GatewayResult":
        return cls(success=False, error=error, status_code=status_code)


@dataclass
class SessionStatus:
    """Session status as reported by the gateway."""
    status: str
    is_connected: Optional[bool] = None  # None when not reported
    is_authenticated: Optional[bool] = None
    phone: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_working(self) -> bool:
        """Connected and, if the gateway says so, authenticated."""
        return self.status in WORKING_STATUSES and self.is_authenticated is not False

    @property
    def is_failed(self) -> bool:
        return self.status in FAILED_STATUSES

    @classmethod
    def from_response(cls, data: Any) -> "SessionStatus":
        """Create from a WAHA status body or a platform envelope wrapping one."""
        if not isinstance(data, dict):
            return cls(status="UNKNOWN")

        body = data
        if "status" not in body and isinstance(body.get("data"), dict):
            body = body["data"]

        me = body.get("me") or {}
        phone = body.get("phone") or body.get("phone_number") or (me.get("id") if isinstance(me, dict) else None)

        return cls(
            status=str(body.get("status") or "UNKNOWN").upper(),
            is_connected=_optional_bool(body, "is_connected", "connected"),
            is_authenticated=_optional_bool(body, "is_authenticated", "authenticated"),
            phone=phone,
            raw=data,
        )


def _optional_bool(body: Dict[str, Any], *keys: str) -> Optional[bool]:
    for key in keys:
        value = body.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    return None


def normalize_base_url(base_url: str) -> str:
    """Strip trailing slashes and default to http://"""
    base_url = base_url.rstrip("/")
    if not base_url.startswith(("http://", "https://")):
        base_url = "http://" + base_url
    return base_url


def _is_retryable(status_code: Optional[int]) -> bool:
    # Transport failures carry no status code
    return status_code is None or status_code == 429 or status_code >= 500


class WahaGatewayClient:
    """
    Client for the WAHA session API.

    Architecture:
        PairingController <-> WahaGatewayClient <-> WAHA (HTTP) <-> WhatsApp Web
    """

    def __init__(self, config: Optional[GatewayConfig] = None):
        self.config = config or GatewayConfig()
        self.base_url = normalize_base_url(self.config.base_url)
        self.restart_pause = 1.0  # seconds between stop and start on restart
        self._http_session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self):
        """Open the HTTP session (called lazily by every request)."""
        if self._http_session is not None:
            return

        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.config.api_key:
            headers["X-Api-Key"] = self.config.api_key
        else:
            logger.warning("WAHA API key is not configured - some operations may fail")

        self._http_session = aiohttp.ClientSession(
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.config.timeout),
        )

    async def disconnect(self):
        """Close the HTTP session."""
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _url(self, path: str) -> str:
        prefix = self.config.api_prefix.rstrip("/")
        return f"{self.base_url}{prefix}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        attempts: Optional[int] = None,
    ) -> GatewayResult:
        """
        Issue a request with retry on transport errors, 429 and 5xx.

        Other 4xx responses fail immediately.
        """
        attempts = attempts or self.config.retry_attempts
        url = self._url(path)
        result = GatewayResult.fail(f"WAHA {operation} was not attempted")

        for attempt in range(1, attempts + 1):
            try:
                result = await self._send(method, url, operation, json_body, params)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"WAHA {operation} failed (attempt {attempt}/{attempts}): {e!r}")
                result = GatewayResult.fail(f"Cannot connect to WAHA gateway: {str(e) or type(e).__name__}")

            if result.success or not _is_retryable(result.status_code) or attempt == attempts:
                return result

            await asyncio.sleep(self.config.retry_delay * attempt)

        return result

    async def _send(
        self,
        method: str,
        url: str,
        operation: str,
        json_body: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
    ) -> GatewayResult:
        await self.connect()

        logger.debug(f"WAHA {method} {url}")
        async with self._http_session.request(method, url, json=json_body, params=params) as resp:
            status = resp.status
            try:
                text = await resp.text()
            except UnicodeDecodeError as e:
                logger.error(f"Undecodable body from WAHA during {operation}: {e}")
                return GatewayResult.fail(
                    f"Invalid response from WAHA gateway during {operation}",
                    status_code=status,
                )

        try:
            data = json.loads(text) if text and text.strip() else {}
        except ValueError:
            if status < 400:
                logger.error(f"Invalid JSON from WAHA during {operation}: {text[:200]}")
                return GatewayResult.fail(
                    f"Invalid response from WAHA gateway during {operation}",
                    status_code=status,
                )
            data = {"message": text.strip()}

        if status < 400:
            return GatewayResult.ok(data, status_code=status)

        detail = None
        if isinstance(data, dict):
            detail = data.get("message") or data.get("error")
            if isinstance(detail, dict):
                detail = detail.get("message")
        mapped = HTTP_ERROR_MESSAGES.get(status, f"HTTP error {status}")

        logger.error(f"WAHA API error during {operation}: {status} {detail or mapped}")
        return GatewayResult.fail(str(detail) if detail else mapped, status_code=status)

    # =========================================================================
    # SESSION LIFECYCLE
    # =========================================================================

    def _session_options(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Default session config merged with caller options."""
        session_config: Dict[str, Any] = {
            "webhook": self.config.webhook_url,
            "webhook_by_events": False,
            "events": list(self.config.webhook_events),
            "reject_calls": self.config.reject_calls,
            "mark_online_on_chat": self.config.mark_online_on_chat,
        }
        if self.config.webhook_url:
            session_config["webhooks"] = [
                {"url": self.config.webhook_url, "events": list(self.config.webhook_events)}
            ]
        session_config.update(options or {})
        return session_config

    def _already_started(self, session_id: str, result: GatewayResult) -> GatewayResult:
        """Treat 'session already started' as success."""
        if result.success:
            return result

        if result.status_code == 422 or "already started" in (result.error or "").lower():
            logger.info(f"WAHA session {session_id} already started")
            return GatewayResult.ok(
                {"name": session_id, "status": "STARTING", "message": "Session already started"},
                status_code=result.status_code,
            )

        return result

    async def create_session(
        self,
        session_id: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> GatewayResult:
        """
        Create and start a session.

        Args:
            session_id: Session name at the gateway
            options: Overrides for the session config (webhook, events, ...)
        """
        if not session_id:
            return GatewayResult.fail("Valid session ID is required")

        logger.info(f"Creating WAHA session {session_id}")
        body = {"name": session_id, "config": self._session_options(options)}
        result = await self._request("POST", f"/sessions/{session_id}/start", "create session", json_body=body)
        return self._already_started(session_id, result)

    async def start_session(self, session_id: str) -> GatewayResult:
        result = await self._request("POST", f"/sessions/{session_id}/start", "start session")
        return self._already_started(session_id, result)

    async def stop_session(self, session_id: str) -> GatewayResult:
        return await self._request("POST", f"/sessions/{session_id}/stop", "stop session")

    async def delete_session(self, session_id: str) -> GatewayResult:
        return await self._request("DELETE", f"/sessions/{session_id}", "delete session")

    async def get_session_info(self, session_id: str) -> GatewayResult:
        return await self._request("GET", f"/sessions/{session_id}", "get session info")

    async def restart_session(self, session_id: str) -> GatewayResult:
        """Stop then start a session (forces a fresh QR)."""
        stopped = await self.stop_session(session_id)
        if not stopped.success:
            logger.warning(f"Failed to stop session {session_id} before restart: {stopped.error}")

        await asyncio.sleep(self.restart_pause)

        started = await self.start_session(session_id)
        if not started.success:
            logger.error(f"Failed to restart session {session_id}: {started.error}")
            return started

        logger.info(f"Session {session_id} restarted")
        return GatewayResult.ok({"message": "Session restarted successfully"})

    async def health_check(self) -> bool:
        """Check the gateway answers at all."""
        result = await self._request("GET", "/sessions", "health check", attempts=1)
        return result.success

    # =========================================================================
    # STATUS & QR
    # =========================================================================

    async def get_status(self, session_id: str) -> GatewayResult:
        """
        Query session status.

        Single attempt: the pairing poller treats any failure as final.
        """
        result = await self._request("GET", f"/sessions/{session_id}/status", "get session status", attempts=1)
        if not result.success:
            return result
        return GatewayResult.ok(SessionStatus.from_response(result.data), status_code=result.status_code)

    async def get_qr_code(self, session_id: str) -> GatewayResult:
        """Fetch the pairing QR, normalized to a QrImage."""
        result = await self._request("GET", f"/sessions/{session_id}/qr", "get QR code")
        if not result.success:
            return result

        try:
            image = normalize_qr_payload(result.data)
        except QrCodeUnavailableError as e:
            logger.warning(f"QR code not available for session {session_id}")
            return GatewayResult.fail(e.message, status_code=result.status_code)

        return GatewayResult.ok(image, status_code=result.status_code)

    async def regenerate_qr_code(self, session_id: str) -> GatewayResult:
        """
        Get a fresh QR for an expired one.

        Returns:
            GatewayResult whose data is a QrImage, or a SessionStatus when the
            session turned out to be connected already.
        """
        status = await self.get_status(session_id)
        if status.success and status.data.is_working:
            logger.info(f"Session {session_id} already connected; QR regeneration not needed")
            return status

        qr = await self.get_qr_code(session_id)
        if qr.success:
            return qr

        logger.info(f"QR unavailable for {session_id} ({qr.error}), restarting session")
        restarted = await self.restart_session(session_id)
        if not restarted.success:
            return restarted

        return await self.get_qr_code(session_id)
