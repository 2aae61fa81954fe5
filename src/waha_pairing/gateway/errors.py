"""
Gateway Errors

Exceptions raised inside the gateway layer. They never cross the
`WahaGatewayClient` boundary: the client converts them into failed
`GatewayResult` envelopes.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base error for WAHA gateway failures."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class QrCodeUnavailableError(GatewayError):
    """The gateway response carried no recognizable QR code."""

    def __init__(self, message: str = "QR code not available"):
        super().__init__(message)
