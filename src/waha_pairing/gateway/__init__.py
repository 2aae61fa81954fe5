"""
WAHA Gateway

HTTP client for the WAHA session API plus a canned mock for offline runs.
"""

from .client import GatewayResult, SessionStatus, WahaGatewayClient, normalize_base_url
from .errors import GatewayError, QrCodeUnavailableError
from .mock import MockGatewayClient
from .qr import QrImage, QrSource, normalize_qr_payload, render_qr_data_uri

__all__ = [
    "GatewayError",
    "GatewayResult",
    "MockGatewayClient",
    "QrCodeUnavailableError",
    "QrImage",
    "QrSource",
    "SessionStatus",
    "WahaGatewayClient",
    "normalize_base_url",
    "normalize_qr_payload",
    "render_qr_data_uri",
]
