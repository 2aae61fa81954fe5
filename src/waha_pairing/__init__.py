"""
WAHA Pairing

Links a WhatsApp account to a WAHA (WhatsApp HTTP API) gateway session by QR
scan: session creation, QR display and regeneration, connection polling, and
inbox naming.
"""

__version__ = "0.1.0"

from .config import AppConfig, load_config
from .gateway import GatewayResult, MockGatewayClient, QrImage, SessionStatus, WahaGatewayClient
from .pairing import InboxRecord, PairingController, PairingSession, PairingState

__all__ = [
    "AppConfig",
    "GatewayResult",
    "InboxRecord",
    "MockGatewayClient",
    "PairingController",
    "PairingSession",
    "PairingState",
    "QrImage",
    "SessionStatus",
    "WahaGatewayClient",
    "load_config",
]
