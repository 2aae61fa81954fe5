"""
Pairing Session State

The mutable record of one QR pairing run, the transition table that
constrains it, and the inbox record produced on completion.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from ..gateway.qr import QrImage

DEFAULT_SESSION_PREFIX = "whatsapp-connector"
DEFAULT_QR_WINDOW = 120


class PairingState(str, Enum):
    """State of the QR pairing flow"""
    INITIALIZING = "initializing"
    QR_READY = "qr-ready"
    SCANNING = "scanning"
    CONNECTED = "connected"
    NAMING = "naming"
    COMPLETED = "completed"
    ERROR = "error"


ALLOWED_TRANSITIONS: Dict[PairingState, FrozenSet[PairingState]] = {
    PairingState.INITIALIZING: frozenset({PairingState.QR_READY, PairingState.ERROR}),
    PairingState.QR_READY: frozenset({PairingState.SCANNING, PairingState.ERROR}),
    PairingState.SCANNING: frozenset({PairingState.CONNECTED, PairingState.ERROR}),
    PairingState.CONNECTED: frozenset({PairingState.NAMING}),
    PairingState.NAMING: frozenset({PairingState.COMPLETED}),
    PairingState.ERROR: frozenset({PairingState.INITIALIZING}),
    PairingState.COMPLETED: frozenset(),
}

# Advisory progress bar value on entering each state
STATE_PROGRESS = {
    PairingState.INITIALIZING: 10,
    PairingState.QR_READY: 30,
    PairingState.SCANNING: 70,
    PairingState.CONNECTED: 90,
    PairingState.NAMING: 100,
    PairingState.COMPLETED: 100,
}
QR_FETCH_PROGRESS = 50


class InvalidTransitionError(RuntimeError):
    """Raised when a transition is not in ALLOWED_TRANSITIONS"""

    def __init__(self, current: PairingState, target: PairingState):
        super().__init__(f"Invalid pairing transition: {current.value} -> {target.value}")
        self.current = current
        self.target = target


def can_transition(current: PairingState, target: PairingState) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def generate_session_id(prefix: str = DEFAULT_SESSION_PREFIX) -> str:
    """Session name unique per run: <prefix>-<epoch millis>"""
    return f"{prefix}-{int(time.time() * 1000)}"


@dataclass
class PairingSession:
    """
    Current view of one pairing run.

    Mutated only by PairingController; UIs read it through ui_callback.
    """
    session_id: str
    state: PairingState = PairingState.INITIALIZING
    qr_image: Optional[QrImage] = None
    progress_percent: int = 0
    time_remaining_seconds: int = DEFAULT_QR_WINDOW
    inbox_name: str = ""
    error_message: Optional[str] = None
    validation_message: Optional[str] = None

    # Guards
    initialization_started: bool = False
    qr_request_in_flight: bool = False
    regeneration_in_flight: bool = False
    success_emitted: bool = False
    close_emitted: bool = False

    @property
    def qr_payload(self) -> str:
        """Displayable data URI, or empty string when no QR is held"""
        return self.qr_image.data_uri if self.qr_image else ""

    def set_progress(self, value: int):
        """Progress never decreases within a run."""
        self.progress_percent = max(self.progress_percent, value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "qr_code": self.qr_payload,
            "progress_percent": self.progress_percent,
            "time_remaining_seconds": self.time_remaining_seconds,
            "inbox_name": self.inbox_name,
            "error_message": self.error_message,
            "validation_message": self.validation_message,
        }


@dataclass(frozen=True)
class InboxRecord:
    """Result handed to on_success once the inbox is named."""
    id: str
    name: str
    session_id: str
    created_at: str
    status: str = "connected"
    platform: str = "whatsapp"
    method: str = "qr_scan"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "sessionId": self.session_id,
            "status": self.status,
            "createdAt": self.created_at,
            "platform": self.platform,
            "method": self.method,
        }
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data
