"""
QR Pairing Flow

State machine, timers and finalization for linking a WhatsApp account to a
WAHA session.
"""

from .controller import PairingController
from .countdown import QrCountdown
from .finalize import InboxNameError, build_inbox_record, validate_inbox_name
from .poller import PollResult, PollSignal, StatusPoller
from .session import (
    ALLOWED_TRANSITIONS,
    InboxRecord,
    InvalidTransitionError,
    PairingSession,
    PairingState,
    can_transition,
    generate_session_id,
)
from .timers import PeriodicTask, TimerSet

__all__ = [
    "ALLOWED_TRANSITIONS",
    "InboxNameError",
    "InboxRecord",
    "InvalidTransitionError",
    "PairingController",
    "PairingSession",
    "PairingState",
    "PeriodicTask",
    "PollResult",
    "PollSignal",
    "QrCountdown",
    "StatusPoller",
    "TimerSet",
    "build_inbox_record",
    "can_transition",
    "generate_session_id",
    "validate_inbox_name",
]
