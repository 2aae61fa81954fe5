"""Turns one gateway status query into a pairing signal."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..gateway.client import SessionStatus

logger = logging.getLogger(__name__)

CONNECTION_FAILED = "connection failed"
MONITOR_FAILED = "failed to monitor connection status"


class PollSignal(str, Enum):
    PENDING = "pending"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass
class PollResult:
    signal: PollSignal
    message: Optional[str] = None
    status: Optional[SessionStatus] = None


class StatusPoller:
    """
    Queries session status once per call.

    Fail-fast: a fetch error is reported as FAILED, never retried here.
    """

    def __init__(self, gateway):
        self.gateway = gateway

    async def poll(self, session_id: str) -> PollResult:
        try:
            result = await self.gateway.get_status(session_id)
        except Exception as e:
            logger.error(f"Status query for {session_id} raised: {e}")
            return PollResult(PollSignal.FAILED, MONITOR_FAILED)

        if not result.success or not isinstance(result.data, SessionStatus):
            logger.warning(f"Status query for {session_id} failed: {result.error}")
            return PollResult(PollSignal.FAILED, MONITOR_FAILED)

        status = result.data
        logger.debug(f"Session {session_id} status: {status.status}")

        if status.is_working:
            return PollResult(PollSignal.CONNECTED, status=status)

        if status.is_failed:
            return PollResult(PollSignal.FAILED, CONNECTION_FAILED, status=status)

        return PollResult(PollSignal.PENDING, status=status)
