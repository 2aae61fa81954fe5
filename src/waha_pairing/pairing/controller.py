"""
WhatsApp QR Pairing Controller

Drives one WAHA session from creation to a named inbox:

    initializing -> qr-ready -> scanning -> connected -> naming -> completed
          ^                        |
          +-------- error <--------+

While scanning, two timers run: a status poll (is the phone linked yet?) and
a QR countdown that regenerates the code when its validity window runs out.
Every handler re-checks state and the closed flag after each await, so late
timer ticks and late gateway responses are no-ops.

Example:
    controller = PairingController(gateway, config.pairing, on_success=save_inbox)
    await controller.start()
    state = await controller.wait_for_state(PairingState.NAMING, PairingState.ERROR)
    if state == PairingState.NAMING:
        await controller.submit_name("Support")
    await controller.close()
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from ..config.schema import PairingConfig
from ..gateway.client import GatewayResult, SessionStatus
from ..gateway.qr import QrImage
from .countdown import QrCountdown
from .finalize import InboxNameError, build_inbox_record, validate_inbox_name
from .poller import PollSignal, StatusPoller
from .session import (
    QR_FETCH_PROGRESS,
    STATE_PROGRESS,
    InboxRecord,
    InvalidTransitionError,
    PairingSession,
    PairingState,
    can_transition,
    generate_session_id,
)
from .timers import TimerSet

logger = logging.getLogger(__name__)

POLL_TIMER = "status-poll"
COUNTDOWN_TIMER = "qr-countdown"
CONNECTED_TIMER = "connected-delay"

PAIRING_TIMED_OUT = "Pairing timed out"


class PairingController:
    """
    Connection state machine for QR pairing.

    Callbacks (plain functions or coroutines):
        on_success(record): once, when the inbox is named
        on_close(): once, when the flow is closed
        ui_callback(session): after each transition, QR change and tick
    """

    def __init__(
        self,
        gateway,
        config: Optional[PairingConfig] = None,
        session_id: Optional[str] = None,
        on_success: Optional[Callable[[InboxRecord], Any]] = None,
        on_close: Optional[Callable[[], Any]] = None,
        ui_callback: Optional[Callable[[PairingSession], Any]] = None,
    ):
        self.gateway = gateway
        self.config = config or PairingConfig()
        self.on_success = on_success
        self.on_close = on_close
        self.ui_callback = ui_callback

        # Caller-supplied ids survive retries; generated ones are replaced
        self._fixed_session_id = session_id
        self.session = PairingSession(
            session_id=session_id or generate_session_id(self.config.session_prefix),
            time_remaining_seconds=self.config.qr_window_seconds,
        )
        self.record: Optional[InboxRecord] = None

        self.poller = StatusPoller(gateway)
        self.countdown = QrCountdown(self.config.qr_window_seconds)
        self.timers = TimerSet()

        self._run = 0
        self._run_started = False
        self._closed = False
        self._scan_deadline: Optional[float] = None
        self._state_event = asyncio.Event()

    @property
    def state(self) -> PairingState:
        return self.session.state

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def start(self):
        """
        Create the gateway session and bring up the first QR code.

        Returns once the flow reaches scanning or error. A second call is a
        no-op.
        """
        if self._closed or self.session.initialization_started:
            logger.debug("Pairing already initialized; ignoring start()")
            return

        self.session.initialization_started = True
        self._run_started = True
        self.session.set_progress(STATE_PROGRESS[PairingState.INITIALIZING])
        await self._notify_ui()
        await self._initialize(self._run)

    async def retry(self):
        """Reset from error and run initialization again."""
        if self._closed or self.session.state != PairingState.ERROR:
            logger.debug(f"retry() ignored in state {self.session.state.value}")
            return

        self.timers.cancel_all()
        self._run += 1

        session = self.session
        session.session_id = self._fixed_session_id or generate_session_id(self.config.session_prefix)
        session.qr_image = None
        session.inbox_name = ""
        session.error_message = None
        session.validation_message = None
        session.progress_percent = 0
        session.qr_request_in_flight = False
        session.regeneration_in_flight = False
        self.countdown.reset()
        session.time_remaining_seconds = self.countdown.remaining
        self._scan_deadline = None

        logger.info(f"Retrying pairing with session {session.session_id}")
        await self._transition(PairingState.INITIALIZING)
        await self._initialize(self._run)

    async def continue_to_naming(self):
        """Skip the remaining connected delay and ask for the inbox name."""
        if self._closed or self.session.state != PairingState.CONNECTED:
            return
        self.timers.cancel(CONNECTED_TIMER)
        await self._transition(PairingState.NAMING)

    async def submit_name(self, name: str) -> Optional[InboxRecord]:
        """
        Complete the flow with the given inbox name.

        Returns:
            The InboxRecord, or None if the name was blank or the flow is not
            waiting for a name.
        """
        if self._closed or self.session.state != PairingState.NAMING:
            logger.debug(f"submit_name() ignored in state {self.session.state.value}")
            return None

        try:
            cleaned = validate_inbox_name(name)
        except InboxNameError as e:
            self.session.validation_message = str(e)
            await self._notify_ui()
            return None

        self.session.inbox_name = cleaned
        self.session.validation_message = None
        self.record = build_inbox_record(self.session.session_id, cleaned)

        await self._transition(PairingState.COMPLETED)
        logger.info(f"Inbox '{cleaned}' linked to session {self.session.session_id}")

        if not self.session.success_emitted:
            self.session.success_emitted = True
            await self._invoke(self.on_success, "success", self.record)

        return self.record

    async def close(self):
        """
        Tear the flow down. Safe to call at any time, any number of times.

        Stops the gateway session (best effort) unless pairing completed.
        """
        if self._closed:
            return

        self._closed = True
        self.timers.cancel_all()
        self._notify_state()

        if self._run_started and self.session.state != PairingState.COMPLETED:
            session_id = self.session.session_id
            try:
                result = await self.gateway.stop_session(session_id)
                if not result.success:
                    logger.warning(f"Failed to stop session {session_id}: {result.error}")
            except Exception as e:
                logger.error(f"Error stopping session {session_id}: {e}")

        if not self.session.close_emitted:
            self.session.close_emitted = True
            await self._invoke(self.on_close, "close")

        logger.info(f"Pairing flow closed in state {self.session.state.value}")

    async def wait_for_state(self, *states: PairingState, timeout: Optional[float] = None) -> PairingState:
        """
        Wait until the session is in one of `states` (or the flow is closed).

        Raises:
            asyncio.TimeoutError: If timeout elapses first
        """
        async def _wait():
            while self.session.state not in states and not self._closed:
                await self._state_event.wait()
            return self.session.state

        return await asyncio.wait_for(_wait(), timeout)

    # =========================================================================
    # TIMER HANDLERS
    # =========================================================================

    async def handle_poll(self):
        """One status poll while scanning."""
        if self._closed or self.session.state != PairingState.SCANNING:
            return

        run = self._run
        result = await self.poller.poll(self.session.session_id)

        if self._stale(run) or self.session.state != PairingState.SCANNING:
            return

        if result.signal == PollSignal.CONNECTED:
            await self._on_connected()
        elif result.signal == PollSignal.FAILED:
            await self._fail(result.message)

    async def handle_countdown_tick(self):
        """One countdown tick while scanning; regenerates the QR at zero."""
        if self._closed or self.session.state != PairingState.SCANNING:
            return

        if self._scan_deadline is not None and asyncio.get_running_loop().time() >= self._scan_deadline:
            logger.warning(f"Pairing timed out after {self.config.pairing_timeout}s")
            await self._fail(PAIRING_TIMED_OUT)
            return

        if self.session.regeneration_in_flight:
            return

        expired = self.countdown.tick()
        self.session.time_remaining_seconds = self.countdown.remaining
        await self._notify_ui()

        if expired:
            await self._regenerate()

    # =========================================================================
    # FLOW
    # =========================================================================

    async def _initialize(self, run: int):
        session_id = self.session.session_id
        logger.info(f"Creating WhatsApp session {session_id}")

        result = await self._call_gateway("create_session", session_id)
        if self._stale(run):
            return

        if not result.success:
            await self._fail(result.error or "Failed to create WhatsApp session")
            return

        await self._transition(PairingState.QR_READY)

        if self.config.startup_delay > 0:
            await asyncio.sleep(self.config.startup_delay)

        if self._stale(run) or self.session.state != PairingState.QR_READY:
            return

        await self._fetch_qr(run)

    async def _fetch_qr(self, run: int):
        if self.session.qr_request_in_flight:
            logger.debug("QR request already in flight")
            return

        self.session.qr_request_in_flight = True
        self.session.set_progress(QR_FETCH_PROGRESS)
        try:
            result = await self._call_gateway("get_qr_code", self.session.session_id)
        finally:
            self.session.qr_request_in_flight = False

        if self._stale(run) or self.session.state != PairingState.QR_READY:
            return

        if not result.success or not isinstance(result.data, QrImage):
            await self._fail(result.error or "QR code not available")
            return

        self._set_qr(result.data)
        await self._transition(PairingState.SCANNING)

    async def _regenerate(self):
        if self.session.regeneration_in_flight or self.session.state != PairingState.SCANNING:
            return

        run = self._run
        session_id = self.session.session_id
        logger.info(f"QR code expired, regenerating for {session_id}")

        self.session.regeneration_in_flight = True
        try:
            result = await self._call_gateway("regenerate_qr_code", session_id)
        finally:
            self.session.regeneration_in_flight = False

        if self._stale(run) or self.session.state != PairingState.SCANNING:
            return

        if not result.success:
            await self._fail(result.error or "Failed to regenerate QR code")
            return

        if isinstance(result.data, SessionStatus) and result.data.is_working:
            logger.info(f"Session {session_id} connected during QR regeneration")
            await self._on_connected()
            return

        if not isinstance(result.data, QrImage):
            await self._fail("QR code not available")
            return

        self._set_qr(result.data)
        await self._notify_ui()

    async def _on_connected(self):
        await self._transition(PairingState.CONNECTED)

        if self.config.connected_delay > 0:
            self.timers.call_later(CONNECTED_TIMER, self.config.connected_delay, self.continue_to_naming)
        else:
            await self.continue_to_naming()

    async def _fail(self, message: Optional[str]):
        if not can_transition(self.session.state, PairingState.ERROR):
            logger.warning(f"Ignoring failure in state {self.session.state.value}: {message}")
            return
        await self._transition(PairingState.ERROR, error=message or "Unknown error")

    def _set_qr(self, image: QrImage):
        self.session.qr_image = image
        self.countdown.reset()
        self.session.time_remaining_seconds = self.countdown.remaining

    def _stale(self, run: int) -> bool:
        """True once the flow was closed or restarted since `run` began."""
        return self._closed or run != self._run

    async def _call_gateway(self, operation: str, *args) -> GatewayResult:
        try:
            return await getattr(self.gateway, operation)(*args)
        except Exception as e:
            logger.error(f"Gateway {operation} raised: {e}", exc_info=True)
            return GatewayResult.fail(str(e) or type(e).__name__)

    # =========================================================================
    # STATE
    # =========================================================================

    async def _transition(self, target: PairingState, error: Optional[str] = None):
        current = self.session.state
        if not can_transition(current, target):
            raise InvalidTransitionError(current, target)

        if current == PairingState.SCANNING:
            self.timers.cancel(POLL_TIMER)
            self.timers.cancel(COUNTDOWN_TIMER)
            self.countdown.reset()
            self.session.time_remaining_seconds = self.countdown.remaining
            self._scan_deadline = None

        self.session.state = target
        if target in STATE_PROGRESS:
            self.session.set_progress(STATE_PROGRESS[target])
        if target == PairingState.ERROR:
            self.session.error_message = error

        if error:
            logger.error(f"Pairing {self.session.session_id}: {current.value} -> {target.value} ({error})")
        else:
            logger.info(f"Pairing {self.session.session_id}: {current.value} -> {target.value}")

        if target == PairingState.SCANNING:
            self._start_scanning()

        self._notify_state()
        await self._notify_ui()

    def _start_scanning(self):
        if self.config.pairing_timeout:
            self._scan_deadline = asyncio.get_running_loop().time() + self.config.pairing_timeout
        self.timers.start(POLL_TIMER, self.config.poll_interval, self.handle_poll)
        self.timers.start(COUNTDOWN_TIMER, self.config.tick_interval, self.handle_countdown_tick)

    def _notify_state(self):
        event, self._state_event = self._state_event, asyncio.Event()
        event.set()

    async def _notify_ui(self):
        if not self.ui_callback:
            return
        try:
            result = self.ui_callback(self.session)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"UI callback error: {e}")

    async def _invoke(self, callback: Optional[Callable], label: str, *args):
        if not callback:
            return
        try:
            result = callback(*args)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Pairing {label} callback error: {e}")
