"""
Terminal pairing UI.

Prints state changes, the QR code and the countdown to stdout. A raw pairing
code is drawn as an ASCII QR; a gateway-rendered image is saved as a PNG and
its path printed.
"""

import logging
import sys
import tempfile
from pathlib import Path
from typing import Optional, Union

import qrcode

from ..pairing.session import PairingSession, PairingState

logger = logging.getLogger(__name__)

STATE_EMOJI = {
    PairingState.INITIALIZING: "⏳",
    PairingState.QR_READY: "📱",
    PairingState.SCANNING: "🔑",
    PairingState.CONNECTED: "✅",
    PairingState.NAMING: "✏️",
    PairingState.COMPLETED: "✅",
    PairingState.ERROR: "❌",
}

STATE_LABELS = {
    PairingState.INITIALIZING: "Creating WhatsApp session",
    PairingState.QR_READY: "Preparing QR code",
    PairingState.SCANNING: "Waiting for scan",
    PairingState.CONNECTED: "Phone connected",
    PairingState.NAMING: "Name your inbox",
    PairingState.COMPLETED: "Completed",
    PairingState.ERROR: "Error",
}

# Print the countdown every N seconds rather than every tick
COUNTDOWN_STEP = 30


class TerminalPairingUI:
    """Renders a PairingSession to the terminal; pass `update` as ui_callback."""

    def __init__(self, qr_dir: Optional[Union[str, Path]] = None):
        self.qr_dir = Path(qr_dir) if qr_dir else Path(tempfile.gettempdir())
        self._last_state: Optional[PairingState] = None
        self._last_qr: str = ""
        self._last_validation: Optional[str] = None

    async def update(self, session: PairingSession):
        if session.state != self._last_state:
            self._print_status(session)
            self._last_state = session.state

        if session.qr_payload and session.qr_payload != self._last_qr:
            self._last_qr = session.qr_payload
            self._print_qr_code(session)
        elif session.state == PairingState.SCANNING and session.time_remaining_seconds % COUNTDOWN_STEP == 0:
            print(f"   QR code valid for {session.time_remaining_seconds}s")

        if session.validation_message and session.validation_message != self._last_validation:
            print(f"⚠️  {session.validation_message}")
        self._last_validation = session.validation_message

    def _print_status(self, session: PairingSession):
        print()
        print("=" * 70)
        print(f"WhatsApp Pairing: {session.session_id}")
        print("=" * 70)
        emoji = STATE_EMOJI.get(session.state, "⏳")
        print(f"Status: {emoji} {STATE_LABELS[session.state]} ({session.progress_percent}%)")
        print()

        if session.state == PairingState.ERROR and session.error_message:
            print(f"❌ Error: {session.error_message}")
            print()

    def _print_qr_code(self, session: PairingSession):
        """Print the QR as ASCII when the raw code is known, else save the image."""
        image = session.qr_image

        print()
        print("=" * 70)
        print("SCAN THIS QR CODE WITH WHATSAPP")
        print("=" * 70)
        print()

        if image.raw:
            qr = qrcode.QRCode(
                version=1,
                error_correction=qrcode.constants.ERROR_CORRECT_L,
                box_size=1,
                border=2,
            )
            qr.add_data(image.raw)
            qr.make(fit=True)

            try:
                if sys.stdout.isatty():
                    qr.print_tty()
                else:
                    qr.print_ascii()
            except (OSError, AttributeError):
                qr.print_ascii()
        else:
            path = self.save_qr_image(session)
            print(f"QR image saved to: {path}")
            print("Open it and scan it from your phone.")

        print()
        print("Instructions:")
        print("  1. Open WhatsApp on your phone")
        print("  2. Go to Settings → Linked Devices")
        print("  3. Tap 'Link a Device'")
        print("  4. Scan the QR code")
        print()
        print(f"⏱  Valid for {session.time_remaining_seconds}s")
        print("=" * 70)
        print()

    def save_qr_image(self, session: PairingSession) -> Path:
        """Write the current QR image to qr_dir and return its path."""
        image = session.qr_image
        extension = image.mimetype.split("/")[-1] or "png"
        path = self.qr_dir / f"{session.session_id}-qr.{extension}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(image.image_bytes())
        logger.debug(f"QR image written to {path}")
        return path
