"""Front ends for the pairing flow."""

from .terminal import TerminalPairingUI
from .web import WebPairingUI

__all__ = ["TerminalPairingUI", "WebPairingUI"]
