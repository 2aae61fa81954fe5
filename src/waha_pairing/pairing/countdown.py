"""QR validity countdown."""


class QrCountdown:
    """
    Counts a QR code's remaining lifetime down one tick at a time.

    Never goes below zero; `reset()` restores the full window.
    """

    def __init__(self, window_seconds: int = 120):
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")
        self.window_seconds = window_seconds
        self.remaining = window_seconds

    @property
    def expired(self) -> bool:
        return self.remaining == 0

    def tick(self) -> bool:
        """Decrement by one. Returns True when the window has run out."""
        if self.remaining > 0:
            self.remaining -= 1
        return self.remaining == 0

    def reset(self):
        self.remaining = self.window_seconds
