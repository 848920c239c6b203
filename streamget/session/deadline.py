"""One-shot recording deadline."""

import time
import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class DeadlineAlreadyArmedError(RuntimeError):
    """arm() was called twice in one session."""


class DeadlineTimer:
    """Wall-clock limit on the total recording time.

    Expiry runs on a timer thread and does nothing but mark the deadline
    expired and set the cancellation event; the session loop observes the
    event at its suspension points and winds down on its own thread.
    """

    def __init__(self, duration: Optional[float], cancel_event: Optional[threading.Event] = None):
        """Initialize deadline timer.

        Args:
            duration: Seconds of recording allowed, None for no limit
            cancel_event: Event to set on expiry; a private one is created
                          if not given
        """
        self.duration = duration
        self.event = cancel_event if cancel_event is not None else threading.Event()
        self.expired = False
        self.armed_at: Optional[float] = None
        self._timer: Optional[threading.Timer] = None

    @property
    def armed(self) -> bool:
        return self.armed_at is not None

    def arm(self) -> None:
        """Start the countdown. May only be called once."""
        if self.armed:
            raise DeadlineAlreadyArmedError("recording deadline is already armed")
        self.armed_at = time.monotonic()

        if self.duration is None:
            logger.info("No recording time limit")
            return

        self._timer = threading.Timer(self.duration, self._expire)
        self._timer.name = "DeadlineTimer"
        self._timer.daemon = True
        self._timer.start()
        logger.info(f"Recording time limit set: {self.duration:g}s")

    def _expire(self) -> None:
        self.expired = True
        self.event.set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`. Returns True if the cancellation event was set."""
        return self.event.wait(seconds)

    def remaining(self) -> Optional[float]:
        """Seconds left before expiry, None if unarmed or unlimited."""
        if not self.armed or self.duration is None:
            return None
        return max(0.0, self.duration - (time.monotonic() - self.armed_at))

    def cancel(self) -> None:
        """Stop a pending timer. Safe to call more than once."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
