"""Connection-lifecycle state machine for a capture session."""

import time
import logging
import threading
from datetime import datetime
from typing import Optional

from ..config import DeadlineAnchor, SessionConfig
from ..models.events import ProgressEvent, StateChangeEvent
from ..models.session import SessionOutcome, SessionResult, SessionState, SessionStats
from ..services.publisher import SessionEventPublisher
from ..source.base import AbstractByteSource, ByteSourceError, StreamHandle
from ..storage.sink import AppendSink, ShortWriteError, SinkOpenError
from .deadline import DeadlineTimer
from .retry import Phase, PhaseBudget, RetryPolicy

logger = logging.getLogger(__name__)


class SessionController:
    """Drives a ByteSource into an AppendSink until the session is done.

    The session connects under the connect policy until the first byte has
    been written, and from then on uses the reconnect policy for good. It
    ends when the active retry budget runs out, when the recording deadline
    expires, when a stop is requested, or on a fatal sink error.
    """

    def __init__(
        self,
        config: SessionConfig,
        source: AbstractByteSource,
        sink: Optional[AppendSink] = None,
        publisher: Optional[SessionEventPublisher] = None,
    ):
        """Initialize session controller.

        Args:
            config: Immutable session settings
            source: Transport used to open the stream URL
            sink: Output file; defaults to an AppendSink on config.output_path
            publisher: Event publisher for state and progress events
        """
        self.config = config
        self.source = source
        self.sink = sink if sink is not None else AppendSink(config.output_path)
        self.publisher = publisher if publisher is not None else SessionEventPublisher()

        # Set by the deadline timer or request_stop(); observed at every suspension point
        self.cancel_event = threading.Event()
        self.deadline = DeadlineTimer(config.duration, self.cancel_event)
        self.stop_requested = False

        self.connect_policy = RetryPolicy(config.connect_interval, config.connect_period)
        self.reconnect_policy = RetryPolicy(
            config.reconnect_interval, config.reconnect_period, config.reconnect_backoff
        )
        self.budget = PhaseBudget.start(Phase.CONNECT, self.connect_policy)

        self.state = SessionState.IDLE
        self.stats = SessionStats()
        self._has_run = False

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def request_stop(self) -> None:
        """Ask the session to end at its next suspension point.

        Only sets flags, so it may be called from a signal handler.
        """
        self.stop_requested = True
        self.cancel_event.set()

    def run(self) -> SessionResult:
        """Run the session to completion and return its result."""
        if self._has_run:
            raise RuntimeError("SessionController.run() may only be called once")
        self._has_run = True

        self.stats.started_at = datetime.now()
        logger.info(f"Recording '{self.config.url}' to {self.config.output_path}")
        self._transition(SessionState.CONNECTING)

        if self.config.anchor is DeadlineAnchor.SESSION_START:
            self.deadline.arm()

        try:
            with self.sink:
                outcome = self._loop()
        except SinkOpenError as e:
            return self._finish(SessionOutcome.SINK_OPEN_FAILED, str(e))
        except ShortWriteError as e:
            # the partial chunk is on disk
            self.stats.bytes_written = self.sink.bytes_written
            logger.error(f"Write to output file failed: {e}")
            return self._finish(SessionOutcome.SHORT_WRITE, str(e))
        finally:
            self.deadline.cancel()

        return self._finish(outcome)

    def _loop(self) -> SessionOutcome:
        while True:
            if self.cancelled:
                return self._cancel_outcome()

            received = self._attempt()

            if self.cancelled:
                return self._cancel_outcome()

            if received:
                self._enter_reconnecting()

            if not self.budget.consume():
                return self._exhausted_outcome()

            delay = self.budget.next_delay()
            logger.debug(f"Retrying '{self.config.url}' in {delay:g}s ({self.budget.describe()})")
            if self.deadline.wait(delay):
                return self._cancel_outcome()

    def _attempt(self) -> int:
        """Open the source once and pump it until the connection ends.

        Returns:
            Number of bytes received on this connection
        """
        url = self.config.url
        logger.debug(f"Attempt ({self.budget.describe()}) URL '{url}'")
        try:
            handle = self.source.open(url, self.cancel_event)
        except ByteSourceError as e:
            self.stats.failed_attempts += 1
            logger.debug(f"Failed to open URL '{url}': {e}")
            return 0

        with handle:
            received = self._pump(handle)

        if not received:
            self.stats.failed_attempts += 1
            logger.debug(f"No data received from '{url}'")
        return received

    def _pump(self, handle: StreamHandle) -> int:
        received = 0
        last_data = time.monotonic()

        while not self.cancelled:
            try:
                chunk = handle.read(self.config.chunk_size, self.config.poll_interval)
            except ByteSourceError as e:
                logger.info(f"Stream error: {e}")
                break

            if chunk is None:
                stalled = time.monotonic() - last_data
                if self.config.read_timeout and stalled >= self.config.read_timeout:
                    logger.warning(f"No data for {stalled:.1f}s, dropping connection")
                    break
                continue

            if not chunk:
                logger.debug("End of stream")
                break

            if not received:
                self._on_connected()

            self.sink.write(chunk)
            received += len(chunk)
            self.stats.bytes_written += len(chunk)
            last_data = time.monotonic()

            self.publisher.publish_progress(ProgressEvent(
                chunk_size=len(chunk),
                bytes_written=self.stats.bytes_written,
                connection_bytes=received,
            ))

        return received

    def _on_connected(self) -> None:
        """First data on a connection."""
        reconnected = self.stats.has_data
        self.stats.connections += 1

        if reconnected:
            self.stats.reconnections += 1
            logger.info(f"Reconnected to '{self.config.url}'")
        else:
            self.sink.open()
            self.stats.first_byte_at = datetime.now()
            logger.info(f"Connected to '{self.config.url}'")
            if self.config.anchor is DeadlineAnchor.FIRST_BYTE:
                self.deadline.arm()

        self.budget = PhaseBudget.start(Phase.RECONNECT, self.reconnect_policy)
        self._transition(SessionState.STREAMING, "reconnected" if reconnected else "connected")

    def _enter_reconnecting(self) -> None:
        self.budget = PhaseBudget.start(Phase.RECONNECT, self.reconnect_policy)
        logger.info(f"Lost connection to '{self.config.url}' "
                    f"({self.stats.bytes_written} bytes so far), {self.budget.describe()}")
        self._transition(SessionState.RECONNECTING, "connection lost")

    def _cancel_outcome(self) -> SessionOutcome:
        if self.deadline.expired:
            logger.info("Recording time expired")
            return SessionOutcome.DEADLINE
        logger.info("Stop requested")
        return SessionOutcome.STOPPED

    def _exhausted_outcome(self) -> SessionOutcome:
        if self.budget.phase is Phase.CONNECT:
            logger.info(f"Connect-period of {self.config.connect_period:g} seconds expired, "
                        f"failed to open URL '{self.config.url}'")
            return SessionOutcome.CONNECT_EXHAUSTED
        logger.info(f"Reconnect-period of {self.config.reconnect_period:g} seconds expired, "
                    f"failed to reopen URL '{self.config.url}'")
        return SessionOutcome.RECONNECT_EXHAUSTED

    def _finish(self, outcome: SessionOutcome, error: Optional[str] = None) -> SessionResult:
        self.stats.finished_at = datetime.now()
        self._transition(SessionState.DONE, outcome.value)
        logger.info(f"Session done ({outcome.value}): {self.stats.bytes_written} bytes "
                    f"in {self.stats.duration_seconds:.1f}s")
        return SessionResult(outcome=outcome, stats=self.stats, error=error)

    def _transition(self, new_state: SessionState, reason: Optional[str] = None) -> None:
        previous = self.state
        if previous is new_state:
            return
        self.state = new_state
        logger.debug(f"State {previous.value} -> {new_state.value}")
        self.publisher.publish_state(StateChangeEvent(
            previous=previous,
            current=new_state,
            bytes_written=self.stats.bytes_written,
            reason=reason,
        ))
