"""Console status reporter for foreground sessions.

Subscribes to the session topics, keeps the transition history and the
latest byte count, and prints a rich summary table when the session ends.
"""

import logging
import threading
from typing import List, Optional

from pubsub import pub
from rich.console import Console
from rich.table import Table

from ..models.events import ProgressEvent, StateChangeEvent
from ..models.session import SessionResult
from .publisher import PROGRESS_TOPIC, STATE_TOPIC

logger = logging.getLogger(__name__)


class SessionStatusReporter:
    """Collects session events and renders them on the console."""

    def __init__(self,
                 console: Optional[Console] = None,
                 state_topic: str = STATE_TOPIC,
                 progress_topic: str = PROGRESS_TOPIC):
        """Initialize status reporter.

        Args:
            console: Rich console to print to (stderr by default)
            state_topic: Topic for state transitions
            progress_topic: Topic for progress events
        """
        self.console = console or Console(stderr=True)
        self.state_topic = state_topic
        self.progress_topic = progress_topic

        self.transitions: List[StateChangeEvent] = []
        self.last_progress: Optional[ProgressEvent] = None
        self.lock = threading.Lock()

        pub.subscribe(self._on_state, state_topic)
        pub.subscribe(self._on_progress, progress_topic)
        logger.debug(f"SessionStatusReporter subscribed to {state_topic}, {progress_topic}")

    def _on_state(self, event: StateChangeEvent) -> None:
        with self.lock:
            self.transitions.append(event)

    def _on_progress(self, event: ProgressEvent) -> None:
        with self.lock:
            self.last_progress = event

    def build_summary(self, result: SessionResult) -> Table:
        """Build the end-of-session summary table."""
        stats = result.stats
        table = Table(title="streamget session", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")

        style = "red" if result.outcome.is_fatal else "green"
        table.add_row("Outcome", f"[{style}]{result.outcome.value}[/{style}]")
        table.add_row("Bytes written", f"{stats.bytes_written:,}")
        table.add_row("Connections", str(stats.connections))
        table.add_row("Reconnections", str(stats.reconnections))
        table.add_row("Failed attempts", str(stats.failed_attempts))
        table.add_row("Duration", f"{stats.duration_seconds:.1f}s")
        if stats.first_byte_at:
            table.add_row("First byte", stats.first_byte_at.strftime('%H:%M:%S'))
        if result.error:
            table.add_row("Error", f"[red]{result.error}[/red]")

        with self.lock:
            last_progress = self.last_progress
            path = " -> ".join(event.current.value for event in self.transitions)
        if last_progress:
            table.add_row("Last data", last_progress.timestamp.strftime('%H:%M:%S'))
        if path:
            table.add_row("States", path)
        return table

    def print_summary(self, result: SessionResult) -> None:
        self.console.print(self.build_summary(result))

    def shutdown(self) -> None:
        """Unsubscribe from the session topics."""
        for handler, topic in ((self._on_state, self.state_topic),
                               (self._on_progress, self.progress_topic)):
            try:
                pub.unsubscribe(handler, topic)
            except Exception as e:
                logger.warning(f"Error during unsubscribe from {topic}: {e}")
