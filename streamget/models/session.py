"""Session-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional


class SessionState(Enum):
    """Lifecycle state of a capture session."""
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"
    DONE = "done"


class ExitCode(IntEnum):
    """Process exit codes."""
    OK = 0
    USAGE = 1
    SINK_OPEN_FAILED = 2
    SHORT_WRITE = 3
    LOCKED = 4
    DAEMONIZE_FAILED = 5


class SessionOutcome(Enum):
    """Why a session reached the DONE state."""
    DEADLINE = "deadline"
    CONNECT_EXHAUSTED = "connect-exhausted"
    RECONNECT_EXHAUSTED = "reconnect-exhausted"
    STOPPED = "stopped"
    SINK_OPEN_FAILED = "sink-open-failed"
    SHORT_WRITE = "short-write"

    @property
    def exit_code(self) -> ExitCode:
        if self is SessionOutcome.SINK_OPEN_FAILED:
            return ExitCode.SINK_OPEN_FAILED
        if self is SessionOutcome.SHORT_WRITE:
            return ExitCode.SHORT_WRITE
        return ExitCode.OK

    @property
    def is_fatal(self) -> bool:
        return self.exit_code is not ExitCode.OK


@dataclass
class SessionStats:
    """Mutable counters for a running session."""
    bytes_written: int = 0
    connections: int = 0
    reconnections: int = 0
    failed_attempts: int = 0
    started_at: Optional[datetime] = None
    first_byte_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def has_data(self) -> bool:
        """True once any byte has been appended to the sink."""
        return self.bytes_written > 0

    @property
    def duration_seconds(self) -> float:
        if not self.started_at:
            return 0.0
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()


@dataclass
class SessionResult:
    """Final result returned by SessionController.run()."""
    outcome: SessionOutcome
    stats: SessionStats = field(default_factory=SessionStats)
    error: Optional[str] = None

    @property
    def exit_code(self) -> ExitCode:
        return self.outcome.exit_code
