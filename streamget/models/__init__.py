"""Data models for the streamget application."""

from .session import (
    ExitCode,
    SessionOutcome,
    SessionResult,
    SessionState,
    SessionStats,
)
from .events import StateChangeEvent, ProgressEvent

__all__ = [
    "ExitCode",
    "SessionOutcome",
    "SessionResult",
    "SessionState",
    "SessionStats",
    # Pub/sub payloads
    "StateChangeEvent",
    "ProgressEvent",
]
