"""Event models for pub/sub session reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .session import SessionState


@dataclass
class StateChangeEvent:
    """Published on every session state transition."""
    previous: SessionState
    current: SessionState
    bytes_written: int
    reason: Optional[str] = None  # e.g. "connected", "reconnected", "eof"
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ProgressEvent:
    """Published after each chunk is appended to the sink."""
    chunk_size: int
    bytes_written: int  # cumulative for the session
    connection_bytes: int  # bytes received on the current connection
    timestamp: datetime = field(default_factory=datetime.now)
