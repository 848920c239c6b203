"""Services layer for session event reporting."""

from .publisher import SessionEventPublisher, STATE_TOPIC, PROGRESS_TOPIC
from .status_reporter import SessionStatusReporter

__all__ = [
    "SessionEventPublisher",
    "SessionStatusReporter",
    "STATE_TOPIC",
    "PROGRESS_TOPIC",
]
