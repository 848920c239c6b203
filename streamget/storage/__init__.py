"""Output storage."""

from .sink import AppendSink, ShortWriteError, SinkOpenError

__all__ = [
    "AppendSink",
    "ShortWriteError",
    "SinkOpenError",
]
