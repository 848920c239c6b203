"""Stream transports."""

from .base import AbstractByteSource, ByteSourceError, StreamHandle
from .http import HttpByteSource, HttpStreamHandle

__all__ = [
    "AbstractByteSource",
    "ByteSourceError",
    "StreamHandle",
    "HttpByteSource",
    "HttpStreamHandle",
]
