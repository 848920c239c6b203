"""Abstract base classes for byte sources."""

from abc import ABC, abstractmethod
import threading
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class ByteSourceError(Exception):
    """Opening or reading a source failed (a network condition, never fatal)."""


class StreamHandle(ABC):
    """An open stream returned by AbstractByteSource.open()."""

    @abstractmethod
    def read(self, max_bytes: int, timeout: float) -> Optional[bytes]:
        """Read up to max_bytes from the stream.

        Args:
            max_bytes: Upper bound on the size of the returned chunk
            timeout: Seconds to wait for data before giving control back

        Returns:
            The chunk, b"" at end of stream, or None if nothing arrived
            within timeout

        Raises:
            ByteSourceError: If the transfer broke off
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the stream. Safe to call more than once."""
        pass

    def __enter__(self) -> "StreamHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class AbstractByteSource(ABC):
    """Abstract base class for stream transports."""

    def __init__(self, user_agent: str):
        """Initialize source with the User-Agent sent on every open."""
        self.user_agent = user_agent

    @abstractmethod
    def open(self, url: str, cancel_event: Optional[threading.Event] = None) -> StreamHandle:
        """Open url for reading.

        Args:
            url: Stream URL
            cancel_event: When set while the open is pending, the open is
                          abandoned and ByteSourceError is raised

        Raises:
            ByteSourceError: If the stream is not available
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release transport resources."""
        pass
