"""Append-only output file for captured stream data."""

import os
import logging
from pathlib import Path
from typing import Optional, BinaryIO


logger = logging.getLogger(__name__)


class SinkOpenError(OSError):
    """The output file could not be opened for appending."""


class ShortWriteError(OSError):
    """The output file accepted fewer bytes than were written to it."""

    def __init__(self, requested: int, written: int, path: Path):
        super().__init__(f"short write to {path}: {written} of {requested} bytes")
        self.requested = requested
        self.written = written
        self.path = path


class AppendSink:
    """Binary append-only file that is only created on the first write.

    Pre-existing content is preserved. Writes go straight to the file
    descriptor (unbuffered) so a write's return value is the number of
    bytes the filesystem accepted.
    """

    def __init__(self, path):
        """Initialize sink.

        Args:
            path: Output file path; opened lazily in append mode
        """
        self.path = Path(path)
        self.bytes_written = 0
        self._file: Optional[BinaryIO] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def open(self) -> None:
        """Open the output file for appending if it is not open yet."""
        if self._file is not None:
            return
        if self._closed:
            raise SinkOpenError(f"sink for {self.path} is already closed")
        try:
            self._file = open(self.path, 'ab', buffering=0)
        except OSError as e:
            logger.error(f"Couldn't open output file '{self.path}': {e}")
            raise SinkOpenError(f"couldn't open output file '{self.path}': {e}") from e
        logger.info(f"Opened output file: {self.path}")

    def write(self, data: bytes) -> int:
        """Append data to the output file.

        Returns:
            Number of bytes written, always len(data)

        Raises:
            SinkOpenError: If the file could not be opened
            ShortWriteError: If fewer than len(data) bytes were written
        """
        if not data:
            return 0
        self.open()
        written = self._file.write(data) or 0
        if written != len(data):
            if written > 0:
                self.bytes_written += written
            raise ShortWriteError(len(data), written, self.path)
        self.bytes_written += written
        return written

    def close(self) -> None:
        """Flush data to disk and close the file. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._file is None:
            return
        try:
            os.fsync(self._file.fileno())
        except OSError as e:
            logger.warning(f"fsync failed for {self.path}: {e}")
        finally:
            self._file.close()
            self._file = None
        logger.info(f"Closed output file {self.path} ({self.bytes_written} bytes written)")

    def __enter__(self) -> "AppendSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
