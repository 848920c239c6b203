"""Advisory process lock preventing two recordings of the same output."""

import os
import fcntl
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class LockError(OSError):
    """Another process holds the lock, or the lock file can't be opened."""


class ProcessLock:
    """Exclusive flock() on a lock file, held for the life of the process."""

    def __init__(self, path):
        self.path = Path(path)
        self.fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self.fd is not None

    def acquire(self) -> None:
        """Take the lock and write our PID into the lock file.

        Raises:
            LockError: If another process holds the lock
        """
        if self.fd is not None:
            return
        try:
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise LockError(f"couldn't open lock file '{self.path}': {e}") from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            os.close(fd)
            holder = self.read_pid()
            owner = f" by PID {holder}" if holder else ""
            raise LockError(f"'{self.path}' is locked{owner}") from e

        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode())
        self.fd = fd
        logger.info(f"Acquired lock {self.path}")

    def read_pid(self) -> Optional[int]:
        """PID recorded in the lock file, if any."""
        try:
            with open(self.path, 'r') as f:
                return int(f.read().strip())
        except (FileNotFoundError, ValueError, OSError):
            return None

    def release(self) -> None:
        """Drop the lock. Safe to call more than once."""
        if self.fd is None:
            return
        try:
            fcntl.flock(self.fd, fcntl.LOCK_UN)
        finally:
            os.close(self.fd)
            self.fd = None
        logger.debug(f"Released lock {self.path}")

    def __enter__(self) -> "ProcessLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
