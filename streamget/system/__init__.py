"""Operating-system collaborators: daemonization and locking."""

from .daemon import DaemonizeError, daemonize
from .lock import LockError, ProcessLock

__all__ = [
    "DaemonizeError",
    "daemonize",
    "LockError",
    "ProcessLock",
]
