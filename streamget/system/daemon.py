"""Detach the process from its controlling terminal."""

import os
import sys
import logging

logger = logging.getLogger(__name__)


class DaemonizeError(OSError):
    """fork() or redirecting the standard streams failed."""


def _fork_and_exit_parent() -> None:
    try:
        pid = os.fork()
    except OSError as e:
        raise DaemonizeError(f"fork() failed: {e}") from e
    if pid != 0:
        os._exit(0)


def daemonize(redirect_to: str = os.devnull) -> int:
    """Double-fork into the background.

    Must run before the output and log files are opened so the daemon's
    descriptors point at their final destinations. The working directory
    and umask are kept, so relative output paths still resolve.

    Args:
        redirect_to: Where stdin, stdout and stderr are pointed

    Returns:
        PID of the daemon process
    """
    sys.stdout.flush()
    sys.stderr.flush()

    _fork_and_exit_parent()
    os.setsid()
    # second fork: the session leader exits so the daemon can never reacquire a terminal
    _fork_and_exit_parent()

    try:
        fd = os.open(redirect_to, os.O_RDWR)
    except OSError as e:
        raise DaemonizeError(f"open('{redirect_to}') failed: {e}") from e
    try:
        for std_fd in (0, 1, 2):
            os.dup2(fd, std_fd)
    finally:
        if fd > 2:
            os.close(fd)

    return os.getpid()
