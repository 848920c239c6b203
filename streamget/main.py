"""Main application entry point for streamget."""

import sys
import signal
import argparse
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from . import __version__
from .config import ConfigError, DeadlineAnchor, SessionConfig, StreamgetConfig
from .models.session import ExitCode, SessionResult
from .services.status_reporter import SessionStatusReporter
from .session.controller import SessionController
from .source.http import HttpByteSource
from .system.daemon import DaemonizeError, daemonize
from .system.lock import LockError, ProcessLock

logger = logging.getLogger(__name__)


class StreamgetApp:
    """Wires the HTTP source, the session controller and console reporting."""

    def __init__(self, config: SessionConfig, show_summary: bool = True):
        self.config = config
        self.show_summary = show_summary
        self.source: Optional[HttpByteSource] = None
        self.controller: Optional[SessionController] = None
        self.reporter: Optional[SessionStatusReporter] = None

    def init(self) -> None:
        logger.info("Initializing session...")
        self.source = HttpByteSource(
            user_agent=self.config.user_agent,
            open_timeout=self.config.open_timeout,
            poll_interval=self.config.poll_interval,
        )
        self.controller = SessionController(self.config, self.source)
        if self.show_summary:
            self.reporter = SessionStatusReporter()

    def _on_signal(self, signum, frame) -> None:
        # flags only; the session loop does the rest
        self.controller.request_stop()

    def run(self) -> SessionResult:
        if self.controller is None:
            self.init()

        previous = {sig: signal.signal(sig, self._on_signal)
                    for sig in (signal.SIGTERM, signal.SIGINT)}
        try:
            result = self.controller.run()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
            self.cleanup()

        if self.reporter:
            self.reporter.print_summary(result)
        return result

    def cleanup(self) -> None:
        if self.source:
            self.source.close()
        if self.reporter:
            self.reporter.shutdown()


def verbosity_to_level(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(log_file_path: Optional[Path] = None, verbosity: int = 0) -> None:
    """Set up logging: console by verbosity, plus a full DEBUG log file if configured."""
    handlers = []
    console_level = verbosity_to_level(verbosity)

    if log_file_path:
        log_dir = Path(log_file_path).parent
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    console_handler.setFormatter(console_formatter)
    handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG if log_file_path else console_level)
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info(f"streamget {__version__} starting up")
    if log_file_path:
        logger.info(f"Log file: {log_file_path}")
    logger.info(f"Console log level: {logging.getLevelName(console_level)}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamget",
        description="streamget - record a live HTTP stream to a file, reconnecting when it drops",
        epilog="Periods and time limit of -1 mean unlimited."
    )

    parser.add_argument("-u", "--url", help="URL to get")
    parser.add_argument("-o", "--output", type=Path, help="file to append output to")
    parser.add_argument("--config", type=str, help="path to a YAML configuration file")
    parser.add_argument(
        "-l", "--time-limit", type=float,
        help="in secs, total recording time (default: 4*3600, -1=infinite)"
    )
    parser.add_argument(
        "--anchor", choices=[a.value for a in DeadlineAnchor],
        help="start the time limit at session start or at the first received byte"
    )
    parser.add_argument(
        "-c", "--connect-timeout", type=float,
        help="in secs, time between initial connect attempts (default: 2)"
    )
    parser.add_argument(
        "-p", "--connect-period", type=float,
        help="in secs, total period to try to connect (default: -1=infinite)"
    )
    parser.add_argument(
        "-r", "--reconnect-timeout", type=float,
        help="in secs, time between reconnect attempts (default: 1)"
    )
    parser.add_argument(
        "-e", "--reconnect-period", type=float,
        help="in secs, total period to try to reconnect (default: -1=infinite)"
    )
    parser.add_argument(
        "-b", "--reconnect-backoff", type=float,
        help="in secs, added to reconnect-timeout after each failed attempt (default: 0)"
    )
    parser.add_argument("--read-timeout", type=float,
                        help="in secs, drop a connection that sends nothing this long (0=never)")
    parser.add_argument("--user-agent", type=str, help="User-Agent header to send")
    parser.add_argument("--log-file", type=Path, help="also write a full debug log here")
    parser.add_argument("--lock-file", type=Path, help="lock file (default: OUTPUT.lock)")
    parser.add_argument("--no-lock", action="store_true", help="don't take the instance lock")
    parser.add_argument("--daemon", action="store_true", help="detach and run in the background")
    parser.add_argument("-v", "--verbose", action="count", help="more diagnostics (repeatable)")
    parser.add_argument("-d", "--debug", action="store_true", help="enable debugging (same as -vv)")
    parser.add_argument("--version", action="version", version=f"streamget {__version__}")
    return parser


def load_session_config(args: argparse.Namespace) -> SessionConfig:
    """Merge the YAML file (if any) with command-line overrides."""
    verbosity = args.verbose
    if args.debug:
        verbosity = max(verbosity or 0, 2)

    file_config = StreamgetConfig(args.config)
    return file_config.to_session_config(
        url=args.url,
        output_path=args.output,
        log_path=args.log_file,
        lock_path=args.lock_file,
        duration=args.time_limit,
        anchor=args.anchor,
        connect_interval=args.connect_timeout,
        connect_period=args.connect_period,
        reconnect_interval=args.reconnect_timeout,
        reconnect_period=args.reconnect_period,
        reconnect_backoff=args.reconnect_backoff,
        read_timeout=args.read_timeout,
        user_agent=args.user_agent,
        verbosity=verbosity,
    )


def main(argv=None) -> None:
    """Main entry point for streamget."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_session_config(args)
    except (ConfigError, ValidationError) as e:
        print(f"Error: {e}\n", file=sys.stderr)
        parser.print_usage(sys.stderr)
        sys.exit(ExitCode.USAGE)

    if args.daemon:
        try:
            daemonize()
        except DaemonizeError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(ExitCode.DAEMONIZE_FAILED)

    setup_logging(config.log_path, config.verbosity)

    lock = None if args.no_lock else ProcessLock(config.effective_lock_path)
    if lock:
        try:
            lock.acquire()
        except LockError as e:
            logger.error(f"Another recording is running: {e}")
            sys.exit(ExitCode.LOCKED)

    app = StreamgetApp(config, show_summary=not args.daemon)
    try:
        result = app.run()
    finally:
        if lock:
            lock.release()

    sys.exit(int(result.exit_code))


if __name__ == "__main__":
    main()
