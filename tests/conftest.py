"""Pytest configuration and fixtures for streamget tests."""

import pytest
import tempfile
import threading
import logging
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock

from streamget.config import SessionConfig
from streamget.source.base import AbstractByteSource, ByteSourceError, StreamHandle


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no network")
    config.addinivalue_line("markers", "integration: tests against a local HTTP server")


class FakeStreamHandle(StreamHandle):
    """Stream handle that replays a scripted list of read results.

    Script items are bytes (a chunk, b"" for end of stream), None (read
    timed out) or an exception instance to raise. When the script runs out
    the handle reports end of stream, or blocks like a stalled server when
    `block_when_done` is set.
    """

    def __init__(self, script: List, block_when_done: bool = False):
        self.script = list(script)
        self.block_when_done = block_when_done
        self.close_calls = 0
        self.reads = 0
        self._unblock = threading.Event()

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def read(self, max_bytes: int, timeout: float) -> Optional[bytes]:
        self.reads += 1
        if self.closed:
            raise ByteSourceError("read from a closed stream")
        if not self.script:
            if self.block_when_done:
                self._unblock.wait(timeout)
                return None
            return b""
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        if item:
            assert len(item) <= max_bytes
        return item

    def close(self) -> None:
        self.close_calls += 1


# script entry: an open that never gets an answer
HANG = object()


class FakeByteSource(AbstractByteSource):
    """Byte source whose successive open() calls follow a script.

    Each script entry is an exception instance (open fails), a
    FakeStreamHandle to hand out, or HANG (the open blocks until its cancel
    event is set, like a server that never answers). Once the script is
    used up every open fails.
    """

    def __init__(self, script: Optional[List] = None):
        super().__init__(user_agent="streamget-tests")
        self.script = list(script or [])
        self.opened_urls: List[str] = []
        self.handles: List[FakeStreamHandle] = []
        self.cancel_events: List[Optional[threading.Event]] = []
        self.close_calls = 0

    def open(self, url: str, cancel_event: Optional[threading.Event] = None) -> FakeStreamHandle:
        self.opened_urls.append(url)
        self.cancel_events.append(cancel_event)
        if not self.script:
            raise ByteSourceError("connection refused")
        item = self.script.pop(0)
        if item is HANG:
            assert cancel_event is not None and cancel_event.wait(10.0)
            raise ByteSourceError("open abandoned")
        if isinstance(item, Exception):
            raise item
        self.handles.append(item)
        return item

    def close(self) -> None:
        self.close_calls += 1

    @property
    def open_attempts(self) -> int:
        return len(self.opened_urls)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def output_path(temp_data_dir):
    return Path(temp_data_dir) / "recording.mp3"


@pytest.fixture
def make_config(output_path):
    """Factory for SessionConfig with fast test defaults."""
    def _make(**overrides):
        values = dict(
            url="http://radio.example.com/live.mp3",
            output_path=output_path,
            duration=-1,
            connect_interval=0.01,
            connect_period=-1,
            reconnect_interval=0.01,
            reconnect_period=-1,
            poll_interval=0.01,
            read_timeout=0,
            chunk_size=1024,
        )
        values.update(overrides)
        return SessionConfig(**values)
    return _make


@pytest.fixture
def mock_publisher():
    """Publisher stand-in recording every published event."""
    publisher = Mock()
    publisher.publish_state.return_value = None
    publisher.publish_progress.return_value = None
    return publisher


@pytest.fixture
def binary_payload():
    """A chunk of stream data including NULs, CR/LF and other control bytes."""
    return bytes(range(256)) * 4


@pytest.fixture
def stream_handle():
    """The FakeStreamHandle class, for building scripted connections."""
    return FakeStreamHandle


@pytest.fixture
def byte_source():
    """The FakeByteSource class, for scripting successive opens."""
    return FakeByteSource


@pytest.fixture
def published_states():
    """Returns the states a mock publisher saw, in order."""
    def _states(publisher: Mock) -> List[str]:
        return [c.args[0].current.value for c in publisher.publish_state.call_args_list]
    return _states


@pytest.fixture
def hanging_open():
    """Script entry for FakeByteSource: an open that waits on its cancel event."""
    return HANG
