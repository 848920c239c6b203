"""Unit tests for configuration loading and validation."""

import pytest
from pathlib import Path
from pydantic import ValidationError

from streamget.config import (
    DEFAULT_TIME_LIMIT,
    ConfigError,
    DeadlineAnchor,
    SessionConfig,
    StreamgetConfig,
)


SAMPLE_YAML = """\
stream:
  url: http://radio.example.com/live.mp3
  user_agent: test-agent/1.0
output:
  path: recordings/show.mp3
recording:
  duration: 3600
  anchor: first-byte
connect:
  interval: 20
  period: 600
reconnect:
  interval: 1
  period: 300
  backoff: 2
logging:
  verbosity: 1
  file_path: logs/streamget.log
"""


@pytest.fixture
def config_file(temp_data_dir):
    path = Path(temp_data_dir) / "streamget.yaml"
    path.write_text(SAMPLE_YAML, encoding="utf-8")
    return path


@pytest.mark.unit
class TestSessionConfig:
    """Test cases for SessionConfig validation."""

    def test_defaults(self):
        config = SessionConfig(url="http://a/b", output_path="out.mp3")

        assert config.duration == DEFAULT_TIME_LIMIT
        assert config.anchor is DeadlineAnchor.SESSION_START
        assert config.connect_interval == 2
        assert config.connect_period == -1
        assert config.reconnect_interval == 1
        assert config.reconnect_period == -1
        assert config.reconnect_backoff == 0
        assert config.user_agent.startswith("streamget/")
        assert config.output_path == Path("out.mp3")

    @pytest.mark.parametrize("duration", [-1, 0, None])
    def test_non_positive_duration_is_unlimited(self, duration):
        config = SessionConfig(url="http://a/b", output_path="out.mp3", duration=duration)
        assert config.duration is None

    def test_is_immutable(self):
        config = SessionConfig(url="http://a/b", output_path="out.mp3")
        with pytest.raises(ValidationError):
            config.connect_interval = 10

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            SessionConfig(url="http://a/b", output_path="out.mp3", retries=3)

    def test_rejects_non_http_url(self):
        with pytest.raises(ValidationError):
            SessionConfig(url="ftp://a/b", output_path="out.mp3")

    def test_finite_period_needs_positive_interval(self):
        with pytest.raises(ValidationError):
            SessionConfig(url="http://a/b", output_path="out.mp3",
                          connect_interval=0, connect_period=10)
        with pytest.raises(ValidationError):
            SessionConfig(url="http://a/b", output_path="out.mp3",
                          reconnect_interval=0, reconnect_period=10)

    def test_zero_interval_allowed_when_unlimited(self):
        config = SessionConfig(url="http://a/b", output_path="out.mp3",
                               reconnect_interval=0, reconnect_period=-1)
        assert config.reconnect_interval == 0

    def test_negative_values_rejected(self):
        with pytest.raises(ValidationError):
            SessionConfig(url="http://a/b", output_path="out.mp3", verbosity=-1)
        with pytest.raises(ValidationError):
            SessionConfig(url="http://a/b", output_path="out.mp3", reconnect_backoff=-1)

    def test_anchor_from_string(self):
        config = SessionConfig(url="http://a/b", output_path="out.mp3", anchor="first-byte")
        assert config.anchor is DeadlineAnchor.FIRST_BYTE

    def test_lock_path_defaults_next_to_output(self):
        config = SessionConfig(url="http://a/b", output_path="/data/show.mp3")
        assert config.effective_lock_path == Path("/data/show.mp3.lock")

        config = SessionConfig(url="http://a/b", output_path="/data/show.mp3", lock_path="/run/sg.lock")
        assert config.effective_lock_path == Path("/run/sg.lock")


@pytest.mark.unit
class TestStreamgetConfig:
    """Test cases for the YAML loader."""

    def test_no_file_is_empty(self):
        config = StreamgetConfig()
        assert config.config == {}
        assert config.get("stream.url") is None

    def test_missing_file(self, temp_data_dir):
        with pytest.raises(ConfigError):
            StreamgetConfig(str(Path(temp_data_dir) / "nope.yaml"))

    def test_empty_file(self, temp_data_dir):
        path = Path(temp_data_dir) / "empty.yaml"
        path.write_text("")
        with pytest.raises(ConfigError):
            StreamgetConfig(str(path))

    def test_invalid_yaml(self, temp_data_dir):
        path = Path(temp_data_dir) / "bad.yaml"
        path.write_text("stream: [unclosed")
        with pytest.raises(ConfigError):
            StreamgetConfig(str(path))

    def test_get_dot_notation(self, config_file):
        config = StreamgetConfig(str(config_file))

        assert config.get("stream.url") == "http://radio.example.com/live.mp3"
        assert config.get("connect.period") == 600
        assert config.get("connect.missing", "default") == "default"

    def test_set_dot_notation(self, config_file):
        config = StreamgetConfig(str(config_file))
        config.set("network.read_timeout", 5)
        assert config.get("network.read_timeout") == 5

    def test_relative_paths_resolved(self, config_file):
        config = StreamgetConfig(str(config_file))

        assert config.get("output.path") == str(config_file.parent / "recordings/show.mp3")
        assert config.get("logging.file_path") == str(config_file.parent / "logs/streamget.log")

    def test_to_session_config(self, config_file):
        session = StreamgetConfig(str(config_file)).to_session_config()

        assert session.url == "http://radio.example.com/live.mp3"
        assert session.user_agent == "test-agent/1.0"
        assert session.duration == 3600
        assert session.anchor is DeadlineAnchor.FIRST_BYTE
        assert session.connect_interval == 20
        assert session.connect_period == 600
        assert session.reconnect_backoff == 2
        assert session.verbosity == 1
        assert session.log_path == config_file.parent / "logs/streamget.log"

    def test_overrides_win_and_none_falls_through(self, config_file):
        session = StreamgetConfig(str(config_file)).to_session_config(
            connect_interval=5, connect_period=None, duration=-1
        )

        assert session.connect_interval == 5
        assert session.connect_period == 600
        assert session.duration is None

    def test_missing_url(self):
        with pytest.raises(ConfigError):
            StreamgetConfig().to_session_config(output_path="out.mp3")

    def test_missing_output(self):
        with pytest.raises(ConfigError):
            StreamgetConfig().to_session_config(url="http://a/b")
