"""Basic tests for slack-webhook-log."""

import math
from pathlib import Path

import pytest

from slack_webhook_log import __version__
from slack_webhook_log.config import SinkConfig
from slack_webhook_log.errors import ConfigurationError

ENV_VARS = [
    "SLACK_WEBHOOK_URL",
    "SLACK_CHANNEL",
    "SLACK_USERNAME",
    "SLACK_ICON_EMOJI",
    "SLACK_ICON_URL",
    "SLACK_UNFURL_LINKS",
    "SLACK_LIMIT_PER_SECOND",
    "SLACK_LIMIT_WINDOW_SECONDS",
    "SLACK_SINK_NAME",
    "SLACK_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_version() -> None:
    """Test that version is defined."""
    assert __version__ == "0.1.0"


def test_config_defaults() -> None:
    config = SinkConfig.from_env()

    assert config.webhook_url == ""
    assert config.unfurl_links is False
    assert config.limit_per_second == math.inf
    assert config.limit_window_seconds == 30.0
    assert config.name == "slack-webhook"
    assert config.level == "info"


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test loading config from environment variables."""
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://hooks.slack.test/services/T0/B0/XYZ")
    monkeypatch.setenv("SLACK_CHANNEL", "#alerts")
    monkeypatch.setenv("SLACK_USERNAME", "bot")
    monkeypatch.setenv("SLACK_ICON_EMOJI", ":fire:")
    monkeypatch.setenv("SLACK_UNFURL_LINKS", "true")
    monkeypatch.setenv("SLACK_LIMIT_PER_SECOND", "0.5")
    monkeypatch.setenv("SLACK_LIMIT_WINDOW_SECONDS", "60")
    monkeypatch.setenv("SLACK_LOG_LEVEL", "warn")

    config = SinkConfig.from_env()

    assert config.channel == "#alerts"
    assert config.username == "bot"
    assert config.icon_emoji == ":fire:"
    assert config.unfurl_links is True
    assert config.limit_per_second == 0.5
    assert config.limit_window_seconds == 60.0
    assert config.level == "warn"
    assert config.endpoint.host == "hooks.slack.test"
    assert config.endpoint.path == "/services/T0/B0/XYZ"


def test_config_bad_number(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SLACK_LIMIT_PER_SECOND", "lots")
    with pytest.raises(ConfigurationError):
        SinkConfig.from_env()


def test_config_from_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """YAML values apply unless overridden by the environment."""
    path = tmp_path / "slack.yaml"
    path.write_text(
        "slack:\n"
        "  webhook_url: https://hooks.slack.test/from-file\n"
        "  channel: '#file'\n"
        "  username: file-bot\n"
        "  unfurl_links: true\n"
        "  limit:\n"
        "    per_second: 2\n"
        "    window_seconds: 10\n"
    )
    monkeypatch.setenv("SLACK_CHANNEL", "#env")

    config = SinkConfig.from_file(path)

    assert config.webhook_url == "https://hooks.slack.test/from-file"
    assert config.channel == "#env"
    assert config.username == "file-bot"
    assert config.unfurl_links is True
    assert config.limit_per_second == 2.0
    assert config.limit_window_seconds == 10.0


def test_config_missing_file(tmp_path: Path) -> None:
    config = SinkConfig.from_file(tmp_path / "missing.yaml")
    assert config == SinkConfig()


def test_endpoint_requires_url() -> None:
    with pytest.raises(ConfigurationError):
        SinkConfig().endpoint
