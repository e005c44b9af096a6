"""Configuration loading for slack-webhook-log."""

import math
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from slack_webhook_log.errors import ConfigurationError
from slack_webhook_log.sink.delivery import WebhookEndpoint

_TRUE = {"1", "true", "yes", "on"}


def _parse_float(name: str, value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


@dataclass
class SinkConfig:
    """Webhook sink configuration."""

    webhook_url: str = ""
    channel: str = ""
    username: str = ""
    icon_emoji: str = ""
    icon_url: str = ""
    unfurl_links: bool = False
    limit_per_second: float = math.inf
    limit_window_seconds: float = 30.0
    name: str = "slack-webhook"
    level: str = "info"

    @property
    def endpoint(self) -> WebhookEndpoint:
        """Parsed webhook URL. Raises ConfigurationError if malformed."""
        return WebhookEndpoint.parse(self.webhook_url)

    @classmethod
    def from_env(cls) -> "SinkConfig":
        """Load configuration from environment variables."""
        env = os.environ
        return cls(
            webhook_url=env.get("SLACK_WEBHOOK_URL", ""),
            channel=env.get("SLACK_CHANNEL", ""),
            username=env.get("SLACK_USERNAME", ""),
            icon_emoji=env.get("SLACK_ICON_EMOJI", ""),
            icon_url=env.get("SLACK_ICON_URL", ""),
            unfurl_links=env.get("SLACK_UNFURL_LINKS", "").lower() in _TRUE,
            limit_per_second=_parse_float(
                "SLACK_LIMIT_PER_SECOND", env.get("SLACK_LIMIT_PER_SECOND"), math.inf
            ),
            limit_window_seconds=_parse_float(
                "SLACK_LIMIT_WINDOW_SECONDS", env.get("SLACK_LIMIT_WINDOW_SECONDS"), 30.0
            ),
            name=env.get("SLACK_SINK_NAME", "slack-webhook"),
            level=env.get("SLACK_LOG_LEVEL", "info"),
        )

    @classmethod
    def from_file(cls, path: Path) -> "SinkConfig":
        """Load configuration from YAML file, with env var overrides.

        Only the ``slack`` section is read. Values set in the environment
        win over values in the file.
        """
        config = cls.from_env()

        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f)

            if data and "slack" in data:
                slack = data["slack"] or {}
                env = os.environ

                if "SLACK_WEBHOOK_URL" not in env:
                    config.webhook_url = slack.get("webhook_url", config.webhook_url)
                if "SLACK_CHANNEL" not in env:
                    config.channel = slack.get("channel", config.channel)
                if "SLACK_USERNAME" not in env:
                    config.username = slack.get("username", config.username)
                if "SLACK_ICON_EMOJI" not in env:
                    config.icon_emoji = slack.get("icon_emoji", config.icon_emoji)
                if "SLACK_ICON_URL" not in env:
                    config.icon_url = slack.get("icon_url", config.icon_url)
                if "SLACK_UNFURL_LINKS" not in env:
                    config.unfurl_links = bool(slack.get("unfurl_links", config.unfurl_links))
                if "SLACK_SINK_NAME" not in env:
                    config.name = slack.get("name", config.name)
                if "SLACK_LOG_LEVEL" not in env:
                    config.level = slack.get("level", config.level)

                limits = slack.get("limit") or {}
                if "SLACK_LIMIT_PER_SECOND" not in env and "per_second" in limits:
                    config.limit_per_second = _parse_float(
                        "limit.per_second", str(limits["per_second"]), math.inf
                    )
                if "SLACK_LIMIT_WINDOW_SECONDS" not in env and "window_seconds" in limits:
                    config.limit_window_seconds = _parse_float(
                        "limit.window_seconds", str(limits["window_seconds"]), 30.0
                    )

        return config
