"""Slack message payloads built from log events."""

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

# Slack attachment colors
COLOR_DANGER = "danger"
COLOR_WARNING = "warning"
COLOR_GOOD = "good"

Metadata = Mapping[str, Any] | Iterable[tuple[str, Any]] | None
MetadataItems = tuple[tuple[str, Any], ...]

# (level, message, metadata) -> text
Formatter = Callable[[str, str, MetadataItems], str]


def level_color(level: str) -> str:
    """Map a log level to a Slack attachment color."""
    if level == "error":
        return COLOR_DANGER
    if level == "warn":
        return COLOR_WARNING
    return COLOR_GOOD


def render_value(value: Any) -> str:
    """Render a metadata value for display. Strings pass through verbatim."""
    if isinstance(value, str):
        return value
    return repr(value)


def metadata_items(metadata: Metadata) -> MetadataItems:
    """Normalize metadata into an ordered tuple of (key, value) pairs."""
    if not metadata:
        return ()
    if isinstance(metadata, Mapping):
        return tuple((str(k), v) for k, v in metadata.items())
    return tuple((str(k), v) for k, v in metadata)


@dataclass(frozen=True)
class Attachment:
    """One color-coded metadata entry."""

    fallback: str
    text: str
    color: str

    def to_dict(self) -> dict[str, str]:
        return {"fallback": self.fallback, "text": self.text, "color": self.color}


@dataclass(frozen=True)
class SlackPayload:
    """Incoming-webhook message body."""

    text: str
    channel: str = ""
    username: str = ""
    icon_emoji: str = ""
    icon_url: str = ""
    unfurl_links: bool = False
    attachments: tuple[Attachment, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "text": self.text,
            "channel": self.channel,
            "username": self.username,
            "icon_emoji": self.icon_emoji,
            "icon_url": self.icon_url,
            "unfurl_links": self.unfurl_links,
        }
        if self.attachments:
            data["attachments"] = [a.to_dict() for a in self.attachments]
        return data

    def to_json(self) -> bytes:
        """Serialize to compact UTF-8 JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False).encode(
            "utf-8"
        )


class PayloadBuilder:
    """Turn (level, message, metadata) into a SlackPayload.

    Channel, username, icons and unfurl flag are fixed per builder; the
    optional formatter replaces the message text.
    """

    def __init__(
        self,
        channel: str = "",
        username: str = "",
        icon_emoji: str = "",
        icon_url: str = "",
        unfurl_links: bool = False,
        formatter: Formatter | None = None,
    ):
        self.channel = channel
        self.username = username
        self.icon_emoji = icon_emoji
        self.icon_url = icon_url
        self.unfurl_links = unfurl_links
        self.formatter = formatter

    def build(self, level: str, message: str, metadata: Metadata = None) -> SlackPayload:
        items = metadata_items(metadata)
        text = self.formatter(level, message, items) if self.formatter else message

        attachments = None
        if items:
            color = level_color(level)
            attachments = tuple(
                Attachment(
                    fallback=render_value(value),
                    text=f"{key}: {render_value(value)}",
                    color=color,
                )
                for key, value in items
            )

        return SlackPayload(
            text=text,
            channel=self.channel,
            username=self.username,
            icon_emoji=self.icon_emoji,
            icon_url=self.icon_url,
            unfurl_links=self.unfurl_links,
            attachments=attachments,
        )
