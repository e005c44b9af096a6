"""Standard library logging handler backed by a LogSink.

Usage:
    import logging
    from slack_webhook_log.config import SinkConfig
    from slack_webhook_log.handler import SlackWebhookHandler

    handler = SlackWebhookHandler.from_config(SinkConfig.from_env())
    logging.getLogger().addHandler(handler)

    logging.getLogger(__name__).error("Sync failed", extra={"account": "alice"})
"""

import logging
from typing import Any

import structlog

from slack_webhook_log.config import SinkConfig
from slack_webhook_log.errors import DeliveryError
from slack_webhook_log.sink import LogSink
from slack_webhook_log.sink.payload import Formatter

log = structlog.get_logger()

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}

# Loggers whose records come from delivering to Slack
_DELIVERY_LOGGERS = frozenset({__name__.split(".", 1)[0], "httpx", "httpcore"})

# Keys structlog adds to every event dict
_STRUCTLOG_KEYS = frozenset({"event", "level", "logger", "timestamp"})

# Sink level names accepted as handler thresholds
_LEVEL_NAMES = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def sink_level(levelno: int) -> str:
    """Map a stdlib level number to a sink level name."""
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    if levelno >= logging.INFO:
        return "info"
    return "debug"


def from_structlog(record: logging.LogRecord) -> bool:
    """Check if ``record`` carries an event dict from ProcessorFormatter.wrap_for_formatter."""
    return (
        isinstance(record.msg, dict)
        and hasattr(record, "_logger")
        and hasattr(record, "_name")
    )


class DeliveryLoopFilter(logging.Filter):
    """Drop records logged while delivering to Slack.

    Runs in Handler.handle() before the handler lock is taken, so worker
    threads never wait on a handler that is closing.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.split(".", 1)[0] not in _DELIVERY_LOGGERS


def threshold(level: str | int) -> int:
    """Resolve a configured level ("warn", "ERROR", 30) to a level number."""
    if isinstance(level, int):
        return level
    name = level.lower()
    if name in _LEVEL_NAMES:
        return _LEVEL_NAMES[name]
    levelno = logging.getLevelName(level.upper())
    if not isinstance(levelno, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return levelno


class SlackWebhookHandler(logging.Handler):
    """Forward log records to Slack through a rate-limited LogSink.

    Record ``extra`` fields become message attachments. Records from this
    package and its HTTP client are filtered out so delivery logs cannot
    loop back into Slack.
    """

    def __init__(self, sink: LogSink, level: str | int = logging.INFO):
        super().__init__(threshold(level))
        self.sink = sink
        self.addFilter(DeliveryLoopFilter())

    @classmethod
    def from_config(
        cls, config: SinkConfig, formatter: Formatter | None = None
    ) -> "SlackWebhookHandler":
        return cls(LogSink.from_config(config, formatter=formatter), level=config.level)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message, metadata = self._event(record)
            self.sink.log(sink_level(record.levelno), message, metadata, self._on_delivery)
        except Exception:
            self.handleError(record)

    def _event(self, record: logging.LogRecord) -> tuple[str, dict[str, Any]]:
        structured = from_structlog(record)
        if structured:
            event = record.msg
            message = str(event.get("event", ""))
            metadata = {
                k: v
                for k, v in event.items()
                if k not in _STRUCTLOG_KEYS and not k.startswith("_")
            }
        else:
            message = record.getMessage()
            metadata = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}

        if record.exc_info:
            metadata["exception"] = logging.Formatter().formatException(record.exc_info)
        if self.formatter is not None and not structured:
            message = self.format(record)
        return message, metadata

    def _on_delivery(self, error: DeliveryError | None, body: str | None) -> None:
        if error is not None:
            log.warning(
                "Log record not delivered to Slack",
                sink=self.sink.name,
                status=error.status_code,
                error=str(error),
            )

    def close(self) -> None:
        try:
            self.sink.close()
        finally:
            super().close()
