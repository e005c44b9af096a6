"""Structured logging setup that can forward records to Slack.

structlog events are routed through stdlib logging, so a single
SlackWebhookHandler on the root logger sees both structlog and plain
``logging`` records.
"""

import logging
import sys

import structlog

from slack_webhook_log.config import SinkConfig
from slack_webhook_log.handler import SlackWebhookHandler

# One line per webhook POST at INFO; keep them out of service logs
_QUIET_LOGGERS = ("httpx", "httpcore")

_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _console_handler() -> logging.Handler:
    """Stream handler rendering JSON, or colored console output on a TTY."""
    renderer: structlog.types.Processor
    if sys.stdout.isatty():
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(foreign_pre_chain=_PRE_CHAIN, processor=renderer)
    )
    return handler


def configure_logging(
    service_name: str,
    level: str = "INFO",
    slack: SinkConfig | None = None,
) -> SlackWebhookHandler | None:
    """Route structlog through stdlib logging and optionally forward to Slack.

    Replaces any handlers on the root logger. When ``slack`` is given, a
    SlackWebhookHandler using that config is attached next to the console
    handler; its own threshold comes from ``slack.level``.

    Args:
        service_name: Bound as ``service`` on every structlog event
        level: Root log level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        slack: Optional sink configuration for Slack forwarding

    Returns:
        The Slack handler, if one was attached

    Raises:
        ConfigurationError: If ``slack`` has a malformed webhook URL or limits.
    """
    # Build the Slack handler first so a bad config leaves logging untouched
    slack_handler = SlackWebhookHandler.from_config(slack) if slack is not None else None

    structlog.configure(
        processors=_PRE_CHAIN
        + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(_console_handler())
    root_logger.setLevel(getattr(logging, level.upper()))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if slack_handler is not None:
        root_logger.addHandler(slack_handler)
    return slack_handler
