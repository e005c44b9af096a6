"""Rate-limited Slack webhook sink.

Provides the decaying rate limiter, payload building, webhook delivery,
and the LogSink that ties them together.
"""

from .delivery import DeliveryClient, WebhookEndpoint
from .payload import (
    COLOR_DANGER,
    COLOR_GOOD,
    COLOR_WARNING,
    Attachment,
    PayloadBuilder,
    SlackPayload,
    render_value,
)
from .rate_limiter import RateLimiter, RateLimiterState
from .sink import LogSink

__all__ = [
    # Sink
    "LogSink",
    # Rate limiter
    "RateLimiter",
    "RateLimiterState",
    # Payloads
    "PayloadBuilder",
    "SlackPayload",
    "Attachment",
    "render_value",
    "COLOR_DANGER",
    "COLOR_WARNING",
    "COLOR_GOOD",
    # Delivery
    "DeliveryClient",
    "WebhookEndpoint",
]
