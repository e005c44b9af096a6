"""Rate-limited log sink for Slack webhooks."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from typing import TYPE_CHECKING

import httpx
import structlog

from slack_webhook_log.errors import DeliveryError
from slack_webhook_log.metrics import DELIVERY_FAILURES, MESSAGES_DISCARDED, MESSAGES_SENT
from slack_webhook_log.sink.delivery import DeliveryClient
from slack_webhook_log.sink.payload import Formatter, Metadata, PayloadBuilder, SlackPayload
from slack_webhook_log.sink.rate_limiter import Clock, RateLimiter

if TYPE_CHECKING:
    from slack_webhook_log.config import SinkConfig

log = structlog.get_logger()

# callback(error, response_body)
Callback = Callable[[DeliveryError | None, str | None], None]

DEFAULT_NAME = "slack-webhook"


class LogSink:
    """Send log events to a webhook, discarding them while over the rate limit.

    Once the limit lifts, a single warn-level notice reports how many
    messages were dropped before the next real message goes out. Sends are
    counted against the limit when they are started, not when they finish.
    """

    def __init__(
        self,
        builder: PayloadBuilder,
        delivery: DeliveryClient,
        rate_limiter: RateLimiter | None = None,
        name: str = DEFAULT_NAME,
    ):
        self.name = name
        self.builder = builder
        self.delivery = delivery
        self.rate_limiter = rate_limiter or RateLimiter()

        # Check-then-record must be atomic per log() call
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: SinkConfig,
        formatter: Formatter | None = None,
        transport: httpx.BaseTransport | None = None,
        clock: Clock = time.monotonic,
    ) -> "LogSink":
        """Build a sink from configuration.

        Raises:
            ConfigurationError: If the webhook URL or limits are invalid.
        """
        rate_limiter = RateLimiter(
            limit_per_second=config.limit_per_second,
            window_seconds=config.limit_window_seconds,
            clock=clock,
        )
        builder = PayloadBuilder(
            channel=config.channel,
            username=config.username,
            icon_emoji=config.icon_emoji,
            icon_url=config.icon_url,
            unfurl_links=config.unfurl_links,
            formatter=formatter,
        )
        delivery = DeliveryClient(config.endpoint, transport=transport)
        return cls(builder, delivery, rate_limiter=rate_limiter, name=config.name)

    @property
    def discarded(self) -> int:
        """Messages dropped since the last discard notice went out."""
        return self.rate_limiter.discarded

    def log(
        self,
        level: str,
        message: str,
        metadata: Metadata = None,
        callback: Callback | None = None,
    ) -> None:
        """Deliver one log event, or count it as discarded.

        ``callback`` is invoked exactly once with ``(error, body)`` when the
        message is sent, or with a DeliveryError if the delivery client refuses
        it. Discarded messages never invoke it.
        """
        with self._lock:
            if self.rate_limiter.is_exceeded():
                count = self.rate_limiter.record_discard()
                MESSAGES_DISCARDED.labels(sink=self.name).inc()
                log.debug("Rate limit exceeded, message discarded", sink=self.name, discarded=count)
                return

            future: Future[str] | None = None
            if self.rate_limiter.discarded > 0:
                notice = self._send_discard_notice(self.rate_limiter.discarded)
                if notice is None:
                    self.rate_limiter.take_discarded()
                    self.rate_limiter.record_send()
                else:
                    # Notice was not accepted, so the count stays for the next attempt
                    future = notice

            if future is None:
                payload = self.builder.build(level, message, metadata)
                future, accepted = self._submit(payload)
                if accepted:
                    self.rate_limiter.record_send()
                    MESSAGES_SENT.labels(sink=self.name, kind="message").inc()

        future.add_done_callback(self._completion(callback))

    def _submit(self, payload: SlackPayload) -> tuple[Future[str], bool]:
        """Hand ``payload`` to the delivery client.

        A rejected handoff (e.g. after close) comes back as an already
        failed future instead of an exception.
        """
        try:
            return self.delivery.send(payload), True
        except Exception as e:
            log.error("Webhook delivery not accepted", sink=self.name, error=str(e))
            future: Future[str] = Future()
            future.set_exception(DeliveryError.from_transport(e))
            return future, False

    def _send_discard_notice(self, count: int) -> Future[str] | None:
        """Send the discard notice. Returns the failed future if it was not accepted."""
        payload = self.builder.build("warn", f"{self.name} discarded {count} messages")
        future, accepted = self._submit(payload)
        if not accepted:
            return future
        MESSAGES_SENT.labels(sink=self.name, kind="discard_notice").inc()
        log.info("Sending discard notice", sink=self.name, discarded=count)
        future.add_done_callback(self._completion(None))
        return None

    def _completion(self, callback: Callback | None) -> Callable[[Future[str]], None]:
        def done(future: Future[str]) -> None:
            error = future.exception()
            if error is not None:
                if not isinstance(error, DeliveryError):
                    error = DeliveryError.from_transport(error)
                reason = "status" if error.status_code is not None else "transport"
                DELIVERY_FAILURES.labels(sink=self.name, reason=reason).inc()
                if callback is not None:
                    callback(error, None)
                return
            if callback is not None:
                callback(None, future.result())

        return done

    def close(self) -> None:
        self.delivery.close()

    def __enter__(self) -> "LogSink":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
