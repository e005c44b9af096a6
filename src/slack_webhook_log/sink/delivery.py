"""Slack incoming-webhook delivery client."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx
import structlog

from slack_webhook_log.errors import ConfigurationError, DeliveryError
from slack_webhook_log.sink.payload import SlackPayload

log = structlog.get_logger()

DEFAULT_PORT = 443
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class WebhookEndpoint:
    """Host, port and path of a webhook, always reached over HTTPS."""

    host: str
    port: int = DEFAULT_PORT
    path: str = "/"

    @property
    def url(self) -> str:
        return f"https://{self.host}:{self.port}{self.path}"

    @classmethod
    def parse(cls, webhook_url: str) -> "WebhookEndpoint":
        """Parse a webhook URL.

        Raises:
            ConfigurationError: If the URL is empty, not https, has no host,
                or has an invalid port.
        """
        if not webhook_url:
            raise ConfigurationError("webhook URL is required")

        parts = urlsplit(webhook_url)
        if parts.scheme != "https":
            raise ConfigurationError(f"webhook URL must use https: {webhook_url!r}")
        if not parts.hostname:
            raise ConfigurationError(f"webhook URL has no host: {webhook_url!r}")
        try:
            port = parts.port or DEFAULT_PORT
        except ValueError as e:
            raise ConfigurationError(f"webhook URL has an invalid port: {webhook_url!r}") from e

        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"
        return cls(host=parts.hostname, port=port, path=path)


class DeliveryClient:
    """POST payloads to a webhook without blocking the caller.

    ``send`` hands the request to a small worker pool and returns a future
    that resolves to the response body, or fails with DeliveryError.
    Failed requests are never retried.
    """

    def __init__(
        self,
        endpoint: WebhookEndpoint,
        transport: httpx.BaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = 4,
    ):
        self.endpoint = endpoint
        self.client = httpx.Client(transport=transport, timeout=timeout)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="slack-webhook"
        )

    def post(self, payload: SlackPayload) -> str:
        """Deliver ``payload`` synchronously and return the response body.

        Raises:
            DeliveryError: On a non-200 status or a transport failure.
        """
        data = payload.to_json()
        try:
            response = self.client.post(
                self.endpoint.url,
                content=data,
                headers={
                    "Content-Type": "application/json",
                    "Content-Length": str(len(data)),
                },
            )
        except httpx.RequestError as e:
            log.error("Slack webhook request failed", error=str(e))
            raise DeliveryError.from_transport(e) from e

        body = response.text
        if response.status_code != 200:
            log.error("Slack webhook error", status=response.status_code, body=body[:200])
            raise DeliveryError.from_status(response.status_code, body)

        log.debug("Slack message sent", bytes=len(data))
        return body

    def send(self, payload: SlackPayload) -> Future[str]:
        """Queue ``payload`` for delivery and return immediately."""
        return self._executor.submit(self.post, payload)

    def close(self) -> None:
        """Wait for in-flight deliveries, then release the HTTP client."""
        self._executor.shutdown(wait=True)
        self.client.close()

    def __enter__(self) -> "DeliveryClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
