"""Exceptions raised by slack-webhook-log."""

from __future__ import annotations


class SlackWebhookLogError(Exception):
    """Base class for all slack-webhook-log errors."""

    pass


class ConfigurationError(SlackWebhookLogError):
    """Raised when sink configuration is invalid (bad webhook URL, limits)."""

    pass


class DeliveryError(SlackWebhookLogError):
    """Raised when a webhook POST fails.

    Carries either the HTTP status and response body of a non-200 answer,
    or the underlying transport error in ``cause``.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.cause = cause

    @classmethod
    def from_status(cls, status_code: int, body: str) -> "DeliveryError":
        return cls(
            f"https request fails. statusCode {status_code}, body {body}",
            status_code=status_code,
            body=body,
        )

    @classmethod
    def from_transport(cls, error: BaseException) -> "DeliveryError":
        return cls(f"https request fails: {error}", cause=error)
