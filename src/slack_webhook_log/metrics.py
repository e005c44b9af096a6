"""Prometheus metrics for webhook sinks.

All metrics use the 'slack_webhook_' prefix and are labelled by sink name.
"""

from prometheus_client import Counter

MESSAGES_SENT = Counter(
    "slack_webhook_messages_sent_total",
    "Total messages handed to the webhook",
    ["sink", "kind"],  # kind: message, discard_notice
)

MESSAGES_DISCARDED = Counter(
    "slack_webhook_messages_discarded_total",
    "Total messages dropped by the rate limiter",
    ["sink"],
)

DELIVERY_FAILURES = Counter(
    "slack_webhook_delivery_failures_total",
    "Total failed webhook deliveries",
    ["sink", "reason"],  # reason: status, transport
)
