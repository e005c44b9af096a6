"""Rate-limited Slack webhook delivery for log events."""

__version__ = "0.1.0"
