"""CLI for slack-webhook-log.

Usage:
    slack-webhook-log send "Deploy finished" --level info --meta env=prod
    slack-webhook-log test
    slack-webhook-log burst 100 --interval 0.01
"""

import logging
import threading
import time
from pathlib import Path

import click
import structlog

from slack_webhook_log.config import SinkConfig
from slack_webhook_log.errors import ConfigurationError, DeliveryError
from slack_webhook_log.sink import DeliveryClient, LogSink, PayloadBuilder

# Configure structlog for CLI output
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
)

log = structlog.get_logger()


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=Path.home() / ".slack-webhook-log.yaml",
    help="Config file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: Path, verbose: bool) -> None:
    """Send log messages to a Slack webhook."""
    ctx.ensure_object(dict)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        )
    )
    try:
        ctx.obj["config"] = SinkConfig.from_file(config_path)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj["verbose"] = verbose


@main.command("send")
@click.argument("message")
@click.option("--level", "-l", default="info", help="Level (error, warn, info, ...)")
@click.option("--meta", "-m", multiple=True, help="Metadata as key=value (repeatable)")
@click.pass_context
def send(ctx: click.Context, message: str, level: str, meta: tuple[str, ...]) -> None:
    """Send a single message, bypassing the rate limiter."""
    config = ctx.obj["config"]
    metadata = [parse_meta(item) for item in meta]
    if post_message(config, level, message, metadata):
        click.echo("Message sent!")
    else:
        click.echo("Failed to send message")
        raise SystemExit(1)


@main.command("test")
@click.pass_context
def test(ctx: click.Context) -> None:
    """Send a test message to verify the webhook."""
    config = ctx.obj["config"]
    metadata = [
        ("sink", config.name),
        ("time", time.strftime("%Y-%m-%d %H:%M:%S")),
    ]
    if post_message(config, "info", "Slack webhook is configured correctly.", metadata):
        click.echo("Test message sent successfully!")
    else:
        click.echo("Failed to send test message")
        raise SystemExit(1)


@main.command("burst")
@click.argument("count", type=int)
@click.option("--interval", default=0.0, type=float, help="Seconds between messages")
@click.option("--level", "-l", default="info", help="Level of the generated messages")
@click.pass_context
def burst(ctx: click.Context, count: int, interval: float, level: str) -> None:
    """Push COUNT messages through the rate-limited sink.

    Shows how many were sent and how many the rate limiter discarded.
    """
    config = ctx.obj["config"]
    sink = build_sink(config)

    outcomes: list[bool] = []
    lock = threading.Lock()

    def on_done(error: DeliveryError | None, body: str | None) -> None:
        with lock:
            outcomes.append(error is None)

    with sink:
        for i in range(count):
            sink.log(level, f"Burst message {i + 1}/{count}", {"index": i + 1}, on_done)
            if interval:
                time.sleep(interval)
        pending = sink.discarded

    # The sink is closed, so every accepted message has completed
    delivered = sum(outcomes)
    click.echo(f"Accepted: {len(outcomes)}")
    click.echo(f"  Delivered: {delivered}")
    click.echo(f"  Failed: {len(outcomes) - delivered}")
    click.echo(f"Discarded: {count - len(outcomes)}")
    if pending:
        click.echo(f"  Awaiting discard notice: {pending}")


# --- Utility Functions ---


def build_sink(config: SinkConfig) -> LogSink:
    """Build a sink from config or exit with an error."""
    try:
        return LogSink.from_config(config)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def post_message(
    config: SinkConfig, level: str, message: str, metadata: list[tuple[str, str]]
) -> bool:
    """Deliver one message synchronously. Returns True on success."""
    try:
        endpoint = config.endpoint
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    builder = PayloadBuilder(
        channel=config.channel,
        username=config.username,
        icon_emoji=config.icon_emoji,
        icon_url=config.icon_url,
        unfurl_links=config.unfurl_links,
    )
    with DeliveryClient(endpoint) as client:
        try:
            client.post(builder.build(level, message, metadata))
        except DeliveryError as e:
            log.error("Delivery failed", error=str(e))
            return False
    return True


def parse_meta(item: str) -> tuple[str, str]:
    """Parse a 'key=value' metadata option."""
    key, sep, value = item.partition("=")
    if not sep or not key:
        raise click.BadParameter(f"Invalid metadata {item!r}. Use key=value", param_hint="--meta")
    return key.strip(), value


if __name__ == "__main__":
    main()
