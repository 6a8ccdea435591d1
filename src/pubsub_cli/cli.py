"""Typer CLI for the Pub/Sub tool."""

from __future__ import annotations

import asyncio
import signal
from contextlib import suppress
from typing import Any, NoReturn

import structlog
import typer
from rich.console import Console
from rich.markup import escape

from pubsub_cli.config.loader import load_cli_config
from pubsub_cli.config.models import CLIConfig
from pubsub_cli.console import ConsoleReporter
from pubsub_cli.errors import PubSubCLIError
from pubsub_cli.observability.logging import configure_logging
from pubsub_cli.pubsub.client import create_client
from pubsub_cli.pubsub.resolver import TopicResolver
from pubsub_cli.subscribe.orchestrator import FanOutSubscriber

logger = structlog.get_logger()
console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="pubsub_cli",
    help="Google Cloud Pub/Sub helper CLI",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    project: str | None = typer.Option(
        None, "--project", "-p", envvar="GCP_PROJECT_ID", help="GCP project id"
    ),
    host: str | None = typer.Option(
        None,
        "--host",
        envvar="PUBSUB_EMULATOR_HOST",
        help="Pub/Sub emulator host (e.g. localhost:8085)",
    ),
    cred_file: str | None = typer.Option(
        None,
        "--cred-file",
        envvar="GCP_CREDENTIAL_FILE_PATH",
        help="GCP service account credential file path",
    ),
    config_path: str | None = typer.Option(
        None, "--config", help="YAML settings file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show lifecycle logs"),
) -> None:
    """Google Cloud Pub/Sub helper CLI."""
    configure_logging(verbose)
    ctx.obj = {
        "config_path": config_path,
        "client": {
            "project_id": project,
            "emulator_host": host,
            "credential_file": cred_file,
        },
    }


def _fail(exc: PubSubCLIError) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(str(exc))}", soft_wrap=True)
    raise typer.Exit(1) from exc


def _load(ctx: typer.Context, subscribe: dict[str, Any] | None = None) -> CLIConfig:
    overrides: dict[str, Any] = {"client": ctx.obj["client"]}
    if subscribe:
        overrides["subscribe"] = subscribe
    try:
        return load_cli_config(ctx.obj["config_path"], overrides)
    except PubSubCLIError as exc:
        _fail(exc)


async def _run_until_cancelled(coro: Any) -> None:
    """Run *coro*; SIGTERM cancels it the same way Ctrl-C does."""
    task = asyncio.ensure_future(coro)
    loop = asyncio.get_running_loop()
    with suppress(NotImplementedError, ValueError):
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    try:
        await task
    finally:
        with suppress(NotImplementedError, ValueError):
            loop.remove_signal_handler(signal.SIGTERM)


@app.command(
    "subscribe",
    epilog="Example: pubsub_cli subscribe test_topic another_topic "
    "--host=localhost:8085 --project=test_project",
)
def subscribe(
    ctx: typer.Context,
    topic_ids: list[str] = typer.Argument(..., metavar="TOPIC_ID...", help="Topic ids"),
    ack_deadline: int | None = typer.Option(
        None, "--ack-deadline", help="Ack deadline of the subscriptions, in seconds"
    ),
) -> None:
    """Create a subscription for each topic and print every message received."""
    config = _load(ctx, {"ack_deadline_seconds": ack_deadline})
    reporter = ConsoleReporter(console)

    try:
        with create_client(config.client) as client:
            runner = FanOutSubscriber(client, reporter, config.subscribe)
            asyncio.run(_run_until_cancelled(runner.run(topic_ids)))
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("subscribe.cancelled")
        console.print("[yellow]stopped[/yellow]")
    except PubSubCLIError as exc:
        _fail(exc)


# Short alias, as in `pubsub_cli s topic`.
app.command("s", hidden=True)(subscribe)


@app.command("list-topics")
def list_topics(ctx: typer.Context) -> None:
    """List every topic of the project."""
    config = _load(ctx)

    try:
        with create_client(config.client) as client:
            topics = asyncio.run(TopicResolver(client).find_all())
    except PubSubCLIError as exc:
        _fail(exc)

    reporter = ConsoleReporter(console)
    if not topics:
        console.print("[yellow]No topics found[/yellow]")
        return
    for topic in sorted(topics, key=lambda t: t.topic_id):
        reporter.topic_listed(topic)
