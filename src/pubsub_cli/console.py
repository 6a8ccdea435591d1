"""Colored lifecycle lines printed while subscribing."""

from __future__ import annotations

import json
import re

from rich.console import Console
from rich.markup import escape

from pubsub_cli.pubsub.models import ReceivedMessage, Subscriber, Topic


# Bytes that are not valid UTF-8, as left behind by the surrogateescape handler.
_UNDECODABLE = re.compile("[\udc80-\udcff]")


def format_payload(data: bytes) -> str:
    """Render a payload as a double-quoted, escaped string.

    Bytes that are not valid UTF-8 are shown as ``\\xNN`` escapes.
    """
    decoded = data.decode("utf-8", errors="surrogateescape")
    text = json.dumps(decoded, ensure_ascii=False)
    return _UNDECODABLE.sub(lambda m: f"\\x{ord(m.group()) - 0xDC00:02x}", text)


class ConsoleReporter:
    """Writes one line per lifecycle event.

    Receive callbacks run on Pub/Sub's worker threads; rich's console
    serializes concurrent writes.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def _line(self, markup: str) -> None:
        self._console.print(markup, soft_wrap=True, highlight=False)

    def creating_subscription(self, topic: Topic) -> None:
        self._line(f"\\[start] creating unique subscription to {escape(topic.path)}...")

    def subscription_created(self, subscriber: Subscriber) -> None:
        self._line(
            "[green]\\[success] created subscription to "
            f"{escape(subscriber.topic.path)}[/green]"
        )

    def waiting_for_messages(self) -> None:
        self._line("\\[start] waiting for publish...")

    def message_received(self, subscriber: Subscriber, message: ReceivedMessage) -> None:
        self._line(
            "[green]\\[success] got message published to "
            f"{escape(subscriber.topic.topic_id)}, "
            f"id: {escape(message.message_id)}, "
            f"data: {escape(format_payload(message.data))}[/green]"
        )

    def topic_listed(self, topic: Topic) -> None:
        self._line(f"[cyan]{escape(topic.path)}[/cyan]")
