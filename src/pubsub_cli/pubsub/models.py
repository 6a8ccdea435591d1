"""Handles for the Pub/Sub resources this tool resolves and creates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from pubsub_cli.pubsub.naming import subscription_path, topic_path


@dataclass(frozen=True, slots=True)
class Topic:
    """A topic known to exist on the transport.

    ``created`` is true only when this process issued the creating call.
    """

    project_id: str
    topic_id: str
    created: bool = False

    @property
    def path(self) -> str:
        return topic_path(self.project_id, self.topic_id)

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True, slots=True)
class Subscription:
    """An ephemeral subscription bound to exactly one topic."""

    project_id: str
    subscription_id: str
    topic: Topic
    ack_deadline_seconds: int
    expiration_ttl: timedelta
    labels: dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def path(self) -> str:
        return subscription_path(self.project_id, self.subscription_id)

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True, slots=True)
class Subscriber:
    """Pairs a subscription with its topic so output can name the source."""

    topic: Topic
    subscription: Subscription


@dataclass(frozen=True, slots=True)
class ReceivedMessage:
    """A delivered message, already acknowledged."""

    message_id: str
    data: bytes = field(repr=False)
