"""FanOutSubscriber — provisions a subscription per topic and drains them all."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import Any

import structlog

from pubsub_cli.concurrency import FailFastGroup
from pubsub_cli.config.models import SubscribeConfig
from pubsub_cli.console import ConsoleReporter
from pubsub_cli.errors import ConfigurationError, TransportError
from pubsub_cli.pubsub.client import PubSubClient
from pubsub_cli.pubsub.models import ReceivedMessage, Subscriber
from pubsub_cli.pubsub.provisioner import SubscriptionProvisioner
from pubsub_cli.pubsub.resolver import TopicResolver

logger = structlog.get_logger()

# Marks the end of the provisioning hand-off queue.
_END_OF_STREAM = object()


class State(StrEnum):
    """Lifecycle of a fan-out run."""

    IDLE = "idle"
    PROVISIONING = "provisioning"
    LISTENING = "listening"
    TERMINATED = "terminated"


class FanOutSubscriber:
    """Drives the whole ``subscribe`` run.

    Provisioning: one task per topic id resolves the topic and creates a
    fresh subscription.  All tasks are joined before listening starts; the
    first failure aborts the run, but topics and subscriptions already
    created by the other tasks stay behind (subscriptions expire on their
    own).

    Listening: one receive loop per subscription.  Every message is acked,
    then reported.  :meth:`run` returns as soon as the first loop ends.  A
    loop ended by cancellation is a clean stop; a failed loop raises
    :class:`TransportError`.  The remaining loops are not stopped here; they
    end when the enclosing task is cancelled or the client is closed.
    """

    def __init__(
        self,
        client: PubSubClient,
        reporter: ConsoleReporter,
        config: SubscribeConfig | None = None,
        *,
        resolver: TopicResolver | None = None,
        provisioner: SubscriptionProvisioner | None = None,
    ) -> None:
        self._client = client
        self._reporter = reporter
        self._config = config or SubscribeConfig()
        self._resolver = resolver or TopicResolver(client)
        self._provisioner = provisioner or SubscriptionProvisioner(client, self._config)
        self._state = State.IDLE
        self._subscribers: list[Subscriber] = []

    @property
    def state(self) -> State:
        return self._state

    @property
    def subscribers(self) -> list[Subscriber]:
        return list(self._subscribers)

    async def run(self, topic_ids: list[str]) -> None:
        """Provision subscriptions for *topic_ids*, then receive until stopped."""
        if not topic_ids:
            msg = "at least one topic id is required"
            raise ConfigurationError(msg)
        blank = [i for i, topic_id in enumerate(topic_ids) if not topic_id.strip()]
        if blank:
            msg = f"topic ids must not be empty (argument position {blank[0] + 1})"
            raise ConfigurationError(msg)
        try:
            self._subscribers = await self.provision(topic_ids)
            await self.listen(self._subscribers)
        finally:
            self._state = State.TERMINATED

    async def provision(self, topic_ids: list[str]) -> list[Subscriber]:
        """Resolve every topic and create its subscription, concurrently."""
        self._state = State.PROVISIONING
        handoff: asyncio.Queue[Any] = asyncio.Queue(maxsize=len(topic_ids) + 1)

        async def _provision_one(topic_id: str) -> None:
            topic = await self._resolver.resolve(topic_id)
            self._reporter.creating_subscription(topic)
            subscription = await self._provisioner.provision(
                topic, self._config.ack_deadline_seconds
            )
            subscriber = Subscriber(topic=topic, subscription=subscription)
            handoff.put_nowait(subscriber)
            self._reporter.subscription_created(subscriber)

        group = FailFastGroup()
        for topic_id in topic_ids:
            group.spawn(_provision_one(topic_id), name=f"provision:{topic_id}")
        try:
            await group.wait()
        except Exception:
            logger.error("subscribe.provision_failed", topic_ids=topic_ids)
            raise
        handoff.put_nowait(_END_OF_STREAM)

        subscribers: list[Subscriber] = []
        while (item := handoff.get_nowait()) is not _END_OF_STREAM:
            subscribers.append(item)
        logger.info("subscribe.provisioned", count=len(subscribers))
        return subscribers

    async def listen(self, subscribers: list[Subscriber]) -> None:
        """Run one receive loop per subscriber until the first one ends."""
        self._state = State.LISTENING
        self._reporter.waiting_for_messages()
        loops = [
            asyncio.create_task(
                self._receive(s), name=f"receive:{s.subscription.subscription_id}"
            )
            for s in subscribers
        ]
        if not loops:
            return
        try:
            done, _pending = await asyncio.wait(
                loops, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            for task in loops:
                task.cancel()
            raise
        for task in done:
            if task.cancelled():
                continue
            exc = task.exception()
            if exc is not None:
                raise exc

    async def _receive(self, subscriber: Subscriber) -> None:
        from google.cloud.pubsub_v1 import types

        topic = subscriber.topic
        subscription = subscriber.subscription

        def _callback(message: Any) -> None:
            message.ack()
            self._reporter.message_received(
                subscriber, ReceivedMessage(message.message_id, message.data)
            )

        flow_control = types.FlowControl(
            max_messages=self._config.max_outstanding_messages,
        )
        future = self._client.subscriber.subscribe(
            subscription.path,
            callback=_callback,
            flow_control=flow_control,
        )
        logger.info("receive.started", subscription=subscription.path, topic=topic.path)
        try:
            await asyncio.wrap_future(future)
        except asyncio.CancelledError:
            future.cancel()
            logger.info("receive.stopped", subscription=subscription.path)
            raise
        except Exception as exc:
            logger.error(
                "receive.failed", subscription=subscription.path, error=str(exc)
            )
            raise TransportError(
                f"receive message published to {topic.topic_id} through",
                f"{subscription.subscription_id} subscription",
                exc,
            ) from exc
        logger.info("receive.stopped", subscription=subscription.path)
