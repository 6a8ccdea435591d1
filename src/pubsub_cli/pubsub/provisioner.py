"""SubscriptionProvisioner — creates ephemeral, self-expiring subscriptions."""

from __future__ import annotations

from datetime import timedelta

import structlog

from pubsub_cli.config.models import SubscribeConfig
from pubsub_cli.pubsub.client import PubSubClient
from pubsub_cli.pubsub.models import Subscription, Topic
from pubsub_cli.pubsub.naming import subscription_path, unique_subscription_id

logger = structlog.get_logger()


class SubscriptionProvisioner:
    """Creates one uniquely-named subscription per call.

    Subscriptions are never deleted here.  Each one carries an expiration
    policy so Pub/Sub reclaims it after ``expiration_hours`` without
    activity, and a label so operators can find the ones this tool left.
    """

    def __init__(
        self, client: PubSubClient, config: SubscribeConfig | None = None
    ) -> None:
        self._client = client
        self._config = config or SubscribeConfig()

    async def provision(
        self, topic: Topic, ack_deadline_seconds: int | None = None
    ) -> Subscription:
        if ack_deadline_seconds is None:
            ack_deadline_seconds = self._config.ack_deadline_seconds
        ttl = timedelta(hours=self._config.expiration_hours)
        labels = {self._config.label_key: self._config.label_value}

        subscription_id = unique_subscription_id()
        path = subscription_path(self._client.project_id, subscription_id)
        await self._client.call(
            "create subscription",
            path,
            self._client.subscriber.create_subscription,
            request={
                "name": path,
                "topic": topic.path,
                "ack_deadline_seconds": ack_deadline_seconds,
                "expiration_policy": {"ttl": ttl},
                "labels": labels,
            },
        )
        logger.info(
            "subscription.created",
            subscription=path,
            topic=topic.path,
            ack_deadline_seconds=ack_deadline_seconds,
        )
        return Subscription(
            project_id=self._client.project_id,
            subscription_id=subscription_id,
            topic=topic,
            ack_deadline_seconds=ack_deadline_seconds,
            expiration_ttl=ttl,
            labels=labels,
        )
