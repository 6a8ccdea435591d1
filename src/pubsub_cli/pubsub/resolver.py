"""TopicResolver — finds Pub/Sub topics, creating them when missing."""

from __future__ import annotations

import structlog
from google.api_core.exceptions import AlreadyExists, NotFound

from pubsub_cli.concurrency import FailFastGroup
from pubsub_cli.errors import TransportError
from pubsub_cli.pubsub.client import PubSubClient
from pubsub_cli.pubsub.models import Topic
from pubsub_cli.pubsub.naming import resource_id, topic_path

logger = structlog.get_logger()


class TopicResolver:
    """Find-or-create for topics of the client's project.

    The existence check and the create call are separate requests, so two
    resolvers may both see a topic as missing.  The loser of that race gets
    ``AlreadyExists`` from the create call, which counts as success: the
    topic exists, which is all the caller asked for.
    """

    def __init__(self, client: PubSubClient) -> None:
        self._client = client

    async def find(self, topic_id: str) -> Topic | None:
        """Return the topic, or ``None`` if it does not exist."""
        _require_id(topic_id)
        path = topic_path(self._client.project_id, topic_id)
        try:
            await self._client.call(
                "find topic",
                path,
                self._client.publisher.get_topic,
                request={"topic": path},
            )
        except TransportError as exc:
            if isinstance(exc.cause, NotFound):
                return None
            raise
        return Topic(self._client.project_id, topic_id)

    async def resolve(self, topic_id: str) -> Topic:
        """Return the topic, creating it first if it does not exist."""
        topic = await self.find(topic_id)
        if topic is not None:
            logger.info("topic.exists", topic=topic.path)
            return topic

        path = topic_path(self._client.project_id, topic_id)
        try:
            await self._client.call(
                "create topic",
                path,
                self._client.publisher.create_topic,
                request={"name": path},
            )
        except TransportError as exc:
            if isinstance(exc.cause, AlreadyExists):
                logger.info("topic.created_concurrently", topic=path)
                return Topic(self._client.project_id, topic_id)
            raise
        logger.info("topic.created", topic=path)
        return Topic(self._client.project_id, topic_id, created=True)

    async def resolve_many(self, topic_ids: list[str]) -> list[Topic]:
        """Resolve every id concurrently.  Returned topics are unordered.

        Fails with the first error once all resolutions have finished; topics
        created by the successful ones are kept.
        """
        topics: list[Topic] = []

        async def _resolve(topic_id: str) -> None:
            topics.append(await self.resolve(topic_id))

        group = FailFastGroup()
        for topic_id in topic_ids:
            group.spawn(_resolve(topic_id), name=f"resolve:{topic_id}")
        await group.wait()
        return topics

    async def find_many(self, topic_ids: list[str]) -> list[Topic]:
        """Find the given topics concurrently, skipping the missing ones."""
        topics: list[Topic] = []

        async def _find(topic_id: str) -> None:
            topic = await self.find(topic_id)
            if topic is not None:
                topics.append(topic)

        group = FailFastGroup()
        for topic_id in topic_ids:
            group.spawn(_find(topic_id), name=f"find:{topic_id}")
        await group.wait()
        return topics

    async def find_all(self) -> list[Topic]:
        """List every topic of the project."""
        project = f"projects/{self._client.project_id}"
        publisher = self._client.publisher

        def _list_topics(**kwargs: object) -> list[str]:
            return [t.name for t in publisher.list_topics(**kwargs)]

        names = await self._client.call(
            "list topics",
            project,
            _list_topics,
            request={"project": project},
        )
        return [Topic(self._client.project_id, resource_id(name)) for name in names]


def _require_id(topic_id: str) -> None:
    if not topic_id or not topic_id.strip():
        msg = "topic id must not be empty"
        raise ValueError(msg)
