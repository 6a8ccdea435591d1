"""Pub/Sub resource naming conventions."""

from __future__ import annotations

import uuid

SUBSCRIPTION_PREFIX = "pubsub_cli"


def topic_path(project_id: str, topic_id: str) -> str:
    """Build a fully-qualified Pub/Sub topic name."""
    return f"projects/{project_id}/topics/{topic_id}"


def subscription_path(project_id: str, subscription_id: str) -> str:
    """Build a fully-qualified Pub/Sub subscription name."""
    return f"projects/{project_id}/subscriptions/{subscription_id}"


def unique_subscription_id(prefix: str = SUBSCRIPTION_PREFIX) -> str:
    """Return a fresh random subscription id.

    The id is not derived from the topic so repeated runs against the same
    topic, or concurrent runs, never collide.
    """
    return f"{prefix}_{uuid.uuid4().hex}"


def resource_id(path: str) -> str:
    """Extract the short id from a ``projects/{project}/{kind}/{id}`` path."""
    return path.rsplit("/", 1)[-1]
