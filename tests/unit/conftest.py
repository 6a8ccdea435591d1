"""Shared fixtures: a PubSubClient wired to in-memory fake API clients."""

from __future__ import annotations

import io

import pytest
import structlog
from rich.console import Console

from pubsub_cli.console import ConsoleReporter
from pubsub_cli.pubsub.client import PubSubClient

from .fakes import PROJECT, FakePublisherAPI, FakeSubscriberAPI


@pytest.fixture
def publisher_api() -> FakePublisherAPI:
    return FakePublisherAPI()


@pytest.fixture
def subscriber_api() -> FakeSubscriberAPI:
    return FakeSubscriberAPI()


@pytest.fixture
def client(
    publisher_api: FakePublisherAPI, subscriber_api: FakeSubscriberAPI
) -> PubSubClient:
    return PubSubClient(PROJECT, publisher_api, subscriber_api, rpc_timeout=5.0)


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(output: io.StringIO) -> ConsoleReporter:
    return ConsoleReporter(
        Console(file=output, width=200, color_system=None, force_terminal=False)
    )


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
