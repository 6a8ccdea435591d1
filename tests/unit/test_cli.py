"""Unit tests for the Typer CLI."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from pubsub_cli.cli import app
from pubsub_cli.errors import TransportConnectionError, TransportError
from pubsub_cli.pubsub.client import PubSubClient
from pubsub_cli.pubsub.models import Topic

from .fakes import PROJECT, FakePublisherAPI, FakeSubscriberAPI

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch):
    for var in ("GCP_PROJECT_ID", "PUBSUB_EMULATOR_HOST", "GCP_CREDENTIAL_FILE_PATH"):
        monkeypatch.delenv(var, raising=False)


def _fake_client() -> PubSubClient:
    return PubSubClient(PROJECT, FakePublisherAPI(), FakeSubscriberAPI())


class TestSubscribeCommand:
    def test_requires_topic_id(self):
        result = runner.invoke(app, ["--project", "p", "subscribe"])
        assert result.exit_code != 0

    def test_missing_project_fails(self):
        result = runner.invoke(app, ["subscribe", "orders"])
        assert result.exit_code == 1
        assert "GCP_PROJECT_ID" in result.output

    def test_runs_fan_out_with_flags(self):
        with (
            patch("pubsub_cli.cli.create_client", return_value=_fake_client()) as factory,
            patch("pubsub_cli.cli.FanOutSubscriber") as fan_out,
        ):
            fan_out.return_value.run = AsyncMock(return_value=None)
            result = runner.invoke(
                app,
                [
                    "--project",
                    "proj",
                    "--host",
                    "localhost:8085",
                    "subscribe",
                    "orders",
                    "payments",
                    "--ack-deadline",
                    "30",
                ],
            )

        assert result.exit_code == 0, result.output
        client_config = factory.call_args[0][0]
        assert client_config.project_id == "proj"
        assert client_config.emulator_host == "localhost:8085"
        subscribe_config = fan_out.call_args[0][2]
        assert subscribe_config.ack_deadline_seconds == 30
        fan_out.return_value.run.assert_awaited_once_with(["orders", "payments"])

    def test_env_vars_supply_globals(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("GCP_PROJECT_ID", "env-proj")
        monkeypatch.setenv("GCP_CREDENTIAL_FILE_PATH", "/tmp/cred.json")
        with (
            patch("pubsub_cli.cli.create_client", return_value=_fake_client()) as factory,
            patch("pubsub_cli.cli.FanOutSubscriber") as fan_out,
        ):
            fan_out.return_value.run = AsyncMock(return_value=None)
            result = runner.invoke(app, ["s", "orders"])

        assert result.exit_code == 0, result.output
        client_config = factory.call_args[0][0]
        assert client_config.project_id == "env-proj"
        assert client_config.credential_file == "/tmp/cred.json"

    def test_config_file(self, tmp_path: Path):
        path = tmp_path / "pubsub.yaml"
        path.write_text("client:\n  project_id: file-proj\nsubscribe:\n  ack_deadline_seconds: 60\n")
        with (
            patch("pubsub_cli.cli.create_client", return_value=_fake_client()) as factory,
            patch("pubsub_cli.cli.FanOutSubscriber") as fan_out,
        ):
            fan_out.return_value.run = AsyncMock(return_value=None)
            result = runner.invoke(app, ["--config", str(path), "subscribe", "a"])

        assert result.exit_code == 0, result.output
        assert factory.call_args[0][0].project_id == "file-proj"
        assert fan_out.call_args[0][2].ack_deadline_seconds == 60

    def test_transport_error_exits_non_zero(self):
        error = TransportError("create topic", "projects/p/topics/a", RuntimeError("denied"))
        with (
            patch("pubsub_cli.cli.create_client", return_value=_fake_client()),
            patch("pubsub_cli.cli.FanOutSubscriber") as fan_out,
        ):
            fan_out.return_value.run = AsyncMock(side_effect=error)
            result = runner.invoke(app, ["-p", "p", "subscribe", "a"])

        assert result.exit_code == 1
        assert "failed to create topic" in result.output

    def test_blank_topic_id_is_reported_without_provisioning(self):
        publisher_api = FakePublisherAPI()
        subscriber_api = FakeSubscriberAPI()
        client = PubSubClient(PROJECT, publisher_api, subscriber_api)
        with patch("pubsub_cli.cli.create_client", return_value=client):
            result = runner.invoke(app, ["-p", PROJECT, "subscribe", "orders", ""])

        assert result.exit_code == 1
        assert not isinstance(result.exception, ValueError)
        assert "Error:" in result.output
        assert "must not be empty" in result.output
        assert "created subscription" not in result.output
        assert subscriber_api.create_requests == []
        assert publisher_api.create_calls == []

    def test_connection_error_exits_non_zero(self):
        with patch(
            "pubsub_cli.cli.create_client",
            side_effect=TransportConnectionError("could not connect"),
        ):
            result = runner.invoke(app, ["-p", "p", "--host", "h:1", "subscribe", "a"])

        assert result.exit_code == 1
        assert "could not connect" in result.output

    def test_cancellation_is_clean_exit(self):
        client = _fake_client()
        with (
            patch("pubsub_cli.cli.create_client", return_value=client),
            patch("pubsub_cli.cli.FanOutSubscriber") as fan_out,
        ):
            fan_out.return_value.run = AsyncMock(side_effect=asyncio.CancelledError)
            result = runner.invoke(app, ["-p", "p", "subscribe", "a"])

        assert result.exit_code == 0, result.output
        assert "stopped" in result.output
        assert client.subscriber.closed is True

    def test_end_to_end_with_fake_transport(self):
        """Provision against the fakes, then stop by closing the stream."""
        publisher_api = FakePublisherAPI()
        subscriber_api = FakeSubscriberAPI()
        client = PubSubClient(PROJECT, publisher_api, subscriber_api)
        original_subscribe = subscriber_api.subscribe

        def subscribe_and_finish(subscription, callback, flow_control=()):
            future = original_subscribe(subscription, callback, flow_control)
            future.set_result(None)
            return future

        subscriber_api.subscribe = subscribe_and_finish  # type: ignore[method-assign]
        with patch("pubsub_cli.cli.create_client", return_value=client):
            result = runner.invoke(app, ["-p", PROJECT, "subscribe", "orders"])

        assert result.exit_code == 0, result.output
        assert f"projects/{PROJECT}/topics/orders" in publisher_api.topics
        assert "created subscription to" in result.output
        assert "waiting for publish" in result.output


class TestListTopicsCommand:
    def test_lists_sorted_topics(self):
        client = MagicMock()
        client.__enter__.return_value = client
        with (
            patch("pubsub_cli.cli.create_client", return_value=client),
            patch(
                "pubsub_cli.cli.TopicResolver.find_all",
                AsyncMock(return_value=[Topic("p", "b"), Topic("p", "a")]),
            ),
        ):
            result = runner.invoke(app, ["-p", "p", "list-topics"])

        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [
            "projects/p/topics/a",
            "projects/p/topics/b",
        ]

    def test_no_topics(self):
        with (
            patch("pubsub_cli.cli.create_client", return_value=MagicMock()),
            patch("pubsub_cli.cli.TopicResolver.find_all", AsyncMock(return_value=[])),
        ):
            result = runner.invoke(app, ["-p", "p", "list-topics"])

        assert result.exit_code == 0
        assert "No topics found" in result.output
