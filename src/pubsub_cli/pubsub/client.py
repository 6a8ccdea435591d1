"""PubSubClient — shared, authenticated handle to the Pub/Sub API."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from types import TracebackType
from typing import Any, TypeVar

import structlog
from google.api_core.exceptions import GoogleAPICallError, RetryError

from pubsub_cli.config.models import ClientConfig
from pubsub_cli.errors import (
    ConfigurationError,
    TransportConnectionError,
    TransportError,
)

logger = structlog.get_logger()

T = TypeVar("T")


class PubSubClient:
    """Publisher + subscriber API clients bound to one project.

    The handle is shared by every concurrent task of a run and never mutated
    after construction.  Blocking API calls go through :meth:`call`, which
    runs them on the default executor and turns transport failures into
    :class:`TransportError`.
    """

    def __init__(
        self,
        project_id: str,
        publisher: Any,
        subscriber: Any,
        *,
        rpc_timeout: float = 60.0,
    ) -> None:
        self._project_id = project_id
        self._publisher = publisher
        self._subscriber = subscriber
        self._rpc_timeout = rpc_timeout
        self._closed = False

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def publisher(self) -> Any:
        return self._publisher

    @property
    def subscriber(self) -> Any:
        return self._subscriber

    async def call(
        self,
        action: str,
        resource: str,
        method: Callable[..., T],
        **kwargs: Any,
    ) -> T:
        """Run a blocking API *method* off the event loop.

        The per-call timeout is added to *kwargs*.  Google API errors are
        re-raised as ``TransportError(action, resource, cause)``.
        """
        loop = asyncio.get_running_loop()
        fn = functools.partial(method, timeout=self._rpc_timeout, **kwargs)
        try:
            return await loop.run_in_executor(None, fn)
        except (GoogleAPICallError, RetryError) as exc:
            raise TransportError(action, resource, exc) from exc

    def close(self) -> None:
        """Close both API clients.  Active streaming pulls are shut down."""
        if self._closed:
            return
        self._closed = True
        self._subscriber.close()
        self._publisher.transport.close()
        logger.debug("client.closed", project_id=self._project_id)

    def __enter__(self) -> PubSubClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def create_client(config: ClientConfig) -> PubSubClient:
    """Build an authenticated client from *config*.

    With ``emulator_host`` set, both API clients share one insecure gRPC
    channel, which must become ready within ``dial_timeout_seconds``.
    Otherwise the service account in ``credential_file`` is used, falling back
    to application default credentials.
    """
    if not config.project_id:
        msg = (
            "GCP project id must be set from either env variable "
            "'GCP_PROJECT_ID' or --project flag"
        )
        raise ConfigurationError(msg)

    from google.auth.exceptions import DefaultCredentialsError
    from google.cloud import pubsub_v1

    if config.emulator_host:
        publisher, subscriber = _emulator_clients(config)
        logger.info(
            "client.emulator_connected",
            host=config.emulator_host,
            project_id=config.project_id,
        )
    else:
        credentials = _load_credentials(config.credential_file)
        try:
            publisher = pubsub_v1.PublisherClient(credentials=credentials)
            subscriber = pubsub_v1.SubscriberClient(credentials=credentials)
        except DefaultCredentialsError as exc:
            msg = f"no usable GCP credentials, pass --cred-file: {exc}"
            raise ConfigurationError(msg) from exc
        logger.info("client.created", project_id=config.project_id)

    return PubSubClient(
        config.project_id,
        publisher,
        subscriber,
        rpc_timeout=config.rpc_timeout_seconds,
    )


def _emulator_clients(config: ClientConfig) -> tuple[Any, Any]:
    import grpc
    from google.cloud import pubsub_v1
    from google.pubsub_v1.services.publisher.transports import PublisherGrpcTransport
    from google.pubsub_v1.services.subscriber.transports import (
        SubscriberGrpcTransport,
    )

    assert config.emulator_host is not None
    channel = grpc.insecure_channel(config.emulator_host)
    try:
        grpc.channel_ready_future(channel).result(timeout=config.dial_timeout_seconds)
    except grpc.FutureTimeoutError as exc:
        channel.close()
        msg = (
            f"could not connect to Pub/Sub emulator at {config.emulator_host} "
            f"within {config.dial_timeout_seconds:g}s"
        )
        raise TransportConnectionError(msg) from exc

    publisher = pubsub_v1.PublisherClient(
        transport=PublisherGrpcTransport(channel=channel)
    )
    subscriber = pubsub_v1.SubscriberClient(
        transport=SubscriberGrpcTransport(channel=channel)
    )
    return publisher, subscriber


def _load_credentials(credential_file: str | None) -> Any:
    if credential_file is None:
        return None

    from google.oauth2 import service_account

    try:
        return service_account.Credentials.from_service_account_file(credential_file)
    except (OSError, ValueError) as exc:
        msg = f"failed to load credential file {credential_file}: {exc}"
        raise ConfigurationError(msg) from exc
