"""Error taxonomy for the Pub/Sub CLI."""

from __future__ import annotations


class PubSubCLIError(Exception):
    """Base class for every error this tool reports to the user."""


class ConfigurationError(PubSubCLIError):
    """Missing or invalid project id, settings file, or credentials."""


class TransportConnectionError(PubSubCLIError, ConnectionError):
    """The Pub/Sub endpoint (usually the local emulator) could not be reached."""


class TransportError(PubSubCLIError):
    """A Pub/Sub API call failed.

    The message always reads ``failed to <action> <resource>: <cause>`` so the
    failing topic or subscription is visible without a traceback.
    """

    def __init__(self, action: str, resource: str, cause: BaseException) -> None:
        self.action = action
        self.resource = resource
        self.cause = cause
        super().__init__(f"failed to {action} {resource}: {cause}")
