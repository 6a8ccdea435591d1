"""Pydantic configuration models for the Pub/Sub CLI."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

# Subscriptions left behind by a run are reclaimed by Pub/Sub after this long.
SUBSCRIPTION_EXPIRATION_HOURS = 24


class ClientConfig(BaseModel):
    """Connection settings for the Pub/Sub API.

    ``emulator_host`` takes precedence over ``credential_file``: the emulator
    is reached over an insecure channel with anonymous credentials.  When
    neither is set, application default credentials are used.
    """

    project_id: str
    emulator_host: str | None = None
    credential_file: str | None = None
    dial_timeout_seconds: float = Field(default=10.0, gt=0)
    rpc_timeout_seconds: float = Field(default=60.0, gt=0)

    @field_validator("project_id")
    @classmethod
    def validate_project_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = (
                "GCP project id must be set from either env variable "
                "'GCP_PROJECT_ID' or --project flag"
            )
            raise ValueError(msg)
        return v

    @field_validator("emulator_host", "credential_file")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class SubscribeConfig(BaseModel):
    """Settings for the ephemeral subscriptions created by ``subscribe``."""

    ack_deadline_seconds: int = Field(default=10, ge=10, le=600)
    expiration_hours: int = Field(default=SUBSCRIPTION_EXPIRATION_HOURS, ge=24)
    max_outstanding_messages: int = Field(default=1000, ge=1)
    label_key: str = Field(default="created_by", min_length=1)
    label_value: str = Field(default="pubsub_cli", min_length=1)


class CLIConfig(BaseModel):
    """Top-level settings: everything a CLI invocation needs."""

    client: ClientConfig
    subscribe: SubscribeConfig = Field(default_factory=SubscribeConfig)
