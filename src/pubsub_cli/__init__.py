"""Provision ephemeral Pub/Sub subscriptions and stream messages to the console."""

__version__ = "0.1.0"
