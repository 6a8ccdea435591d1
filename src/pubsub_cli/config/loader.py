"""YAML + environment variable settings loader."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import ValidationError

from pubsub_cli.config.models import CLIConfig
from pubsub_cli.errors import ConfigurationError

# ${NAME} or ${NAME:-fallback}; NAME follows shell variable rules.
_ENV_REF = re.compile(r"\$\{(?P<name>[A-Za-z_]\w*)(?::-(?P<fallback>[^}]*))?\}")


def _expand(value: str, missing: set[str]) -> str:
    def _lookup(ref: re.Match[str]) -> str:
        name, fallback = ref.group("name", "fallback")
        if name in os.environ:
            return os.environ[name]
        if fallback is None:
            missing.add(name)
            return ref.group(0)
        return fallback

    return _ENV_REF.sub(_lookup, value)


def expand_env_refs(settings: Any) -> Any:
    """Expand environment references in every string of a settings tree.

    All unset variables without a fallback are reported in one
    :class:`ConfigurationError` so a settings file can be fixed in one go.
    """
    missing: set[str] = set()

    def _walk(node: Any) -> Any:
        if isinstance(node, str):
            return _expand(node, missing)
        if isinstance(node, dict):
            return {key: _walk(child) for key, child in node.items()}
        if isinstance(node, list):
            return [_walk(child) for child in node]
        return node

    expanded = _walk(settings)
    if missing:
        names = ", ".join(sorted(missing))
        msg = f"settings reference unset environment variables: {names}"
        raise ConfigurationError(msg)
    return expanded


def merge_configs(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively deep-merge *overrides* into *base* (non-mutating).

    ``None`` values in *overrides* mean "not given" and never replace a value
    from *base*.
    """
    merged: dict[str, Any] = {**base}
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict):
            current = merged.get(key)
            merged[key] = merge_configs(
                current if isinstance(current, dict) else {}, value
            )
        else:
            merged[key] = value
    return merged


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML settings file and return its contents as a dict."""
    p = Path(path)
    if not p.exists():
        msg = f"Config file not found: {p}"
        raise ConfigurationError(msg)
    try:
        with p.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        msg = f"Failed to parse YAML in {p}"
        if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
            mark = exc.problem_mark
            msg += f" at line {mark.line + 1}, column {mark.column + 1}"
        msg += f": {exc}"
        raise ConfigurationError(msg) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping at top level in {p}, got {type(data).__name__}"
        raise ConfigurationError(msg)
    return cast(dict[str, Any], expand_env_refs(data))


def load_cli_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> CLIConfig:
    """Build the validated settings from an optional YAML file plus overrides.

    *overrides* carries the command-line flags and their environment
    variables; they win over the file.
    """
    base = load_yaml(path) if path is not None else {}
    merged = merge_configs(base, overrides or {})
    # An absent project id is reported by the model's own validator.
    client = merged.get("client")
    if client is None:
        merged["client"] = {"project_id": ""}
    elif isinstance(client, dict):
        merged["client"] = {"project_id": "", **client}
    try:
        return CLIConfig.model_validate(merged)
    except ValidationError as exc:
        source = path or "command line"
        msg = f"Invalid configuration ({source}):\n{exc}"
        raise ConfigurationError(msg) from exc
