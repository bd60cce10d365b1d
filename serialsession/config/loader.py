# serialsession/config/loader.py
from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from serialsession.core.errors import ConfigError
from serialsession.interfaces.log_sink import LogSink
from .settings import SerialConfig

# keys accepted in a YAML file; log_sink is code-only
FILE_KEYS = tuple(f.name for f in fields(SerialConfig) if f.name != "log_sink")


def load_config(
    path: str | Path,
    *,
    log_sink: Optional[LogSink] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> SerialConfig:
    """
    Load a SerialConfig from a YAML file.

    Accepts either a flat mapping or one nested under a `serial:` root node:

        serial:
          port: /dev/ttyUSB0
          baud_rate: 9600
          parity: even
          auto_reconnect: true

    `overrides` (e.g. CLI flags) win over file values; None values are ignored.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(
            f"Config file not found: {path}",
            details={"path": str(path)},
        ) from None
    except OSError as e:
        raise ConfigError(
            f"Cannot read config file: {path}",
            hint=e.strerror or str(e),
            details={"path": str(path)},
        ) from None
    except yaml.YAMLError as e:
        raise ConfigError(
            "Failed to parse config file.",
            hint=str(e),
            details={"path": str(path)},
        ) from None

    section = data.get("serial", data) if isinstance(data, dict) else data
    if not isinstance(section, dict):
        raise ConfigError(
            "Config file root (or its 'serial' node) must be a mapping.",
            details={"path": str(path)},
        )

    merged: Dict[str, Any] = dict(section)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    return config_from_mapping(merged, log_sink=log_sink)


def config_from_mapping(
    data: Mapping[str, Any],
    *,
    log_sink: Optional[LogSink] = None,
) -> SerialConfig:
    """Build a SerialConfig from plain key/value pairs (validated)."""
    if not isinstance(data, Mapping):
        raise ConfigError(f"Expected a mapping, got {type(data).__name__}.")

    for key in data:
        if key not in FILE_KEYS:
            raise ConfigError(
                f"Unknown config key '{key}'.",
                hint=f"Valid keys: {sorted(FILE_KEYS)}",
                details={"key": key},
            )

    if "port" not in data:
        raise ConfigError(
            "Missing required config key 'port'.",
            hint="Set it in the file or pass --port.",
        )

    kwargs = dict(data)
    if log_sink is not None:
        kwargs["log_sink"] = log_sink

    try:
        return SerialConfig(**kwargs)
    except TypeError as e:
        raise ConfigError("Invalid config.", hint=str(e)) from None
