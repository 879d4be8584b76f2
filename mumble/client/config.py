from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from mumble.shared.errors import ConfigError
from mumble.shared.log import get_logger
from mumble.shared.version import DEFAULT_PORT

logger = get_logger(__name__)

# Environment variable -> config field
_ENV_OVERRIDES = {
    "MUMBLE_HOST": "host",
    "MUMBLE_PORT": "port",
    "MUMBLE_USERNAME": "username",
    "MUMBLE_PASSWORD": "password",
    "MUMBLE_TIMEOUT": "handshake_timeout",
}


@dataclass(frozen=True)
class ClientConfig:
    host: str = "localhost"
    port: int = DEFAULT_PORT
    username: str = ""
    password: str = ""
    handshake_timeout: Optional[float] = 30.0
    secure: bool = False
    log_level: Optional[str] = None


def load_config(path: Optional[Union[str, Path]] = None,
                env: Optional[Mapping[str, str]] = None) -> ClientConfig:
    """
    Build the client configuration.

    Values come from the optional YAML file (a mapping, optionally nested
    under a top-level ``mumble`` key), then from MUMBLE_* environment
    variables, which win.

    Raises:
        ConfigError: unreadable file, unknown key or badly typed value
    """
    env = os.environ if env is None else env
    values: Dict[str, Any] = {}

    if path is not None:
        values.update(_load_yaml(Path(path)))

    for var, name in _ENV_OVERRIDES.items():
        if env.get(var):
            values[name] = env[var]

    return _build(values)


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load the config mapping from a YAML file"""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error reading {path}: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("mumble"), dict):
        data = data["mumble"]
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    logger.debug("Loaded config from %s", path)
    return data


def _build(values: Dict[str, Any]) -> ClientConfig:
    known = {f.name for f in fields(ClientConfig)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown config keys: {sorted(unknown)}")

    config = ClientConfig()
    try:
        if "host" in values:
            config = replace(config, host=str(values["host"]))
        if "port" in values:
            port = int(values["port"])
            if not 0 < port <= 65535:
                raise ValueError(f"port out of range: {port}")
            config = replace(config, port=port)
        if "username" in values:
            config = replace(config, username=str(values["username"]))
        if "password" in values:
            config = replace(config, password=str(values["password"]))
        if "handshake_timeout" in values:
            timeout = values["handshake_timeout"]
            config = replace(config, handshake_timeout=None if timeout is None else float(timeout))
        if "secure" in values:
            config = replace(config, secure=_as_bool(values["secure"]))
        if "log_level" in values:
            config = replace(config, log_level=str(values["log_level"]).upper())
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config value: {e}") from e
    return config


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if str(value).lower() in ("1", "true", "yes", "on"):
        return True
    if str(value).lower() in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")
