"""Configuration management for the user API service."""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

CONFIG_PATH_ENV = "USERAPI_CONFIG"

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``"15s"``, ``"1m30s"`` or ``"250ms"``.

    A bare ``"0"`` is accepted. Any other value without a unit is rejected.
    """

    text = value.strip()
    if not text:
        raise ValueError("Duration must not be empty")

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    total = 0.0
    position = 0
    while position < len(text):
        match = _DURATION_PART.match(text, position)
        if match is None:
            raise ValueError(f"Invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position == 0:
        raise ValueError(f"Invalid duration: {value!r}")
    return timedelta(seconds=total * sign)


def format_duration(value: timedelta) -> str:
    seconds = value.total_seconds()
    if seconds.is_integer():
        return f"{int(seconds)}s"
    return f"{seconds}s"


def _coerce_duration(raw: object, default: timedelta) -> timedelta:
    if raw is None:
        return default
    if isinstance(raw, timedelta):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return timedelta(seconds=raw)
    try:
        return parse_duration(str(raw))
    except ValueError:
        return default


def _coerce_int(raw: object, default: int) -> int:
    if raw is None or isinstance(raw, bool):
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class ServerSettings:
    """HTTP listener settings."""

    host: str = "0.0.0.0"
    port: str = "8080"
    read_timeout: timedelta = timedelta(seconds=15)
    write_timeout: timedelta = timedelta(seconds=15)
    idle_timeout: timedelta = timedelta(seconds=60)
    shutdown_timeout: timedelta = timedelta(seconds=15)

    @property
    def port_number(self) -> int:
        try:
            port = int(self.port)
        except ValueError as exc:
            raise ValueError(f"Server port must be numeric, got {self.port!r}") from exc
        if not 0 < port < 65536:
            raise ValueError(f"Server port out of range: {port}")
        return port

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "ServerSettings":
        defaults = ServerSettings()
        host = data.get("host")
        port = data.get("port")
        return ServerSettings(
            host=str(host) if host else defaults.host,
            port=str(port) if port is not None and str(port).strip() else defaults.port,
            read_timeout=_coerce_duration(data.get("read_timeout"), defaults.read_timeout),
            write_timeout=_coerce_duration(data.get("write_timeout"), defaults.write_timeout),
            idle_timeout=_coerce_duration(data.get("idle_timeout"), defaults.idle_timeout),
            shutdown_timeout=_coerce_duration(data.get("shutdown_timeout"), defaults.shutdown_timeout),
        )


@dataclass(frozen=True)
class DatabaseSettings:
    """Placeholder settings for a future persistent backend."""

    max_connections: int = 10

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "DatabaseSettings":
        defaults = DatabaseSettings()
        return DatabaseSettings(
            max_connections=_coerce_int(data.get("max_connections"), defaults.max_connections),
        )


@dataclass(frozen=True)
class Settings:
    server: ServerSettings = field(default_factory=ServerSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)

    def describe(self) -> Dict[str, Dict[str, object]]:
        return {
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "read_timeout": format_duration(self.server.read_timeout),
                "write_timeout": format_duration(self.server.write_timeout),
                "idle_timeout": format_duration(self.server.idle_timeout),
                "shutdown_timeout": format_duration(self.server.shutdown_timeout),
            },
            "database": {"max_connections": self.database.max_connections},
        }


_SERVER_ENV = {
    "host": "SERVER_HOST",
    "port": "SERVER_PORT",
    "read_timeout": "SERVER_READ_TIMEOUT",
    "write_timeout": "SERVER_WRITE_TIMEOUT",
    "idle_timeout": "SERVER_IDLE_TIMEOUT",
    "shutdown_timeout": "SERVER_SHUTDOWN_TIMEOUT",
}

_DATABASE_ENV = {
    "max_connections": "DB_MAX_CONNECTIONS",
}


def load_config_file(config_path: Path) -> Dict[str, Dict[str, object]]:
    """Load the ``server`` and ``database`` sections from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")

    sections: Dict[str, Dict[str, object]] = {}
    for name in ("server", "database"):
        section = raw.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"The '{name}' section of {config_path} must be a mapping")
        sections[name] = dict(section)
    return sections


def resolve_config_path(env_value: Optional[str]) -> Optional[Path]:
    """Resolve the optional configuration file path."""
    if not env_value:
        return None
    return Path(env_value).expanduser().resolve(strict=False)


def _overlay_env(
    base: Dict[str, object],
    mapping: Mapping[str, str],
    environ: Mapping[str, str],
) -> Dict[str, object]:
    merged = dict(base)
    for key, env_name in mapping.items():
        if env_name in environ:
            merged[key] = environ[env_name]
    return merged


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from an optional YAML file and the environment.

    Environment variables take precedence over values read from the file
    named by ``USERAPI_CONFIG``. Malformed numbers and durations fall back to
    their defaults.
    """

    env = os.environ if environ is None else environ

    sections: Dict[str, Dict[str, object]] = {"server": {}, "database": {}}
    config_path = resolve_config_path(env.get(CONFIG_PATH_ENV))
    if config_path is not None:
        sections = load_config_file(config_path)

    server = _overlay_env(sections["server"], _SERVER_ENV, env)
    database = _overlay_env(sections["database"], _DATABASE_ENV, env)

    return Settings(
        server=ServerSettings.from_dict(server),
        database=DatabaseSettings.from_dict(database),
    )


__all__ = [
    "CONFIG_PATH_ENV",
    "DatabaseSettings",
    "ServerSettings",
    "Settings",
    "format_duration",
    "load_config_file",
    "load_settings",
    "parse_duration",
    "resolve_config_path",
]
