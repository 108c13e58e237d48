# ara_mpp/config.py
"""
MPP Runtime Configuration
=========================

Every well-known port and buffer size the runtime depends on lives here,
so that fleet-wide constants are injected instead of hard-coded.

Sources, in increasing priority:
    1. Dataclass defaults (fleet-compatible: BUS=3999, BLS=4000)
    2. YAML file (path passed explicitly or via MPP_CONFIG)
    3. Environment overrides (MPP_BUS_PORT, MPP_SINK_PORT, ...)

Example YAML:
    bus_port: 3999
    sink_port: 4000
    publish_period_ms: 250
    log_level: DEBUG
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

log = logging.getLogger("Ara.Mpp.Config")

# Fleet-wide well-known ports
BUS_PORT = 3999
BLS_PORT = 4000

# Largest UDP payload we accept; longer datagrams are truncated to this size
MAX_DATAGRAM = 65536

CONFIG_ENV = "MPP_CONFIG"


class ConfigError(ValueError):
    """Raised when a configuration source is malformed or out of range."""


def _is_number(value: Any, types) -> bool:
    # bool is an int subclass but never a valid size or period
    return isinstance(value, types) and not isinstance(value, bool)


@dataclass
class MppConfig:
    """Per-process runtime configuration."""

    # Shared ports
    bus_port: int = BUS_PORT
    sink_port: int = BLS_PORT

    # Outbound destination (loopback by convention) and bind address (any)
    host: str = "127.0.0.1"
    bind_host: str = "0.0.0.0"

    # Receive buffer
    max_datagram: int = MAX_DATAGRAM

    # Upper bound on one readiness wait, so stop() from another thread is seen
    idle_wait_ms: float = 100.0

    # Overrides for the component's own defaults (None = keep component's)
    publish_period_ms: Optional[int] = None
    listen_bus: Optional[bool] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        for name in ("bus_port", "sink_port"):
            port = getattr(self, name)
            if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
                raise ConfigError(f"{name} must be an integer in 0..65535, got {port!r}")

        if not _is_number(self.max_datagram, int) or self.max_datagram <= 0:
            raise ConfigError(
                f"max_datagram must be a positive integer, got {self.max_datagram!r}"
            )

        if not _is_number(self.idle_wait_ms, (int, float)) or self.idle_wait_ms <= 0:
            raise ConfigError(
                f"idle_wait_ms must be a positive number, got {self.idle_wait_ms!r}"
            )

        if self.publish_period_ms is not None and (
            not _is_number(self.publish_period_ms, (int, float))
            or self.publish_period_ms < 0
        ):
            raise ConfigError(
                f"publish_period_ms must be a number >= 0, got {self.publish_period_ms!r}"
            )

        if self.listen_bus is not None and not isinstance(self.listen_bus, bool):
            raise ConfigError(f"listen_bus must be a bool, got {self.listen_bus!r}")

        if not isinstance(self.log_level, str):
            raise ConfigError(f"log_level must be a string, got {self.log_level!r}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MppConfig":
        """Build from a mapping, ignoring unknown keys."""
        if not isinstance(data, dict):
            raise ConfigError(f"config must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            log.warning("Ignoring unknown config keys: %s", ", ".join(unknown))

        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: Path) -> "MppConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"invalid YAML in {path}: {e}") from e
        return cls.from_dict(data or {})

    def with_env(self, environ: Optional[Dict[str, str]] = None) -> "MppConfig":
        """Return a copy with MPP_* environment overrides applied."""
        env = os.environ if environ is None else environ
        data = self.to_dict()

        try:
            if "MPP_BUS_PORT" in env:
                data["bus_port"] = int(env["MPP_BUS_PORT"])
            if "MPP_SINK_PORT" in env:
                data["sink_port"] = int(env["MPP_SINK_PORT"])
            if "MPP_PUBLISH_MS" in env:
                data["publish_period_ms"] = int(env["MPP_PUBLISH_MS"])
        except ValueError as e:
            raise ConfigError(f"invalid MPP_* environment override: {e}") from e

        if "MPP_HOST" in env:
            data["host"] = env["MPP_HOST"]
        if "MPP_LOG_LEVEL" in env:
            data["log_level"] = env["MPP_LOG_LEVEL"]

        return MppConfig(**data)


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> MppConfig:
    """
    Resolve the effective configuration.

    Args:
        path: YAML file; falls back to $MPP_CONFIG, then to defaults
        environ: environment mapping (defaults to os.environ)
    """
    env = os.environ if environ is None else environ

    if path is None and env.get(CONFIG_ENV):
        path = Path(env[CONFIG_ENV])

    if path is not None:
        config = MppConfig.from_yaml(path)
        log.info("Loaded config from %s", path)
    else:
        config = MppConfig()

    return config.with_env(env)


__all__ = [
    'BUS_PORT',
    'BLS_PORT',
    'MAX_DATAGRAM',
    'ConfigError',
    'MppConfig',
    'load_config',
]
