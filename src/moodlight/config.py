"""Process configuration read from MOODLIGHT_* environment variables.

Usage:
    from moodlight.config import Config

    config = Config.from_env()
    config.pins             # (red, green, blue) driver channels
    config.command_topic    # where control messages arrive
    config.state_topic      # where the retained state snapshot lives
"""
from __future__ import annotations

import logging
import os
import re
import socket
from collections.abc import Callable, Mapping
from dataclasses import MISSING, dataclass, fields
from pathlib import Path
from typing import Any, TypeVar

from .const import (
    COMMAND_TOPIC_SUFFIX,
    DEFAULT_BLASTER,
    DEFAULT_BROKER_PORT,
    DEFAULT_DISCOVERY_PREFIX,
    DEFAULT_RAINBOW_FASTEST_CYCLE,
    DEFAULT_RAINBOW_SLOWEST_CYCLE,
    DEFAULT_STATE_FILE,
    DEFAULT_STEP_DURATION,
    DEFAULT_TRANSITION_DURATION,
    ENV_PREFIX,
    STATE_STORES,
    STATE_TOPIC_SUFFIX,
    STORE_FILE,
    TOPIC_ROOT,
)
from .exceptions import ConfigError

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


def _slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_") or "moodlight"


@dataclass(frozen=True)
class Config:

    broker_host: str
    broker_username: str
    broker_password: str
    pin_r: int
    pin_g: int
    pin_b: int
    broker_port: int = DEFAULT_BROKER_PORT
    blaster: Path = Path(DEFAULT_BLASTER)
    state_file: Path = Path(DEFAULT_STATE_FILE)
    state_store: str = STORE_FILE
    rainbow_step_duration: float = DEFAULT_STEP_DURATION
    transition_duration: float = DEFAULT_TRANSITION_DURATION
    rainbow_slowest_cycle: float = DEFAULT_RAINBOW_SLOWEST_CYCLE
    rainbow_fastest_cycle: float = DEFAULT_RAINBOW_FASTEST_CYCLE
    name: str = ""
    discovery_prefix: str = DEFAULT_DISCOVERY_PREFIX
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", socket.gethostname())
        if self.state_store not in STATE_STORES:
            raise ConfigError(
                f"{ENV_PREFIX}STATE_STORE must be one of {', '.join(STATE_STORES)}"
            )
        if self.rainbow_step_duration <= 0:
            raise ConfigError(f"{ENV_PREFIX}RAINBOW_STEP_DURATION must be positive")
        if self.transition_duration < 0:
            raise ConfigError(f"{ENV_PREFIX}TRANSITION_DURATION must not be negative")
        if self.rainbow_slowest_cycle <= 0 or self.rainbow_fastest_cycle <= 0:
            raise ConfigError("Rainbow cycle durations must be positive")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"Unknown log level: {self.log_level!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Build a Config from MOODLIGHT_-prefixed environment variables."""
        if environ is None:
            environ = os.environ
        converters: dict[str, Callable[[str], Any]] = {
            "broker_port": int,
            "pin_r": int,
            "pin_g": int,
            "pin_b": int,
            "blaster": Path,
            "state_file": Path,
            "state_store": str.lower,
            "rainbow_step_duration": float,
            "transition_duration": float,
            "rainbow_slowest_cycle": float,
            "rainbow_fastest_cycle": float,
            "log_level": str.upper,
        }
        kwargs: dict[str, Any] = {}
        for config_field in fields(cls):
            key = ENV_PREFIX + config_field.name.upper()
            if key not in environ:
                if config_field.default is MISSING:
                    raise ConfigError(f"Missing environment variable {key}")
                continue
            kwargs[config_field.name] = _convert(
                key, environ[key], converters.get(config_field.name, str)
            )
        config = cls(**kwargs)
        _LOGGER.debug("%s", config)
        return config

    @property
    def pins(self) -> tuple[int, int, int]:
        return self.pin_r, self.pin_g, self.pin_b

    @property
    def slug(self) -> str:
        return _slugify(self.name)

    @property
    def unique_id(self) -> str:
        return f"{TOPIC_ROOT}_{self.slug}"

    @property
    def command_topic(self) -> str:
        return f"{TOPIC_ROOT}/{self.slug}/{COMMAND_TOPIC_SUFFIX}"

    @property
    def state_topic(self) -> str:
        return f"{TOPIC_ROOT}/{self.slug}/{STATE_TOPIC_SUFFIX}"

    def __repr__(self) -> str:
        values = ", ".join(
            f"{f.name}='***'" if f.name == "broker_password"
            else f"{f.name}={getattr(self, f.name)!r}"
            for f in fields(self)
        )
        return f"Config({values})"


def _convert(key: str, raw: str, converter: Callable[[str], _T]) -> _T:
    try:
        return converter(raw)
    except ValueError as ex:
        raise ConfigError(f"Invalid value for {key}: {raw!r}") from ex
