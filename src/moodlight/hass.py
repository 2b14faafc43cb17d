"""Home Assistant MQTT discovery payloads.

One device exposes three entities that share the command and state
topics: a JSON-schema light, a select for the mode and a number
slider for the rainbow speed.
"""
from __future__ import annotations

from typing import Any

from .config import Config
from .const import COLOR_MODE_HS, MAX_RAINBOW_SPEED
from .models import Mode


def _device(config: Config) -> dict[str, Any]:
    return {
        "name": f"{config.name} moodlight",
        "identifiers": [config.unique_id],
    }


def _entity(config: Config, name: str, unique_id: str) -> dict[str, Any]:
    return {
        "name": name,
        "unique_id": unique_id,
        "command_topic": config.command_topic,
        "state_topic": config.state_topic,
        "device": _device(config),
    }


def light_config(config: Config) -> dict[str, Any]:
    return {
        **_entity(config, f"{config.name} moodlight", config.unique_id),
        "schema": "json",
        "brightness": True,
        "supported_color_modes": [COLOR_MODE_HS],
    }


def mode_select_config(config: Config) -> dict[str, Any]:
    return {
        **_entity(
            config, f"{config.name} moodlight mode", f"{config.unique_id}_mode"
        ),
        "options": [mode.value for mode in Mode],
        "command_template": '{"mode": "{{ value }}"}',
        "value_template": "{{ value_json.mode }}",
    }


def rainbow_speed_number_config(config: Config) -> dict[str, Any]:
    return {
        **_entity(
            config,
            f"{config.name} moodlight rainbow speed",
            f"{config.unique_id}_rainbow_speed",
        ),
        "min": 0.0,
        "max": MAX_RAINBOW_SPEED,
        "mode": "slider",
        "command_template": '{"rainbow_speed": {{ value }}}',
        "value_template": "{{ value_json.rainbow_speed }}",
    }


def discovery_messages(config: Config) -> list[tuple[str, dict[str, Any]]]:
    """Return (topic, payload) pairs to publish retained at start-up."""
    prefix = config.discovery_prefix
    unique_id = config.unique_id
    return [
        (f"{prefix}/light/{unique_id}/config", light_config(config)),
        (f"{prefix}/select/{unique_id}_mode/config", mode_select_config(config)),
        (
            f"{prefix}/number/{unique_id}_rainbow_speed/config",
            rainbow_speed_number_config(config),
        ),
    ]
