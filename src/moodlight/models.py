from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .const import (
    COLOR_MODE_HS,
    DEFAULT_BRIGHTNESS,
    DEFAULT_HUE,
    DEFAULT_RAINBOW_SPEED,
    DEFAULT_SATURATION,
    MAX_BRIGHTNESS,
    MAX_RAINBOW_SPEED,
    MAX_SATURATION,
)
from .exceptions import InvalidControlMessageError, InvalidStateError
from .util import clamp, hs_to_rgb, wrap_hue


class Mode(str, Enum):
    STATIC = "static"
    RAINBOW = "rainbow"


class Power(str, Enum):
    ON = "ON"
    OFF = "OFF"


def _decode_enum(
    enum_cls: type[Mode] | type[Power],
    value: Any,
    key: str,
    error: type[ValueError],
) -> Any:
    if not isinstance(value, str):
        raise error(f"{key} must be a string, got {value!r}")
    for member in enum_cls:
        if member.value.lower() == value.lower():
            return member
    raise error(f"Invalid {key}: {value!r}")


def _decode_number(value: Any, key: str, error: type[ValueError]) -> float:
    # bool is an int subclass but never a valid level
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise error(f"{key} must be a number, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise error(f"{key} must be finite, got {value!r}")
    return value


def _decode_object(payload: str | bytes, error: type[ValueError]) -> dict[str, Any]:
    try:
        data = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as ex:
        raise error(f"Invalid JSON: {ex}") from ex
    if not isinstance(data, dict):
        raise error(f"Expected a JSON object, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class Color:

    hue: float = DEFAULT_HUE  # degrees, [0, 360)
    saturation: float = DEFAULT_SATURATION  # percent, [0, 100]

    @classmethod
    def from_dict(
        cls, data: Any, error: type[ValueError] = InvalidStateError
    ) -> Color:
        """Decode a {"h": ..., "s": ...} mapping."""
        if not isinstance(data, dict):
            raise error(f"color must be an object, got {data!r}")
        try:
            hue, saturation = data["h"], data["s"]
        except KeyError as ex:
            raise error(f"color is missing {ex}") from ex
        return cls(
            _decode_number(hue, "color.h", error),
            _decode_number(saturation, "color.s", error),
        )

    def normalized(self) -> Color:
        """Return the color with hue wrapped and saturation clamped."""
        return Color(wrap_hue(self.hue), clamp(self.saturation, 0, MAX_SATURATION))

    def as_dict(self) -> dict[str, float]:
        return {"h": self.hue, "s": self.saturation}


@dataclass(frozen=True)
class Frame:
    """A fully resolved view of what the fixture should show."""

    hue: float
    saturation: float
    brightness: float
    power: Power

    @property
    def rgb(self) -> tuple[float, float, float]:
        """Return red, green and blue intensities in [0.0, 1.0]."""
        if self.power is Power.OFF:
            return (0.0, 0.0, 0.0)
        return hs_to_rgb(self.hue, self.saturation, self.brightness)


@dataclass(frozen=True)
class ControlMessage:
    """A partial update; None leaves the matching State field alone."""

    color: Color | None = None
    brightness: float | None = None
    rainbow_speed: float | None = None
    power: Power | None = None
    mode: Mode | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ControlMessage:
        error = InvalidControlMessageError
        kwargs: dict[str, Any] = {}
        if data.get("color") is not None:
            kwargs["color"] = Color.from_dict(data["color"], error)
        if data.get("brightness") is not None:
            kwargs["brightness"] = _decode_number(
                data["brightness"], "brightness", error
            )
        if data.get("rainbow_speed") is not None:
            kwargs["rainbow_speed"] = _decode_number(
                data["rainbow_speed"], "rainbow_speed", error
            )
        if data.get("state") is not None:
            kwargs["power"] = _decode_enum(Power, data["state"], "state", error)
        if data.get("mode") is not None:
            kwargs["mode"] = _decode_enum(Mode, data["mode"], "mode", error)
        return cls(**kwargs)

    @classmethod
    def from_json(cls, payload: str | bytes) -> ControlMessage:
        """Decode a control message; unknown keys are ignored."""
        return cls.from_dict(_decode_object(payload, InvalidControlMessageError))


@dataclass(frozen=True)
class State:

    color: Color = field(default_factory=Color)
    brightness: int = DEFAULT_BRIGHTNESS
    rainbow_speed: float = DEFAULT_RAINBOW_SPEED
    mode: Mode = Mode.STATIC
    power: Power = Power.OFF
    # Set by edit when power flips, consumed by the next apply
    transitioning: bool = field(default=False, compare=False)

    @property
    def on(self) -> bool:
        return self.power is Power.ON

    @property
    def frame(self) -> Frame:
        return Frame(
            self.color.hue, self.color.saturation, self.brightness, self.power
        )

    def edit(self, msg: ControlMessage) -> State:
        """Merge a control message into a new State."""
        color = self.color
        # Colour edits only land in static mode, or when switching to it
        if msg.color is not None and Mode.STATIC in (self.mode, msg.mode):
            color = msg.color.normalized()
        brightness = self.brightness
        if msg.brightness is not None:
            brightness = round(clamp(msg.brightness, 0, MAX_BRIGHTNESS))
        rainbow_speed = self.rainbow_speed
        if msg.rainbow_speed is not None:
            rainbow_speed = clamp(msg.rainbow_speed, 0, MAX_RAINBOW_SPEED)
        power = self.power if msg.power is None else msg.power
        return State(
            color=color,
            brightness=brightness,
            rainbow_speed=rainbow_speed,
            mode=self.mode if msg.mode is None else msg.mode,
            power=power,
            transitioning=power is not self.power,
        )

    def with_hue(self, hue: float) -> State:
        return replace(self, color=replace(self.color, hue=wrap_hue(hue)))

    def as_dict(self) -> dict[str, Any]:
        return {
            "color": self.color.as_dict(),
            "brightness": self.brightness,
            "rainbow_speed": self.rainbow_speed,
            "mode": self.mode.value,
            "state": self.power.value,
            "color_mode": COLOR_MODE_HS,
        }

    def to_json(self) -> str:
        return json.dumps(self.as_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> State:
        """Decode a full snapshot, raising InvalidStateError if malformed."""
        error = InvalidStateError
        try:
            color_mode = data["color_mode"]
            color = data["color"]
            brightness = data["brightness"]
            rainbow_speed = data["rainbow_speed"]
            mode = data["mode"]
            power = data["state"]
        except KeyError as ex:
            raise error(f"State is missing {ex}") from ex
        if color_mode != COLOR_MODE_HS:
            raise error(f"Unsupported color_mode: {color_mode!r}")
        return cls(
            color=Color.from_dict(color, error).normalized(),
            brightness=round(
                clamp(
                    _decode_number(brightness, "brightness", error),
                    0,
                    MAX_BRIGHTNESS,
                )
            ),
            rainbow_speed=clamp(
                _decode_number(rainbow_speed, "rainbow_speed", error),
                0,
                MAX_RAINBOW_SPEED,
            ),
            mode=_decode_enum(Mode, mode, "mode", error),
            power=_decode_enum(Power, power, "state", error),
        )

    @classmethod
    def from_json(cls, payload: str | bytes) -> State:
        return cls.from_dict(_decode_object(payload, InvalidStateError))
