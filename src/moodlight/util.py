from __future__ import annotations

import colorsys

from .const import (
    DEFAULT_RAINBOW_FASTEST_CYCLE,
    DEFAULT_RAINBOW_SLOWEST_CYCLE,
    HUE_DEGREES,
    MAX_BRIGHTNESS,
    MAX_RAINBOW_SPEED,
    MAX_SATURATION,
)


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp value into [minimum, maximum]."""
    return max(minimum, min(maximum, value))


def wrap_hue(hue: float) -> float:
    """Wrap a hue in degrees into [0, 360)."""
    return hue % HUE_DEGREES


def hs_to_rgb(
    hue: float, saturation: float, brightness: float
) -> tuple[float, float, float]:
    """Convert hue (degrees), saturation (0-100) and brightness (0-255).

    Returns the red, green and blue intensities in [0.0, 1.0].
    """
    return colorsys.hsv_to_rgb(
        wrap_hue(hue) / HUE_DEGREES,
        clamp(saturation, 0, MAX_SATURATION) / MAX_SATURATION,
        clamp(brightness, 0, MAX_BRIGHTNESS) / MAX_BRIGHTNESS,
    )


def rainbow_cycle_duration(
    rainbow_speed: float,
    slowest: float = DEFAULT_RAINBOW_SLOWEST_CYCLE,
    fastest: float = DEFAULT_RAINBOW_FASTEST_CYCLE,
) -> float:
    """Return the seconds one full hue cycle takes at a rainbow_speed setting.

    Linear from `slowest` at speed 0 to `fastest` at speed 100.
    """
    speed = clamp(rainbow_speed, 0, MAX_RAINBOW_SPEED) / MAX_RAINBOW_SPEED
    return slowest - (slowest - fastest) * speed


def hue_step_size(
    rainbow_speed: float,
    step_duration: float,
    slowest: float = DEFAULT_RAINBOW_SLOWEST_CYCLE,
    fastest: float = DEFAULT_RAINBOW_FASTEST_CYCLE,
) -> float:
    """Return the degrees the hue advances on one tick of step_duration."""
    steps_in_cycle = (
        rainbow_cycle_duration(rainbow_speed, slowest, fastest) / step_duration
    )
    return HUE_DEGREES / steps_in_cycle


def step_hue(
    hue: float,
    rainbow_speed: float,
    step_duration: float,
    slowest: float = DEFAULT_RAINBOW_SLOWEST_CYCLE,
    fastest: float = DEFAULT_RAINBOW_FASTEST_CYCLE,
) -> float:
    """Advance a hue by one rainbow tick."""
    return wrap_hue(
        hue + hue_step_size(rainbow_speed, step_duration, slowest, fastest)
    )
