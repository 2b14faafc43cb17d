from __future__ import annotations

__version__ = "1.0.0"


from .exceptions import (
    ConfigError,
    InvalidControlMessageError,
    InvalidStateError,
    MoodlightError,
)
from .models import Color, ControlMessage, Frame, Mode, Power, State
from .moodlight import Moodlight
from .renderer import Blaster
from .storage import FileStateStore, RetainedStateStore

__all__ = [
    "Blaster",
    "Color",
    "ConfigError",
    "ControlMessage",
    "FileStateStore",
    "Frame",
    "InvalidControlMessageError",
    "InvalidStateError",
    "Mode",
    "Moodlight",
    "MoodlightError",
    "Power",
    "RetainedStateStore",
    "State",
]
