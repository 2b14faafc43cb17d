from __future__ import annotations


class MoodlightError(Exception):
    """Base class for moodlight errors."""


class InvalidControlMessageError(MoodlightError, ValueError):
    """Raised when a control message cannot be decoded."""


class InvalidStateError(MoodlightError, ValueError):
    """Raised when a state snapshot cannot be decoded."""


class ConfigError(MoodlightError):
    """Raised when the environment does not hold a usable configuration."""
