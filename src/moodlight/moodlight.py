from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Protocol

from .const import (
    DEFAULT_RAINBOW_FASTEST_CYCLE,
    DEFAULT_RAINBOW_SLOWEST_CYCLE,
    DEFAULT_STEP_DURATION,
    DEFAULT_TRANSITION_DURATION,
)
from .models import ControlMessage, Frame, Mode, Power, State
from .util import step_hue

_LOGGER = logging.getLogger(__name__)


class Renderer(Protocol):
    async def render(self, frame: Frame) -> None:
        ...


class Moodlight:
    """Own the light state and drive a renderer from it.

    Every coroutine here runs to completion before the caller can
    hand in the next event, power ramps included.
    """

    def __init__(
        self,
        renderer: Renderer,
        state: State | None = None,
        step_duration: float = DEFAULT_STEP_DURATION,
        transition_duration: float = DEFAULT_TRANSITION_DURATION,
        rainbow_slowest_cycle: float = DEFAULT_RAINBOW_SLOWEST_CYCLE,
        rainbow_fastest_cycle: float = DEFAULT_RAINBOW_FASTEST_CYCLE,
    ) -> None:
        """Init the Moodlight."""
        if step_duration <= 0:
            raise ValueError("step_duration must be positive")
        self._renderer = renderer
        self._state = state or State()
        self._step_duration = step_duration
        self._transition_duration = transition_duration
        self._rainbow_slowest_cycle = rainbow_slowest_cycle
        self._rainbow_fastest_cycle = rainbow_fastest_cycle
        self._callbacks: list[Callable[[State], None]] = []

    @property
    def state(self) -> State:
        """Return the state."""
        return self._state

    @property
    def on(self) -> bool:
        return self._state.on

    @property
    def mode(self) -> Mode:
        return self._state.mode

    @property
    def brightness(self) -> int:
        """Return current brightness 0-255."""
        return self._state.brightness

    @property
    def hs_color(self) -> tuple[float, float]:
        return self._state.color.hue, self._state.color.saturation

    @property
    def rainbow_active(self) -> bool:
        """Return True when rainbow ticks should advance the hue."""
        return self._state.on and self._state.mode is Mode.RAINBOW

    @property
    def step_duration(self) -> float:
        return self._step_duration

    def edit(self, msg: ControlMessage) -> None:
        """Merge a control message into the state without rendering."""
        self._state = self._state.edit(msg)

    async def apply(self) -> None:
        """Render the current state, ramping brightness after a power flip."""
        transitioning = self._state.transitioning
        self._state = replace(self._state, transitioning=False)
        if transitioning:
            await self._ramp(self._state)
        else:
            await self._renderer.render(self._state.frame)

    async def process_control(self, msg: ControlMessage) -> None:
        """Edit, apply and announce a control message."""
        _LOGGER.debug("Processing control message: %s", msg)
        self.edit(msg)
        await self.apply()
        self._fire_callbacks()

    async def step(self) -> None:
        """Advance the rainbow by one tick and render it."""
        state = self._state
        self._state = state.with_hue(
            step_hue(
                state.color.hue,
                state.rainbow_speed,
                self._step_duration,
                self._rainbow_slowest_cycle,
                self._rainbow_fastest_cycle,
            )
        )
        await self.apply()

    async def replace_state(self, state: State) -> None:
        """Adopt a full snapshot wholesale and render it."""
        _LOGGER.debug("Replacing state %s with %s", self._state, state)
        self._state = replace(state, transitioning=False)
        await self.apply()
        self._fire_callbacks()

    async def _ramp(self, state: State) -> None:
        if state.on:
            initial, target = 0.0, float(state.brightness)
        else:
            initial, target = float(state.brightness), 0.0
        frames = self._transition_duration / self._step_duration
        upper = max(initial, target)
        _LOGGER.debug(
            "Ramping brightness %s -> %s over %.1f frames", initial, target, frames
        )
        if frames >= 1 and upper > 0:
            delta = (target - initial) / frames
            level = initial
            while True:
                level += delta
                if not 0 <= level <= upper:
                    break
                await self._renderer.render(
                    Frame(
                        state.color.hue, state.color.saturation, level, Power.ON
                    )
                )
                await asyncio.sleep(self._step_duration)
        # Land exactly on the target regardless of float drift
        await self._renderer.render(state.frame)

    def _fire_callbacks(self) -> None:
        """Fire the callbacks."""
        for callback in self._callbacks:
            callback(self._state)

    def register_callback(
        self, callback: Callable[[State], None]
    ) -> Callable[[], None]:
        """Register a callback to be called when the state changes."""

        def unregister_callback() -> None:
            self._callbacks.remove(callback)

        self._callbacks.append(callback)
        return unregister_callback
