from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Protocol

import async_timeout

from .const import PUBLISH_TIMEOUT
from .exceptions import InvalidStateError
from .models import State

_LOGGER = logging.getLogger(__name__)


class StateStore(Protocol):
    async def load(self) -> State:
        ...

    async def save(self, state: State) -> None:
        ...


class FileStateStore:
    """Keep the state as a JSON document in a local file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> State:
        """Load the saved state, falling back to the default one."""
        if not self._path.exists():
            _LOGGER.debug(
                "State file %s doesn't exist, returning default state", self._path
            )
            return State()
        loop = asyncio.get_running_loop()
        contents = await loop.run_in_executor(None, self._path.read_bytes)
        try:
            state = State.from_json(contents)
        except InvalidStateError as ex:
            _LOGGER.warning("State failed to load: %s", ex)
            _LOGGER.warning("Using default state")
            return State()
        _LOGGER.debug("Using saved state from file %s: %s", self._path, state)
        return state

    async def save(self, state: State) -> None:
        serialised = state.to_json()
        _LOGGER.debug("Saving state to %s: %s", self._path, serialised)
        await asyncio.get_running_loop().run_in_executor(
            None, self._path.write_text, serialised
        )


class RetainedStateStore:
    """Keep the state as a retained message on an MQTT topic.

    `load` only subscribes; the broker then redelivers the retained
    snapshot, which the event loop hands to `adopt_snapshot`.
    """

    def __init__(self, client: Any, topic: str) -> None:
        self._client = client
        self._topic = topic
        self._awaiting_snapshot = False

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def awaiting_snapshot(self) -> bool:
        return self._awaiting_snapshot

    async def load(self) -> State:
        await self._client.subscribe(self._topic, qos=1)
        self._awaiting_snapshot = True
        _LOGGER.debug("Waiting for a retained snapshot on %s", self._topic)
        return State()

    async def adopt_snapshot(self, payload: str | bytes) -> State | None:
        """Decode the first valid snapshot and stop listening for more."""
        try:
            state = State.from_json(payload)
        except InvalidStateError as ex:
            _LOGGER.warning("Ignoring malformed snapshot on %s: %s", self._topic, ex)
            return None
        await self._client.unsubscribe(self._topic)
        self._awaiting_snapshot = False
        _LOGGER.info("Adopted snapshot from %s: %s", self._topic, state)
        return state

    async def save(self, state: State) -> None:
        serialised = state.to_json()
        _LOGGER.debug("Publishing state to %s: %s", self._topic, serialised)
        # QoS 1 publishes return once the broker has acknowledged them
        async with async_timeout.timeout(PUBLISH_TIMEOUT):
            await self._client.publish(self._topic, serialised, qos=1, retain=True)
