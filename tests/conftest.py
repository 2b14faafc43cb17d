from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest

from moodlight.config import Config
from moodlight.models import Frame


class FakeRenderer:
    """Record rendered frames and colours, optionally failing on the nth."""

    def __init__(self, fail_on: int | None = None) -> None:
        self.frames: list[Frame] = []
        self.rgbs: list[tuple[float, float, float]] = []
        self._fail_on = fail_on

    async def render(self, frame: Frame) -> None:
        if self._fail_on is not None and len(self.frames) + 1 == self._fail_on:
            raise OSError("pi-blaster unavailable")
        # convert like a real driver would
        self.rgbs.append(frame.rgb)
        self.frames.append(frame)


class FakeMessages:
    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()

    def put(self, topic: str, payload: bytes) -> None:
        self._queue.put_nowait(
            SimpleNamespace(topic=SimpleNamespace(value=topic), payload=payload)
        )

    def __aiter__(self) -> FakeMessages:
        return self

    async def __anext__(self) -> Any:
        return await self._queue.get()


class FakeClient:
    def __init__(self) -> None:
        self.publish = AsyncMock()
        self.subscribe = AsyncMock()
        self.unsubscribe = AsyncMock()
        self.messages = FakeMessages()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def environ(tmp_path) -> dict[str, str]:
    return {
        "MOODLIGHT_BROKER_HOST": "broker.local",
        "MOODLIGHT_BROKER_USERNAME": "light",
        "MOODLIGHT_BROKER_PASSWORD": "hunter2",
        "MOODLIGHT_PIN_R": "17",
        "MOODLIGHT_PIN_G": "22",
        "MOODLIGHT_PIN_B": "24",
        "MOODLIGHT_NAME": "Living Room",
        "MOODLIGHT_STATE_FILE": str(tmp_path / "moodlight_state"),
    }


@pytest.fixture
def config(environ) -> Config:
    return Config.from_env(environ)
