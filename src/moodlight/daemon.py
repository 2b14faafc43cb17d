from __future__ import annotations

import asyncio
import json
import logging
import signal
from typing import Any

import aiomqtt
import async_timeout

from .config import Config
from .const import MQTT_KEEPALIVE, PUBLISH_TIMEOUT, STORE_MQTT
from .exceptions import InvalidControlMessageError
from .hass import discovery_messages
from .models import ControlMessage
from .moodlight import Moodlight
from .renderer import Blaster
from .storage import FileStateStore, RetainedStateStore, StateStore

_LOGGER = logging.getLogger(__name__)


def build_store(config: Config, client: Any) -> StateStore:
    """Return the state store selected by the configuration."""
    if config.state_store == STORE_MQTT:
        return RetainedStateStore(client, config.state_topic)
    return FileStateStore(config.state_file)


class MoodlightDaemon:
    """Feed MQTT messages and rainbow ticks into a Moodlight.

    Exactly one handler runs at a time; a stop request is only
    noticed between handlers.
    """

    def __init__(
        self, config: Config, client: Any, light: Moodlight, store: StateStore
    ) -> None:
        self._config = config
        self._client = client
        self._light = light
        self._store = store

    @property
    def light(self) -> Moodlight:
        return self._light

    async def start(self) -> None:
        """Render the loaded state, announce the device and subscribe."""
        try:
            await self._light.apply()
        except OSError as ex:
            _LOGGER.error("Applying initial state failed: %s", ex)
        for topic, payload in discovery_messages(self._config):
            _LOGGER.debug("Publishing discovery config to %s", topic)
            await self._client.publish(topic, json.dumps(payload), qos=1, retain=True)
        await self._publish_state()
        await self._client.subscribe(self._config.command_topic, qos=1)
        _LOGGER.info("Subscribed to %s", self._config.command_topic)

    async def handle_message(self, topic: str, payload: Any) -> None:
        _LOGGER.debug("Payload on %s: %r", topic, payload)
        if topic == self._config.command_topic:
            await self._handle_control(payload)
        elif topic == self._config.state_topic:
            await self._handle_snapshot(payload)
        else:
            _LOGGER.debug("Unhandled message on %s", topic)

    async def tick(self) -> None:
        """Advance the rainbow if it is running."""
        if not self._light.rainbow_active:
            return
        try:
            await self._light.step()
        except OSError as ex:
            _LOGGER.error("Applying new state failed: %s", ex)

    async def run(self, stop: asyncio.Event) -> None:
        """Dispatch events until stop is set or the transport fails."""
        messages = self._client.messages
        stop_task = asyncio.ensure_future(stop.wait())
        message_task: asyncio.Future[Any] | None = None
        tick_task: asyncio.Future[None] | None = None
        try:
            while not stop.is_set():
                if message_task is None:
                    message_task = asyncio.ensure_future(messages.__anext__())
                if tick_task is None and self._light.rainbow_active:
                    # a fresh interval each time, missed ticks are dropped
                    tick_task = asyncio.ensure_future(
                        asyncio.sleep(self._light.step_duration)
                    )
                waiting = {stop_task, message_task}
                if tick_task is not None:
                    waiting.add(tick_task)
                done, _ = await asyncio.wait(
                    waiting,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if stop_task in done:
                    break
                if message_task in done:
                    message = message_task.result()
                    message_task = None
                    await self.handle_message(message.topic.value, message.payload)
                if tick_task in done:
                    tick_task = None
                    await self.tick()
        finally:
            for task in (stop_task, message_task, tick_task):
                if task is not None:
                    task.cancel()

    async def shutdown(self) -> None:
        """Persist the final state."""
        _LOGGER.info("Saving final state: %s", self._light.state)
        await self._store.save(self._light.state)

    async def _handle_control(self, payload: Any) -> None:
        try:
            msg = ControlMessage.from_json(payload)
        except InvalidControlMessageError as ex:
            _LOGGER.error("Control message processing failed: %s", ex)
            return
        _LOGGER.info("Received control message: %s", msg)
        try:
            await self._light.process_control(msg)
        except OSError as ex:
            _LOGGER.error("Applying new state failed: %s", ex)
            return
        _LOGGER.info("Control message processed. Current state: %s", self._light.state)
        await self._publish_state()
        try:
            await self._store.save(self._light.state)
        except OSError as ex:
            _LOGGER.error("Saving state failed: %s", ex)

    async def _publish_state(self) -> None:
        """Publish the state for Home Assistant when the file store holds it."""
        if isinstance(self._store, RetainedStateStore):
            # the retained store publishes to the same topic on save
            return
        serialised = self._light.state.to_json()
        _LOGGER.debug(
            "Publishing state to %s: %s", self._config.state_topic, serialised
        )
        async with async_timeout.timeout(PUBLISH_TIMEOUT):
            await self._client.publish(
                self._config.state_topic, serialised, qos=1, retain=True
            )

    async def _handle_snapshot(self, payload: Any) -> None:
        store = self._store
        if not isinstance(store, RetainedStateStore) or not store.awaiting_snapshot:
            return
        state = await store.adopt_snapshot(payload)
        if state is None:
            return
        try:
            await self._light.replace_state(state)
        except OSError as ex:
            _LOGGER.error("Applying snapshot failed: %s", ex)


async def async_run(config: Config) -> None:
    """Connect to the broker and run until SIGINT or SIGTERM."""
    renderer = Blaster(config.blaster, config.pins)
    async with aiomqtt.Client(
        hostname=config.broker_host,
        port=config.broker_port,
        username=config.broker_username or None,
        password=config.broker_password or None,
        identifier=config.unique_id,
        keepalive=MQTT_KEEPALIVE,
    ) as client:
        _LOGGER.info(
            "Connected to broker %s:%s", config.broker_host, config.broker_port
        )
        store = build_store(config, client)
        light = Moodlight(
            renderer,
            await store.load(),
            step_duration=config.rainbow_step_duration,
            transition_duration=config.transition_duration,
            rainbow_slowest_cycle=config.rainbow_slowest_cycle,
            rainbow_fastest_cycle=config.rainbow_fastest_cycle,
        )
        daemon = MoodlightDaemon(config, client, light, store)

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        await daemon.start()
        await daemon.run(stop)
        _LOGGER.debug("Received termination signal")
        await daemon.shutdown()
