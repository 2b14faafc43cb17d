from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace

import pytest

from moodlight.daemon import MoodlightDaemon, build_store
from moodlight.models import Color, Frame, Mode, Power, State
from moodlight.moodlight import Moodlight
from moodlight.renderer import Blaster
from moodlight.storage import FileStateStore, RetainedStateStore

from .conftest import FakeRenderer


def _daemon(config, client, renderer, state=None, store=None) -> MoodlightDaemon:
    light = Moodlight(renderer, state, step_duration=0.01, transition_duration=0)
    if store is None:
        store = build_store(config, client)
    return MoodlightDaemon(config, client, light, store)


def test_build_store(config, client):
    assert isinstance(build_store(config, client), FileStateStore)
    retained = build_store(replace(config, state_store="mqtt"), client)
    assert isinstance(retained, RetainedStateStore)
    assert retained.topic == config.state_topic


async def test_start_renders_announces_and_subscribes(config, client, renderer):
    daemon = _daemon(config, client, renderer)
    await daemon.start()
    assert renderer.frames == [State().frame]
    topics = [call.args[0] for call in client.publish.await_args_list]
    assert topics == [
        "homeassistant/light/moodlight_living_room/config",
        "homeassistant/select/moodlight_living_room_mode/config",
        "homeassistant/number/moodlight_living_room_rainbow_speed/config",
        config.state_topic,
    ]
    for call in client.publish.await_args_list:
        assert call.kwargs == {"qos": 1, "retain": True}
    json.loads(client.publish.await_args_list[0].args[1])
    assert client.publish.await_args_list[-1].args[1] == State().to_json()
    client.subscribe.assert_awaited_once_with(config.command_topic, qos=1)


async def test_start_survives_render_failure(config, client, caplog):
    daemon = _daemon(config, client, FakeRenderer(fail_on=1))
    with caplog.at_level(logging.ERROR):
        await daemon.start()
    assert "Applying initial state failed" in caplog.text
    client.subscribe.assert_awaited_once()


async def test_control_message_applies_and_saves(config, client, renderer):
    daemon = _daemon(config, client, renderer)
    await daemon.handle_message(
        config.command_topic,
        b'{"state": "ON", "color": {"h": 120, "s": 100}, "brightness": 100}',
    )
    expected = State(Color(120, 100), 100, power=Power.ON)
    assert daemon.light.state == expected
    assert renderer.frames[-1] == Frame(120, 100, 100, Power.ON)
    assert State.from_json(config.state_file.read_text()) == expected


async def test_malformed_control_message_is_discarded(config, client, renderer, caplog):
    daemon = _daemon(config, client, renderer)
    with caplog.at_level(logging.ERROR):
        await daemon.handle_message(config.command_topic, b'{"state": "ON", "mode": 7}')
    assert "Control message processing failed" in caplog.text
    assert daemon.light.state == State()
    assert renderer.frames == []
    assert not config.state_file.exists()


async def test_render_failure_is_logged_and_not_saved(config, client, caplog):
    daemon = _daemon(config, client, FakeRenderer(fail_on=1))
    with caplog.at_level(logging.ERROR):
        await daemon.handle_message(config.command_topic, b'{"brightness": 3}')
    assert "Applying new state failed" in caplog.text
    assert daemon.light.brightness == 3
    assert not config.state_file.exists()


async def test_control_message_publishes_retained_state(config, client, renderer):
    config = replace(config, state_store="mqtt")
    daemon = _daemon(config, client, renderer)
    await daemon.handle_message(config.command_topic, b'{"rainbow_speed": 12}')
    client.publish.assert_awaited_once_with(
        config.state_topic, daemon.light.state.to_json(), qos=1, retain=True
    )


async def test_snapshot_replaces_state_once(config, client, renderer):
    config = replace(config, state_store="mqtt")
    store = build_store(config, client)
    daemon = _daemon(config, client, renderer, await store.load(), store)
    snapshot = State(Color(300, 20), 90, 80, Mode.RAINBOW, Power.ON)

    await daemon.handle_message(config.state_topic, b"corrupt")
    assert daemon.light.state == State()

    await daemon.handle_message(config.state_topic, snapshot.to_json().encode())
    assert daemon.light.state == snapshot
    assert renderer.frames == [snapshot.frame]
    client.unsubscribe.assert_awaited_once_with(config.state_topic)

    await daemon.handle_message(config.state_topic, State().to_json().encode())
    assert daemon.light.state == snapshot


async def test_snapshot_ignored_by_file_store(config, client, renderer):
    daemon = _daemon(config, client, renderer)
    snapshot = State(brightness=1)
    await daemon.handle_message(config.state_topic, snapshot.to_json().encode())
    assert daemon.light.state == State()


async def test_unknown_topic_ignored(config, client, renderer):
    daemon = _daemon(config, client, renderer)
    await daemon.handle_message("somewhere/else", b'{"state": "ON"}')
    assert daemon.light.state == State()


async def test_tick_only_steps_active_rainbow(config, client, renderer):
    daemon = _daemon(config, client, renderer, State(mode=Mode.RAINBOW))
    await daemon.tick()
    assert renderer.frames == []

    daemon = _daemon(
        config, client, renderer, State(mode=Mode.RAINBOW, power=Power.ON)
    )
    await daemon.tick()
    assert len(renderer.frames) == 1
    assert daemon.light.hs_color[0] > 0


async def test_tick_render_failure_is_logged(config, client, caplog):
    daemon = _daemon(
        config,
        client,
        FakeRenderer(fail_on=1),
        State(mode=Mode.RAINBOW, power=Power.ON),
    )
    with caplog.at_level(logging.ERROR):
        await daemon.tick()
    assert "Applying new state failed" in caplog.text


async def test_run_returns_when_stopped(config, client, renderer):
    daemon = _daemon(config, client, renderer)
    stop = asyncio.Event()
    stop.set()
    await asyncio.wait_for(daemon.run(stop), 1)
    assert renderer.frames == []


async def test_run_dispatches_messages_and_ticks(config, client, renderer):
    daemon = _daemon(config, client, renderer)
    stop = asyncio.Event()
    hues: list[float] = []

    def record_hue() -> None:
        hues.append(daemon.light.hs_color[0])
        if len(hues) >= 3:
            stop.set()

    real_tick = daemon.tick

    async def tick() -> None:
        await real_tick()
        if daemon.light.rainbow_active:
            record_hue()

    daemon.tick = tick  # type: ignore[method-assign]
    client.messages.put(
        config.command_topic,
        b'{"state": "ON", "mode": "rainbow", "rainbow_speed": 100}',
    )
    await asyncio.wait_for(daemon.run(stop), 5)

    assert daemon.light.on
    assert daemon.light.mode is Mode.RAINBOW
    assert hues == sorted(hues)
    assert hues[0] > 0


async def test_shutdown_saves_final_state(config, client, renderer):
    daemon = _daemon(config, client, renderer, State(brightness=42))
    await daemon.shutdown()
    assert State.from_json(config.state_file.read_text()) == State(brightness=42)


async def test_run_propagates_transport_errors(config, client, renderer):
    class Broken:
        async def __anext__(self):
            raise ConnectionError("broker went away")

    client.messages = Broken()
    daemon = _daemon(config, client, renderer)
    with pytest.raises(ConnectionError):
        await asyncio.wait_for(daemon.run(asyncio.Event()), 1)


async def test_retained_start_leaves_state_topic_alone(config, client, renderer):
    config = replace(config, state_store="mqtt")
    daemon = _daemon(config, client, renderer)
    await daemon.start()
    topics = [call.args[0] for call in client.publish.await_args_list]
    assert config.state_topic not in topics


async def test_file_store_publishes_state_topic(config, client, renderer):
    daemon = _daemon(config, client, renderer)
    await daemon.start()
    client.publish.reset_mock()

    await daemon.handle_message(
        config.command_topic, b'{"state": "ON", "brightness": 90}'
    )
    client.publish.assert_awaited_once_with(
        config.state_topic, daemon.light.state.to_json(), qos=1, retain=True
    )
    assert json.loads(client.publish.await_args.args[1])["brightness"] == 90

    client.publish.reset_mock()
    await daemon.handle_message(config.command_topic, b'{"mode": 7}')
    client.publish.assert_not_awaited()


@pytest.mark.parametrize("power", [Power.ON, Power.OFF])
async def test_non_finite_color_is_rejected(config, client, tmp_path, caplog, power):
    device = tmp_path / "pi-blaster"
    device.touch()
    state = State(Color(0, 100), power=power)
    daemon = _daemon(config, client, Blaster(device, (17, 22, 24)), state)

    with caplog.at_level(logging.ERROR):
        await daemon.handle_message(
            config.command_topic, b'{"color": {"h": 1e999, "s": 50}}'
        )
    assert "Control message processing failed" in caplog.text
    assert daemon.light.state == state
    assert not config.state_file.exists()

    await daemon.handle_message(
        config.command_topic, b'{"state": "ON", "color": {"h": 120, "s": 100}}'
    )
    assert device.read_text().splitlines()[-1] == "17=0.000 22=1.000 24=0.000"
    saved = State.from_json(config.state_file.read_text())
    assert saved.color == Color(120, 100)


async def test_blaster_receives_rendered_colour(config, client, tmp_path):
    device = tmp_path / "pi-blaster"
    device.touch()
    daemon = _daemon(config, client, Blaster(device, (17, 22, 24)))
    await daemon.start()
    await daemon.handle_message(
        config.command_topic,
        b'{"state": "ON", "color": {"h": 240, "s": 100}, "brightness": 255}',
    )
    assert device.read_text().splitlines() == [
        "17=0.000 22=0.000 24=0.000",
        "17=0.000 22=0.000 24=1.000",
    ]


@pytest.mark.parametrize(
    "state", [State(), State(power=Power.ON), State(mode=Mode.RAINBOW)]
)
async def test_run_does_not_tick_without_rainbow(config, client, renderer, state):
    daemon = _daemon(config, client, renderer, state)
    ticks = 0

    async def tick() -> None:
        nonlocal ticks
        ticks += 1

    daemon.tick = tick  # type: ignore[method-assign]
    stop = asyncio.Event()
    asyncio.get_running_loop().call_later(0.1, stop.set)
    await asyncio.wait_for(daemon.run(stop), 1)
    assert ticks == 0
    assert renderer.frames == []
