import asyncio
import logging
import sys
import tempfile
from pathlib import Path

from moodlight import Blaster, ControlMessage, Moodlight, State

_LOGGER = logging.getLogger(__name__)

PINS = (17, 22, 24)
STEP_DURATION = 0.02


async def run(path: Path) -> None:
    light = Moodlight(Blaster(path, PINS), step_duration=STEP_DURATION)

    def on_state_changed(state: State) -> None:
        _LOGGER.info("State changed: %s", state)

    cancel_callback = light.register_callback(on_state_changed)
    _LOGGER.info("apply...")
    await light.apply()
    _LOGGER.info("turn_on...")
    await light.process_control(ControlMessage.from_json('{"state": "ON"}'))
    _LOGGER.info("set color (green)...")
    await light.process_control(
        ControlMessage.from_json('{"color": {"h": 120, "s": 100}, "brightness": 128}')
    )
    await asyncio.sleep(1)
    _LOGGER.info("rainbow...")
    await light.process_control(
        ControlMessage.from_json('{"mode": "rainbow", "rainbow_speed": 100}')
    )
    for _ in range(int(1 / STEP_DURATION)):
        await light.step()
        await asyncio.sleep(STEP_DURATION)
    _LOGGER.info("turn_off...")
    await light.process_control(ControlMessage.from_json('{"state": "OFF"}'))
    cancel_callback()
    _LOGGER.info("done")


logging.basicConfig(level=logging.INFO)
logging.getLogger("moodlight").setLevel(logging.DEBUG)

if len(sys.argv) > 1:
    asyncio.run(run(Path(sys.argv[1])))
else:
    with tempfile.NamedTemporaryFile(suffix=".blaster") as blaster:
        asyncio.run(run(Path(blaster.name)))
