from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import aiomqtt

from . import __version__
from .config import Config
from .daemon import async_run
from .exceptions import ConfigError

_LOGGER = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="moodlight",
        description="Drive an RGB LED strip through pi-blaster from MQTT.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log at DEBUG level"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    try:
        config = Config.from_env()
    except ConfigError as ex:
        _LOGGER.error("Invalid configuration: %s", ex)
        return 1
    logging.getLogger().setLevel(logging.DEBUG if args.verbose else config.log_level)

    try:
        asyncio.run(async_run(config))
    except aiomqtt.MqttError as ex:
        _LOGGER.error("MQTT connection failed: %s", ex)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
