from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from .const import DRIVER_PRECISION
from .models import Frame

_LOGGER = logging.getLogger(__name__)


class Blaster:
    """Write frames to a pi-blaster style driver.

    The driver reads one line per update, each holding a
    `<channel>=<intensity>` pair for red, green and blue.
    The device is opened for every write and never created.
    """

    def __init__(
        self, path: str | os.PathLike[str], pins: tuple[int, int, int]
    ) -> None:
        """Init the Blaster."""
        self._path = Path(path)
        self._pins = pins

    @property
    def path(self) -> Path:
        return self._path

    @property
    def pins(self) -> tuple[int, int, int]:
        return self._pins

    def format_frame(self, frame: Frame) -> str:
        """Return the driver line for a frame."""
        pairs = zip(self._pins, frame.rgb)
        line = " ".join(f"{pin}={value:.{DRIVER_PRECISION}f}" for pin, value in pairs)
        return line + "\n"

    async def render(self, frame: Frame) -> None:
        """Render a frame; OSError from the device propagates."""
        line = self.format_frame(frame)
        _LOGGER.debug('Writing message "%s" to %s', line[:-1], self._path)
        await asyncio.get_running_loop().run_in_executor(None, self._write, line)

    def _write(self, line: str) -> None:
        fd = os.open(self._path, os.O_WRONLY | os.O_APPEND)
        try:
            os.write(fd, line.encode())
        finally:
            os.close(fd)
