# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import asyncio
import contextlib
import logging
import threading

import numpy as np
from openrgb import OpenRGBClient
from openrgb.utils import ControllerParsingError, RGBColor, SDKVersionError

from ..exceptions import SinkConnectionError, SinkError
from .protocol import LightingSink, SinkFactory, SinkTarget


OPENRGB_DEFAULT_PORT = 6742


class OpenRgbSink(LightingSink):
    """Sink writing zone colors through an OpenRGB SDK server.

    The client owns one TCP socket shared by every pipeline, so blocking client
    calls run in the default executor and writes are serialized by a lock.
    """

    default_port = OPENRGB_DEFAULT_PORT

    def __init__(self, target: SinkTarget):
        super().__init__(target)
        self.client: OpenRGBClient | None = None
        self.device = None
        self._io_lock = threading.Lock()
        self._size_warned: set[int] = set()

    def _connect_blocking(self) -> None:
        self.client = OpenRGBClient(self.target.host, self.port, self.target.client_name)
        try:
            self.device = self.client.devices[self.target.device_id]
        except IndexError:
            count = len(self.client.devices)
            with contextlib.suppress(Exception):
                self.client.disconnect()
            self.client = None
            raise SinkConnectionError(
                f"OpenRGB controller {self.target.device_id} not found ({count} controllers available)"
            ) from None

    async def connect(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._connect_blocking)
        except SinkConnectionError:
            raise
        except (OSError, ControllerParsingError, SDKVersionError) as e:
            raise SinkConnectionError(f"cannot connect to OpenRGB at {self.describe()}: {e}") from e

        logging.getLogger("openrgb").info(
            f"connected to {self.describe()} controller={self.target.device_id} "
            f"name={getattr(self.device, 'name', '?')!r} zones={len(getattr(self.device, 'zones', []))}"
        )
        await super().connect()

    async def close(self) -> None:
        await super().close()
        client, self.client = self.client, None
        if client is None:
            return

        def _disconnect():
            with self._io_lock:
                client.disconnect()

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, _disconnect)
        except OSError as e:
            logging.getLogger("openrgb").warning(f"disconnect from {self.describe()} failed: {e}")
        logging.getLogger("openrgb").info(
            f"disconnected from {self.describe()} updates={self.metrics.updates_sent} leds={self.metrics.leds_sent}"
        )

    def _fit_to_zone(self, zone_id: int, zone_size: int, colors: np.ndarray) -> np.ndarray:
        """Truncate or pad with black so the update matches the zone's LED count.

        Zone.set_colors rejects any other length.
        """
        if not zone_size or zone_size == len(colors):
            return colors
        if zone_id not in self._size_warned:
            self._size_warned.add(zone_id)
            logging.getLogger("openrgb").warning(
                f"zone {zone_id} has {zone_size} LEDs, got {len(colors)} colors; "
                f"{'truncating' if len(colors) > zone_size else 'padding with black'}"
            )
        if len(colors) > zone_size:
            return colors[:zone_size]
        return np.vstack([colors, np.zeros((zone_size - len(colors), 3), dtype=np.uint8)])

    def _write_blocking(self, zone_id: int, colors: np.ndarray) -> None:
        if self.device is None:
            raise SinkError("OpenRGB sink is not connected", zone_id)
        try:
            zone = self.device.zones[zone_id]
        except IndexError:
            raise SinkError(f"OpenRGB zone {zone_id} does not exist on controller {self.target.device_id}", zone_id) from None

        colors = self._fit_to_zone(zone_id, len(getattr(zone, "leds", [])), colors)
        payload = [RGBColor(int(r), int(g), int(b)) for r, g, b in colors]
        with self._io_lock:
            zone.set_colors(payload, fast=True)

    async def _send_zone(self, zone_id: int, colors: np.ndarray) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write_blocking, zone_id, colors)
        except SinkError:
            raise
        except (OSError, IndexError, ValueError) as e:
            # IndexError: the client's own LED count check in Zone.set_colors
            raise SinkError(f"OpenRGB update of zone {zone_id} failed: {e}", zone_id) from e


# Register the OpenRGB sink
SinkFactory.register("openrgb", OpenRgbSink)
