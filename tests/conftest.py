# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import threading
import time

import numpy as np
import pytest

from ambiway.exceptions import CaptureReadError, DeviceUnavailable, SinkError
from ambiway.geometry import EdgeCounts, EdgeIndent, MonitorGeometry, monitor_regions
from ambiway.media.protocol import CaptureDevice
from ambiway.output.protocol import LightingSink, SinkTarget
from ambiway.streaming import PipelineOptions


def solid_frame(width: int, height: int, bgr: tuple[int, int, int]) -> np.ndarray:
    frame = np.empty((height, width, 3), dtype=np.uint8)
    frame[:, :] = bgr
    return frame


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeDevice(CaptureDevice):
    """Scripted capture device.

    script entries: an ndarray (returned as a fresh copy), "fail" (transient
    CaptureReadError) or an Exception instance (raised as-is). The script loops.
    """

    def __init__(self, source_id=0, script=None, *, open_error=None, delay=0.001, gate=None):
        super().__init__(source_id)
        self.script = list(script or [])
        self.open_error = open_error
        self.delay = delay
        self.gate = gate
        self.opened = False
        self.closed = False
        self.reads = 0

    def open(self):
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    def read(self):
        if self.gate is not None:
            self.gate.wait()
        if self.delay:
            time.sleep(self.delay)
        item = self.script[self.reads % len(self.script)]
        self.reads += 1
        if isinstance(item, str) and item == "fail":
            raise CaptureReadError("scripted failure")
        if isinstance(item, BaseException):
            raise item
        return item.copy()

    def close(self):
        self.closed = True


class FakeSource:
    """Stand-in for FrameSource driven directly by the test."""

    def __init__(self, image=None, events=None, name="source"):
        self.image = image
        self.error = None
        self.closed = False
        self.frames_published = 0
        self.read_failures = 0
        self._events = events
        self._name = name

    def read_latest(self):
        return self.image is not None, self.image

    def close(self, timeout=None):
        self.closed = True
        if self._events is not None:
            self._events.append(f"{self._name} closed")


class FakeSink(LightingSink):
    """Records every zone update; fails the next `fail_next` updates."""

    def __init__(self, *, leading_placeholder=False, connect_error=None, events=None):
        super().__init__(SinkTarget("fake", "localhost", 1, leading_placeholder=leading_placeholder))
        self.updates: list[tuple[int, list[list[int]]]] = []
        self.fail_next = 0
        self.fail_always = False
        self.connect_error = connect_error
        self.events = events if events is not None else []
        self._lock = threading.Lock()

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        self.events.append("sink connected")
        await super().connect()

    async def close(self):
        self.events.append("sink closed")
        await super().close()

    async def _send_zone(self, zone_id, colors):
        if self.fail_always or self.fail_next > 0:
            self.fail_next = max(0, self.fail_next - 1)
            raise SinkError("scripted sink failure", zone_id)
        with self._lock:
            self.updates.append((zone_id, colors.tolist()))


def make_options(index=0, source_id=0, zone_id=0, *, width=1920, height=1080, leds=4, size=20, **kwargs):
    monitor = MonitorGeometry(width, height)
    regions = monitor_regions(monitor, EdgeCounts(leds, leds, leds, leds), EdgeIndent(), size)
    kwargs.setdefault("log_metrics", False)
    return PipelineOptions(
        index=index,
        source_id=source_id,
        zone_id=zone_id,
        monitor=monitor,
        regions=tuple(regions),
        **kwargs,
    )


@pytest.fixture
def red_frame():
    # Pure red in BGR order
    return solid_frame(1920, 1080, (0, 0, 255))


@pytest.fixture
def unavailable_factory():
    def factory(options):
        raise DeviceUnavailable(f"cannot open {options.source_id}", options.source_id)

    return factory
