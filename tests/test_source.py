# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import threading
import time

import pytest

from ambiway.exceptions import DeviceUnavailable
from ambiway.media.source import FrameSource, SnapshotCell, FrameSnapshot

from conftest import FakeDevice, solid_frame, wait_until


def open_with(device, **kwargs):
    return FrameSource.open(device.source_id, lambda source_id, options: device, **kwargs)


def test_no_data_before_first_frame():
    gate = threading.Event()
    device = FakeDevice(script=[solid_frame(4, 4, (1, 2, 3))], gate=gate)
    source = open_with(device)
    try:
        assert source.read_latest() == (False, None)
        assert source.latest().sequence == 0
    finally:
        gate.set()
        source.close()


def test_publishes_latest_frame():
    device = FakeDevice(script=[solid_frame(4, 4, (1, 2, 3)), solid_frame(4, 4, (4, 5, 6))])
    source = open_with(device)
    try:
        assert wait_until(lambda: source.frames_published >= 2)
        has_data, image = source.read_latest()
        assert has_data
        assert image.shape == (4, 4, 3)
        assert image[0, 0].tolist() in ([1, 2, 3], [4, 5, 6])
    finally:
        source.close()


def test_published_frames_are_read_only():
    device = FakeDevice(script=[solid_frame(4, 4, (9, 9, 9))])
    source = open_with(device)
    try:
        assert wait_until(lambda: source.read_latest()[0])
        _, image = source.read_latest()
        with pytest.raises(ValueError):
            image[0, 0] = (0, 0, 0)
    finally:
        source.close()


def test_sequence_increases_monotonically():
    device = FakeDevice(script=[solid_frame(2, 2, (0, 0, 0))])
    source = open_with(device)
    try:
        seen = []
        for _ in range(20):
            seen.append(source.latest().sequence)
            time.sleep(0.002)
        assert seen == sorted(seen)
    finally:
        source.close()


def test_transient_failures_publish_no_data_then_recover():
    frame = solid_frame(4, 4, (10, 10, 10))
    device = FakeDevice(script=["fail", "fail", frame])
    source = open_with(device, retry_ms=1)
    try:
        assert wait_until(lambda: source.read_failures >= 2 and source.frames_published >= 1)
        assert source.error is None
        assert source.is_running
    finally:
        source.close()


def test_failed_read_replaces_stale_frame():
    frame = solid_frame(4, 4, (10, 10, 10))
    device = FakeDevice(script=[frame, "fail"])
    # long retry keeps the no-data snapshot in place while we look at it
    source = open_with(device, retry_ms=1000)
    try:
        assert wait_until(lambda: source.read_failures >= 1)
        assert source.frames_published == 1
        assert source.read_latest() == (False, None)
    finally:
        source.close()


def test_open_failure_raises_device_unavailable():
    device = FakeDevice(source_id=7, script=[solid_frame(2, 2, (0, 0, 0))], open_error=OSError("no such device"))

    with pytest.raises(DeviceUnavailable) as exc_info:
        open_with(device)

    assert exc_info.value.source_id == 7
    assert exc_info.value.stage == "device open"


def test_open_failure_passes_device_unavailable_through():
    err = DeviceUnavailable("busy", 3)
    device = FakeDevice(source_id=3, script=[], open_error=err)

    with pytest.raises(DeviceUnavailable) as exc_info:
        open_with(device)

    assert exc_info.value is err


def test_close_joins_thread_and_releases_device():
    device = FakeDevice(script=[solid_frame(2, 2, (0, 0, 0))])
    source = open_with(device)
    assert wait_until(lambda: source.frames_published > 0)

    source.close()

    assert not source.is_running
    assert device.closed


def test_close_without_start_releases_device():
    device = FakeDevice(script=[solid_frame(2, 2, (0, 0, 0))])
    source = FrameSource(device)

    source.close()

    assert device.closed


def test_unrecoverable_error_ends_producer():
    device = FakeDevice(script=[RuntimeError("device unplugged")])
    source = open_with(device)

    assert wait_until(lambda: not source.is_running)
    assert isinstance(source.error, RuntimeError)
    assert source.read_latest() == (False, None)
    assert device.closed
    source.close()


def test_reader_does_not_wait_on_blocked_device():
    gate = threading.Event()
    device = FakeDevice(script=[solid_frame(2, 2, (0, 0, 0))], gate=gate)
    source = open_with(device)
    try:
        gate.set()
        assert wait_until(lambda: source.frames_published > 0)
        gate.clear()
        # producer is now parked inside read(); reads must still return immediately
        started = time.monotonic()
        for _ in range(100):
            has_data, _ = source.read_latest()
        assert time.monotonic() - started < 0.5
        assert has_data
    finally:
        gate.set()
        source.close()


def test_snapshot_cell_replaces_whole_value():
    cell = SnapshotCell()
    assert not cell.read().has_data

    snap = FrameSnapshot(image=solid_frame(1, 1, (0, 0, 0)), sequence=1, timestamp=0.0)
    cell.publish(snap)

    assert cell.read() is snap
