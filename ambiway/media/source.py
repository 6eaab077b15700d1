# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Latest-frame handoff between a blocking capture thread and the pipeline.

The producer thread owns the device. It publishes each frame as an immutable
FrameSnapshot by swapping a single reference under a lock; readers take the
same lock only long enough to copy that reference. The lock is never held
across a device read, so a reader never waits on capture I/O.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..exceptions import CaptureReadError, DeviceUnavailable
from .protocol import CaptureDevice
from .video import PyAvCaptureDevice


@dataclass(frozen=True)
class FrameSnapshot:
    """One published capture result. image is read-only, or None after a failed read."""

    image: np.ndarray | None
    sequence: int
    timestamp: float

    @property
    def has_data(self) -> bool:
        return self.image is not None


EMPTY_SNAPSHOT = FrameSnapshot(image=None, sequence=0, timestamp=0.0)


class SnapshotCell:
    """Single-slot atomic cell: replace whole, read whole."""

    def __init__(self, initial: FrameSnapshot = EMPTY_SNAPSHOT):
        self._lock = threading.Lock()
        self._value = initial

    def publish(self, value: FrameSnapshot) -> None:
        with self._lock:
            self._value = value

    def read(self) -> FrameSnapshot:
        with self._lock:
            return self._value


DeviceFactory = Callable[[int | str, dict[str, Any]], CaptureDevice]


def default_device_factory(source_id: int | str, options: dict[str, Any]) -> CaptureDevice:
    """Build a PyAV device; options may carry 'format' (demuxer) and 'options' (demuxer options)."""
    return PyAvCaptureDevice(source_id, options.get("options"), options.get("format", "v4l2"))


class FrameSource:
    """Background producer publishing the most recent frame of one capture device."""

    def __init__(self, device: CaptureDevice, *, retry_ms: float = 10.0):
        self.device = device
        self.source_id = device.source_id
        self.retry_s = max(0.0, float(retry_ms)) / 1000.0

        self._cell = SnapshotCell()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._sequence = 0
        self._error: BaseException | None = None

        # Counters read by the pipeline's metrics log
        self.frames_published = 0
        self.read_failures = 0

    @classmethod
    def open(
        cls,
        source_id: int | str,
        device_factory: DeviceFactory = default_device_factory,
        *,
        retry_ms: float = 10.0,
        **device_options: Any,
    ) -> "FrameSource":
        """Open the device and start its producer thread.

        Raises:
            DeviceUnavailable: the device could not be opened
        """
        device = device_factory(source_id, device_options)
        try:
            device.open()
        except DeviceUnavailable:
            raise
        except Exception as e:
            raise DeviceUnavailable(f"cannot open capture source {source_id}: {e}", source_id) from e

        source = cls(device, retry_ms=retry_ms)
        source.start()
        return source

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._capture_loop, name=f"capture-{self.device.describe()}", daemon=True
        )
        self._thread.start()

    def _publish(self, image: np.ndarray | None) -> None:
        self._sequence += 1
        if image is not None:
            image.setflags(write=False)
            self.frames_published += 1
        self._cell.publish(FrameSnapshot(image=image, sequence=self._sequence, timestamp=time.monotonic()))

    def _capture_loop(self) -> None:
        logger = logging.getLogger("capture")
        try:
            while not self._stop.is_set():
                try:
                    image = self.device.read()
                except CaptureReadError as e:
                    self.read_failures += 1
                    logger.debug(f"{self.device.describe()}: {e}")
                    self._publish(None)
                    # Doubles as the retry delay and a prompt stop check
                    self._stop.wait(self.retry_s)
                    continue

                if self._stop.is_set():
                    break
                self._publish(image)
        except Exception as e:
            self._error = e
            self._publish(None)
            logger.error(f"{self.device.describe()} failed: {e!r}")
        finally:
            self.device.close()

    def latest(self) -> FrameSnapshot:
        """Most recently published snapshot; never waits on the producer."""
        return self._cell.read()

    def read_latest(self) -> tuple[bool, np.ndarray | None]:
        snapshot = self._cell.read()
        return snapshot.has_data, snapshot.image

    @property
    def error(self) -> BaseException | None:
        """Unrecoverable device error that ended the producer thread, if any."""
        return self._error

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def close(self, timeout: float | None = None) -> None:
        """Signal the producer to stop and wait for it to exit.

        With a timeout, a producer still stuck in a device read is logged and
        left to finish its read; the device is closed by the thread itself.
        """
        self._stop.set()
        thread = self._thread
        if thread is None:
            self.device.close()
            return
        if thread is threading.current_thread():
            return
        thread.join(timeout)
        if thread.is_alive():
            logging.getLogger("capture").warning(
                f"{self.device.describe()}: producer still blocked in read after {timeout}s"
            )
