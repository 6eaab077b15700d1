# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

from abc import ABC, abstractmethod
from typing import Any

import numpy as np


class CaptureDevice(ABC):
    """Abstract base class for blocking frame producers (capture cards, cameras, files).

    Implementations are driven from a single producer thread: open() once,
    read() in a loop, close() once from the same thread.
    """

    def __init__(self, source_id: int | str, options: dict[str, Any] | None = None):
        self.source_id = source_id
        self.options = dict(options or {})

    @abstractmethod
    def open(self) -> None:
        """Acquire the device.

        Raises:
            DeviceUnavailable: the device cannot be opened at all
        """

    @abstractmethod
    def read(self) -> np.ndarray:
        """Block until the next frame and return it as a fresh (H, W, 3) uint8 array.

        The returned array must not be reused or modified by the device afterwards.

        Raises:
            CaptureReadError: transient failure, the caller retries
        """

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call more than once."""

    def describe(self) -> str:
        """Human-readable source name for logs."""
        return str(self.source_id)
