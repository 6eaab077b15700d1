# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

from abc import ABC, abstractmethod
from dataclasses import dataclass
import time

import numpy as np


@dataclass
class SinkTarget:
    """Represents a lighting controller endpoint."""
    protocol: str  # "openrgb", "ddp"
    host: str
    port: int
    device_id: int = 0
    client_name: str = "ambiway"
    leading_placeholder: bool = False


@dataclass
class SinkMetrics:
    """Delivery counters for a sink."""
    updates_sent: int = 0
    leds_sent: int = 0
    failures: int = 0
    last_update: float = 0.0

    def reset(self):
        self.updates_sent = 0
        self.leds_sent = 0
        self.failures = 0
        self.last_update = time.perf_counter()


class LightingSink(ABC):
    """Abstract base class for lighting controllers accepting ordered RGB colors per zone."""

    default_port = 0

    def __init__(self, target: SinkTarget):
        self.target = target
        self.port = target.port or self.default_port
        self.metrics = SinkMetrics()
        self._connected = False

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection to the controller.

        Raises:
            SinkConnectionError: controller unreachable or refused the session
        """
        self.metrics.reset()
        self._connected = True

    @abstractmethod
    async def close(self) -> None:
        """Release the connection."""
        self._connected = False

    @abstractmethod
    async def _send_zone(self, zone_id: int, colors: np.ndarray) -> None:
        """Protocol-specific delivery of a prepared (n, 3) uint8 RGB array."""

    def prepare(self, colors: np.ndarray) -> np.ndarray:
        """Apply sink-specific layout quirks to a pipeline color sequence."""
        colors = np.asarray(colors, dtype=np.uint8).reshape(-1, 3)
        if self.target.leading_placeholder:
            # Some controllers index the first LED of a zone from 1
            colors = np.vstack([np.zeros((1, 3), dtype=np.uint8), colors])
        return colors

    async def update_zone(self, zone_id: int, colors: np.ndarray) -> None:
        """Send one ordered color sequence to a zone.

        Raises:
            SinkError: the update was rejected or could not be delivered
        """
        prepared = self.prepare(colors)
        try:
            await self._send_zone(zone_id, prepared)
        except Exception:
            self.metrics.failures += 1
            raise
        self.metrics.updates_sent += 1
        self.metrics.leds_sent += len(prepared)
        self.metrics.last_update = time.perf_counter()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def describe(self) -> str:
        return f"{self.target.protocol}://{self.target.host}:{self.port}"


class SinkFactory:
    """Factory for creating lighting sink instances."""

    _sinks: dict[str, type[LightingSink]] = {}

    @classmethod
    def register(cls, protocol_name: str, sink_class: type[LightingSink]) -> None:
        """Register a new sink protocol."""
        cls._sinks[protocol_name] = sink_class

    @classmethod
    def create(cls, target: SinkTarget) -> LightingSink:
        """Create a sink instance for the target's protocol."""
        sink_class = cls._sinks.get(target.protocol)
        if not sink_class:
            raise ValueError(f"Unknown sink protocol: {target.protocol} (available: {', '.join(cls.list_protocols())})")

        return sink_class(target)

    @classmethod
    def list_protocols(cls) -> list[str]:
        """List available protocol names."""
        return list(cls._sinks.keys())
