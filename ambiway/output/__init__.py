# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Lighting sink implementations."""

# Import specific implementations to register them
from .ddp import DdpSink
from .openrgb import OpenRgbSink
from .protocol import LightingSink, SinkFactory, SinkMetrics, SinkTarget


__all__ = [
    # Implementations
    "DdpSink",
    # Base protocol
    "LightingSink",
    "OpenRgbSink",
    # Factory
    "SinkFactory",
    # Data structures
    "SinkMetrics",
    "SinkTarget",
]
