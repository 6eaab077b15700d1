# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Monitor geometry and per-LED sampling regions."""

from .monitors import list_monitors
from .regions import (
    EdgeCounts,
    EdgeIndent,
    MonitorGeometry,
    Region,
    Wiring,
    compute_regions,
    edge_boundaries,
    monitor_regions,
    round_half_up,
)


__all__ = [
    "EdgeCounts",
    "EdgeIndent",
    "MonitorGeometry",
    "Region",
    "Wiring",
    "compute_regions",
    "edge_boundaries",
    "list_monitors",
    "monitor_regions",
    "round_half_up",
]
