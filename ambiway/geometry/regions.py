# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Sampling rectangle layout around each monitor's perimeter.

Coordinates are source-frame pixels with the origin at the top-left corner.
Rectangles are half-open: a Region covers columns x1..x2-1 and rows y1..y2-1.

Wiring order (default, "left" + "clockwise", as seen facing the screen):

    left edge   bottom -> top
    top edge    left   -> right
    right edge  top    -> bottom
    bottom edge right  -> left

Counterclockwise wiring is the exact reverse of the clockwise walk rotated to
start on the configured edge. The order decides which physical LED receives
which color; nothing here can detect a mismatch with the real strip.
"""

import math
from dataclasses import dataclass

from ..exceptions import ConfigurationError


EDGES = ("left", "up", "right", "down")


@dataclass(frozen=True)
class MonitorGeometry:
    """Pixel dimensions of one display."""

    width: int
    height: int


@dataclass(frozen=True)
class EdgeCounts:
    """LED count on each edge of one monitor."""

    left: int
    up: int
    right: int
    down: int

    def get(self, edge: str) -> int:
        return getattr(self, edge)

    @property
    def total(self) -> int:
        return self.left + self.up + self.right + self.down


@dataclass(frozen=True)
class EdgeIndent:
    """Corner indents in pixels, named edge first, corner second."""

    left_up: int = 0
    left_down: int = 0
    up_left: int = 0
    up_right: int = 0
    right_up: int = 0
    right_down: int = 0
    down_left: int = 0
    down_right: int = 0

    @classmethod
    def uniform(cls, left: int = 0, up: int = 0, right: int = 0, down: int = 0) -> "EdgeIndent":
        """Same indent at both corners of each edge."""
        return cls(left, left, up, up, right, right, down, down)


@dataclass(frozen=True)
class Region:
    """One LED's sampling rectangle."""

    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.x1, self.y1, self.x2, self.y2)


@dataclass(frozen=True)
class Wiring:
    """Physical strip order: first edge and rotational direction."""

    start: str = "left"
    direction: str = "clockwise"

    def __post_init__(self):
        if self.start not in EDGES:
            raise ConfigurationError(f"invalid wiring start edge: {self.start!r}", "wiring.start")
        if self.direction not in ("clockwise", "counterclockwise"):
            raise ConfigurationError(f"invalid wiring direction: {self.direction!r}", "wiring.direction")


def round_half_up(value: float) -> int:
    """Round to nearest, ties away from zero (not banker's rounding)."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def edge_boundaries(led_count: int, inner_span: int, offset: int = 0) -> list[int]:
    """Boundaries 0..led_count along one edge.

    Each boundary is rounded from the exact product step * a, never from an
    accumulated rounded width, so rounding error does not drift along the strip
    and the last boundary is always inner_span + offset.
    """
    if led_count <= 0:
        raise ConfigurationError(f"LED count must be positive, got {led_count}")
    if inner_span <= 0:
        raise ConfigurationError(f"sampling span must be positive, got {inner_span}")
    if led_count > inner_span:
        raise ConfigurationError(f"{led_count} LEDs do not fit in a {inner_span}px span")

    step = inner_span / led_count
    return [round_half_up(step * a) + offset for a in range(led_count + 1)]


def _edge_regions(edge: str, monitor: MonitorGeometry, count: int, indent: EdgeIndent, size: int) -> list[Region]:
    """Regions of one edge in clockwise order."""
    w, h = monitor.width, monitor.height

    if edge == "left":
        near, far = indent.left_down, indent.left_up
        span = h - near - far
    elif edge == "up":
        near, far = indent.up_left, indent.up_right
        span = w - near - far
    elif edge == "right":
        near, far = indent.right_up, indent.right_down
        span = h - near - far
    else:
        near, far = indent.down_right, indent.down_left
        span = w - near - far

    try:
        bounds = edge_boundaries(count, span, near)
    except ConfigurationError as e:
        raise ConfigurationError(f"{edge} edge of {w}x{h} monitor: {e}", f"led.{edge}") from e

    regions = []
    for prev, cur in zip(bounds, bounds[1:]):
        if edge == "left":
            # bottom -> top, measured up from the bottom screen edge
            regions.append(Region(0, h - cur, size, h - prev))
        elif edge == "up":
            regions.append(Region(prev, 0, cur, size))
        elif edge == "right":
            regions.append(Region(w - size, prev, w, cur))
        else:
            # right -> left, measured in from the right screen edge
            regions.append(Region(w - cur, h - size, w - prev, h))
    return regions


def _validate_indent(indent: EdgeIndent) -> None:
    for name, value in vars(indent).items():
        if not isinstance(value, int) or value < 0:
            raise ConfigurationError(f"indent {name} must be a non-negative integer, got {value!r}", f"indent.{name}")


def monitor_regions(
    monitor: MonitorGeometry,
    counts: EdgeCounts,
    indent: EdgeIndent,
    sample_thickness: int,
    wiring: Wiring = Wiring(),
) -> list[Region]:
    """Ordered regions for a single monitor."""
    if monitor.width <= 0 or monitor.height <= 0:
        raise ConfigurationError(f"invalid monitor geometry {monitor.width}x{monitor.height}")
    if not 0 < sample_thickness <= min(monitor.width, monitor.height):
        raise ConfigurationError(
            f"sample thickness {sample_thickness} outside 1..{min(monitor.width, monitor.height)}", "settings.size"
        )
    _validate_indent(indent)

    per_edge = {edge: _edge_regions(edge, monitor, counts.get(edge), indent, sample_thickness) for edge in EDGES}

    first = EDGES.index(wiring.start)
    if wiring.direction == "clockwise":
        order = [EDGES[(first + k) % 4] for k in range(4)]
        return [r for edge in order for r in per_edge[edge]]

    order = [EDGES[(first - k) % 4] for k in range(4)]
    return [r for edge in order for r in reversed(per_edge[edge])]


def compute_regions(
    monitors: list[MonitorGeometry],
    led_counts: list[EdgeCounts],
    indents: list[EdgeIndent],
    sample_thickness: int,
    wiring: Wiring = Wiring(),
) -> list[list[Region]]:
    """Ordered sampling regions for every monitor, one Region per LED."""
    if len(led_counts) != len(monitors):
        raise ConfigurationError(f"LED counts given for {len(led_counts)} monitors, expected {len(monitors)}", "led")
    if len(indents) != len(monitors):
        raise ConfigurationError(f"indents given for {len(indents)} monitors, expected {len(monitors)}", "indent")

    return [
        monitor_regions(monitor, counts, indent, sample_thickness, wiring)
        for monitor, counts, indent in zip(monitors, led_counts, indents)
    ]
