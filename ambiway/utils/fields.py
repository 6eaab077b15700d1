# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass
class FieldDef:
    """Definition of a config field with type, validation, and defaults."""

    key: str  # dotted config path, e.g. "settings.size"
    field_type: type
    validator: Callable[[Any], bool] | None = None
    default_factory: Callable[[], Any] | None = None
    description: str = ""

    def validate(self, value: Any) -> bool:
        """Validate a field value."""
        if self.validator:
            try:
                return bool(self.validator(value))
            except (ValueError, TypeError):
                return False
        return True

    def get_default(self) -> Any:
        """Get default value for this field."""
        if self.default_factory:
            return self.default_factory()
        return None

    def coerce(self, value: Any) -> Any:
        """Convert a raw config value to the field type."""
        if self.field_type is bool:
            if isinstance(value, bool):
                return value
            raise TypeError(f"expected bool, got {type(value).__name__}")
        if self.field_type is int and isinstance(value, bool):
            raise TypeError("expected int, got bool")
        if self.field_type is int and isinstance(value, float) and not value.is_integer():
            raise TypeError(f"expected int, got {value}")
        return self.field_type(value)


def _is_non_negative_int_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, int) and not isinstance(v, bool) and v >= 0 for v in value)


def _is_source_list(value: Any) -> bool:
    return (
        isinstance(value, list)
        and len(value) > 0
        and all((isinstance(v, int) and not isinstance(v, bool) and v >= 0) or (isinstance(v, str) and v.strip()) for v in value)
    )


class SettingsFields:
    """Fields of the [settings] table."""

    SIZE = FieldDef("settings.size", int, lambda x: int(x) > 0, lambda: 20, "Sampling strip thickness in pixels")
    BRIGHTNESS = FieldDef(
        "settings.brightness", float, lambda x: float(x) >= 0.0, lambda: 1.0, "Brightness multiplier"
    )
    SMOOTH = FieldDef("settings.smooth", bool, default_factory=lambda: True, description="Temporal smoothing")
    CAMS = FieldDef("settings.cams", list, _is_source_list, lambda: [0], "Capture sources, one per pipeline")
    DEVICE_ID = FieldDef("settings.device_id", int, lambda x: int(x) >= 0, lambda: 0, "OpenRGB controller index")
    ZONE_ID_LIST = FieldDef(
        "settings.zone_id_list", list, _is_non_negative_int_list, lambda: [0], "Sink zone per pipeline"
    )
    INTERVAL_MS = FieldDef(
        "settings.interval_ms", float, lambda x: 1.0 <= float(x) <= 10000.0, lambda: 95, "Tick interval in ms"
    )


class LedFields:
    """Per-monitor LED counts of the [led] table."""

    LEFT = FieldDef("led.left", list, _is_non_negative_int_list, list, "LEDs on the left edge per monitor")
    UP = FieldDef("led.up", list, _is_non_negative_int_list, list, "LEDs on the top edge per monitor")
    RIGHT = FieldDef("led.right", list, _is_non_negative_int_list, list, "LEDs on the right edge per monitor")
    DOWN = FieldDef("led.down", list, _is_non_negative_int_list, list, "LEDs on the bottom edge per monitor")


class WiringFields:
    """Fields of the [wiring] table."""

    START = FieldDef(
        "wiring.start", str, lambda x: x in ("left", "up", "right", "down"), lambda: "left", "First wired edge"
    )
    DIRECTION = FieldDef(
        "wiring.direction",
        str,
        lambda x: x in ("clockwise", "counterclockwise"),
        lambda: "clockwise",
        "Rotational wiring direction",
    )


class CaptureFields:
    """Fields of the [capture] table."""

    FORMAT = FieldDef("capture.format", str, lambda x: len(str(x).strip()) > 0, lambda: "v4l2", "Demuxer format")
    CHANNEL_ORDER = FieldDef(
        "capture.channel_order", str, lambda x: x in ("bgr", "rgb"), lambda: "bgr", "Source channel order"
    )
    ON_OPEN_FAILURE = FieldDef(
        "capture.on_open_failure", str, lambda x: x in ("abort", "skip"), lambda: "abort", "Device open policy"
    )
    RETRY_MS = FieldDef("capture.retry_ms", float, lambda x: float(x) >= 0.0, lambda: 10, "Read retry delay")
    OPTIONS = FieldDef("capture.options", dict, default_factory=dict, description="Demuxer options")


class SinkFields:
    """Fields of the [sink] table."""

    TYPE = FieldDef("sink.type", str, lambda x: x in ("openrgb", "ddp"), lambda: "openrgb", "Sink protocol")
    HOST = FieldDef("sink.host", str, lambda x: len(str(x).strip()) > 0, lambda: "127.0.0.1", "Sink host")
    PORT = FieldDef("sink.port", int, lambda x: 0 <= int(x) <= 65535, lambda: 0, "Sink port (0 = default)")
    CLIENT_NAME = FieldDef("sink.client_name", str, default_factory=lambda: "ambiway", description="Client name")
    LEADING_PLACEHOLDER = FieldDef(
        "sink.leading_placeholder", bool, default_factory=lambda: False, description="Prepend a black LED"
    )
    MAX_CONSECUTIVE_FAILURES = FieldDef(
        "sink.max_consecutive_failures", int, lambda x: int(x) >= 1, lambda: 5, "Dispatch failures before abort"
    )


class LogFields:
    """Fields of the [log] table."""

    METRICS = FieldDef("log.metrics", bool, default_factory=lambda: True, description="Periodic pipeline metrics")
    RATE_MS = FieldDef("log.rate_ms", float, lambda x: float(x) > 0.0, lambda: 5000, "Metrics log interval in ms")
