# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Validated, immutable snapshot of the configuration taken at startup."""

import logging
from dataclasses import dataclass, field
from typing import Any

from .config import Config
from .exceptions import ConfigurationError
from .geometry.regions import EDGES, EdgeCounts, EdgeIndent, Wiring
from .output.protocol import SinkTarget
from .utils.fields import CaptureFields, FieldDef, LedFields, LogFields, SettingsFields, SinkFields, WiringFields


INDENT_KEYS = (
    "left_up",
    "left_down",
    "up_left",
    "up_right",
    "right_up",
    "right_down",
    "down_left",
    "down_right",
)


def read_field(config: Config, field_def: FieldDef) -> Any:
    """Read, validate and coerce one config value, defaulting when absent."""
    table, _, _ = field_def.key.rpartition(".")
    parent = config.get_or(table)
    if parent is not None and not isinstance(parent, dict):
        raise ConfigurationError(f"[{table}] must be a table, got {type(parent).__name__}", table)

    value = config.get_or(field_def.key)
    if value is None:
        value = field_def.get_default()

    if not field_def.validate(value):
        raise ConfigurationError(f"invalid {field_def.key}: {value!r} ({field_def.description})", field_def.key)
    try:
        return field_def.coerce(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"invalid {field_def.key}: {value!r} ({e})", field_def.key) from e


def _led_counts(config: Config) -> list[EdgeCounts]:
    per_edge = {
        "left": read_field(config, LedFields.LEFT),
        "up": read_field(config, LedFields.UP),
        "right": read_field(config, LedFields.RIGHT),
        "down": read_field(config, LedFields.DOWN),
    }
    lengths = {edge: len(values) for edge, values in per_edge.items()}
    if len(set(lengths.values())) != 1:
        raise ConfigurationError(f"led lists must have one entry per monitor, got lengths {lengths}", "led")
    monitors = lengths["left"]
    if monitors == 0:
        raise ConfigurationError("no LED counts configured ([led] left/up/right/down)", "led")

    counts = []
    for i in range(monitors):
        c = EdgeCounts(**{edge: per_edge[edge][i] for edge in EDGES})
        for edge in EDGES:
            if c.get(edge) == 0:
                raise ConfigurationError(f"led.{edge}[{i}] is 0; every edge needs at least one LED", f"led.{edge}")
        counts.append(c)
    return counts


def _indents(raw: Any, monitors: int) -> list[EdgeIndent]:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"[indent] must be a table, got {type(raw).__name__}", "indent")

    unknown = set(raw) - set(INDENT_KEYS) - set(EDGES)
    if unknown:
        raise ConfigurationError(f"unknown indent keys: {', '.join(sorted(unknown))}", "indent")

    for key, values in raw.items():
        if not isinstance(values, list) or len(values) != monitors:
            raise ConfigurationError(f"indent.{key} must list one value per monitor ({monitors})", f"indent.{key}")
        for v in values:
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise ConfigurationError(f"indent.{key} values must be non-negative integers, got {v!r}", f"indent.{key}")

    indents = []
    for i in range(monitors):
        values = {}
        for key in INDENT_KEYS:
            edge = key.split("_")[0]
            source = raw.get(key, raw.get(edge))
            values[key] = source[i] if source is not None else 0
        indents.append(EdgeIndent(**values))
    return indents


@dataclass(frozen=True)
class Settings:
    """Everything the pipelines need, fixed for the process lifetime."""

    led_counts: list[EdgeCounts]
    indents: list[EdgeIndent]
    size: int
    brightness: float
    smooth: bool
    interval_ms: float
    wiring: Wiring
    cams: list[int | str]
    zone_ids: list[int]
    capture_format: str
    channel_order: str
    on_open_failure: str
    retry_ms: float
    capture_options: dict[str, Any]
    sink: SinkTarget
    max_consecutive_failures: int
    monitors_override: list[Any] = field(default_factory=list)
    log_metrics: bool = True
    log_rate_ms: float = 5000.0

    @classmethod
    def from_config(cls, config: Config) -> "Settings":
        """Build settings from the loaded config, raising ConfigurationError on any invalid value."""
        led_counts = _led_counts(config)
        indents = _indents(config.get_or("indent", {}), len(led_counts))

        cams = read_field(config, SettingsFields.CAMS)
        zone_ids = read_field(config, SettingsFields.ZONE_ID_LIST)
        if len(zone_ids) != len(cams):
            raise ConfigurationError(
                f"settings.zone_id_list has {len(zone_ids)} entries for {len(cams)} cams", "settings.zone_id_list"
            )
        if len(cams) > len(led_counts):
            raise ConfigurationError(
                f"{len(cams)} cams configured but LED counts only for {len(led_counts)} monitors", "settings.cams"
            )

        sink = SinkTarget(
            protocol=read_field(config, SinkFields.TYPE),
            host=read_field(config, SinkFields.HOST),
            port=read_field(config, SinkFields.PORT),
            device_id=read_field(config, SettingsFields.DEVICE_ID),
            client_name=read_field(config, SinkFields.CLIENT_NAME),
            leading_placeholder=read_field(config, SinkFields.LEADING_PLACEHOLDER),
        )

        monitors_override = config.get_or("display.monitors", []) or []
        if not isinstance(monitors_override, list):
            raise ConfigurationError("display.monitors must be a list", "display.monitors")

        return cls(
            led_counts=led_counts,
            indents=indents,
            size=read_field(config, SettingsFields.SIZE),
            brightness=read_field(config, SettingsFields.BRIGHTNESS),
            smooth=read_field(config, SettingsFields.SMOOTH),
            interval_ms=read_field(config, SettingsFields.INTERVAL_MS),
            wiring=Wiring(read_field(config, WiringFields.START), read_field(config, WiringFields.DIRECTION)),
            cams=cams,
            zone_ids=zone_ids,
            capture_format=read_field(config, CaptureFields.FORMAT),
            channel_order=read_field(config, CaptureFields.CHANNEL_ORDER),
            on_open_failure=read_field(config, CaptureFields.ON_OPEN_FAILURE),
            retry_ms=read_field(config, CaptureFields.RETRY_MS),
            capture_options=read_field(config, CaptureFields.OPTIONS),
            sink=sink,
            max_consecutive_failures=read_field(config, SinkFields.MAX_CONSECUTIVE_FAILURES),
            monitors_override=monitors_override,
            log_metrics=read_field(config, LogFields.METRICS),
            log_rate_ms=read_field(config, LogFields.RATE_MS),
        )

    def log_info(self) -> None:
        """Log the effective settings."""
        logging.getLogger("config").info(
            f"settings: monitors={len(self.led_counts)} cams={self.cams} zones={self.zone_ids} "
            f"size={self.size} brightness={self.brightness} smooth={self.smooth} "
            f"interval={self.interval_ms}ms wiring={self.wiring.start}/{self.wiring.direction} "
            f"sink={self.sink.protocol}://{self.sink.host}:{self.sink.port or 'default'}"
        )
