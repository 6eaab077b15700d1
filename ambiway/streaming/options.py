# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

from dataclasses import dataclass, field
from typing import Any
import logging

from ..geometry.regions import MonitorGeometry, Region
from ..settings import Settings


@dataclass(frozen=True)
class PipelineOptions:
    """Strongly typed options for one capture -> color -> zone pipeline."""

    index: int
    source_id: int | str
    zone_id: int
    monitor: MonitorGeometry
    regions: tuple[Region, ...]

    brightness: float = 1.0
    smooth: bool = True
    interval_ms: float = 95.0
    channel_order: str = "bgr"

    # Capture device options
    capture_format: str = "v4l2"
    capture_options: dict[str, Any] = field(default_factory=dict)
    retry_ms: float = 10.0

    max_consecutive_failures: int = 5
    log_metrics: bool = True
    log_rate_ms: float = 5000.0

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def led_count(self) -> int:
        return len(self.regions)

    @classmethod
    def from_settings(
        cls, settings: Settings, monitors: list[MonitorGeometry], regions: list[list[Region]]
    ) -> list["PipelineOptions"]:
        """One options object per configured cam; cam i samples monitor i and feeds zone i."""
        return [
            cls(
                index=i,
                source_id=source_id,
                zone_id=settings.zone_ids[i],
                monitor=monitors[i],
                regions=tuple(regions[i]),
                brightness=settings.brightness,
                smooth=settings.smooth,
                interval_ms=settings.interval_ms,
                channel_order=settings.channel_order,
                capture_format=settings.capture_format,
                capture_options=dict(settings.capture_options),
                retry_ms=settings.retry_ms,
                max_consecutive_failures=settings.max_consecutive_failures,
                log_metrics=settings.log_metrics,
                log_rate_ms=settings.log_rate_ms,
            )
            for i, source_id in enumerate(settings.cams)
        ]

    def log_info(self) -> None:
        """Log pipeline configuration info."""
        logging.getLogger("pipeline").info(
            f"pipeline {self.index}: src={self.source_id} zone={self.zone_id} "
            f"monitor={self.monitor.width}x{self.monitor.height} leds={self.led_count} "
            f"interval={self.interval_ms}ms brightness={self.brightness} smooth={self.smooth} "
            f"order={self.channel_order}"
        )
