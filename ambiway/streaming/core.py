# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum

import numpy as np

from ..exceptions import DeviceUnavailable, SinkError
from ..media.processing import EMPTY_COLORS, extract_colors
from ..media.source import FrameSource
from ..output.protocol import LightingSink
from ..utils.metrics import PipelineTracker
from .options import PipelineOptions


class PipelineState(Enum):
    OPENING = "opening"
    RUNNING = "running"
    STALLED = "stalled"
    STOPPED = "stopped"


SourceFactory = Callable[[PipelineOptions], FrameSource]


def open_frame_source(options: PipelineOptions) -> FrameSource:
    """Open the PyAV-backed frame source described by the pipeline options (blocking)."""
    return FrameSource.open(
        options.source_id,
        retry_ms=options.retry_ms,
        format=options.capture_format,
        options=options.capture_options,
    )


class Pipeline:
    """One capture source, its fixed region list, and its smoothing state."""

    def __init__(
        self,
        options: PipelineOptions,
        sink: LightingSink,
        source_factory: SourceFactory = open_frame_source,
    ):
        self.options = options
        self.sink = sink
        self.source: FrameSource | None = None
        self.state = PipelineState.OPENING
        self.previous: np.ndarray = EMPTY_COLORS
        self.consecutive_failures = 0
        self.tracker = PipelineTracker(log_interval_s=options.log_rate_ms / 1000.0)
        self._source_factory = source_factory
        self._size_checked = False
        self._log = logging.getLogger("pipeline")

    @property
    def name(self) -> str:
        return f"pipeline {self.options.index} (src={self.options.source_id} zone={self.options.zone_id})"

    async def open(self) -> None:
        """Open the frame source off the event loop.

        Raises:
            DeviceUnavailable: the capture device could not be opened
        """
        self.state = PipelineState.OPENING
        loop = asyncio.get_running_loop()
        try:
            self.source = await loop.run_in_executor(None, self._source_factory, self.options)
        except DeviceUnavailable:
            self.state = PipelineState.STOPPED
            raise
        self.state = PipelineState.RUNNING
        self._log.info(f"{self.name} running")

    def _check_frame_size(self, image: np.ndarray) -> None:
        if self._size_checked:
            return
        self._size_checked = True
        h, w = image.shape[:2]
        m = self.options.monitor
        if (w, h) != (m.width, m.height):
            self._log.warning(
                f"{self.name}: frames are {w}x{h} but regions were laid out for {m.width}x{m.height}; "
                "regions are clipped to the frame"
            )

    async def tick(self) -> np.ndarray:
        """Run one extract + dispatch cycle.

        Returns the colors sent this tick, or an empty array when the tick was
        skipped for lack of frame data.

        Raises:
            DeviceUnavailable: the frame source died
            SinkError: dispatch failed max_consecutive_failures times in a row
        """
        source = self.source
        if source is None:
            raise RuntimeError(f"{self.name} is not open")

        if source.error is not None:
            self.state = PipelineState.STOPPED
            raise DeviceUnavailable(
                f"capture source {self.options.source_id} failed: {source.error}", self.options.source_id
            ) from source.error

        has_data, image = source.read_latest()
        if not has_data:
            if self.state is PipelineState.RUNNING:
                self._log.debug(f"{self.name} stalled, no frame data")
            self.state = PipelineState.STALLED
            # Smoothing restarts from black after a skipped tick
            self.previous = EMPTY_COLORS
            self.tracker.record_skip()
            return EMPTY_COLORS

        if self.state is PipelineState.STALLED:
            self._log.debug(f"{self.name} resumed")
        self.state = PipelineState.RUNNING
        self._check_frame_size(image)

        loop = asyncio.get_running_loop()
        started = time.perf_counter()
        colors = await loop.run_in_executor(
            None,
            extract_colors,
            image,
            self.options.regions,
            self.previous,
            self.options.brightness,
            self.options.smooth,
            self.options.channel_order,
        )
        extract_s = time.perf_counter() - started

        self.previous = colors
        await self._dispatch(colors)
        self.tracker.record_tick(extract_s)

        if self.options.log_metrics and self.tracker.should_log():
            self._log_metrics()

        return colors

    async def _dispatch(self, colors: np.ndarray) -> None:
        try:
            await self.sink.update_zone(self.options.zone_id, colors)
        except SinkError as e:
            self.consecutive_failures += 1
            self.tracker.record_dispatch_failure()
            self._log.warning(
                f"{self.name} dispatch failed "
                f"({self.consecutive_failures}/{self.options.max_consecutive_failures}): {e}"
            )
            if self.consecutive_failures >= self.options.max_consecutive_failures:
                self.state = PipelineState.STOPPED
                raise SinkError(
                    f"{self.name}: {self.consecutive_failures} consecutive dispatch failures, last: {e}",
                    self.options.zone_id,
                ) from e
            return
        self.consecutive_failures = 0

    def _log_metrics(self) -> None:
        m = self.tracker.get_metrics_and_reset()
        source = self.source
        self._log.info(
            f"{self.name} tps={m['tps']:.1f} jit={m['tick_jitter_ms']:.1f}ms "
            f"extract={m['extract_avg_ms']:.2f}/{m['extract_max_ms']:.2f}ms "
            f"skipped={m['skipped']} sink_fail={m['dispatch_failures']} "
            f"frames={source.frames_published if source else 0} read_fail={source.read_failures if source else 0}"
        )

    async def run(self) -> None:
        """Tick at a fixed period until cancelled or a fatal error is raised."""
        loop = asyncio.get_running_loop()
        interval = self.options.interval_s
        next_tick = loop.time()

        while True:
            await self.tick()

            next_tick += interval
            now = loop.time()
            sleep_duration = next_tick - now

            # More than 100ms behind: reset the schedule instead of bursting to catch up
            if sleep_duration < -0.1:
                next_tick = now
                await asyncio.sleep(0)
            elif sleep_duration > 0:
                await asyncio.sleep(sleep_duration)
            else:
                await asyncio.sleep(0)

    async def close(self) -> None:
        """Stop the frame source and wait for its producer thread to exit."""
        source, self.source = self.source, None
        if source is not None:
            await asyncio.to_thread(source.close)
            self._log.info(f"{self.name} closed")
        self.state = PipelineState.STOPPED


class StreamOrchestrator:
    """Runs every pipeline as an independent task against one shared sink."""

    def __init__(
        self,
        options: list[PipelineOptions],
        sink: LightingSink,
        *,
        on_open_failure: str = "abort",
        source_factory: SourceFactory = open_frame_source,
    ):
        if on_open_failure not in ("abort", "skip"):
            raise ValueError(f"invalid on_open_failure policy: {on_open_failure}")
        self.sink = sink
        self.on_open_failure = on_open_failure
        self.pipelines = [Pipeline(o, sink, source_factory) for o in options]
        self.active: list[Pipeline] = []
        self._tasks: list[asyncio.Task] = []
        self._stop_event = asyncio.Event()
        self._closed = False
        self._log = logging.getLogger("pipeline")

    async def open(self) -> None:
        """Connect the sink, then open every pipeline according to the open-failure policy."""
        await self.sink.connect()

        try:
            for pipeline in self.pipelines:
                pipeline.options.log_info()
                try:
                    await pipeline.open()
                except DeviceUnavailable as e:
                    if self.on_open_failure == "abort":
                        raise
                    self._log.error(f"{pipeline.name} skipped: {e}")
                    continue
                self.active.append(pipeline)

            if not self.active:
                raise DeviceUnavailable("no capture source could be opened")
        except BaseException:
            await self.shutdown()
            raise

    async def run(self) -> None:
        """Open everything, run until stop() or the first pipeline failure, then tear down.

        The first pipeline failure is re-raised after shutdown completes.
        """
        await self.open()

        self._tasks = [
            asyncio.create_task(p.run(), name=f"pipeline-{p.options.index}") for p in self.active
        ]
        stop_waiter = asyncio.create_task(self._stop_event.wait(), name="orchestrator-stop")

        try:
            done, _ = await asyncio.wait([*self._tasks, stop_waiter], return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task is stop_waiter or task.cancelled():
                    continue
                exc = task.exception()
                if exc is not None:
                    self._log.error(f"{task.get_name()} failed: {exc}")
                    raise exc
        finally:
            stop_waiter.cancel()
            await self.shutdown()

    def stop(self) -> None:
        """Request a clean shutdown of a running orchestrator."""
        self._stop_event.set()

    async def shutdown(self) -> None:
        """Cancel pipeline tasks, close every frame source, then release the sink."""
        if self._closed:
            return
        self._closed = True

        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        results = await asyncio.gather(*(p.close() for p in self.pipelines), return_exceptions=True)
        for pipeline, result in zip(self.pipelines, results):
            if isinstance(result, Exception):
                self._log.error(f"{pipeline.name} close error: {result!r}")

        if self.sink.is_connected:
            await self.sink.close()
