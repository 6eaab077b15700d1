# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import math
import time
from collections import deque


class RateMeter:
    """Rolling rate/jitter meter over a short timestamp window."""

    def __init__(self, window_s: float = 2.5):
        self.window_s = float(window_s)
        self.ts: deque[float] = deque()

    def tick(self, t: float) -> None:
        """Record a timestamp."""
        self.ts.append(t)
        cut = t - self.window_s
        while self.ts and self.ts[0] < cut:
            self.ts.popleft()

    def rate_hz(self) -> float:
        """Calculate current rate in Hz."""
        n = len(self.ts)
        if n < 2:
            return 0.0
        duration = self.ts[-1] - self.ts[0]
        return (n - 1) / duration if duration > 0 else 0.0

    def jitter_ms(self) -> float:
        """Standard deviation of tick intervals in milliseconds."""
        n = len(self.ts)
        if n < 3:
            return 0.0
        ts = list(self.ts)
        diffs = [ts[i] - ts[i - 1] for i in range(1, n)]
        mean = sum(diffs) / len(diffs)
        var = sum((d - mean) ** 2 for d in diffs) / (len(diffs) - 1)
        return math.sqrt(var) * 1000.0

    def clear(self) -> None:
        """Clear all recorded timestamps."""
        self.ts.clear()


class PipelineTracker:
    """Per-pipeline tick statistics, logged periodically."""

    def __init__(self, log_interval_s: float = 5.0):
        self.log_interval_s = log_interval_s
        self.last_log = time.perf_counter()

        self.tick_meter = RateMeter()

        # Counters since last log
        self.ticks = 0
        self.skipped = 0
        self.dispatch_failures = 0
        self.extract_s_total = 0.0
        self.extract_s_max = 0.0

    def record_tick(self, extract_s: float) -> None:
        """Record a tick that produced and dispatched colors."""
        self.tick_meter.tick(time.perf_counter())
        self.ticks += 1
        self.extract_s_total += extract_s
        self.extract_s_max = max(self.extract_s_max, extract_s)

    def record_skip(self) -> None:
        """Record a tick skipped for lack of frame data."""
        self.skipped += 1

    def record_dispatch_failure(self) -> None:
        self.dispatch_failures += 1

    def should_log(self) -> bool:
        return (time.perf_counter() - self.last_log) >= self.log_interval_s

    def get_metrics_and_reset(self) -> dict:
        """Get current metrics and reset counters."""
        metrics = {
            "tps": self.tick_meter.rate_hz(),
            "tick_jitter_ms": self.tick_meter.jitter_ms(),
            "ticks": self.ticks,
            "skipped": self.skipped,
            "dispatch_failures": self.dispatch_failures,
            "extract_avg_ms": (self.extract_s_total / self.ticks * 1000.0) if self.ticks else 0.0,
            "extract_max_ms": self.extract_s_max * 1000.0,
        }

        self.ticks = 0
        self.skipped = 0
        self.dispatch_failures = 0
        self.extract_s_total = 0.0
        self.extract_s_max = 0.0
        self.last_log = time.perf_counter()

        return metrics
