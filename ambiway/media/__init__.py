# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Frame capture and color extraction."""

from .processing import average_rgb, extract_colors, region_means, round_rgb
from .protocol import CaptureDevice
from .source import FrameSnapshot, FrameSource, SnapshotCell
from .video import PyAvCaptureDevice


__all__ = [
    "CaptureDevice",
    "FrameSnapshot",
    "FrameSource",
    "PyAvCaptureDevice",
    "SnapshotCell",
    "average_rgb",
    "extract_colors",
    "region_means",
    "round_rgb",
]
