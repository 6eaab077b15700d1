# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

from collections.abc import Sequence

import numpy as np

from ..geometry.regions import Region


EMPTY_COLORS = np.zeros((0, 3), dtype=np.uint8)


def _round_half_up(values: np.ndarray) -> np.ndarray:
    """Round non-negative values to nearest, ties up (np.round would round ties to even)."""
    return np.floor(values + 0.5)


def round_rgb(rgb: Sequence[float] | np.ndarray, brightness: float) -> np.ndarray:
    """Scale float RGB by brightness, clamp to 0..255 and round to uint8."""
    scaled = np.clip(np.asarray(rgb, dtype=np.float64) * brightness, 0.0, 255.0)
    return _round_half_up(scaled).astype(np.uint8)


def average_rgb(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Unweighted integer blend (a + b) // 2 per channel, truncating."""
    return ((a.astype(np.uint16) + b.astype(np.uint16)) // 2).astype(np.uint8)


def region_means(image: np.ndarray, regions: Sequence[Region]) -> np.ndarray:
    """Mean of every pixel in each region, as an (n, 3) float64 array in source channel order.

    Regions are clipped to the frame; a region entirely outside it averages to black.
    """
    h, w = image.shape[:2]
    means = np.zeros((len(regions), 3), dtype=np.float64)
    for i, r in enumerate(regions):
        x1, x2 = max(0, r.x1), min(w, r.x2)
        y1, y2 = max(0, r.y1), min(h, r.y2)
        if x2 <= x1 or y2 <= y1:
            continue
        means[i] = image[y1:y2, x1:x2, :3].mean(axis=(0, 1), dtype=np.float64)
    return means


def extract_colors(
    image: np.ndarray | None,
    regions: Sequence[Region],
    previous: np.ndarray | None,
    brightness: float,
    smooth: bool,
    channel_order: str = "bgr",
) -> np.ndarray:
    """One RGB color per region for this tick.

    Args:
        image: (H, W, 3) uint8 frame, or None when the source has no data
        regions: sampling rectangles in LED order
        previous: colors of the previous successful tick, or empty/None
        brightness: channel multiplier applied before clamping
        smooth: blend with the previous tick's color at the same index
        channel_order: "bgr" or "rgb" layout of the image channels

    Returns:
        (n, 3) uint8 RGB array, or an empty (0, 3) array when image is None
    """
    if image is None:
        return EMPTY_COLORS.copy()

    means = region_means(image, regions)
    if channel_order == "bgr":
        means = means[:, ::-1]

    colors = round_rgb(means, brightness)

    if not smooth:
        return colors

    if previous is None or len(previous) == 0:
        prev = np.zeros_like(colors)
    elif len(previous) != len(colors):
        raise ValueError(f"previous colors have {len(previous)} entries, expected {len(colors)}")
    else:
        prev = np.asarray(previous, dtype=np.uint8)

    return average_rgb(prev, colors)
