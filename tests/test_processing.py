# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import numpy as np
import pytest

from ambiway.geometry import EdgeCounts, EdgeIndent, MonitorGeometry, Region, monitor_regions
from ambiway.media.processing import average_rgb, extract_colors, region_means, round_rgb

from conftest import solid_frame


def full_hd_regions(leds=4):
    return monitor_regions(MonitorGeometry(1920, 1080), EdgeCounts(leds, leds, leds, leds), EdgeIndent(), 20)


def test_solid_red_frame_without_smoothing(red_frame):
    colors = extract_colors(red_frame, full_hd_regions(), None, 1.0, False)

    assert colors.shape == (16, 3)
    assert colors.dtype == np.uint8
    assert (colors == [255, 0, 0]).all()


def test_no_frame_yields_empty_colors():
    colors = extract_colors(None, full_hd_regions(), None, 1.0, True)
    assert colors.shape == (0, 3)


def test_smoothing_blends_with_previous():
    frame = solid_frame(1920, 1080, (200, 200, 200))
    previous = np.full((16, 3), 100, dtype=np.uint8)

    colors = extract_colors(frame, full_hd_regions(), previous, 1.0, True)

    assert (colors == 150).all()


def test_smoothing_truncates_odd_sums():
    assert average_rgb(np.array([[0, 1, 255]], np.uint8), np.array([[1, 2, 254]], np.uint8)).tolist() == [[0, 1, 254]]


def test_first_smoothed_tick_blends_with_black(red_frame):
    colors = extract_colors(red_frame, full_hd_regions(), np.zeros((0, 3), np.uint8), 1.0, True)
    assert (colors == [127, 0, 0]).all()

    colors = extract_colors(red_frame, full_hd_regions(), None, 1.0, True)
    assert (colors == [127, 0, 0]).all()


def test_smoothing_converges_on_static_frame(red_frame):
    previous = None
    for _ in range(10):
        previous = extract_colors(red_frame, full_hd_regions(), previous, 1.0, True)
    # 127, 191, 223, ... each step halves the gap
    assert (previous[:, 0] >= 254).all()


def test_previous_length_mismatch_rejected(red_frame):
    with pytest.raises(ValueError):
        extract_colors(red_frame, full_hd_regions(), np.zeros((3, 3), np.uint8), 1.0, True)


def test_brightness_scales_and_clamps():
    assert round_rgb([100.0, 200.0, 50.0], 2.0).tolist() == [200, 255, 100]
    assert round_rgb([100.0, 200.0, 50.0], 0.0).tolist() == [0, 0, 0]
    assert round_rgb([255.0, 255.0, 255.0], 1.5).tolist() == [255, 255, 255]


def test_rounding_ties_go_up():
    # np.round would give 0, 2 and 2
    assert round_rgb([0.5, 1.5, 2.5], 1.0).tolist() == [1, 2, 3]
    assert round_rgb([0.49, 254.5, 300.0], 1.0).tolist() == [0, 255, 255]


def test_region_mean_over_all_pixels():
    # two columns, one black one white: mean 127.5 rounds to 128
    frame = np.zeros((10, 2, 3), dtype=np.uint8)
    frame[:, 1] = 255

    colors = extract_colors(frame, [Region(0, 0, 2, 10)], None, 1.0, False)

    assert colors.tolist() == [[128, 128, 128]]


def test_bgr_frames_are_reversed_to_rgb():
    frame = solid_frame(8, 8, (10, 20, 30))
    region = [Region(0, 0, 8, 8)]

    assert extract_colors(frame, region, None, 1.0, False).tolist() == [[30, 20, 10]]
    assert extract_colors(frame, region, None, 1.0, False, channel_order="rgb").tolist() == [[10, 20, 30]]


def test_regions_sample_only_their_own_pixels():
    frame = solid_frame(100, 100, (0, 0, 0))
    frame[0:10, 0:50] = (255, 0, 0)  # blue in BGR, top-left half strip

    colors = extract_colors(frame, [Region(0, 0, 50, 10), Region(50, 0, 100, 10)], None, 1.0, False)

    assert colors.tolist() == [[0, 0, 255], [0, 0, 0]]


def test_regions_outside_frame_are_clipped():
    frame = solid_frame(10, 10, (40, 40, 40))
    means = region_means(frame, [Region(5, 5, 20, 20), Region(30, 30, 40, 40)])

    assert means[0].tolist() == [40.0, 40.0, 40.0]
    assert means[1].tolist() == [0.0, 0.0, 0.0]


def test_smoothing_is_idempotent_on_constant_color(red_frame):
    previous = np.tile(np.array([255, 0, 0], np.uint8), (16, 1))
    colors = extract_colors(red_frame, full_hd_regions(), previous, 1.0, True)
    assert (colors == [255, 0, 0]).all()


def test_smoothing_single_channel_midpoint():
    frame = solid_frame(1920, 1080, (0, 0, 200))
    previous = np.tile(np.array([100, 0, 0], np.uint8), (16, 1))

    colors = extract_colors(frame, full_hd_regions(), previous, 1.0, True)

    assert (colors == [150, 0, 0]).all()
