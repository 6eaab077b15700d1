# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import pytest

from ambiway.exceptions import ConfigurationError
from ambiway.geometry import (
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


FHD = MonitorGeometry(1920, 1080)


class TestEdgeBoundaries:
    def test_boundaries_are_rounded_independently(self):
        # 10/3 per LED: 3.33 -> 3, 6.67 -> 7, 10 -> 10 (not 3, 6, 9)
        assert edge_boundaries(3, 10) == [0, 3, 7, 10]

    def test_ties_round_away_from_zero(self):
        # step 2.5: banker's rounding would give 2 and 8
        assert edge_boundaries(4, 10) == [0, 3, 5, 8, 10]
        assert round_half_up(0.5) == 1
        assert round_half_up(-0.5) == -1

    def test_offset_shifts_every_boundary(self):
        assert edge_boundaries(2, 10, offset=5) == [5, 10, 15]

    @pytest.mark.parametrize("count,span", [(1, 1), (7, 1080), (33, 1920), (61, 1437), (300, 301)])
    def test_boundaries_monotonic_and_end_at_span(self, count, span):
        bounds = edge_boundaries(count, span)
        assert bounds[0] == 0
        assert bounds[-1] == span
        assert len(bounds) == count + 1
        assert all(b > a for a, b in zip(bounds, bounds[1:]))

    def test_zero_count_rejected(self):
        with pytest.raises(ConfigurationError):
            edge_boundaries(0, 100)

    def test_non_positive_span_rejected(self):
        with pytest.raises(ConfigurationError):
            edge_boundaries(4, 0)
        with pytest.raises(ConfigurationError):
            edge_boundaries(4, -20)

    def test_more_leds_than_pixels_rejected(self):
        with pytest.raises(ConfigurationError):
            edge_boundaries(11, 10)


class TestMonitorRegions:
    def test_full_hd_four_per_edge_in_wiring_order(self):
        regions = monitor_regions(FHD, EdgeCounts(4, 4, 4, 4), EdgeIndent(), 20)

        assert len(regions) == 16
        # left, bottom -> top
        assert regions[0] == Region(0, 810, 20, 1080)
        assert regions[3] == Region(0, 0, 20, 270)
        # top, left -> right
        assert regions[4] == Region(0, 0, 480, 20)
        assert regions[7] == Region(1440, 0, 1920, 20)
        # right, top -> bottom
        assert regions[8] == Region(1900, 0, 1920, 270)
        assert regions[11] == Region(1900, 810, 1920, 1080)
        # bottom, right -> left
        assert regions[12] == Region(1440, 1060, 1920, 1080)
        assert regions[15] == Region(0, 1060, 480, 1080)

    def test_adjacent_regions_share_boundaries(self):
        regions = monitor_regions(FHD, EdgeCounts(7, 13, 7, 13), EdgeIndent(), 20)
        top = regions[7:20]
        assert top[0].x1 == 0
        assert top[-1].x2 == 1920
        for a, b in zip(top, top[1:]):
            assert a.x2 == b.x1

    def test_all_regions_inside_monitor_and_non_empty(self):
        regions = monitor_regions(
            MonitorGeometry(2560, 1440), EdgeCounts(19, 34, 19, 34), EdgeIndent.uniform(40, 12, 40, 12), 32
        )
        for r in regions:
            assert 0 <= r.x1 < r.x2 <= 2560
            assert 0 <= r.y1 < r.y2 <= 1440

    def test_indents_apply_at_named_corners(self):
        indent = EdgeIndent(left_up=30, left_down=10, up_left=5, up_right=7, right_up=11, right_down=13,
                            down_left=17, down_right=8)
        regions = monitor_regions(FHD, EdgeCounts(2, 2, 2, 2), indent, 20)
        left, top, right, bottom = regions[0:2], regions[2:4], regions[4:6], regions[6:8]

        assert left[0].y2 == 1080 - 10
        assert left[-1].y1 == 30
        assert top[0].x1 == 5
        assert top[-1].x2 == 1920 - 7
        assert right[0].y1 == 11
        assert right[-1].y2 == 1080 - 13
        assert bottom[0].x2 == 1920 - 8
        assert bottom[-1].x1 == 17

    def test_counterclockwise_is_reversed_walk(self):
        counts = EdgeCounts(3, 5, 3, 5)
        cw = monitor_regions(FHD, counts, EdgeIndent(), 20, Wiring("left", "clockwise"))
        ccw = monitor_regions(FHD, counts, EdgeIndent(), 20, Wiring("left", "counterclockwise"))

        rev = list(reversed(cw))
        # reversed walk rotated so the left edge (now top -> bottom) comes first
        assert ccw == rev[-3:] + rev[:-3]
        assert ccw[0] == Region(0, 0, 20, 360)

    def test_start_edge_rotates_order(self):
        counts = EdgeCounts(3, 5, 3, 5)
        cw = monitor_regions(FHD, counts, EdgeIndent(), 20)
        from_top = monitor_regions(FHD, counts, EdgeIndent(), 20, Wiring("up", "clockwise"))
        assert from_top == cw[3:] + cw[:3]

    def test_inner_span_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            monitor_regions(FHD, EdgeCounts(4, 4, 4, 4), EdgeIndent(left_up=540, left_down=540), 20)

    def test_zero_led_count_rejected(self):
        with pytest.raises(ConfigurationError):
            monitor_regions(FHD, EdgeCounts(4, 0, 4, 4), EdgeIndent(), 20)

    def test_negative_indent_rejected(self):
        with pytest.raises(ConfigurationError):
            monitor_regions(FHD, EdgeCounts(4, 4, 4, 4), EdgeIndent(up_left=-1), 20)

    @pytest.mark.parametrize("size", [0, -5, 1081])
    def test_thickness_bounds(self, size):
        with pytest.raises(ConfigurationError):
            monitor_regions(FHD, EdgeCounts(4, 4, 4, 4), EdgeIndent(), size)

    def test_invalid_wiring_rejected(self):
        with pytest.raises(ConfigurationError):
            Wiring("diagonal", "clockwise")
        with pytest.raises(ConfigurationError):
            Wiring("left", "sideways")


class TestComputeRegions:
    def test_one_list_per_monitor(self):
        monitors = [FHD, MonitorGeometry(1280, 1024)]
        counts = [EdgeCounts(4, 4, 4, 4), EdgeCounts(2, 3, 2, 3)]
        regions = compute_regions(monitors, counts, [EdgeIndent(), EdgeIndent()], 20)

        assert [len(r) for r in regions] == [16, 10]
        assert regions[1][-1].x1 == 0 and regions[1][-1].y2 == 1024

    def test_mismatched_lengths_rejected(self):
        with pytest.raises(ConfigurationError):
            compute_regions([FHD], [EdgeCounts(4, 4, 4, 4)] * 2, [EdgeIndent()], 20)
        with pytest.raises(ConfigurationError):
            compute_regions([FHD], [EdgeCounts(4, 4, 4, 4)], [], 20)
