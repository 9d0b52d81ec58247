"""Tests for the complete detection chain."""
import math
import time
from unittest.mock import patch

import pytest

from vision_targeting.shape_classifier import Tilt
from vision_targeting.target_finder import TargetFinder, monotonic_millis
from helpers import FRAME_WIDTH, FakeContourFilter, draw_target_frame, strip_contour


class TestTargetFinder:
    """End-to-end detection on synthetic frames."""

    def test_centered_target(self, target_frame):
        finder = TargetFinder(clock=lambda: 4242)

        analysis = finder.find(target_frame)

        assert len(analysis.pairs) == 1
        assert analysis.target.has_target
        assert analysis.target.normalized_center == pytest.approx(0.0, abs=0.02)
        assert analysis.target.distance_ratio == pytest.approx(4.0, rel=0.05)
        assert analysis.target.frame_start_timestamp == 4242

    def test_strips_classified(self, target_frame):
        analysis = TargetFinder().find(target_frame)

        tilts = sorted(shape.tilt.name for shape in analysis.shapes)
        assert tilts == [Tilt.LEFT.name, Tilt.RIGHT.name]

    def test_picks_target_nearest_center(self):
        frame = draw_target_frame(pairs=((60.0, 120.0), (200.0, 120.0)), spacing=50.0)

        analysis = TargetFinder().find(frame)

        assert len(analysis.pairs) == 2
        assert analysis.selected_point[0] == pytest.approx(200.0, abs=1.0)
        assert analysis.target.normalized_center == pytest.approx(0.25, abs=0.02)

    def test_empty_frame(self, blank_frame):
        analysis = TargetFinder().find(blank_frame)

        assert analysis.pairs == []
        assert analysis.selected_point is None
        assert math.isnan(analysis.target.normalized_center)
        assert math.isnan(analysis.target.distance_ratio)

    def test_injected_contours(self, blank_frame):
        contours = [strip_contour(100.0, 120.0, 70.0), strip_contour(140.0, 120.0, 110.0)]
        finder = TargetFinder(contour_filter=FakeContourFilter(contours), clock=lambda: 1)

        analysis = finder.find(blank_frame)

        assert analysis.target.normalized_center == pytest.approx(2.0 * (120.0 / FRAME_WIDTH - 0.5), abs=0.01)
        assert analysis.target.distance_ratio == pytest.approx(FRAME_WIDTH / 40.0, rel=0.02)

    def test_tighter_alignment_tolerance(self, blank_frame):
        contours = [strip_contour(100.0, 110.0, 70.0), strip_contour(140.0, 120.0, 110.0)]

        loose = TargetFinder(contour_filter=FakeContourFilter(contours)).find(blank_frame)
        strict = TargetFinder(contour_filter=FakeContourFilter(contours),
                              alignment_tolerance=5.0).find(blank_frame)

        assert len(loose.pairs) == 1
        assert strict.pairs == []


def test_monotonic_millis_never_goes_back():
    readings = [monotonic_millis() for _ in range(1000)]

    assert readings == sorted(readings)


def test_frame_times_ignore_wall_clock_steps(target_frame):
    finder = TargetFinder()
    first = finder.find(target_frame).target.frame_start_timestamp

    # Wall clock set back an hour, as a clock adjustment would do
    with patch("time.time", return_value=time.time() - 3600.0):
        second = finder.find(target_frame).target.frame_start_timestamp

    assert second >= first
