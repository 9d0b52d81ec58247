"""Unit tests for heading and distance resolution."""
import math

import pytest

from vision_targeting.geometry_resolver import (
    TARGET_SEPARATION, distance_to_target, relative_heading, resolve
)
from vision_targeting.target_selector import TargetInformation


class TestRelativeHeading:
    """Normalized offset to degrees."""

    def test_sixty_degree_camera(self):
        assert relative_heading(0.5, 60) == pytest.approx(15.0)

    def test_wide_camera_edge(self):
        assert relative_heading(-1.0, 150) == pytest.approx(-75.0)

    def test_dead_center(self):
        assert relative_heading(0.0, 60) == 0.0


class TestDistance:
    """Similar-triangles distance estimate."""

    def test_formula(self):
        expected = 4.0 * TARGET_SEPARATION / (2.0 * math.tan(math.radians(30.0)))

        assert distance_to_target(4.0, 60) == pytest.approx(expected)

    def test_smaller_target_is_farther(self):
        assert distance_to_target(8.0, 60) == pytest.approx(2 * distance_to_target(4.0, 60))

    def test_nan_ratio(self):
        assert math.isnan(distance_to_target(math.nan, 60))


class TestResolve:
    """Full resolution of a TargetInformation."""

    def test_target(self):
        solution = resolve(TargetInformation(0.5, 4.0, 0), 60)

        assert solution.valid
        assert solution.relative_heading == pytest.approx(15.0)
        assert solution.distance == pytest.approx(distance_to_target(4.0, 60))

    def test_no_target_stays_nan(self):
        solution = resolve(TargetInformation.no_target(0), 60)

        assert not solution.valid
        assert math.isnan(solution.relative_heading)
        assert math.isnan(solution.distance)

    def test_custom_separation(self):
        solution = resolve(TargetInformation(0.0, 2.0, 0), 90, target_separation=10.0)

        assert solution.distance == pytest.approx(10.0)
