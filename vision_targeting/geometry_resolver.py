#!/usr/bin/env python3

"""
Geometry Resolver

Converts the normalized target offset into a heading relative to the robot
and estimates the distance to the target from its apparent size.

The distance uses similar triangles:

    d = Tin * FOVpixel / (2 * Tpixel * tan(FOV / 2))

where Tin is the real distance between the centers of the two strips,
FOVpixel is the horizontal resolution and Tpixel is the distance between the
strip centers in pixels. FOVpixel / Tpixel is the distance ratio measured by
the target selector.
"""

import math

from vision_targeting.target_selector import TargetInformation

# Distance between the centers of the two strips, in inches
TARGET_SEPARATION = 11.267601903166458

DEFAULT_FIELD_OF_VIEW = 60


class TargetSolution:
    """Heading (degrees) and distance to the selected target; NaN when none"""

    __slots__ = ('relative_heading', 'distance')

    def __init__(self, relative_heading: float, distance: float):
        self.relative_heading = relative_heading
        self.distance = distance

    @property
    def valid(self) -> bool:
        return not math.isnan(self.relative_heading)

    def __repr__(self) -> str:
        return f"TargetSolution(relative_heading={self.relative_heading}, distance={self.distance})"


def relative_heading(normalized_center: float, field_of_view: float) -> float:
    """Heading to the target in degrees; positive is to the right"""
    return normalized_center * field_of_view / 2.0


def distance_to_target(distance_ratio: float, field_of_view: float,
                       target_separation: float = TARGET_SEPARATION) -> float:
    """
    Distance to the target in the units of target_separation

    Args:
        distance_ratio: Frame width in pixels / strip separation in pixels
        field_of_view: Horizontal field of view in degrees
        target_separation: Real distance between the strip centers

    Returns:
        Estimated distance, NaN if distance_ratio is NaN
    """
    return distance_ratio * target_separation / (2.0 * math.tan(math.radians(field_of_view / 2.0)))


def resolve(target: TargetInformation, field_of_view: float,
            target_separation: float = TARGET_SEPARATION) -> TargetSolution:
    """
    Resolve heading and distance for one frame's TargetInformation

    NaN input yields a NaN solution; no numeric default is ever substituted.
    """
    if not target.has_target:
        return TargetSolution(math.nan, math.nan)

    return TargetSolution(relative_heading(target.normalized_center, field_of_view),
                          distance_to_target(target.distance_ratio, field_of_view, target_separation))
