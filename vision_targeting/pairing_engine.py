#!/usr/bin/env python3

"""
Pairing Engine for Vision Target Strips

This module pairs left-tilted strips with right-tilted strips by sweeping the
classified shapes of one frame from the left edge of the image to the right.
"""

import math
import logging
from typing import List, Tuple

from vision_targeting.shape_classifier import CandidateShape, Tilt

# Set up logging
logger = logging.getLogger("PairingEngine")

# Maximum deviation of the center-to-center line from horizontal (degrees)
ALIGNMENT_TOLERANCE = 15.0


class TargetPair:
    """A left strip and a right strip that form one vision target"""

    __slots__ = ('left', 'right')

    def __init__(self, left: CandidateShape, right: CandidateShape):
        self.left = left
        self.right = right

    @property
    def midpoint(self) -> Tuple[float, float]:
        """Point halfway between the two strip centers"""
        return ((self.left.center_x + self.right.center_x) / 2.0,
                (self.left.center_y + self.right.center_y) / 2.0)

    @property
    def pixel_separation(self) -> float:
        """Distance between the two strip centers in pixels"""
        return math.hypot(self.right.center_x - self.left.center_x,
                          self.right.center_y - self.left.center_y)

    def __repr__(self) -> str:
        return f"TargetPair(left={self.left!r}, right={self.right!r})"


def are_horizontally_aligned(left: CandidateShape, right: CandidateShape,
                             tolerance: float = ALIGNMENT_TOLERANCE) -> bool:
    """
    Check that the line between two strip centers is close to horizontal

    Coincident or vertically stacked centers have no usable line angle and
    are reported as not aligned.

    Args:
        left: The strip on the left
        right: The strip on the right
        tolerance: Maximum line angle in degrees

    Returns:
        True if the strips can form a pair
    """
    dx = right.center_x - left.center_x
    dy = right.center_y - left.center_y

    if dx == 0:
        logger.debug(f"Couldn't compute horizontal line angle between {left} and {right}")
        return False

    line_angle = math.degrees(math.atan2(dy, dx))
    return -tolerance <= line_angle <= tolerance


def pair_shapes(shapes: List[CandidateShape],
                tolerance: float = ALIGNMENT_TOLERANCE) -> List[TargetPair]:
    """
    Pair left strips with right strips

    Shapes are sorted by pixel column (x truncated to an int); the sort is
    stable, so shapes in the same column keep their input order. A left
    strip is remembered until a right strip that lines up with it is found;
    a newer left strip replaces an older unpaired one. A right strip that does not line up is dropped and the
    remembered left strip is kept.

    Args:
        shapes: Classified shapes of one frame, in any order
        tolerance: Maximum line angle in degrees between paired centers

    Returns:
        Pairs in left-to-right order
    """
    ordered = sorted(shapes, key=lambda shape: int(shape.center_x))
    pairs = []
    pending_left = None

    for shape in ordered:
        if shape.tilt is Tilt.LEFT:
            pending_left = shape
            continue

        if shape.tilt is not Tilt.RIGHT or pending_left is None:
            continue

        if are_horizontally_aligned(pending_left, shape, tolerance):
            pairs.append(TargetPair(pending_left, shape))
            pending_left = None

    return pairs
