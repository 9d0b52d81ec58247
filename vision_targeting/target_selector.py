#!/usr/bin/env python3

"""
Target Selector

Chooses the target pair closest to the horizontal center of the frame, as this
is the target the driver was most likely aiming at, and turns it into the
per-frame TargetInformation value.
"""

import math
from typing import List, Optional

from vision_targeting.pairing_engine import TargetPair


class TargetInformation:
    """
    Result of one frame of target finding

    normalized_center is -1.0 at the left edge of the frame, 0.0 dead center
    and 1.0 at the right edge. NaN means no target was found; 0.0 is a real
    on-target reading and must never stand in for "no target".
    """

    __slots__ = ('normalized_center', 'distance_ratio', 'frame_start_timestamp')

    def __init__(self, normalized_center: float, distance_ratio: float,
                 frame_start_timestamp: int):
        self.normalized_center = normalized_center
        self.distance_ratio = distance_ratio
        self.frame_start_timestamp = frame_start_timestamp

    @classmethod
    def no_target(cls, frame_start_timestamp: int) -> 'TargetInformation':
        return cls(math.nan, math.nan, frame_start_timestamp)

    @property
    def has_target(self) -> bool:
        return not math.isnan(self.normalized_center)

    def __repr__(self) -> str:
        return (f"TargetInformation(normalized_center={self.normalized_center}, "
                f"distance_ratio={self.distance_ratio}, "
                f"frame_start_timestamp={self.frame_start_timestamp})")


def normalized_center(x: float, frame_width: float) -> float:
    """Scale a pixel column to [-1, 1] around the frame center"""
    return 2.0 * ((x / frame_width) - 0.5)


def select_target(pairs: List[TargetPair], frame_width: float) -> Optional[TargetPair]:
    """
    Pick the pair whose midpoint is horizontally closest to the frame center

    The first pair wins ties.

    Args:
        pairs: Pairs found in the frame
        frame_width: Frame width in pixels

    Returns:
        The selected pair, or None if there are no pairs
    """
    selected = None
    least_distance = math.inf
    frame_center = frame_width / 2.0

    for pair in pairs:
        distance = abs(pair.midpoint[0] - frame_center)
        if distance < least_distance:
            least_distance = distance
            selected = pair

    return selected


def target_information(selected: Optional[TargetPair], frame_width: float,
                       frame_start_timestamp: int) -> TargetInformation:
    """
    Build the TargetInformation for a frame

    Args:
        selected: Pair chosen by select_target, or None
        frame_width: Frame width in pixels
        frame_start_timestamp: When processing of the frame began (ms)

    Returns:
        TargetInformation, NaN-valued when selected is None
    """
    if selected is None:
        return TargetInformation.no_target(frame_start_timestamp)

    separation = selected.pixel_separation
    if separation <= 0:
        return TargetInformation.no_target(frame_start_timestamp)

    return TargetInformation(normalized_center(selected.midpoint[0], frame_width),
                             frame_width / separation,
                             frame_start_timestamp)
