#!/usr/bin/env python3

"""
Shape Classifier for Retro-Reflective Vision Targets

This module fits an oriented bounding rectangle to each contour found in a
frame, rejects contours that are not rectangular enough, and tags the
survivors as left-tilted or right-tilted vision target strips.
"""

import math
import logging
from enum import Enum
from typing import List, Optional, Tuple

import cv2
import numpy as np

# Set up logging
logger = logging.getLogger("ShapeClassifier")

# Contour area / fitted rectangle area must be at least this close to 1.0
RECTANGULARITY_THRESHOLD = 0.85

# Adjusted angle windows in degrees (exclusive bounds)
LEFT_WINDOW = (55.7, 85.7)
RIGHT_WINDOW = (94.3, 124.3)


class Tilt(Enum):
    """Classification of a candidate shape"""
    LEFT = "left"          # Leaning like the left strip of a target pair
    RIGHT = "right"        # Leaning like the right strip of a target pair
    REJECTED = "rejected"  # Not a vision target strip


class CandidateShape:
    """
    A contour that survived the rectangle fit

    Width, height and raw angle use the legacy OpenCV rotated rectangle
    convention where the raw angle lies in [-90, 0).
    """

    __slots__ = ('center_x', 'center_y', 'width', 'height',
                 'raw_angle', 'adjusted_angle', 'tilt')

    def __init__(self, center_x: float, center_y: float, width: float,
                 height: float, raw_angle: float):
        self.center_x = float(center_x)
        self.center_y = float(center_y)
        self.width = float(width)
        self.height = float(height)
        self.raw_angle = float(raw_angle)
        self.adjusted_angle = adjusted_angle(self.width, self.height, self.raw_angle)
        self.tilt = classify_angle(self.adjusted_angle)

    @property
    def center(self) -> Tuple[float, float]:
        return (self.center_x, self.center_y)

    def box_points(self) -> np.ndarray:
        """Corner points of the fitted rectangle, for drawing"""
        return cv2.boxPoints(((self.center_x, self.center_y),
                              (self.width, self.height), self.raw_angle))

    def __repr__(self) -> str:
        return (f"CandidateShape(center=({self.center_x:.1f}, {self.center_y:.1f}), "
                f"size=({self.width:.1f}, {self.height:.1f}), "
                f"angle={self.adjusted_angle:.1f}, tilt={self.tilt.value})")


def adjusted_angle(width: float, height: float, raw_angle: float) -> float:
    """
    Convert a rotated rectangle angle to the orientation of its long side

    0 degrees is parallel to the x axis pointing right, 90 is straight up.

    Args:
        width: Rectangle width (legacy convention)
        height: Rectangle height (legacy convention)
        raw_angle: Rectangle angle in degrees (legacy convention)

    Returns:
        Adjusted angle in degrees
    """
    if width < height:
        return 90.0 - raw_angle
    return -raw_angle


def is_left_tilt(angle: float) -> bool:
    return LEFT_WINDOW[0] < angle < LEFT_WINDOW[1]


def is_right_tilt(angle: float) -> bool:
    return RIGHT_WINDOW[0] < angle < RIGHT_WINDOW[1]


def classify_angle(angle: float) -> Tilt:
    """Map an adjusted angle to LEFT, RIGHT or REJECTED"""
    if is_left_tilt(angle):
        return Tilt.LEFT
    if is_right_tilt(angle):
        return Tilt.RIGHT
    return Tilt.REJECTED


def rectangularity(contour_area: float, rectangle_area: float) -> float:
    """
    Ratio of the smaller to the larger of the two areas (1.0 is a perfect fit)

    Returns 0.0 when both areas are zero.
    """
    larger = max(contour_area, rectangle_area)
    if larger <= 0:
        return 0.0
    return min(contour_area, rectangle_area) / larger


def _legacy_rect(rect) -> Tuple[Tuple[float, float], Tuple[float, float], float]:
    """
    Re-express a cv2.minAreaRect result in the legacy angle convention

    OpenCV changed the reported angle range in 4.5.1. The corner points are
    stable across versions, so the long side orientation is measured from
    them and the legacy (width, height, angle) triple is rebuilt.
    """
    (cx, cy), _, _ = rect
    points = cv2.boxPoints(rect)
    edge_a = points[1] - points[0]
    edge_b = points[2] - points[1]
    len_a = float(np.hypot(edge_a[0], edge_a[1]))
    len_b = float(np.hypot(edge_b[0], edge_b[1]))
    long_edge, long_len, short_len = (edge_a, len_a, len_b) if len_a >= len_b else (edge_b, len_b, len_a)

    # Image y grows downward; flip it so angles read counter-clockwise
    phi = math.degrees(math.atan2(-float(long_edge[1]), float(long_edge[0]))) % 180.0
    if phi == 0.0:
        phi = 180.0

    if phi <= 90.0:
        return (cx, cy), (long_len, short_len), -phi
    return (cx, cy), (short_len, long_len), 90.0 - phi


def fit_shape(contour: np.ndarray,
              threshold: float = RECTANGULARITY_THRESHOLD) -> Optional[CandidateShape]:
    """
    Fit a rotated rectangle to a contour

    Args:
        contour: Contour points as produced by cv2.findContours
        threshold: Minimum rectangularity ratio

    Returns:
        CandidateShape, or None if the contour is not rectangular enough
    """
    if contour is None or len(contour) < 3:
        return None

    contour_area = cv2.contourArea(contour)
    rect = cv2.minAreaRect(contour)
    rect_width, rect_height = rect[1]
    ratio = rectangularity(contour_area, rect_width * rect_height)

    if ratio < threshold:
        return None

    (cx, cy), (width, height), raw_angle = _legacy_rect(rect)
    return CandidateShape(cx, cy, width, height, raw_angle)


def classify_contours(contours: List[np.ndarray],
                      threshold: float = RECTANGULARITY_THRESHOLD) -> List[CandidateShape]:
    """
    Classify every contour of a frame and keep the target-like ones

    Args:
        contours: Contours found in one frame (may be empty)
        threshold: Minimum rectangularity ratio

    Returns:
        List of shapes tagged LEFT or RIGHT, in input order
    """
    shapes = []
    for contour in contours:
        shape = fit_shape(contour, threshold)
        if shape is None or shape.tilt is Tilt.REJECTED:
            continue
        shapes.append(shape)

    logger.debug(f"Classified {len(shapes)} of {len(contours)} contours as target strips")
    return shapes
