"""Test helpers: synthetic shapes, contours, frames and doubles."""
import math

import cv2
import numpy as np

from vision_targeting.shape_classifier import CandidateShape


FRAME_WIDTH = 320
FRAME_HEIGHT = 240


def shape_at(center_x, center_y, angle):
    """CandidateShape whose long side points at the given adjusted angle."""
    if angle > 90:
        # Taller than wide: adjusted = 90 - raw
        return CandidateShape(center_x, center_y, 10.0, 40.0, 90.0 - angle)
    return CandidateShape(center_x, center_y, 40.0, 10.0, -angle)


def strip_corners(center_x, center_y, length, thickness, angle):
    """
    Corners of a rectangle whose long side points at angle degrees
    (counter-clockwise from the +x axis as seen on screen).
    """
    rad = math.radians(angle)
    # Image y grows downward
    ux, uy = math.cos(rad), -math.sin(rad)
    vx, vy = math.sin(rad), math.cos(rad)
    hl, ht = length / 2.0, thickness / 2.0
    return np.array([
        [center_x - hl * ux - ht * vx, center_y - hl * uy - ht * vy],
        [center_x + hl * ux - ht * vx, center_y + hl * uy - ht * vy],
        [center_x + hl * ux + ht * vx, center_y + hl * uy + ht * vy],
        [center_x - hl * ux + ht * vx, center_y - hl * uy + ht * vy],
    ], dtype=np.float32)


def strip_contour(center_x, center_y, angle, length=40.0, thickness=10.0):
    """Contour (N x 1 x 2 float32) of a tilted strip."""
    return strip_corners(center_x, center_y, length, thickness, angle).reshape(-1, 1, 2)


def draw_target_frame(pairs=((160.0, 120.0),), width=FRAME_WIDTH, height=FRAME_HEIGHT,
                      spacing=80.0):
    """
    Black BGR frame with one green target pair drawn per (center_x, center_y).

    The left strip leans at 75 degrees and the right strip at 105 degrees.
    """
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    for center_x, center_y in pairs:
        for offset, angle in ((-spacing / 2.0, 75.0), (spacing / 2.0, 105.0)):
            corners = strip_corners(center_x + offset, center_y, 48.0, 12.0, angle)
            cv2.fillPoly(frame, [np.int32(np.round(corners))], (0, 255, 0))
    return frame


class FakeCamera:
    """Camera double returning a fixed frame (or None) on every grab."""

    def __init__(self, frame=None):
        self.frame = frame
        self.grabs = 0
        self.opened = False
        self.closed = False

    def open(self):
        self.opened = True

    def grab_frame(self):
        self.grabs += 1
        return None if self.frame is None else self.frame.copy()

    def close(self):
        self.closed = True


class FakeContourFilter:
    """Contour front end double returning preset contours."""

    def __init__(self, contours=None):
        self.contours = contours or []

    def process(self, frame):
        return list(self.contours)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


