#!/usr/bin/env python3

"""
Contour Filter

Front end that turns a raw BGR camera frame into the convex hulls of bright,
LED-lit regions. The retro-reflective tape returns the ring light's color, so
a plain HSV threshold isolates it well.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import cv2
import numpy as np

# Set up logging
logger = logging.getLogger("ContourFilter")


class ContourFilter:
    """HSV threshold -> external contours -> area filter -> convex hulls"""

    def __init__(self, hue: Sequence[float] = (55.0, 95.0),
                 saturation: Sequence[float] = (100.0, 255.0),
                 value: Sequence[float] = (100.0, 255.0),
                 min_area: float = 15.0):
        """
        Initialize the contour filter

        Args:
            hue: Inclusive (low, high) hue range, OpenCV scale 0-180
            saturation: Inclusive (low, high) saturation range
            value: Inclusive (low, high) value range
            min_area: Contours smaller than this (pixels) are discarded
        """
        self.lower = np.array([hue[0], saturation[0], value[0]], dtype=np.uint8)
        self.upper = np.array([hue[1], saturation[1], value[1]], dtype=np.uint8)
        self.min_area = min_area
        self.mask = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ContourFilter':
        return cls(hue=config.get('hsv_hue', (55.0, 95.0)),
                   saturation=config.get('hsv_saturation', (100.0, 255.0)),
                   value=config.get('hsv_value', (100.0, 255.0)),
                   min_area=config.get('min_contour_area', 15.0))

    def process(self, frame: Optional[np.ndarray]) -> List[np.ndarray]:
        """
        Find candidate target contours in a frame

        Args:
            frame: BGR image

        Returns:
            Convex hulls of the bright regions (possibly empty)
        """
        if frame is None or frame.size == 0:
            return []

        hsv = cv2.cvtColor(frame, cv2.COLOR_BGR2HSV)
        self.mask = cv2.inRange(hsv, self.lower, self.upper)

        # OpenCV 3 returns (image, contours, hierarchy), OpenCV 4 (contours, hierarchy)
        found = cv2.findContours(self.mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        contours = found[-2]

        hulls = []
        for contour in contours:
            if cv2.contourArea(contour) < self.min_area:
                continue
            hulls.append(cv2.convexHull(contour))

        return hulls
