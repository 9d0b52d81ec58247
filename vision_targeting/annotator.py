#!/usr/bin/env python3

"""
Stream Annotator

Draws the detection results onto a copy of the frame for the operators'
video stream:
  - every contour in green
  - accepted target strips (fitted rectangles) in blue
  - lines between paired strips in red
  - a tilted cross and a thick vertical line through the selected target
"""

import math
from typing import Optional

import cv2
import numpy as np

from vision_targeting.target_finder import FrameAnalysis
from vision_targeting.geometry_resolver import TargetSolution

GREEN = (0, 255, 0)
BLUE = (255, 0, 0)
RED = (0, 0, 255)
WHITE = (255, 255, 255)


def _point(x: float, y: float):
    return (int(round(x)), int(round(y)))


def annotate_frame(frame: np.ndarray, analysis: FrameAnalysis,
                   solution: Optional[TargetSolution] = None) -> np.ndarray:
    """
    Draw the frame analysis onto a copy of the frame

    Args:
        frame: Original BGR frame (not modified)
        analysis: Detection results for the frame
        solution: Heading/distance to print, if already resolved

    Returns:
        Annotated copy of the frame
    """
    annotated = frame.copy()
    height = annotated.shape[0]

    if analysis.contours:
        cv2.drawContours(annotated, analysis.contours, -1, GREEN, 1)

    for shape in analysis.shapes:
        box = np.int32(np.round(shape.box_points()))
        cv2.polylines(annotated, [box], True, BLUE, 1)

    for pair in analysis.pairs:
        cv2.line(annotated, _point(*pair.left.center), _point(*pair.right.center), RED, 1)

    selected_point = analysis.selected_point
    if selected_point is not None:
        x, y = _point(*selected_point)
        cv2.drawMarker(annotated, (x, y), RED, cv2.MARKER_TILTED_CROSS)
        cv2.line(annotated, (x, 0), (x, height), RED, 5)

    if solution is not None and solution.valid:
        text = f"{solution.relative_heading:.1f} deg"
        if not math.isnan(solution.distance):
            text += f"  {solution.distance:.1f} in"
        cv2.putText(annotated, text, (5, 15), cv2.FONT_HERSHEY_SIMPLEX, 0.4, WHITE, 1)

    return annotated
