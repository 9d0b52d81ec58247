#!/usr/bin/env python3

"""
Vision Target Finder

Runs the complete per-frame detection chain: contour extraction, shape
classification, pairing and target selection. Every intermediate result is
kept in a FrameAnalysis so the annotator can draw what was actually used.
"""

import time
import logging
from typing import Callable, List, Optional

import numpy as np

from vision_targeting.contour_filter import ContourFilter
from vision_targeting.shape_classifier import CandidateShape, classify_contours, RECTANGULARITY_THRESHOLD
from vision_targeting.pairing_engine import TargetPair, pair_shapes, ALIGNMENT_TOLERANCE
from vision_targeting.target_selector import TargetInformation, select_target, target_information

# Set up logging
logger = logging.getLogger("TargetFinder")


def monotonic_millis() -> int:
    """
    Milliseconds on the local monotonic clock

    Frame start times and processing ages are measured on this clock so a
    wall clock adjustment can't reorder frames or produce negative ages.
    """
    return time.monotonic_ns() // 1_000_000


class FrameAnalysis:
    """Everything one frame produced"""

    def __init__(self, contours: List[np.ndarray], shapes: List[CandidateShape],
                 pairs: List[TargetPair], selected: Optional[TargetPair],
                 target: TargetInformation):
        self.contours = contours
        self.shapes = shapes
        self.pairs = pairs
        self.selected = selected
        self.target = target

    @property
    def selected_point(self):
        """Midpoint of the selected pair, or None"""
        if self.selected is None:
            return None
        return self.selected.midpoint


class TargetFinder:
    """Finds the best vision target pair in a frame"""

    def __init__(self, contour_filter: ContourFilter = None,
                 rectangularity_threshold: float = RECTANGULARITY_THRESHOLD,
                 alignment_tolerance: float = ALIGNMENT_TOLERANCE,
                 clock: Callable[[], int] = monotonic_millis):
        """
        Initialize the target finder

        Args:
            contour_filter: Contour front end (default thresholds if None)
            rectangularity_threshold: Minimum contour/rectangle area ratio
            alignment_tolerance: Maximum pair line angle in degrees
            clock: Monotonic millisecond clock used for frame start timestamps
        """
        self.contour_filter = contour_filter or ContourFilter()
        self.rectangularity_threshold = rectangularity_threshold
        self.alignment_tolerance = alignment_tolerance
        self.clock = clock

    def analyze_contours(self, contours: List[np.ndarray], frame_width: int,
                         frame_start_timestamp: int) -> FrameAnalysis:
        """
        Classify, pair and select from already extracted contours

        Args:
            contours: Contours of one frame
            frame_width: Frame width in pixels
            frame_start_timestamp: When processing of the frame began (ms)

        Returns:
            FrameAnalysis for the frame
        """
        shapes = classify_contours(contours, self.rectangularity_threshold)
        pairs = pair_shapes(shapes, self.alignment_tolerance)
        selected = select_target(pairs, frame_width)
        target = target_information(selected, frame_width, frame_start_timestamp)

        logger.debug(f"{len(contours)} contours, {len(shapes)} strips, {len(pairs)} pairs, "
                     f"normalized center {target.normalized_center}")

        return FrameAnalysis(contours, shapes, pairs, selected, target)

    def find(self, frame: np.ndarray) -> FrameAnalysis:
        """
        Run the whole detection chain on one frame

        Args:
            frame: BGR image

        Returns:
            FrameAnalysis for the frame
        """
        frame_start_timestamp = self.clock()
        contours = self.contour_filter.process(frame)
        return self.analyze_contours(contours, frame.shape[1], frame_start_timestamp)
