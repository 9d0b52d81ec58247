#!/usr/bin/env python3

"""
Frame Pipeline

Producer/consumer execution model for target finding. A dedicated vision
thread grabs a frame, runs the target finder on it, stores the result in a
single lock-guarded "latest result" cell and then calls the consumer
(normally the TargetPublisher) once for the completed frame.

There is no frame queue: the newest result always replaces the previous one,
so a slow consumer skips results instead of falling behind.
"""

import time
import logging
import threading
from typing import Any, Callable, Optional

import numpy as np

from vision_targeting.target_finder import TargetFinder
from vision_targeting.target_selector import TargetInformation
from vision_targeting.geometry_resolver import TargetSolution, resolve, TARGET_SEPARATION, DEFAULT_FIELD_OF_VIEW
from vision_targeting.annotator import annotate_frame

# Set up logging
logger = logging.getLogger("FramePipeline")


class PipelineResult:
    """What one frame produced, handed from the vision worker to the consumer"""

    __slots__ = ('target', 'solution', 'annotated_frame', 'pairs_found')

    def __init__(self, target: TargetInformation, solution: TargetSolution,
                 annotated_frame: Optional[np.ndarray] = None, pairs_found: int = 0):
        self.target = target
        self.solution = solution
        self.annotated_frame = annotated_frame
        self.pairs_found = pairs_found

    @property
    def frame_start_timestamp(self) -> int:
        return self.target.frame_start_timestamp


class LatestResultCell:
    """
    Single-slot holder for the newest PipelineResult

    The lock is only held while the reference is swapped in or read out.
    Results older than the one already stored are ignored, so readers never
    see time go backwards.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._result = None

    def put(self, result: PipelineResult) -> bool:
        """
        Store a result

        Returns:
            False if the result was older than the stored one and was dropped
        """
        with self._lock:
            if self._result is not None and result.frame_start_timestamp < self._result.frame_start_timestamp:
                return False
            self._result = result
            return True

    def get(self) -> Optional[PipelineResult]:
        """Newest result, or None before the first frame completes"""
        with self._lock:
            return self._result


class TargetPipeline:
    """Processes one frame at a time on the vision thread"""

    def __init__(self, finder: TargetFinder,
                 field_of_view: float = DEFAULT_FIELD_OF_VIEW,
                 target_separation: float = TARGET_SEPARATION,
                 annotate: bool = True):
        """
        Initialize the pipeline

        Args:
            finder: Target finder to run on each frame
            field_of_view: Camera horizontal field of view in degrees
            target_separation: Real distance between strip centers
            annotate: Whether to produce an annotated copy of each frame
        """
        self.finder = finder
        self.field_of_view = field_of_view
        self.target_separation = target_separation
        self.annotate = annotate
        self.cell = LatestResultCell()

    def process(self, frame: np.ndarray) -> PipelineResult:
        """
        Find the target in a frame and publish the result to the cell

        The result goes into the cell before the frame is annotated; the
        annotated copy is attached afterwards, ahead of the listener call
        on this same thread.

        Args:
            frame: BGR image

        Returns:
            The result for this frame
        """
        analysis = self.finder.find(frame)
        solution = resolve(analysis.target, self.field_of_view, self.target_separation)
        result = PipelineResult(analysis.target, solution, None, len(analysis.pairs))

        if not self.cell.put(result):
            logger.warning(f"Dropped result started at {result.frame_start_timestamp} ms, "
                           f"older than the stored one")

        if self.annotate:
            result.annotated_frame = annotate_frame(frame, analysis, solution)
        return result

    def get_result(self) -> Optional[PipelineResult]:
        return self.cell.get()

    def get_target(self) -> Optional[TargetInformation]:
        result = self.cell.get()
        return result.target if result is not None else None

    def get_start_time(self) -> Optional[int]:
        result = self.cell.get()
        return result.frame_start_timestamp if result is not None else None

    def get_annotated_frame(self) -> Optional[np.ndarray]:
        result = self.cell.get()
        return result.annotated_frame if result is not None else None


class VisionThread:
    """
    Drives capture, processing and the consumer callback

    Each loop iteration grabs one frame, runs the pipeline on it and then
    invokes the listener with the pipeline. Failures are logged and the loop
    carries on; only stop() ends it.
    """

    def __init__(self, camera, pipeline: TargetPipeline,
                 listener: Callable[[TargetPipeline], Any],
                 error_callback: Callable[[str], Any] = None,
                 retry_delay: float = 0.01):
        """
        Initialize the vision thread

        Args:
            camera: Object with a grab_frame() method returning a frame or None
            pipeline: Pipeline to run on every frame
            listener: Called once per completed frame with the pipeline
            error_callback: Called with a message when a frame can't be grabbed
            retry_delay: Seconds to wait after a failed grab
        """
        self.camera = camera
        self.pipeline = pipeline
        self.listener = listener
        self.error_callback = error_callback
        self.retry_delay = retry_delay
        self.stop_event = threading.Event()
        self.thread = None
        self.frames_processed = 0
        self.capture_failures = 0

    def start(self) -> None:
        """Start the vision thread"""
        self.stop_event.clear()
        self.thread = threading.Thread(target=self._run, name="VisionThread")
        self.thread.daemon = True
        self.thread.start()
        logger.info("Vision thread started")

    def stop(self) -> None:
        """Stop the vision thread"""
        self.stop_event.set()
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=2.0)
        logger.info(f"Vision thread stopped after {self.frames_processed} frames")

    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def _run(self) -> None:
        while not self.stop_event.is_set():
            self.run_once()

    def run_once(self) -> bool:
        """
        Process a single frame

        Returns:
            True if a frame was processed and handed to the listener
        """
        frame = self.camera.grab_frame()
        if frame is None:
            self.capture_failures += 1
            message = "Could not grab a frame from the camera"
            logger.error(message)
            if self.error_callback:
                try:
                    self.error_callback(message)
                except Exception as e:
                    logger.error(f"Error in capture error callback: {e}")
            time.sleep(self.retry_delay)
            return False

        try:
            self.pipeline.process(frame)
        except Exception as e:
            logger.error(f"Error processing frame: {e}", exc_info=True)
            return False

        self.frames_processed += 1

        try:
            self.listener(self.pipeline)
        except Exception as e:
            logger.error(f"Error in vision listener: {e}", exc_info=True)

        return True
