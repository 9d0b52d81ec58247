#!/usr/bin/env python3

"""
Target Publisher

Consumer side of the frame pipeline. Called once per completed frame, it
tells the robot controller where the target is and how old that information
is, so the controller can work out where it was facing when the picture was
taken and account for the processing lag.
"""

import logging
from typing import Callable, Optional

from vision_targeting.frame_pipeline import TargetPipeline
from vision_targeting.target_finder import monotonic_millis
from vision_targeting.transport.base import TargetTransport

# Set up logging
logger = logging.getLogger("TargetPublisher")


class TargetPublisher:
    """Publishes each frame's result and forwards the annotated frame"""

    def __init__(self, transport: TargetTransport, video_sink=None,
                 clock: Callable[[], int] = monotonic_millis,
                 publish_diagnostics: bool = True):
        """
        Initialize the publisher

        Args:
            transport: Link to the robot controller
            video_sink: Object with put_frame(frame), or None
            clock: Millisecond clock, the same one that stamps frame start times
            publish_diagnostics: Whether to publish pair count every frame
        """
        self.transport = transport
        self.video_sink = video_sink
        self.clock = clock
        self.publish_diagnostics = publish_diagnostics
        self.last_published_timestamp = None
        self.last_result = None
        self.frames_published = 0
        self.results_skipped = 0

    def __call__(self, pipeline: TargetPipeline) -> None:
        self.on_frame(pipeline)

    def on_frame(self, pipeline: TargetPipeline) -> Optional[int]:
        """
        Handle one completed frame

        Args:
            pipeline: The pipeline that just finished a frame

        Returns:
            Processing time in ms, or None if there was no new result
        """
        result = pipeline.get_result()
        if result is None:
            return None

        # Each result is consumed once; never re-send an old heading
        if result is self.last_result:
            self.results_skipped += 1
            logger.debug("No new result since the last frame, nothing published")
            return None
        self.last_result = result

        processing_time = self.clock() - result.frame_start_timestamp
        solution = result.solution

        if self.publish_diagnostics:
            self.transport.publish_diagnostics({'pairsFound': result.pairs_found})

        # Don't send NaN headings to the controller
        if result.target.has_target:
            if self.transport.publish_target(solution.relative_heading, processing_time, solution.distance):
                self.frames_published += 1
                self.last_published_timestamp = result.frame_start_timestamp
            self.transport.flush()

        logger.debug(f"visionTargetError:{solution.relative_heading:3.1f} degrees, "
                     f"distance {solution.distance:3.1f}, processingTime:{processing_time} ms")

        if self.video_sink is not None and result.annotated_frame is not None:
            self.video_sink.put_frame(result.annotated_frame)

        return processing_time
