#!/usr/bin/env python3

"""
Vision Targeting Service

Wires the vision components together and owns their lifecycle:

  camera -> VisionThread(TargetPipeline) -> TargetPublisher -> transport
                                                           -> MJPEG stream
  transport heartbeat -> LinkWatchdog -> reconnect / clock adjustment
"""

import logging
from typing import Any, Dict

from vision_targeting.camera import CameraSource
from vision_targeting.contour_filter import ContourFilter
from vision_targeting.target_finder import TargetFinder
from vision_targeting.frame_pipeline import TargetPipeline, VisionThread
from vision_targeting.publisher import TargetPublisher
from vision_targeting.link_watchdog import LinkWatchdog, HeartbeatState, ClockSynchronizer
from vision_targeting.mjpeg_streamer import MJPEGStreamer
from vision_targeting.transport import create_transport

# Set up logging
logger = logging.getLogger("VisionService")


class VisionService:
    """Runs target finding, publishing and link supervision"""

    def __init__(self, config: Dict[str, Any], camera=None, transport=None, streamer=None):
        """
        Initialize the vision service

        Args:
            config: Configuration dictionary
            camera: Camera source (built from config if None)
            transport: Target transport (built from config if None)
            streamer: Video sink (an MJPEGStreamer if None and streaming is enabled)
        """
        self.config = config
        self.running = False

        self.transport = transport or create_transport(config)
        self.camera = camera or CameraSource.from_config(config)

        if streamer is None and config.get('stream_enabled', True):
            streamer = MJPEGStreamer.from_config(config)
        self.streamer = streamer

        clock_sync = None
        if config.get('clock_sync_enabled', True):
            clock_sync = ClockSynchronizer(command=config.get('clock_sync_command'))

        self.heartbeat_state = HeartbeatState()
        self.watchdog = LinkWatchdog(self.transport, config,
                                     heartbeat_state=self.heartbeat_state,
                                     clock_sync=clock_sync)
        self.watchdog.register_callback(self._on_link_state_changed)

        finder = TargetFinder(ContourFilter.from_config(config))
        self.pipeline = TargetPipeline(finder,
                                       field_of_view=config.get('field_of_view', 60),
                                       target_separation=config.get('target_separation', 11.267601903166458))
        self.publisher = TargetPublisher(self.transport, self.streamer)
        self.vision_thread = VisionThread(self.camera, self.pipeline, self.publisher,
                                          error_callback=self._on_capture_error)

        logger.info(f"Vision service configured: transport={self.transport.name}, "
                    f"FOV={self.pipeline.field_of_view}")

    def start(self) -> None:
        """Start all components"""
        if self.running:
            return

        if not self.transport.connect():
            logger.warning("Transport did not connect, the link watchdog will keep retrying")

        if hasattr(self.camera, 'open'):
            self.camera.open()

        if self.streamer is not None and hasattr(self.streamer, 'start'):
            self.streamer.start()

        self.watchdog.start_monitoring()
        self.vision_thread.start()
        self.running = True
        logger.info("Vision service started")

    def stop(self) -> None:
        """Stop all components"""
        if not self.running:
            return

        logger.info("Stopping vision service")
        self.vision_thread.stop()
        self.watchdog.stop_monitoring()

        if self.streamer is not None and hasattr(self.streamer, 'stop'):
            self.streamer.stop()
        if hasattr(self.camera, 'close'):
            self.camera.close()

        try:
            self.transport.disconnect()
        except Exception as e:
            logger.error(f"Error closing transport: {e}")

        self.running = False
        logger.info("Vision service stopped")

    def status_line(self) -> str:
        """One-line summary of frame, publish and link counters"""
        return (f"frames={self.vision_thread.frames_processed} "
                f"published={self.publisher.frames_published} "
                f"capture_errors={self.vision_thread.capture_failures} "
                f"link={self.watchdog.get_state().value} "
                f"reconnects={self.watchdog.reconnect_count}")

    def _on_link_state_changed(self, previous, current) -> None:
        logger.info(f"Link state changed: {previous.value} -> {current.value}")

    def _on_capture_error(self, message: str) -> None:
        self.transport.publish_diagnostics({'captureErrors': self.vision_thread.capture_failures})
