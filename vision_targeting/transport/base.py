#!/usr/bin/env python3

"""
Target Transport Interface

Every transport carries the same information to the remote controller:
  - the target record [relativeHeadingDegrees, processingTimeMs, distanceToTarget],
    written as one atomic update so the heading is never seen without its
    matching age and distance
  - optional diagnostic values
  - a heartbeat subscription delivering the remote's wall clock time
"""

import logging
from typing import Any, Callable, Dict, List

# Set up logging
logger = logging.getLogger("TargetTransport")

HeartbeatCallback = Callable[[float], None]


class TargetTransport:
    """Base class for the links that carry target data to the controller"""

    name = "base"

    def __init__(self):
        self.heartbeat_callbacks: List[HeartbeatCallback] = []
        self.connected = False

    def connect(self) -> bool:
        """Open the session; returns True on success"""
        raise NotImplementedError

    def disconnect(self) -> None:
        """Close the session"""
        raise NotImplementedError

    def reconnect(self) -> bool:
        """Tear down and reopen the session"""
        logger.info(f"Reconnecting {self.name} transport")
        try:
            self.disconnect()
        except Exception as e:
            logger.warning(f"Error closing {self.name} transport: {e}")
        return self.connect()

    def is_connected(self) -> bool:
        return self.connected

    def publish_target(self, relative_heading: float, processing_time_ms: int,
                       distance: float) -> bool:
        """Publish the target record as one atomic update"""
        raise NotImplementedError

    def publish_diagnostics(self, values: Dict[str, float]) -> bool:
        """Publish diagnostic values; default does nothing"""
        return True

    def flush(self) -> None:
        """Send buffered updates now instead of waiting for the next batch"""

    def subscribe_heartbeat(self, callback: HeartbeatCallback) -> None:
        """
        Register a callback for the remote heartbeat

        Args:
            callback: Called with the remote wall clock time (seconds since epoch)
        """
        if callback not in self.heartbeat_callbacks:
            self.heartbeat_callbacks.append(callback)

    def _notify_heartbeat(self, remote_time: Any) -> None:
        for callback in self.heartbeat_callbacks:
            try:
                callback(float(remote_time))
            except Exception as e:
                logger.error(f"Error in heartbeat callback: {e}")
