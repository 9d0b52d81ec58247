#!/usr/bin/env python3

"""
Loopback Transport

In-process transport for bench runs without a robot controller. It keeps
what was published so it can be inspected, and heartbeats can be injected
by hand.
"""

import logging
import threading
from collections import deque
from typing import Any, Dict, Optional, Tuple

from vision_targeting.transport.base import TargetTransport

# Set up logging
logger = logging.getLogger("LoopbackTransport")


class LoopbackTransport(TargetTransport):
    """Records every publish in memory"""

    name = "loopback"

    def __init__(self, config: Dict[str, Any] = None, history_size: int = 100):
        super().__init__()
        self.config = config or {}
        self.lock = threading.Lock()
        self.records = deque(maxlen=history_size)
        self.diagnostics = {}
        self.flush_count = 0
        self.connect_count = 0

    def connect(self) -> bool:
        self.connect_count += 1
        self.connected = True
        logger.info("Loopback transport connected")
        return True

    def disconnect(self) -> None:
        self.connected = False

    def publish_target(self, relative_heading: float, processing_time_ms: int,
                       distance: float) -> bool:
        with self.lock:
            self.records.append((relative_heading, int(processing_time_ms), distance))
        return True

    def publish_diagnostics(self, values: Dict[str, float]) -> bool:
        with self.lock:
            self.diagnostics.update(values)
        return True

    def flush(self) -> None:
        self.flush_count += 1

    def latest_record(self) -> Optional[Tuple[float, int, float]]:
        """Most recent (heading, processing time ms, distance) record"""
        with self.lock:
            return self.records[-1] if self.records else None

    def inject_heartbeat(self, remote_time: float) -> None:
        """Deliver a heartbeat as if the remote had published it"""
        self._notify_heartbeat(remote_time)
