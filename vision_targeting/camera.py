#!/usr/bin/env python3

"""
Camera Source

Thin wrapper around cv2.VideoCapture for the USB camera that looks at the
vision targets.
"""

import logging
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

# Set up logging
logger = logging.getLogger("CameraSource")


class CameraSource:
    """USB camera opened with OpenCV"""

    def __init__(self, source: Union[int, str] = 0, width: int = 320,
                 height: int = 240, fps: int = 30):
        """
        Initialize the camera source

        Args:
            source: Device index or path (e.g. "/dev/video0")
            width: Requested frame width
            height: Requested frame height
            fps: Requested frame rate
        """
        self.source = source
        self.width = width
        self.height = height
        self.fps = fps
        self.cap = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'CameraSource':
        return cls(source=config.get('camera_source', 0),
                   width=config.get('camera_width', 320),
                   height=config.get('camera_height', 240),
                   fps=config.get('camera_fps', 30))

    def open(self) -> None:
        """
        Open the camera

        Raises:
            RuntimeError: If the camera can't be opened
        """
        logger.info(f"Starting camera on {self.source}")
        self.cap = cv2.VideoCapture(self.source)
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        if not self.cap.isOpened():
            self.cap = None
            raise RuntimeError(f"Could not open camera {self.source}")

        logger.info(f"Camera opened at {int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
                    f"{int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))}")

    def grab_frame(self) -> Optional[np.ndarray]:
        """Next frame, or None if the camera returned nothing"""
        if self.cap is None:
            return None
        ret, frame = self.cap.read()
        if not ret:
            return None
        return frame

    def close(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("Camera released")
