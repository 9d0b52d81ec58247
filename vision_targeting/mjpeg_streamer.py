#!/usr/bin/env python3

"""
MJPEG Streamer

Serves the annotated vision frames over HTTP as an MJPEG stream so drivers
and pit crew can watch what the vision system sees in any browser:

  http://<vision_ip>:<port>/video_feed
"""

import time
import logging
import threading
from typing import Any, Dict, Iterator, Optional

import cv2
import numpy as np
from flask import Flask, Response

# Set up logging
logger = logging.getLogger("MJPEGStreamer")

INDEX_PAGE = """
<!DOCTYPE html>
<html>
<head><title>Annotated Vision</title></head>
<body style="margin:0; background-color:#000; text-align:center;">
    <img src="/video_feed" style="max-width:100%; height:auto;">
</body>
</html>
"""


class MJPEGStreamer:
    """Holds the newest frame and streams it as MJPEG"""

    def __init__(self, width: int = 320, height: int = 240, quality: int = 80,
                 host: str = '0.0.0.0', port: int = 1182):
        """
        Initialize the streamer

        Args:
            width: Output frame width
            height: Output frame height
            quality: JPEG quality (1-100)
            host: Address to serve on
            port: HTTP port
        """
        self.width = width
        self.height = height
        self.quality = quality
        self.host = host
        self.port = port
        self.frame_lock = threading.Lock()
        self.current_frame = None
        self.frame_count = 0
        self.stop_event = threading.Event()
        self.server_thread = None
        self.app = self.create_app()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'MJPEGStreamer':
        return cls(width=config.get('output_width', 320),
                   height=config.get('output_height', 240),
                   quality=config.get('stream_quality', 80),
                   host=config.get('stream_host', '0.0.0.0'),
                   port=config.get('stream_port', 1182))

    def put_frame(self, frame: np.ndarray) -> None:
        """Replace the frame being streamed, resized to the output size"""
        if frame.shape[1] != self.width or frame.shape[0] != self.height:
            frame = cv2.resize(frame, (self.width, self.height))
        with self.frame_lock:
            self.current_frame = frame
            self.frame_count += 1

    def get_frame(self) -> Optional[np.ndarray]:
        with self.frame_lock:
            return self.current_frame

    def encode_frame(self, frame: np.ndarray) -> Optional[bytes]:
        """JPEG-encode a frame, None on failure"""
        ret, buffer = cv2.imencode('.jpg', frame, [cv2.IMWRITE_JPEG_QUALITY, self.quality])
        if not ret:
            return None
        return buffer.tobytes()

    def generate_frames(self) -> Iterator[bytes]:
        """Generator function for MJPEG streaming"""
        last_count = -1
        while not self.stop_event.is_set():
            with self.frame_lock:
                frame = self.current_frame
                count = self.frame_count

            if frame is None or count == last_count:
                time.sleep(0.01)
                continue
            last_count = count

            frame_bytes = self.encode_frame(frame)
            if frame_bytes is None:
                continue

            yield (b'--frame\r\n'
                   b'Content-Type: image/jpeg\r\n\r\n' + frame_bytes + b'\r\n')

    def create_app(self) -> Flask:
        """Create and configure the Flask application"""
        app = Flask(__name__)

        @app.route('/')
        def index():
            return INDEX_PAGE

        @app.route('/video_feed')
        def video_feed():
            return Response(self.generate_frames(),
                            mimetype='multipart/x-mixed-replace; boundary=frame')

        return app

    def start(self) -> None:
        """Serve the stream on a background thread"""
        self.stop_event.clear()
        self.server_thread = threading.Thread(
            target=self.app.run,
            kwargs={'host': self.host, 'port': self.port, 'threaded': True, 'use_reloader': False},
            name="MJPEGStreamer")
        self.server_thread.daemon = True
        self.server_thread.start()
        logger.info(f"Annotated stream at http://{self.host}:{self.port}/video_feed")

    def stop(self) -> None:
        # Ends open streams; the daemon server thread exits with the process
        self.stop_event.set()
