#!/usr/bin/env python3

"""
MAVLink Transport

Sends target data to an autopilot or companion controller over MAVLink.

  - DEBUG_VECT "VTARGET" carries heading (x), processing time in ms (y) and
    distance (z) in one message, so the record is always consistent
  - LANDING_TARGET carries the heading as angle_x (radians) and the distance
  - NAMED_VALUE_FLOAT carries diagnostics
  - the remote's SYSTEM_TIME messages act as the heartbeat and supply its
    wall clock

MAVLink messages are written to the link as soon as they are sent, so flush()
has nothing to do.
"""

import math
import time
import logging
import threading
from typing import Any, Dict

from pymavlink import mavutil

from vision_targeting.transport.base import TargetTransport

# Set up logging
logger = logging.getLogger("MAVLinkTransport")

TARGET_VECTOR_NAME = b"VTARGET"


class MAVLinkTransport(TargetTransport):
    """MAVLink session publishing target data"""

    name = "mavlink"

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the MAVLink transport

        Args:
            config: Configuration dictionary (mavlink_connection,
                    mavlink_baudrate, mavlink_heartbeat_interval)
        """
        super().__init__()
        self.config = config
        self.connection_string = config.get('mavlink_connection', 'udpout:127.0.0.1:14550')
        self.heartbeat_interval = config.get('mavlink_heartbeat_interval', 1.0)
        self.connection = None
        self.connection_lock = threading.Lock()
        self.boot_time = time.time()
        self.last_heartbeat_sent = 0.0
        self.listener_thread = None
        self.stop_event = threading.Event()

    def connect(self) -> bool:
        """Connect to the MAVLink device and start the listener thread"""
        try:
            logger.info(f"Connecting to MAVLink device at {self.connection_string}")
            with self.connection_lock:
                # For serial connections
                if self.connection_string.startswith('/dev/'):
                    baudrate = self.config.get('mavlink_baudrate', 921600)
                    self.connection = mavutil.mavlink_connection(self.connection_string, baud=baudrate)
                # For UDP/TCP connections
                else:
                    self.connection = mavutil.mavlink_connection(self.connection_string)
        except Exception as e:
            logger.error(f"Error connecting to MAVLink: {e}")
            self.connected = False
            return False

        self.connected = True
        self.stop_event.clear()
        self.listener_thread = threading.Thread(target=self._listen, name="MAVLinkListener")
        self.listener_thread.daemon = True
        self.listener_thread.start()
        return True

    def disconnect(self) -> None:
        """Stop the listener thread and close the MAVLink connection"""
        self.stop_event.set()
        if self.listener_thread and self.listener_thread.is_alive() \
                and self.listener_thread is not threading.current_thread():
            self.listener_thread.join(timeout=2.0)

        with self.connection_lock:
            if self.connection:
                logger.info("Closing MAVLink connection")
                self.connection.close()
                self.connection = None
        self.connected = False

    def _time_boot_ms(self) -> int:
        return int((time.time() - self.boot_time) * 1000) & 0xFFFFFFFF

    def publish_target(self, relative_heading: float, processing_time_ms: int,
                       distance: float) -> bool:
        with self.connection_lock:
            if not self.connection:
                return False
            try:
                self.connection.mav.debug_vect_send(
                    TARGET_VECTOR_NAME,
                    int(time.time() * 1e6),  # time_usec
                    relative_heading,         # x: heading (deg)
                    float(processing_time_ms),  # y: age of the data (ms)
                    distance                  # z: distance
                )
                self.connection.mav.landing_target_send(
                    int(time.time() * 1e6),   # time_usec
                    0,                         # target_num
                    mavutil.mavlink.MAV_FRAME_BODY_FRD,
                    math.radians(relative_heading),  # angle_x (rad)
                    0.0,                       # angle_y (rad)
                    distance,                  # distance
                    0.0, 0.0                   # size_x, size_y
                )
                return True
            except Exception as e:
                logger.error(f"Error sending target messages: {e}")
                return False

    def publish_diagnostics(self, values: Dict[str, float]) -> bool:
        with self.connection_lock:
            if not self.connection:
                return False
            try:
                for key, value in values.items():
                    # NAMED_VALUE_FLOAT names are limited to 10 characters
                    self.connection.mav.named_value_float_send(
                        self._time_boot_ms(), key[:10].encode(), float(value))
                return True
            except Exception as e:
                logger.error(f"Error sending diagnostics: {e}")
                return False

    def send_heartbeat(self) -> None:
        """Announce this computer to the controller"""
        with self.connection_lock:
            if not self.connection:
                return
            self.connection.mav.heartbeat_send(
                mavutil.mavlink.MAV_TYPE_ONBOARD_CONTROLLER,
                mavutil.mavlink.MAV_AUTOPILOT_INVALID,
                0, 0, 0)
        self.last_heartbeat_sent = time.time()

    def _listen(self) -> None:
        """Receive SYSTEM_TIME messages in a separate thread"""
        while not self.stop_event.is_set():
            connection = self.connection
            if connection is None:
                time.sleep(0.1)
                continue

            try:
                if time.time() - self.last_heartbeat_sent >= self.heartbeat_interval:
                    self.send_heartbeat()

                msg = connection.recv_match(type='SYSTEM_TIME', blocking=True, timeout=0.5)
                if msg and msg.time_unix_usec:
                    self._notify_heartbeat(msg.time_unix_usec / 1e6)
            except Exception as e:
                logger.warning(f"Error receiving SYSTEM_TIME: {e}")
                time.sleep(0.1)
