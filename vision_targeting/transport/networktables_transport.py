#!/usr/bin/env python3

"""
NetworkTables Transport

Publishes target data to the robot controller through NetworkTables 4.
The target record goes out as a single double array entry so that heading,
processing time and distance always arrive together. The individual
heading and processing time entries are also kept up to date for dashboards.
"""

import logging
from typing import Any, Dict

from ntcore import NetworkTableInstance, EventFlags

from vision_targeting.transport.base import TargetTransport

# Set up logging
logger = logging.getLogger("NetworkTablesTransport")


class NetworkTablesTransport(TargetTransport):
    """NetworkTables client or server session publishing to one table"""

    name = "networktables"

    def __init__(self, config: Dict[str, Any], instance: NetworkTableInstance = None):
        """
        Initialize the NetworkTables transport

        Args:
            config: Configuration dictionary (nt_mode, nt_team, nt_server,
                    nt_identity, nt_table, heartbeat_key)
            instance: NetworkTables instance (default instance if None)
        """
        super().__init__()
        self.config = config
        self.mode = config.get('nt_mode', 'client')
        self.team = config.get('nt_team')
        self.server = config.get('nt_server')
        self.identity = config.get('nt_identity', 'vision')
        self.ntinst = instance or NetworkTableInstance.getDefault()

        self.table = self.ntinst.getTable(config.get('nt_table', 'Vision'))
        self.target_information_pub = self.table.getDoubleArrayTopic("targetInformation").publish()
        self.target_error_pub = self.table.getDoubleTopic("targetError").publish()
        self.processing_time_pub = self.table.getDoubleTopic("targetProcessingTime").publish()
        self.diagnostic_pubs = {}

        self.heartbeat_sub = self.table.getDoubleTopic(config.get('heartbeat_key', 'heartbeat')).subscribe(0.0)
        self.heartbeat_listener = None

    def connect(self) -> bool:
        try:
            if self.mode == 'server':
                logger.info("Setting up NetworkTables server")
                self.ntinst.startServer()
            else:
                self.ntinst.startClient4(self.identity)
                if self.server:
                    logger.info(f"Setting up NetworkTables client for server {self.server}")
                    self.ntinst.setServer(self.server)
                elif self.team is not None:
                    logger.info(f"Setting up NetworkTables client for team {self.team}")
                    self.ntinst.setServerTeam(int(self.team))
                else:
                    logger.warning("No NetworkTables server or team configured, using localhost")
                    self.ntinst.setServer("localhost")

            if self.heartbeat_listener is None:
                self.heartbeat_listener = self.ntinst.addListener(
                    self.heartbeat_sub, EventFlags.kValueAll, self._on_heartbeat_event)

            self.connected = True
            return True
        except Exception as e:
            logger.error(f"Error starting NetworkTables: {e}")
            self.connected = False
            return False

    def disconnect(self) -> None:
        if self.mode == 'server':
            self.ntinst.stopServer()
        else:
            self.ntinst.stopClient()
        self.connected = False
        logger.info("NetworkTables session stopped")

    def is_connected(self) -> bool:
        if self.mode == 'server':
            return self.connected
        return self.connected and self.ntinst.isConnected()

    def publish_target(self, relative_heading: float, processing_time_ms: int,
                       distance: float) -> bool:
        try:
            self.target_error_pub.set(relative_heading)
            self.processing_time_pub.set(float(processing_time_ms))
            self.target_information_pub.set([relative_heading, float(processing_time_ms), distance])
            return True
        except Exception as e:
            logger.error(f"Error publishing target information: {e}")
            return False

    def publish_diagnostics(self, values: Dict[str, float]) -> bool:
        try:
            for key, value in values.items():
                if key not in self.diagnostic_pubs:
                    self.diagnostic_pubs[key] = self.table.getDoubleTopic(key).publish()
                self.diagnostic_pubs[key].set(float(value))
            return True
        except Exception as e:
            logger.error(f"Error publishing diagnostics: {e}")
            return False

    def flush(self) -> None:
        self.ntinst.flush()

    def _on_heartbeat_event(self, event) -> None:
        self._notify_heartbeat(event.data.value.getDouble())
