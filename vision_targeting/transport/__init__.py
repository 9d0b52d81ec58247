"""
Transports carrying target data from the vision computer to the robot controller.
"""

import logging
from typing import Any, Dict

from vision_targeting.transport.base import TargetTransport
from vision_targeting.transport.loopback_transport import LoopbackTransport

logger = logging.getLogger("TargetTransport")


def create_transport(config: Dict[str, Any]) -> TargetTransport:
    """
    Build the transport named by config['transport']

    The NetworkTables and MAVLink modules are imported on demand so only the
    selected link's library needs to load.
    """
    kind = config.get('transport', 'networktables')

    if kind == 'networktables':
        from vision_targeting.transport.networktables_transport import NetworkTablesTransport
        return NetworkTablesTransport(config)
    if kind == 'mavlink':
        from vision_targeting.transport.mavlink_transport import MAVLinkTransport
        return MAVLinkTransport(config)
    if kind == 'loopback':
        return LoopbackTransport(config)

    raise ValueError(f"Unknown transport: {kind}")
