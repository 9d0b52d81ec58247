#!/usr/bin/env python3

"""
Configuration Loading

Configuration comes from three places, later ones winning:
  1. the defaults below
  2. the FRC camera configuration written by the vision image's web
     dashboard (/boot/frc.json), for team number, NetworkTables mode and the
     first camera's path, video mode and FOV
  3. a YAML file for everything else
Command line overrides are applied on top by the entry point.

FRC camera JSON format:
  {
      "team": <team number>,
      "ntmode": <"client" or "server", "client" if unspecified>,
      "cameras": [
          {
              "name": <camera name>,
              "path": <path, e.g. "/dev/video0">,
              "width": <video mode width>,            // optional
              "height": <video mode height>,          // optional
              "fps": <video mode fps>,                // optional
              "FOV": <horizontal field of view, degrees> // optional
          }
      ]
  }
"""

import copy
import json
import logging
from typing import Any, Dict, Optional

import yaml

# Set up logging
logger = logging.getLogger("Configuration")

DEFAULT_CONFIG = {
    # General settings
    'log_level': 'INFO',
    'log_file': None,

    # Camera settings
    'frc_config': '/boot/frc.json',
    'camera_source': 0,
    'camera_width': 320,
    'camera_height': 240,
    'camera_fps': 30,
    'field_of_view': 60,  # degrees

    # Target settings
    'target_separation': 11.267601903166458,  # inches between strip centers
    'hsv_hue': [55.0, 95.0],
    'hsv_saturation': [100.0, 255.0],
    'hsv_value': [100.0, 255.0],
    'min_contour_area': 15.0,  # pixels

    # Transport settings
    'transport': 'networktables',  # 'networktables', 'mavlink' or 'loopback'
    'nt_mode': 'client',
    'nt_team': None,
    'nt_server': None,
    'nt_identity': 'vision',
    'nt_table': 'Vision',
    'heartbeat_key': 'heartbeat',
    'mavlink_connection': 'udpout:127.0.0.1:14550',
    'mavlink_baudrate': 921600,
    'mavlink_heartbeat_interval': 1.0,  # seconds

    # Link watchdog settings
    'watchdog_poll_interval': 1.0,  # seconds
    'heartbeat_timeout': 1.0,  # seconds
    'clock_skew_threshold': 0.5,  # seconds
    'clock_sync_enabled': True,
    'clock_sync_command': None,  # default: sudo date -u -s @<timestamp>

    # Video streaming settings
    'stream_enabled': True,
    'stream_host': '0.0.0.0',
    'stream_port': 1182,
    'stream_quality': 80,
    'output_width': 320,
    'output_height': 240,
}


def read_frc_config(config_file: str) -> Dict[str, Any]:
    """
    Read the FRC camera configuration file

    Args:
        config_file: Path to the JSON file

    Returns:
        Configuration overrides found in the file (empty on any error)
    """
    try:
        with open(config_file, 'r') as f:
            top = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"could not open '{config_file}': {e}")
        return {}

    if not isinstance(top, dict):
        logger.error(f"config error in '{config_file}': must be JSON object")
        return {}

    overrides = {}

    # team number
    if 'team' in top:
        overrides['nt_team'] = top['team']
    else:
        logger.error(f"config error in '{config_file}': could not read team number")

    # ntmode (optional)
    if 'ntmode' in top:
        mode = str(top['ntmode']).lower()
        if mode in ('client', 'server'):
            overrides['nt_mode'] = mode
        else:
            logger.error(f"config error in '{config_file}': could not understand ntmode value '{top['ntmode']}'")

    cameras = top.get('cameras') or []
    if not cameras:
        logger.error(f"config error in '{config_file}': could not read cameras")
        return overrides

    camera = cameras[0]
    if 'path' in camera:
        overrides['camera_source'] = camera['path']
    for key, target in (('width', 'camera_width'), ('height', 'camera_height'), ('fps', 'camera_fps')):
        if key in camera:
            overrides[target] = camera[key]

    fov = parse_field_of_view(camera.get('FOV'))
    if fov is not None:
        overrides['field_of_view'] = fov
        logger.info(f"Set FOV to {fov}")
    else:
        logger.info("Couldn't understand camera's FOV configuration value (ex: FOV: 150), using default")

    return overrides


def parse_field_of_view(value: Any) -> Optional[int]:
    """Integer FOV in degrees, or None if value is missing or not a number"""
    if value is None or isinstance(value, bool):
        return None
    try:
        fov = int(value)
    except (TypeError, ValueError):
        return None
    if fov <= 0 or fov >= 180:
        return None
    return fov


def load_configuration(config_file: str = None, frc_config_file: str = None) -> Dict[str, Any]:
    """
    Load configuration from files or use defaults

    Args:
        config_file: Path to YAML configuration file
        frc_config_file: Path to FRC camera JSON (default from the YAML/defaults)

    Returns:
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    file_config = {}
    if config_file:
        try:
            with open(config_file, 'r') as f:
                file_config = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {config_file}")
        except Exception as e:
            logger.error(f"Error loading configuration file {config_file}: {e}")
            logger.info("Using default configuration")
            file_config = {}

    frc_path = frc_config_file or file_config.get('frc_config', config['frc_config'])
    if frc_path:
        config.update(read_frc_config(frc_path))

    config.update(file_config)
    return config
