#!/usr/bin/env python3

"""
Vision Targeting - Main Entry Point

Starts the camera, target finding, publishing to the robot controller and
the annotated video stream, then runs until interrupted.
"""

import os
import sys
import time
import logging
import argparse
import signal

from vision_targeting.config import load_configuration
from vision_targeting.vision_service import VisionService

service = None

STATUS_INTERVAL = 10.0  # seconds

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Third-party loggers that are too chatty at INFO for a per-frame service
QUIET_LOGGERS = ('werkzeug',)


def setup_logging(log_file=None, log_level="INFO"):
    """
    Configure the root logger for the vision service

    Can be called again once the configuration files have been read; the
    handlers from the previous call are closed and replaced.

    Args:
        log_file: Optional path of a log file (its directory is created)
        log_level: DEBUG, INFO, WARNING or ERROR
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    root = logging.getLogger()
    for old_handler in list(root.handlers):
        root.removeHandler(old_handler)
        old_handler.close()

    handlers = [logging.StreamHandler()]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root.addHandler(handler)
    root.setLevel(level)

    # The MJPEG server logs every request
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return root


def signal_handler(signum, frame):
    """Handle system signals for graceful shutdown"""
    logging.getLogger("VisionTargeting").info("Received signal to terminate. Shutting down...")
    if service is not None:
        service.stop()
    sys.exit(0)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Vision target finder for retro-reflective target pairs')
    parser.add_argument('--config', '-c', type=str, help='Path to YAML configuration file')
    parser.add_argument('--frc-config', type=str, help='Path to FRC camera JSON (default /boot/frc.json)')
    parser.add_argument('--transport', choices=['networktables', 'mavlink', 'loopback'],
                        help='Link to the robot controller')
    parser.add_argument('--fov', type=int, help='Camera horizontal field of view in degrees')
    parser.add_argument('--no-stream', action='store_true', help='Disable the annotated MJPEG stream')
    parser.add_argument('--log-level', '-l', type=str, default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    parser.add_argument('--log-file', type=str, help='Path to log file')
    return parser.parse_args(argv)


def build_config(args):
    """Load configuration files and apply command line overrides"""
    config = load_configuration(args.config, args.frc_config)

    if args.transport:
        config['transport'] = args.transport
    if args.fov is not None:
        config['field_of_view'] = args.fov
    if args.no_stream:
        config['stream_enabled'] = False
    if args.log_level:
        config['log_level'] = args.log_level
    if args.log_file:
        config['log_file'] = args.log_file

    return config


def main(argv=None):
    """Main entry point"""
    global service

    args = parse_args(argv)

    # Configure logging before reading files so config problems are reported
    setup_logging(args.log_file, args.log_level or "INFO")
    config = build_config(args)
    logger = setup_logging(config.get('log_file'), config.get('log_level', 'INFO'))
    logger.info("Starting vision targeting")

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        service = VisionService(config)
        service.start()

        # Periodic status while the worker threads run
        while True:
            time.sleep(STATUS_INTERVAL)
            logger.info(service.status_line())

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Vision targeting failed: {e}", exc_info=True)
        return 1
    finally:
        if service is not None:
            service.stop()
        logger.info("Vision targeting exited")

    return 0


if __name__ == "__main__":
    sys.exit(main())
