#!/usr/bin/env python3

"""
Link Watchdog

Keeps the link to the robot controller alive. The controller publishes a
heartbeat carrying its wall clock time. The heartbeat listener records when
the last one arrived; the watchdog loop polls that time and, if the link has
gone quiet for too long, tears the transport session down and reopens it.

Separately, when the controller's clock and ours disagree by more than the
skew threshold, a best-effort clock adjustment is started in the background.
Reconnects and clock adjustments run on different schedules so a clock jump
cannot cause a burst of reconnects.
"""

import time
import logging
import subprocess
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from vision_targeting.transport.base import TargetTransport

# Set up logging
logger = logging.getLogger("LinkWatchdog")

DEFAULT_CLOCK_SYNC_COMMAND = ["sudo", "date", "-u", "-s", "@{timestamp:.3f}"]


class LinkState(Enum):
    """Link watchdog states"""
    CONNECTED = "connected"        # Heartbeats are arriving
    STALE = "stale"                # Heartbeat overdue
    RECONNECTING = "reconnecting"  # Transport session being reopened


class HeartbeatState:
    """
    Time the last heartbeat arrived, on the local monotonic clock

    Written only by the heartbeat listener and read only by the watchdog. A
    float attribute assignment is atomic, so no lock is needed.
    """

    def __init__(self, monotonic: Callable[[], float] = time.monotonic):
        self.monotonic = monotonic
        self.last_heartbeat_local_time = monotonic()
        self.heartbeat_count = 0

    def mark(self) -> float:
        """Record a heartbeat now and return the time recorded"""
        now = self.monotonic()
        self.last_heartbeat_local_time = now
        self.heartbeat_count += 1
        return now

    def elapsed(self) -> float:
        """Seconds since the last heartbeat"""
        return self.monotonic() - self.last_heartbeat_local_time


class ClockSynchronizer:
    """
    Sets the local clock to the controller's time, in the background

    Each adjustment runs a command on its own daemon thread. Failures are
    logged and dropped; the next skewed heartbeat will try again. Only one
    adjustment runs at a time.
    """

    def __init__(self, command: Optional[List[str]] = None, timeout: float = 5.0,
                 runner: Callable[..., Any] = subprocess.run):
        """
        Initialize the clock synchronizer

        Args:
            command: Command template; "{timestamp}" fields receive the remote
                     time in seconds since epoch
            timeout: Seconds before the command is abandoned
            runner: Function used to run the command
        """
        self.command = command or DEFAULT_CLOCK_SYNC_COMMAND
        self.timeout = timeout
        self.runner = runner
        self.in_progress = threading.Event()
        self.attempts = 0
        self.failures = 0
        self.last_thread = None

    def request(self, remote_time: float) -> bool:
        """
        Start a clock adjustment without waiting for it

        Args:
            remote_time: Controller wall clock, seconds since epoch

        Returns:
            True if an adjustment was started, False if one is already running
        """
        if self.in_progress.is_set():
            logger.debug("Clock adjustment already running, skipping request")
            return False

        self.in_progress.set()
        self.attempts += 1
        self.last_thread = threading.Thread(target=self._adjust, args=(remote_time,), name="ClockSync")
        self.last_thread.daemon = True
        self.last_thread.start()
        return True

    def _adjust(self, remote_time: float) -> None:
        command = [part.format(timestamp=remote_time) for part in self.command]
        try:
            logger.info(f"Adjusting local clock: {' '.join(command)}")
            self.runner(command, check=True, timeout=self.timeout,
                        stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
            logger.info("Local clock adjusted")
        except subprocess.CalledProcessError as e:
            self.failures += 1
            logger.warning(f"Clock adjustment failed with exit code {e.returncode}: {e.stderr}")
        except Exception as e:
            self.failures += 1
            logger.warning(f"Clock adjustment failed: {e}")
        finally:
            self.in_progress.clear()


class LinkWatchdog:
    """Detects a silent link and reopens the transport session"""

    def __init__(self, transport: TargetTransport, config: Dict[str, Any] = None,
                 heartbeat_state: HeartbeatState = None,
                 clock_sync: ClockSynchronizer = None,
                 wall_clock: Callable[[], float] = time.time):
        """
        Initialize the link watchdog

        Args:
            transport: Transport to watch and reconnect
            config: Configuration dictionary (watchdog_poll_interval,
                    heartbeat_timeout, clock_skew_threshold, clock_sync_enabled)
            heartbeat_state: Shared heartbeat time (a new one if None)
            clock_sync: Clock synchronizer, or None to never adjust the clock
            wall_clock: Local wall clock in seconds since epoch
        """
        config = config or {}
        self.transport = transport
        self.poll_interval = config.get('watchdog_poll_interval', 1.0)
        self.heartbeat_timeout = config.get('heartbeat_timeout', 1.0)
        self.skew_threshold = config.get('clock_skew_threshold', 0.5)
        self.heartbeat_state = heartbeat_state or HeartbeatState()
        self.clock_sync = clock_sync
        self.wall_clock = wall_clock

        self.state = LinkState.CONNECTED
        # Held while the state changes and its callbacks run, so transitions
        # from the heartbeat listener and the watchdog thread are serialized
        self.state_lock = threading.RLock()
        self.reconnect_count = 0
        self.callbacks = []
        self.monitoring_thread = None
        self.stop_event = threading.Event()

        transport.subscribe_heartbeat(self.on_heartbeat)

    def start_monitoring(self) -> None:
        """Start the watchdog thread"""
        self.stop_event.clear()
        self.monitoring_thread = threading.Thread(target=self._monitoring_loop, name="LinkWatchdog")
        self.monitoring_thread.daemon = True
        self.monitoring_thread.start()
        logger.info(f"Link watchdog started (poll {self.poll_interval}s, timeout {self.heartbeat_timeout}s)")

    def stop_monitoring(self) -> None:
        """Stop the watchdog thread"""
        self.stop_event.set()
        if self.monitoring_thread and self.monitoring_thread.is_alive():
            self.monitoring_thread.join(timeout=2.0)
        logger.info("Link watchdog stopped")

    def _monitoring_loop(self) -> None:
        while not self.stop_event.wait(self.poll_interval):
            try:
                self.check_link()
            except Exception as e:
                logger.error(f"Error in link watchdog loop: {e}")

    def check_link(self) -> LinkState:
        """
        Run one watchdog tick

        At most one reconnect is attempted per call.

        Returns:
            The link state after the check
        """
        elapsed = self.heartbeat_state.elapsed()
        if elapsed <= self.heartbeat_timeout:
            return self.state

        logger.warning(f"No heartbeat for {elapsed:.1f}s, link is stale")
        with self.state_lock:
            self._set_state(LinkState.STALE)
            self._set_state(LinkState.RECONNECTING)
        self.reconnect_count += 1

        try:
            if self.transport.reconnect():
                logger.info(f"{self.transport.name} transport reopened, waiting for heartbeat")
            else:
                logger.warning(f"Could not reopen {self.transport.name} transport, will retry")
        except Exception as e:
            logger.error(f"Error reconnecting {self.transport.name} transport: {e}")

        return self.state

    def on_heartbeat(self, remote_time: float) -> None:
        """
        Heartbeat listener

        Args:
            remote_time: Controller wall clock, seconds since epoch
        """
        self.heartbeat_state.mark()
        if self._set_state(LinkState.CONNECTED):
            logger.info("Heartbeat received, link restored")

        skew = self.wall_clock() - remote_time
        if abs(skew) > self.skew_threshold and self.clock_sync is not None:
            logger.info(f"Local clock is off by {skew:.3f}s")
            self.clock_sync.request(remote_time)

    def _set_state(self, new_state: LinkState) -> bool:
        """
        Change state and notify callbacks

        Returns:
            True if the state changed
        """
        with self.state_lock:
            if new_state is self.state:
                return False
            previous = self.state
            self.state = new_state
            for callback in self.callbacks:
                try:
                    callback(previous, new_state)
                except Exception as e:
                    logger.error(f"Error in link state callback: {e}")
            return True

    def register_callback(self, callback: Callable[[LinkState, LinkState], Any]) -> None:
        """
        Register a callback for link state changes

        Callbacks run with the state lock held and must not block.

        Args:
            callback: Function to call with (previous_state, new_state)
        """
        with self.state_lock:
            if callback not in self.callbacks:
                self.callbacks.append(callback)

    def get_state(self) -> LinkState:
        return self.state
