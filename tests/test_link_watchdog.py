"""Tests for the link watchdog and clock synchronizer."""
import subprocess
import threading
import time
from unittest.mock import Mock

import pytest

from vision_targeting.link_watchdog import (
    ClockSynchronizer, HeartbeatState, LinkState, LinkWatchdog
)
from vision_targeting.transport.loopback_transport import LoopbackTransport
from helpers import FakeClock


@pytest.fixture
def monotonic():
    return FakeClock(start=100.0)


@pytest.fixture
def transport():
    loopback = LoopbackTransport()
    loopback.connect()
    return loopback


def make_watchdog(transport, monotonic, clock_sync=None, wall_time=5000.0, **config):
    settings = {'heartbeat_timeout': 1.0, 'clock_skew_threshold': 0.5}
    settings.update(config)
    return LinkWatchdog(transport, settings, heartbeat_state=HeartbeatState(monotonic),
                        clock_sync=clock_sync, wall_clock=lambda: wall_time)


class TestHeartbeatState:
    """Last-heartbeat bookkeeping."""

    def test_starts_fresh(self, monotonic):
        state = HeartbeatState(monotonic)

        assert state.elapsed() == 0.0

    def test_mark_resets_elapsed(self, monotonic):
        state = HeartbeatState(monotonic)
        monotonic.advance(3.0)
        assert state.elapsed() == 3.0

        state.mark()

        assert state.elapsed() == 0.0
        assert state.heartbeat_count == 1


class TestLinkWatchdog:
    """Stale link detection and reconnect."""

    def test_fresh_link_left_alone(self, transport, monotonic):
        watchdog = make_watchdog(transport, monotonic)
        monotonic.advance(0.5)

        assert watchdog.check_link() is LinkState.CONNECTED
        assert transport.connect_count == 1

    def test_stale_link_reconnects_once_per_tick(self, transport, monotonic):
        watchdog = make_watchdog(transport, monotonic)
        monotonic.advance(1.5)

        assert watchdog.check_link() is LinkState.RECONNECTING
        assert transport.connect_count == 2
        assert watchdog.reconnect_count == 1

        monotonic.advance(1.0)
        watchdog.check_link()

        assert transport.connect_count == 3
        assert watchdog.reconnect_count == 2

    def test_heartbeat_restores_connected(self, transport, monotonic):
        watchdog = make_watchdog(transport, monotonic)
        monotonic.advance(2.0)
        watchdog.check_link()

        transport.inject_heartbeat(5000.0)

        assert watchdog.get_state() is LinkState.CONNECTED
        assert watchdog.check_link() is LinkState.CONNECTED

    def test_state_callbacks(self, transport, monotonic):
        watchdog = make_watchdog(transport, monotonic)
        changes = []
        watchdog.register_callback(lambda previous, new: changes.append((previous, new)))
        monotonic.advance(2.0)

        watchdog.check_link()
        transport.inject_heartbeat(5000.0)

        assert changes == [
            (LinkState.CONNECTED, LinkState.STALE),
            (LinkState.STALE, LinkState.RECONNECTING),
            (LinkState.RECONNECTING, LinkState.CONNECTED),
        ]

    def test_reconnect_failure_is_contained(self, monotonic):
        transport = LoopbackTransport()
        transport.reconnect = Mock(side_effect=RuntimeError("link down"))
        watchdog = make_watchdog(transport, monotonic)
        monotonic.advance(2.0)

        assert watchdog.check_link() is LinkState.RECONNECTING
        assert watchdog.reconnect_count == 1

    def test_small_skew_ignored(self, transport, monotonic):
        clock_sync = Mock()
        make_watchdog(transport, monotonic, clock_sync=clock_sync, wall_time=5000.2)

        transport.inject_heartbeat(5000.0)

        clock_sync.request.assert_not_called()

    def test_large_skew_requests_sync(self, transport, monotonic):
        clock_sync = Mock()
        make_watchdog(transport, monotonic, clock_sync=clock_sync, wall_time=5003.0)

        transport.inject_heartbeat(5000.0)

        clock_sync.request.assert_called_once_with(5000.0)

    def test_skew_never_triggers_reconnect(self, transport, monotonic):
        clock_sync = Mock()
        watchdog = make_watchdog(transport, monotonic, clock_sync=clock_sync, wall_time=9000.0)

        for _ in range(5):
            transport.inject_heartbeat(5000.0)
            monotonic.advance(0.5)
            watchdog.check_link()

        assert transport.connect_count == 1
        assert clock_sync.request.call_count == 5

    def test_monitoring_thread(self, transport, monotonic):
        watchdog = make_watchdog(transport, monotonic, watchdog_poll_interval=0.01)

        watchdog.start_monitoring()
        watchdog.stop_monitoring()

        assert not watchdog.monitoring_thread.is_alive()


class TestClockSynchronizer:
    """Background clock adjustment."""

    def test_formats_command(self):
        runner = Mock()
        sync = ClockSynchronizer(runner=runner)

        assert sync.request(1546300800.25)
        sync.last_thread.join(timeout=2.0)

        command = runner.call_args[0][0]
        assert command == ["sudo", "date", "-u", "-s", "@1546300800.250"]
        assert runner.call_args[1]['check'] is True
        assert sync.failures == 0

    def test_custom_command(self):
        runner = Mock()
        sync = ClockSynchronizer(command=["settime", "{timestamp:.0f}"], runner=runner)

        sync.request(10.6)
        sync.last_thread.join(timeout=2.0)

        assert runner.call_args[0][0] == ["settime", "11"]

    def test_failed_command_is_logged_and_counted(self):
        runner = Mock(side_effect=subprocess.CalledProcessError(1, "date", stderr=b"denied"))
        sync = ClockSynchronizer(runner=runner)

        sync.request(1.0)
        sync.last_thread.join(timeout=2.0)

        assert sync.failures == 1
        assert not sync.in_progress.is_set()

    def test_missing_command_is_contained(self):
        sync = ClockSynchronizer(runner=Mock(side_effect=FileNotFoundError("sudo")))

        sync.request(1.0)
        sync.last_thread.join(timeout=2.0)

        assert sync.failures == 1

    def test_one_adjustment_at_a_time(self):
        sync = ClockSynchronizer(runner=Mock())
        sync.in_progress.set()

        assert not sync.request(1.0)
        assert sync.attempts == 0


class TestStateTransitions:
    """State changes from the listener and watchdog threads."""

    def test_concurrent_transitions_are_serialized(self, transport, monotonic):
        watchdog = make_watchdog(transport, monotonic)
        changes = []

        def record(previous, new):
            changes.append((previous, new))
            time.sleep(0.0005)

        watchdog.register_callback(record)

        def flip(state):
            for _ in range(100):
                watchdog._set_state(state)

        threads = [threading.Thread(target=flip, args=(state,))
                   for state in (LinkState.STALE, LinkState.CONNECTED, LinkState.RECONNECTING)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10.0)

        assert changes
        assert changes[0][0] is LinkState.CONNECTED
        for before, after in zip(changes, changes[1:]):
            assert after[0] is before[1]
        assert changes[-1][1] is watchdog.get_state()

    def test_callback_may_read_state(self, transport, monotonic):
        watchdog = make_watchdog(transport, monotonic)
        seen = []
        watchdog.register_callback(lambda previous, new: seen.append(watchdog.get_state()))
        monotonic.advance(2.0)

        watchdog.check_link()

        assert seen == [LinkState.STALE, LinkState.RECONNECTING]
