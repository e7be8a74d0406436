"""
Tests for the service runtime helpers

Validates:
- ServiceLoop runs each task on its own interval, measured from tick end
- A failing tick is logged and the loop keeps going
- stop() is honoured between ticks, not mid-tick
- restart_service() builds the systemctl call and never raises
"""

import subprocess

import pytest

from announcements_frame.services.common import system
from announcements_frame.services.common.system import ServiceLoop, restart_service
from conftest import ManualClock


class FakeNotifier:
    def __init__(self):
        self.messages = []

    def notify(self, message):
        self.messages.append(message)


@pytest.fixture
def notifier(monkeypatch):
    fake = FakeNotifier()
    monkeypatch.setattr(system, 'get_systemd_notifier', lambda: fake)
    return fake


class TestServiceLoop:
    """Test the tick loop."""

    def test_tasks_run_on_their_own_interval(self):
        """Test two tickers with different intervals."""
        clock = ManualClock()
        loop = ServiceLoop(clock=clock)
        calls = []
        loop.add_task('fast', 10, lambda: calls.append('fast'))
        loop.add_task('slow', 30, lambda: calls.append('slow'))

        assert loop.run_once() == 10
        for _ in range(3):
            clock.advance(10)
            loop.run_once()

        assert calls == ['fast', 'slow', 'fast', 'fast', 'fast', 'slow']

    def test_interval_measured_from_tick_end(self):
        """Test that a slow tick pushes its next run back."""
        clock = ManualClock()
        loop = ServiceLoop(clock=clock)
        loop.add_task('slow body', 10, lambda: clock.advance(25))

        assert loop.run_once() == 10

    def test_tick_exception_is_contained(self):
        """Test that one bad tick does not stop the task."""
        clock = ManualClock()
        loop = ServiceLoop(clock=clock)
        calls = []

        def flaky():
            calls.append(clock.now)
            if len(calls) == 1:
                raise RuntimeError("transient")

        loop.add_task('flaky', 5, flaky)
        loop.run_once()
        clock.advance(5)
        loop.run_once()

        assert len(calls) == 2

    def test_stop_is_checked_between_ticks(self, notifier):
        """Test that the current tick completes and the next never starts."""
        clock = ManualClock()
        loop = ServiceLoop(clock=clock, sleep=clock.advance)
        calls = []

        def first():
            calls.append('first')
            loop.stop()
            calls.append('first finished')

        loop.add_task('first', 1, first)
        loop.add_task('second', 1, lambda: calls.append('second'))
        loop.run()

        assert calls == ['first', 'first finished']
        assert notifier.messages == ['READY=1', 'STOPPING=1']

    def test_run_sleeps_until_next_task(self, notifier):
        """Test that run() sleeps in short slices until a task is due."""
        clock = ManualClock()
        sleeps = []
        loop = ServiceLoop(clock=clock, sleep=lambda s: (sleeps.append(s), clock.advance(s)))
        ticks = []

        def tick():
            ticks.append(clock.now)
            if len(ticks) == 2:
                loop.stop()

        loop.add_task('tick', 3, tick)
        loop.run()

        assert ticks == [1000.0, 1003.0]
        assert sleeps == [1.0, 1.0, 1.0]


class TestRestartService:
    """Test the systemctl wrapper."""

    def test_sudo_prefix(self, monkeypatch):
        """Test that use_sudo adds a non-interactive sudo."""
        commands = []

        def fake_run(cmd, **kwargs):
            commands.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout='', stderr='')

        monkeypatch.setattr(system.subprocess, 'run', fake_run)

        assert restart_service('announcements-slideshow.service', use_sudo=True) is True
        assert commands == [['sudo', '-n', 'systemctl', 'restart', 'announcements-slideshow.service']]

    def test_failure_returns_false(self, monkeypatch):
        """Test a rejected restart."""
        monkeypatch.setattr(
            system.subprocess, 'run',
            lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, stdout='', stderr='denied')
        )

        assert restart_service('x.service') is False

    def test_missing_systemctl_returns_false(self, monkeypatch):
        """Test that an exception is turned into False."""
        def boom(cmd, **kwargs):
            raise FileNotFoundError('systemctl')

        monkeypatch.setattr(system.subprocess, 'run', boom)

        assert restart_service('x.service') is False
