"""
Announcements Frame - System Utilities

Functions for systemd service management and common service infrastructure
(signal handlers, watchdog, and the tick loop every service runs on).
"""

import logging
import signal
import subprocess
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import sdnotify

logger = logging.getLogger(__name__)

# Shared systemd notifier instance
_sd_notifier: Optional[sdnotify.SystemdNotifier] = None

# Default timeouts
DEFAULT_COMMAND_TIMEOUT = 10  # seconds
DEFAULT_SERVICE_ACTION_TIMEOUT = 30  # seconds

# Longest single sleep inside ServiceLoop, so shutdown is noticed promptly
LOOP_SLEEP_SLICE_SECONDS = 1.0


def get_systemd_notifier() -> sdnotify.SystemdNotifier:
    """
    Get the shared systemd notifier instance.

    Returns:
        SystemdNotifier instance for communicating with systemd.
    """
    global _sd_notifier
    if _sd_notifier is None:
        _sd_notifier = sdnotify.SystemdNotifier()
    return _sd_notifier


def setup_signal_handlers(on_shutdown: Callable[[], None], service_logger: Optional[logging.Logger] = None) -> None:
    """
    Setup graceful shutdown signal handlers for SIGTERM and SIGINT.

    The callback should only flip a flag; the loop notices it at the next
    tick boundary, so a tick in progress always runs to completion.

    Args:
        on_shutdown: Callback function to invoke when shutdown is requested.
        service_logger: Optional logger to use for shutdown message.
                        Defaults to module logger if not provided.
    """
    log = service_logger or logger

    def shutdown_handler(signum, frame):
        sig_name = 'SIGTERM' if signum == signal.SIGTERM else 'SIGINT'
        log.info(f"Received {sig_name}, initiating graceful shutdown")
        on_shutdown()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)


class WatchdogPinger:
    """
    Watchdog pinger for services using time.sleep()-based loops.

    Example:
        watchdog = WatchdogPinger(interval_seconds=30)

        while running:
            do_work()
            watchdog.ping_if_due()
            time.sleep(check_interval)
    """

    def __init__(self, interval_seconds: int = 30):
        self.interval = interval_seconds
        self._last_ping = time.time()
        self._notifier = get_systemd_notifier()

    def ping_if_due(self) -> bool:
        """
        Ping the watchdog if enough time has passed since last ping.

        Returns:
            True if a ping was sent, False otherwise.
        """
        current_time = time.time()
        if current_time - self._last_ping >= self.interval:
            self._notifier.notify("WATCHDOG=1")
            self._last_ping = current_time
            return True
        return False

    def ping(self) -> None:
        """Force an immediate watchdog ping."""
        self._notifier.notify("WATCHDOG=1")
        self._last_ping = time.time()


@dataclass
class PeriodicTask:
    """One ticker inside a ServiceLoop. interval may be changed between ticks."""
    name: str
    interval: float
    callback: Callable[[], None]
    next_due: float = 0.0


class ServiceLoop:
    """
    Single-threaded tick loop shared by all long-running frame services.

    Each registered task fires when its interval has elapsed since the end of
    its previous tick. A tick body always runs to completion; stop() is only
    observed between ticks. Exceptions escaping a tick are logged and the
    task is rescheduled, so one bad tick never takes the service down.
    """

    def __init__(
        self,
        service_logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        watchdog: Optional[WatchdogPinger] = None,
    ):
        self._log = service_logger or logger
        self._clock = clock
        self._sleep = sleep
        self._watchdog = watchdog
        self._tasks: List[PeriodicTask] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        self._running = False

    def add_task(self, name: str, interval: float, callback: Callable[[], None]) -> PeriodicTask:
        task = PeriodicTask(name=name, interval=interval, callback=callback, next_due=self._clock())
        self._tasks.append(task)
        return task

    def run_once(self) -> float:
        """
        Run every task that is due.

        Returns:
            Seconds until the next task becomes due (0 if one is already due).
        """
        for task in self._tasks:
            if not self._running:
                break
            if self._clock() < task.next_due:
                continue
            try:
                task.callback()
            except Exception as e:
                self._log.error(f"Error in {task.name} tick: {e}", exc_info=True)
            task.next_due = self._clock() + max(0.0, task.interval)

        if not self._tasks:
            return LOOP_SLEEP_SLICE_SECONDS
        now = self._clock()
        return max(0.0, min(task.next_due for task in self._tasks) - now)

    def run(self) -> None:
        notifier = get_systemd_notifier()
        notifier.notify("READY=1")

        while self._running:
            wait_time = self.run_once()

            if self._watchdog is not None:
                self._watchdog.ping_if_due()

            # Sleep in small increments so we can respond to signals
            sleep_until = self._clock() + wait_time
            while self._running and self._clock() < sleep_until:
                remaining = sleep_until - self._clock()
                self._sleep(min(LOOP_SLEEP_SLICE_SECONDS, remaining) if remaining > 0 else 0)

        notifier.notify("STOPPING=1")


def restart_service(service_name: str, use_sudo: bool = False) -> bool:
    """
    Restart a systemd service.

    Args:
        service_name: Name of the service to restart
        use_sudo: Prefix the call with 'sudo -n' (for services not running as root;
                  the installer grants a NOPASSWD rule for exactly this command)

    Returns:
        True if service restarted successfully.
    """
    cmd = ['systemctl', 'restart', service_name]
    if use_sudo:
        cmd = ['sudo', '-n'] + cmd

    try:
        logger.info(f"Restarting {service_name}...")
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=DEFAULT_SERVICE_ACTION_TIMEOUT
        )

        if result.returncode != 0:
            logger.error(f"Failed to restart {service_name}: {result.stderr.strip()}")
            return False

        logger.info(f"Successfully restarted {service_name}")
        return True

    except subprocess.TimeoutExpired:
        logger.error(f"Timeout restarting {service_name}")
        return False
    except Exception as e:
        logger.error(f"Error restarting {service_name}: {e}")
        return False


def get_service_status(service_name: str) -> Optional[str]:
    """
    Get the current status of a systemd service.

    Returns:
        Status string (active, inactive, failed, etc.) or None on error.
    """
    try:
        result = subprocess.run(
            ['systemctl', 'is-active', service_name],
            capture_output=True,
            text=True,
            timeout=DEFAULT_COMMAND_TIMEOUT
        )
        return result.stdout.strip()

    except Exception as e:
        logger.warning(f"Error getting status of {service_name}: {e}")
        return None
