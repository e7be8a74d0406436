#!/usr/bin/env python3
"""
Announcements Display Service

Decides, once per poll, whether the frame should be showing announcements
and tells the rest of the system.

=== What This Service Does ===

1. Reloads announcements.conf every tick (edits apply without a restart)
2. Checks the weekly schedule (mon..sun ranges) against local time
3. Derives a slideshow mode and a panel power state:

    schedule active | hdmi_control | mode                        | power
    ----------------+--------------+-----------------------------+------
    yes             | any          | normal                      | on
    no              | true         | off-deck if off_schedule_   | off
                    |              | slides else none            |
    no              | false        | off-deck                    | on

4. Mode goes to the mode file, power to the display state file, each only
   when it differs from what is already there. A mode change restarts the
   slideshow (which reads the mode file on start); a power change writes the
   panel's sysfs controls. A tick that decides the same thing as the last
   one does nothing at all.

Because the last applied state lives in those files rather than in memory,
restarting this service does not repeat the slideshow restart or the
sysfs writes.

=== Service Lifecycle ===

Runs continuously as root (it needs the sysfs nodes and systemctl).
"""

import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from announcements_frame.services.common.config import AnnouncementsConfig, load_config
from announcements_frame.services.common.display import POWER_OFF, POWER_ON, DisplayPowerControl
from announcements_frame.services.common.logging_config import (
    log_service_ready,
    log_service_start,
    setup_service_logging,
)
from announcements_frame.services.common.schedule import is_active_now
from announcements_frame.services.common.shared_state import StateFile
from announcements_frame.services.common.system import (
    PeriodicTask,
    ServiceLoop,
    WatchdogPinger,
    restart_service,
    setup_signal_handlers,
)

logger = setup_service_logging('announcements-display')


class SlideMode:
    """Values of the slideshow mode file."""
    NORMAL = 'normal'
    OFF_DECK = 'off-deck'
    NONE = 'none'

    ALL = (NORMAL, OFF_DECK, NONE)


@dataclass(frozen=True)
class ModeDecision:
    mode: str
    power: str


def decide(active: bool, hdmi_control: bool, off_schedule_slides: bool = False) -> ModeDecision:
    """Map the schedule signal and display policy to a mode and power state."""
    if active:
        return ModeDecision(SlideMode.NORMAL, POWER_ON)
    if hdmi_control:
        mode = SlideMode.OFF_DECK if off_schedule_slides else SlideMode.NONE
        return ModeDecision(mode, POWER_OFF)
    return ModeDecision(SlideMode.OFF_DECK, POWER_ON)


class ModeCoordinator:
    """
    Applies ModeDecisions with write-if-different semantics.

    mode_state and power_state only need read() and write_if_different()
    (StateFile on a device, in-memory fakes in tests). display_power needs
    set_power(power).
    """

    def __init__(
        self,
        mode_state: StateFile,
        power_state: StateFile,
        display_power: DisplayPowerControl,
        restart_slideshow: Callable[[], bool],
    ):
        self.mode_state = mode_state
        self.power_state = power_state
        self.display_power = display_power
        self.restart_slideshow = restart_slideshow

    @classmethod
    def for_config(cls, config: AnnouncementsConfig, restart_slideshow: Callable[[], bool]) -> 'ModeCoordinator':
        return cls(
            StateFile(config.mode_file),
            StateFile(config.display_state_file),
            DisplayPowerControl(config.backlight_path, config.hdmi_status_path),
            restart_slideshow,
        )

    def apply(self, decision: ModeDecision) -> bool:
        """
        Publish a decision.

        Returns:
            True if anything was written.
        """
        changed = False

        if self.mode_state.write_if_different(decision.mode):
            changed = True
            logger.info(f"Slideshow mode -> {decision.mode}")
            if not self.restart_slideshow():
                logger.warning("Slideshow restart after mode change failed")

        if self.power_state.write_if_different(decision.power):
            changed = True
            logger.info(f"Display power -> {decision.power}")
            self.display_power.set_power(decision.power)

        return changed

    def tick(self, config: AnnouncementsConfig, now: Optional[datetime] = None) -> ModeDecision:
        active = is_active_now(config.schedule, now)
        decision = decide(active, config.hdmi_control, config.off_schedule_slides)
        self.apply(decision)
        return decision


class DisplayScheduler:
    """Reloads the config and runs the coordinator once per tick."""

    def __init__(
        self,
        config_loader: Callable[[], AnnouncementsConfig] = load_config,
        restart_slideshow: Optional[Callable[[], bool]] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._load = config_loader
        self._now = now
        self.config = config_loader()
        self.restart_slideshow = restart_slideshow or (
            lambda: restart_service(self.config.slideshow_service)
        )
        self.task: Optional[PeriodicTask] = None

    def tick(self) -> ModeDecision:
        self.config = self._load()
        if self.task is not None:
            self.task.interval = self.config.schedule_poll_interval

        coordinator = ModeCoordinator.for_config(self.config, self.restart_slideshow)
        return coordinator.tick(self.config, self._now())


def main():
    """Main entry point for the display service."""
    log_service_start(logger, 'Announcements Display Service')

    scheduler = DisplayScheduler()

    loop = ServiceLoop(service_logger=logger, watchdog=WatchdogPinger(interval_seconds=30))
    scheduler.task = loop.add_task('schedule', scheduler.config.schedule_poll_interval, scheduler.tick)
    setup_signal_handlers(loop.stop, logger)

    try:
        log_service_ready(
            logger, 'Announcements Display Service',
            f"hdmi_control={scheduler.config.hdmi_control} poll={scheduler.config.schedule_poll_interval}s"
        )
        loop.run()
    except Exception as e:
        logger.exception(f"Fatal error in display service: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
