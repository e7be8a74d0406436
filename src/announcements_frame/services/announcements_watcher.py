#!/usr/bin/env python3
"""
Announcements Watcher Service

Watches the two directories users can write to and reacts once they settle.

=== What This Service Does ===

1. On startup, clears whatever an interrupted conversion run left behind
   (stale _PROCESSING.txt -> _FAILED_<ts>.txt, snapshot/staging cleanup)
2. Inbox: once the inbox has been quiet for quiet_seconds, runs the publish
   pipeline (see announcements_convert). Files already sitting in the inbox
   at startup count as a change, so interrupted uploads get processed.
3. Live directory: someone may edit the published slides directly over the
   share. Once such an edit settles the slideshow is restarted so the viewer
   sees the new file list. The first observation only records a baseline.

=== Restart Ownership ===

A pipeline run restarts the slideshow itself after publishing. The live
watcher is rebaselined right after the run, so the published deck is not
mistaken for a direct edit and restarted a second time.

=== Service Lifecycle ===

Runs continuously. Both watchers tick on one ServiceLoop; a pipeline run
blocks the loop until it finishes, and SIGTERM is honoured between ticks.
The pipeline pings the watchdog between files while it runs.
"""

import sys
from typing import Callable, Optional

from announcements_frame.services.announcements_convert import PublishPipeline
from announcements_frame.services.common.config import AnnouncementsConfig, load_config
from announcements_frame.services.common.logging_config import (
    log_service_ready,
    log_service_start,
    setup_service_logging,
)
from announcements_frame.services.common.markers import MARKER_PATTERN, RunState
from announcements_frame.services.common.quiescence import QuiescenceWatcher
from announcements_frame.services.common.system import (
    ServiceLoop,
    WatchdogPinger,
    restart_service,
    setup_signal_handlers,
)

logger = setup_service_logging('announcements-watcher')


class AnnouncementsWatcher:
    """Inbox and live-directory watchers plus the pipeline they trigger."""

    def __init__(
        self,
        config: AnnouncementsConfig,
        pipeline: Optional[PublishPipeline] = None,
        restart_slideshow: Optional[Callable[[], bool]] = None,
        clock: Optional[Callable[[], float]] = None,
        progress: Optional[Callable[[], None]] = None,
    ):
        self.config = config
        self.restart_slideshow = restart_slideshow or (
            lambda: restart_service(config.slideshow_service, use_sudo=config.restart_use_sudo)
        )
        self.pipeline = pipeline or PublishPipeline(
            config, restart_slideshow=self.restart_slideshow, progress=progress
        )
        self.markers = self.pipeline.markers

        watcher_kwargs = {'clock': clock} if clock is not None else {}
        self.inbox = QuiescenceWatcher(
            config.inbox_dir,
            config.quiet_seconds,
            exclude_pattern=MARKER_PATTERN,
            arm_on_first=True,
            name='Inbox',
            **watcher_kwargs
        )
        self.live = QuiescenceWatcher(
            config.live_dir,
            config.live_quiet_seconds,
            files_only=True,
            arm_on_first=False,
            name='Live folder',
            **watcher_kwargs
        )

    def startup(self) -> None:
        """Create the working directories and recover from an interrupted run."""
        self.pipeline.ensure_directories()
        self.pipeline.recover()

    def inbox_tick(self) -> None:
        blocked = self.markers.run_state() is RunState.PROCESSING
        if not self.inbox.poll(blocked=blocked):
            return

        logger.info("Inbox is stable, starting conversion run")
        self.markers.begin_run()
        result = self.pipeline.run()
        if result.ok:
            logger.info(f"Conversion run finished ({result.slide_count} slide(s))")
        else:
            logger.error(f"Conversion run failed: {result.error}")

        # The run restarts the slideshow itself when it publishes
        self.live.rebaseline()

    def live_tick(self) -> None:
        if not self.live.poll():
            return
        logger.info("Live folder is stable, restarting slideshow")
        if not self.restart_slideshow():
            logger.warning("Slideshow restart failed; will retry on the next change")


def main():
    """Main entry point for the watcher service."""
    log_service_start(logger, 'Announcements Watcher Service')

    config = load_config()
    watchdog = WatchdogPinger(interval_seconds=30)
    watcher = AnnouncementsWatcher(config, progress=watchdog.ping_if_due)

    loop = ServiceLoop(service_logger=logger, watchdog=watchdog)
    loop.add_task('inbox watcher', config.watch_poll_interval, watcher.inbox_tick)
    loop.add_task('live watcher', config.live_poll_interval, watcher.live_tick)

    setup_signal_handlers(loop.stop, logger)

    try:
        watcher.startup()
        log_service_ready(
            logger, 'Announcements Watcher Service',
            f"inbox={config.inbox_dir} live={config.live_dir} quiet={config.quiet_seconds}s"
        )
        loop.run()
    except Exception as e:
        logger.exception(f"Fatal error in watcher service: {e}")
        sys.exit(1)

    logger.info("Announcements Watcher Service stopped")


if __name__ == '__main__':
    main()
