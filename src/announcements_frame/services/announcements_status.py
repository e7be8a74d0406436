#!/usr/bin/env python3
"""
Announcements Status Service

Shows conversion progress to users browsing the inbox share.

While a run is in progress (_PROCESSING.txt present) every tick replaces the
previous _STATUS_<ts>.txt with a freshly named one describing the newest
staging directory. File-sharing clients cache directory listings by name, so
a new name is what makes the update show up. When no run is active all
_STATUS_*.txt files are removed.
"""

import stat
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from announcements_frame.services.common import paths
from announcements_frame.services.common.config import load_config
from announcements_frame.services.common.logging_config import (
    log_service_ready,
    log_service_start,
    setup_service_logging,
)
from announcements_frame.services.common.markers import FileMarkerStore, RunState
from announcements_frame.services.common.system import (
    ServiceLoop,
    WatchdogPinger,
    setup_signal_handlers,
)

logger = setup_service_logging('announcements-status')


def latest_staging_dir(temp_dir: Path) -> Optional[Path]:
    """Most recently modified staging.* directory under temp_dir, if any."""
    if not temp_dir.is_dir():
        return None
    candidates = [p for p in temp_dir.glob(f"{paths.STAGING_DIR_PREFIX}*") if p.is_dir()]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


def describe_directory(directory: Path) -> List[str]:
    """One 'ls -l'-style line per entry: mode, size, mtime, name."""
    lines = []
    for entry in sorted(directory.iterdir()):
        try:
            info = entry.lstat()
        except FileNotFoundError:
            continue
        modified = datetime.fromtimestamp(info.st_mtime).strftime('%Y-%m-%d %H:%M')
        lines.append(f"{stat.filemode(info.st_mode)} {info.st_size:>10} {modified} {entry.name}")
    return lines


class StatusReporter:
    """Writes or clears the inbox _STATUS_ marker once per tick."""

    def __init__(
        self,
        markers: FileMarkerStore,
        temp_dir: Path,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.markers = markers
        self.temp_dir = Path(temp_dir)
        self._now = now

    def build_status_text(self, moment: datetime) -> str:
        lines = [
            f"Status updated: {moment.ctime()}",
            "",
            "Conversion in progress.",
            "",
        ]

        staging = latest_staging_dir(self.temp_dir)
        if staging is None:
            lines.append("No staging directories found under:")
            lines.append(f"  {self.temp_dir}")
            return '\n'.join(lines)

        lines.append("Latest staging directory:")
        lines.append(f"  {staging}")
        lines.append("")
        try:
            entries = describe_directory(staging)
        except FileNotFoundError:
            # The run finished between the lookup and the listing
            entries = ["(staging directory was just removed)"]
        lines.extend(entries or ["(empty)"])
        return '\n'.join(lines)

    def tick(self) -> Optional[Path]:
        """
        Run one reporting tick.

        Returns:
            The status file written, or None when no run is in progress.
        """
        if self.markers.run_state() is not RunState.PROCESSING:
            self.markers.clear_status()
            return None

        moment = self._now()
        status_path = self.markers.write_status(self.build_status_text(moment), moment)
        logger.debug(f"Wrote {status_path.name}")
        return status_path


def main():
    """Main entry point for the status service."""
    log_service_start(logger, 'Announcements Status Service')

    config = load_config()
    config.inbox_dir.mkdir(parents=True, exist_ok=True)
    config.temp_dir.mkdir(parents=True, exist_ok=True)

    reporter = StatusReporter(FileMarkerStore(config.inbox_dir), config.temp_dir)

    loop = ServiceLoop(service_logger=logger, watchdog=WatchdogPinger(interval_seconds=30))
    loop.add_task('status reporter', config.status_interval, reporter.tick)
    setup_signal_handlers(loop.stop, logger)

    try:
        log_service_ready(logger, 'Announcements Status Service', f"every {config.status_interval}s")
        loop.run()
    except Exception as e:
        logger.exception(f"Fatal error in status service: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
