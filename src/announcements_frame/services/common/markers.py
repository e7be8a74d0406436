"""
Announcements Frame - Inbox Marker Protocol

The inbox is a network share, so the run state is published there as plain
marker files that users (and other tools) can see in a directory listing:

    _PROCESSING.txt          A conversion run is in progress (holds its start time)
    _READY.txt               Idle; content is the last run's human-readable result
    _FAILED_<ts>.txt         A _PROCESSING.txt found stale at startup, renamed
    _STATUS_<ts>.txt         Progress snapshot; replaced (new name) every tick

Timestamps are YYYYMMDD-HHMMSS. Every marker matches MARKER_PATTERN ('*.txt'),
which is also what the inbox watcher and the pipeline ignore, so marker
churn never looks like new content (and the inbox README is left alone).

Services work with the RunState value; FileMarkerStore is the on-disk
serialization. Any object with the same methods can stand in for it.
"""

import fnmatch
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

MARKER_PATTERN = '*.txt'

PROCESSING_MARKER = '_PROCESSING.txt'
READY_MARKER = '_READY.txt'
FAILED_MARKER_PREFIX = '_FAILED_'
STATUS_MARKER_PREFIX = '_STATUS_'
MARKER_SUFFIX = '.txt'

TIMESTAMP_FORMAT = '%Y%m%d-%H%M%S'

# READY texts starting with this are reported as RunState.FAILED
ERROR_PREFIX = 'ERROR'

EMPTY_DROP_FOLDER_TEXT = 'Drop folder is now empty.'


class RunState(Enum):
    """Conversion run state, as seen by every service."""
    IDLE = 'idle'
    PROCESSING = 'processing'
    FAILED = 'failed'


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def is_marker_name(name: str) -> bool:
    """True if a directory entry name belongs to the marker/text namespace."""
    return fnmatch.fnmatch(name.lower(), MARKER_PATTERN)


class FileMarkerStore:
    """Run state stored as marker files in the inbox directory."""

    def __init__(self, inbox_dir: Path):
        self.inbox_dir = Path(inbox_dir)

    @property
    def processing_path(self) -> Path:
        return self.inbox_dir / PROCESSING_MARKER

    @property
    def ready_path(self) -> Path:
        return self.inbox_dir / READY_MARKER

    def is_marker(self, name: str) -> bool:
        return is_marker_name(name)

    def run_state(self) -> RunState:
        if self.processing_path.exists():
            return RunState.PROCESSING
        ready = self.ready_text()
        if ready is not None and ready.startswith(ERROR_PREFIX):
            return RunState.FAILED
        return RunState.IDLE

    def ready_text(self) -> Optional[str]:
        try:
            return self.ready_path.read_text(encoding='utf-8').strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Error reading {self.ready_path}: {e}")
            return None

    def begin_run(self, now: Optional[datetime] = None) -> None:
        """Mark a run as started: drop _READY.txt, then create _PROCESSING.txt."""
        now = now or datetime.now()
        self.inbox_dir.mkdir(parents=True, exist_ok=True)
        self.ready_path.unlink(missing_ok=True)
        self.processing_path.write_text(f"Processing started at {now.ctime()}\n", encoding='utf-8')

    def finish_run(self, result_text: str) -> None:
        """
        Mark a run as finished with a result for users.

        _PROCESSING.txt is removed before _READY.txt is written so the two
        markers never exist at the same time.
        """
        self.inbox_dir.mkdir(parents=True, exist_ok=True)
        self.processing_path.unlink(missing_ok=True)
        self.ready_path.write_text(result_text.rstrip('\n') + '\n', encoding='utf-8')

    def recover_stale(self, now: Optional[datetime] = None) -> Optional[Path]:
        """
        Clear a _PROCESSING.txt left behind by a run that never finished.

        The marker is renamed to _FAILED_<ts>.txt so users can see that a run
        was interrupted; if it cannot be renamed it is deleted.

        Returns:
            Path of the _FAILED_ marker, or None if nothing was renamed.
        """
        if not self.processing_path.exists():
            return None

        now = now or datetime.now()
        failed_path = self.inbox_dir / f"{FAILED_MARKER_PREFIX}{format_timestamp(now)}{MARKER_SUFFIX}"
        logger.warning(f"Stale {PROCESSING_MARKER} found at startup, assuming interrupted run")

        try:
            self.processing_path.rename(failed_path)
            logger.info(f"Renamed stale marker to {failed_path.name}")
            return failed_path
        except OSError as e:
            logger.warning(f"Could not rename stale marker ({e}); deleting it instead")
            self.processing_path.unlink(missing_ok=True)
            return None

    def status_paths(self) -> List[Path]:
        if not self.inbox_dir.is_dir():
            return []
        return sorted(
            entry for entry in self.inbox_dir.iterdir()
            if entry.name.startswith(STATUS_MARKER_PREFIX) and entry.name.endswith(MARKER_SUFFIX)
        )

    def clear_status(self) -> None:
        for status_path in self.status_paths():
            status_path.unlink(missing_ok=True)

    def write_status(self, text: str, now: Optional[datetime] = None) -> Path:
        """Replace every _STATUS_*.txt with one freshly named snapshot."""
        now = now or datetime.now()
        self.clear_status()
        status_path = self.inbox_dir / f"{STATUS_MARKER_PREFIX}{format_timestamp(now)}{MARKER_SUFFIX}"
        status_path.write_text(text.rstrip('\n') + '\n', encoding='utf-8')
        return status_path
