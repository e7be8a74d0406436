"""
Announcements Frame - Directory Quiescence Watcher

Uploads over a network share arrive as a burst of file creations and
rewrites. Rather than reacting to each one, a watcher fingerprints the
directory every poll tick and reports "stable" once the fingerprint has not
changed for quiet_seconds.

The fingerprint is a SHA-1 over the sorted "name mtime" lines of the
directory's immediate entries, so it is independent of listing order and
changes whenever an entry is added, removed or rewritten. A directory that
does not exist fingerprints as NO_FINGERPRINT.
"""

import fnmatch
import hashlib
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

NO_FINGERPRINT = 'none'


def list_entries(directory: Path, exclude_pattern: Optional[str] = None, files_only: bool = False) -> List[os.DirEntry]:
    """Immediate (non-recursive) entries of `directory` not matching exclude_pattern."""
    try:
        with os.scandir(directory) as scan:
            entries = list(scan)
    except (FileNotFoundError, NotADirectoryError):
        return []

    result = []
    for entry in entries:
        if exclude_pattern and fnmatch.fnmatch(entry.name.lower(), exclude_pattern):
            continue
        try:
            if files_only and not entry.is_file():
                continue
        except OSError:
            continue
        result.append(entry)
    return result


def compute_fingerprint(directory: Path, exclude_pattern: Optional[str] = None, files_only: bool = False) -> str:
    """
    Fingerprint a directory's immediate entries by (name, mtime).

    Returns:
        Hex digest, or NO_FINGERPRINT if the directory does not exist.
    """
    if not Path(directory).is_dir():
        return NO_FINGERPRINT

    lines = []
    for entry in list_entries(directory, exclude_pattern, files_only):
        try:
            mtime_ns = entry.stat(follow_symlinks=False).st_mtime_ns
        except FileNotFoundError:
            # Removed between listing and stat; it is not part of this state
            continue
        lines.append(f"{entry.name} {mtime_ns}")

    digest = hashlib.sha1()
    for line in sorted(lines):
        digest.update(line.encode('utf-8', errors='surrogateescape'))
        digest.update(b'\n')
    return digest.hexdigest()


@dataclass
class QuietState:
    last_fingerprint: Optional[str] = None
    last_change_time: float = 0.0
    pending: bool = False


class QuiescenceWatcher:
    """
    Polls one directory and fires once each time it settles.

    Call poll() once per tick. It returns True exactly once per settle
    period: when a change is pending, at least quiet_seconds have passed
    since the last fingerprint change, and the directory still holds at
    least one non-excluded entry. If the directory is empty by the time it
    settles, the pending change is dropped without an event.

    arm_on_first controls the very first observation: True treats whatever is
    already there as a change (the inbox: leftover uploads get processed),
    False only seeds the fingerprint (the live directory: no restart on boot).
    """

    def __init__(
        self,
        directory: Path,
        quiet_seconds: float,
        exclude_pattern: Optional[str] = None,
        files_only: bool = False,
        arm_on_first: bool = True,
        clock: Callable[[], float] = time.time,
        name: Optional[str] = None,
    ):
        self.directory = Path(directory)
        self.quiet_seconds = quiet_seconds
        self.exclude_pattern = exclude_pattern
        self.files_only = files_only
        self.arm_on_first = arm_on_first
        self.name = name or self.directory.name
        self._clock = clock
        self.state = QuietState()

    def observe(self) -> str:
        return compute_fingerprint(self.directory, self.exclude_pattern, self.files_only)

    def has_entries(self) -> bool:
        return bool(list_entries(self.directory, self.exclude_pattern, self.files_only))

    def poll(self, blocked: bool = False) -> bool:
        """
        Run one watcher tick.

        Args:
            blocked: When True (e.g. a run is already in progress) changes are
                     still tracked but no event fires; the pending change is
                     kept for a later tick.

        Returns:
            True if the directory just became stable.
        """
        now = self._clock()
        fingerprint = self.observe()
        state = self.state

        if fingerprint != state.last_fingerprint:
            first_observation = state.last_fingerprint is None
            state.last_fingerprint = fingerprint
            if first_observation and not self.arm_on_first:
                logger.debug(f"{self.name}: initial fingerprint recorded")
            else:
                if not first_observation:
                    logger.info(f"{self.name} content has changed; waiting for it to settle...")
                state.last_change_time = now
                state.pending = True

        if blocked or not state.pending:
            return False

        if now - state.last_change_time < self.quiet_seconds:
            return False

        state.pending = False
        if not self.has_entries():
            logger.debug(f"{self.name}: settled but empty, nothing to do")
            return False

        logger.info(f"{self.name} quiet for {self.quiet_seconds}s")
        return True

    def rebaseline(self) -> None:
        """Accept the directory's current content as already handled."""
        self.state.last_fingerprint = self.observe()
        self.state.last_change_time = self._clock()
        self.state.pending = False
