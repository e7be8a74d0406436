"""
Announcements Frame - Shared State Files

Single-line text files used to hand a value from one service to another
(the slideshow mode and the display power state). Writers only touch the file
when the value actually changes, which is also how they remember the last
applied state across service restarts.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class StateFile:
    """A durable single-value text file with write-if-different semantics."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> Optional[str]:
        """
        Read the current value.

        Returns:
            The stripped value, or None if the file is missing, empty or unreadable.
        """
        try:
            value = self.path.read_text(encoding='utf-8').strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Error reading {self.path}: {e}")
            return None
        return value or None

    def write(self, value: str) -> None:
        """Replace the file in one rename so readers never see a partial value."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(f"{value}\n")
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def write_if_different(self, value: str) -> bool:
        """
        Write `value` only if it differs from what is stored.

        Returns:
            True if the file was written, False if it already held `value`.
        """
        if self.read() == value:
            return False
        self.write(value)
        return True
