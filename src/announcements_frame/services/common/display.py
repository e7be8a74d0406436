"""
Announcements Frame - Display Power Utilities

Turns the attached panel on and off through sysfs. Which knobs exist depends
on the display: the official touch panels expose a backlight bl_power node,
while on KMS the HDMI connector status node is frequently read-only. Every
write is therefore best-effort: a missing or read-only node is skipped.
"""

import logging
import os
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

# bl_power uses FB_BLANK values: 0 = unblank (on), 1 = powerdown
BACKLIGHT_ON = '0'
BACKLIGHT_OFF = '1'
HDMI_ON = 'on'
HDMI_OFF = 'off'

POWER_ON = 'on'
POWER_OFF = 'off'


def _write_sysfs(path: Path, value: str) -> bool:
    if not os.access(path, os.W_OK):
        logger.debug(f"{path} is not writable, skipping")
        return False
    try:
        with open(path, 'w') as f:
            f.write(value)
        return True
    except OSError as e:
        logger.debug(f"Write of '{value}' to {path} failed: {e}")
        return False


class DisplayPowerControl:
    """Best-effort panel power switch over the backlight and HDMI sysfs nodes."""

    def __init__(self, backlight_path: Path, hdmi_status_path: Path):
        self.backlight_path = Path(backlight_path)
        self.hdmi_status_path = Path(hdmi_status_path)

    def set_power(self, power: str) -> List[Path]:
        """
        Switch the panel on or off.

        Args:
            power: POWER_ON or POWER_OFF

        Returns:
            The sysfs nodes that accepted the write (possibly none).
        """
        turning_on = power == POWER_ON
        writes = [
            (self.backlight_path, BACKLIGHT_ON if turning_on else BACKLIGHT_OFF),
            (self.hdmi_status_path, HDMI_ON if turning_on else HDMI_OFF),
        ]

        written = [path for path, value in writes if _write_sysfs(path, value)]
        if written:
            logger.info(f"Display power {power} ({', '.join(str(p) for p in written)})")
        else:
            logger.info(f"Display power {power} requested; no writable control interface")
        return written
